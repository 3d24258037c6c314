import importlib.util
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from conftest import StubSource, falling, rising
from fx_signal_engine import db
from fx_signal_engine.config import EngineConfig
from fx_signal_engine.indicators import rolling_rsi, rolling_sma

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "recompute_indicators.py"


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("recompute_indicators", SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_pandas_recompute_matches_engine(script):
    rng = np.random.default_rng(9)
    closes = list(1.1 + np.cumsum(rng.normal(0, 0.003, 40)))
    df = pd.DataFrame({"pair": "EURUSD", "date": [f"d{i:03d}" for i in range(40)], "close": closes})

    out = script.recompute(df, EngineConfig())

    np.testing.assert_allclose(out["sma20"].to_numpy(), rolling_sma(closes, 20), equal_nan=True)
    np.testing.assert_allclose(out["rsi"].to_numpy(), rolling_rsi(closes, 14), equal_nan=True)
    assert out["change_pct"].iloc[0] == 0.0


def test_pandas_rsi_saturates(script):
    rsi = script.rsi_series(pd.Series([1.1] * 20), 14)
    assert rsi.iloc[-1] == 100.0
    assert np.isnan(rsi.iloc[13])


def test_main_writes_back(script, cfg, monkeypatch):
    conn = db.connect(cfg.db_path)
    try:
        db.upsert_prices(conn, "EURUSD", StubSource(rising()).history("EURUSD", 30))
        db.upsert_prices(conn, "GBPUSD", StubSource(falling()).history("GBPUSD", 30))
    finally:
        conn.close()

    monkeypatch.setattr("sys.argv", ["recompute_indicators.py", "--db", cfg.db_path])
    script.main()

    conn = db.connect(cfg.db_path)
    try:
        eur = db.fetch_prices(conn, "EURUSD")
        gbp = db.fetch_prices(conn, "GBPUSD")
    finally:
        conn.close()
    assert eur[-1]["rsi"] == 100.0
    assert gbp[-1]["rsi"] == pytest.approx(0.0)
    assert eur[-1]["sma20"] == pytest.approx(np.mean([p for p in rising()][-20:]))
    assert eur[0]["sma5"] is None
