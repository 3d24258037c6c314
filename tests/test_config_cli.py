import json

import pytest

from conftest import StubSource, make_rec, rising
from fx_signal_engine import cli
from fx_signal_engine.alert_store import AlertStore
from fx_signal_engine.config import GateConfig, load_gate_config
from fx_signal_engine.gate import NotificationGate


def test_load_gate_config_env_overrides(monkeypatch):
    monkeypatch.setenv("FX_GATE_MIN_CONFIDENCE", "72.5")
    monkeypatch.setenv("FX_GATE_COOLDOWN_SEC", "60")
    monkeypatch.setenv("FX_GATE_HISTORY_CAP", "not-a-number")
    gc = load_gate_config("standard")
    assert gc.min_confidence == 72.5
    assert gc.cooldown_sec == 60
    assert gc.history_cap == 50
    assert gc.dedupe_window_sec == 24 * 3600


def test_load_gate_config_unknown_preset():
    with pytest.raises(ValueError):
        load_gate_config("yolo")


def _run(monkeypatch, capsys, argv):
    monkeypatch.setattr("sys.argv", ["fx_signal_engine"] + argv)
    cli.main()
    return json.loads(capsys.readouterr().out)


def test_cli_analyze(monkeypatch, capsys, tmp_path):
    monkeypatch.setattr(cli, "build_source", lambda cfg: StubSource(rising(), rate=1.11))
    out = _run(monkeypatch, capsys, ["--db", str(tmp_path / "x.db"), "analyze", "--no-persist"])
    assert out["success"] is True
    assert out["recommendation"]["action"] == "BUY"
    assert not (tmp_path / "x.db").exists()


def test_cli_alerts_list_and_read(monkeypatch, capsys, tmp_path):
    state = str(tmp_path / "alerts.json")
    gate = NotificationGate(GateConfig(), store=AlertStore(state))
    gate.process(make_rec("r1"))

    out = _run(monkeypatch, capsys, ["alerts", "--state", state])
    assert out["unread"] == 1
    assert out["alerts"][0]["id"] == "r1"

    out = _run(monkeypatch, capsys, ["alerts", "read", "--id", "r1", "--state", state])
    assert out == {"ok": True, "id": "r1"}
    assert AlertStore(state).alerts[0].read is True


def test_cli_alerts_read_requires_id(monkeypatch, tmp_path):
    monkeypatch.setattr("sys.argv", ["fx_signal_engine", "alerts", "read", "--state", str(tmp_path / "a.json")])
    with pytest.raises(SystemExit):
        cli.main()
