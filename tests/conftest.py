from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional, Sequence

import pytest

from fx_signal_engine.config import EngineConfig
from fx_signal_engine.models import BUY, PricePoint, Recommendation
from fx_signal_engine.price_source import PriceSource, PriceSourceError

END = date(2024, 3, 29)


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubSource(PriceSource):
    """Fixed closes and spot rate; `fail` makes every call raise."""

    def __init__(self, closes: Sequence[float], rate: Optional[float] = None, fail: bool = False):
        self.closes = list(closes)
        self.rate = rate if rate is not None else self.closes[-1]
        self.fail = fail
        self.rate_calls = 0

    def current_rate(self, pair: str) -> float:
        self.rate_calls += 1
        if self.fail:
            raise PriceSourceError("upstream down")
        return self.rate

    def history(self, pair, days, anchor=None, end=None) -> List[PricePoint]:
        if self.fail:
            raise PriceSourceError("upstream down")
        end = end or END
        closes = self.closes[-days:]
        n = len(closes)
        return [
            PricePoint(
                timestamp=(end - timedelta(days=n - 1 - i)).isoformat(),
                open=c,
                high=c * 1.002,
                low=c * 0.998,
                close=c,
                volume=1000.0,
            )
            for i, c in enumerate(closes)
        ]


def rising(n: int = 30, start: float = 1.08, step: float = 0.001) -> List[float]:
    return [round(start + i * step, 5) for i in range(n)]


def falling(n: int = 30, start: float = 1.12, step: float = 0.001) -> List[float]:
    return [round(start - i * step, 5) for i in range(n)]


def make_rec(
    rec_id: str = "rec-1",
    action: str = BUY,
    confidence: float = 90.0,
    current: float = 1.08,
    gap_pct: float = 1.2,
    pair: str = "EURUSD",
    ts: float = 0.0,
) -> Recommendation:
    sign = 1 if action == BUY else -1 if action == "SELL" else 0
    target = current * (1 + sign * gap_pct / 100.0)
    stop = current * (1 - sign * gap_pct / 200.0)
    return Recommendation(
        pair=pair,
        timestamp=ts,
        action=action,
        confidence=confidence,
        current_price=current,
        target_price=target,
        stop_loss=stop,
        reasoning="test",
        id=rec_id,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cfg(tmp_path) -> EngineConfig:
    return EngineConfig(
        db_path=str(tmp_path / "fx.db"),
        pair="EURUSD",
        history_days=30,
        alert_state_path=str(tmp_path / "alerts.json"),
        exchange_rate_api_key="",
        synthetic_seed=7,
        notify_enabled=False,
        gate_preset="premium",
    )
