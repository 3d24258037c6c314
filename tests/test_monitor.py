import asyncio
from dataclasses import replace

from conftest import StubSource, rising
from fx_signal_engine.config import GateConfig
from fx_signal_engine.gate import NotificationGate
from fx_signal_engine.monitor import Monitor, monitor_loop

OPEN = GateConfig(min_confidence=0, min_profit_pct=0.1, cooldown_sec=0, dedupe_window_sec=0)


def test_tick_runs_analysis_and_gates(cfg, clock):
    gate = NotificationGate(OPEN, clock=clock)
    mon = Monitor(cfg, StubSource(rising(), rate=1.11), gate)
    rec = mon.tick()
    assert rec is not None and rec.action == "BUY"
    assert mon.last_recommendation is rec
    assert [a.id for a in gate.alerts] == [rec.id]


def test_tick_is_debounced(cfg, clock):
    mon = Monitor(cfg, StubSource(rising()), NotificationGate(OPEN, clock=clock))
    mon._tick_lock.acquire()
    try:
        assert mon.tick() is None
    finally:
        mon._tick_lock.release()
    assert mon.tick() is not None


def test_tick_survives_upstream_failure(cfg, clock):
    gate = NotificationGate(OPEN, clock=clock)
    mon = Monitor(cfg, StubSource(rising(), fail=True), gate)
    assert mon.tick() is None
    assert gate.alerts == []


def test_check_targets_uses_spot_rate(cfg, clock):
    gate = NotificationGate(OPEN, clock=clock)
    src = StubSource(rising(), rate=1.11)
    mon = Monitor(cfg, src, gate)
    rec = mon.tick()

    src.rate = rec.target_price + 0.0001
    hits = mon.check_targets()
    assert [a.id for a in hits] == [rec.id]
    assert mon.check_targets() == []


def test_monitor_loop_stops_after_ticks(cfg, clock):
    src = StubSource(rising(), rate=1.11)
    mon = Monitor(replace(cfg, poll_interval_sec=1), src, NotificationGate(OPEN, clock=clock))
    asyncio.run(monitor_loop(mon, max_ticks=1))
    assert mon.last_recommendation is not None
    assert src.rate_calls == 1
