from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import List, Optional

from .config import EngineConfig
from .gate import NotificationGate
from .models import Recommendation, StoredAlert
from .price_source import PriceSource, PriceSourceError
from .service import analyze


class Monitor:
    """Periodic analysis + gating.

    `tick()` and `check_targets()` are debounced: a call that finds the
    previous one still running returns None instead of queueing.
    """

    def __init__(self, cfg: EngineConfig, source: PriceSource, gate: NotificationGate):
        self.cfg = cfg
        self.source = source
        self.gate = gate
        self._tick_lock = threading.Lock()
        self._target_lock = threading.Lock()
        self.last_recommendation: Optional[Recommendation] = None

    def tick(self) -> Optional[Recommendation]:
        if not self._tick_lock.acquire(blocking=False):
            logging.info("previous analysis still running; skip tick")
            return None
        try:
            try:
                rec = analyze(self.cfg, self.source, now=self.gate.clock())
            except (PriceSourceError, ValueError) as exc:
                logging.warning("analysis failed: %s", exc)
                return None
            self.last_recommendation = rec
            self.gate.process(rec)
            self.gate.check_target_reached(rec.current_price)
            return rec
        finally:
            self._tick_lock.release()

    def check_targets(self) -> Optional[List[StoredAlert]]:
        if not self._target_lock.acquire(blocking=False):
            logging.info("previous target check still running; skip")
            return None
        try:
            try:
                price = self.source.current_rate(self.cfg.pair)
            except PriceSourceError as exc:
                logging.warning("target check skipped, no price: %s", exc)
                return None
            return self.gate.check_target_reached(price)
        finally:
            self._target_lock.release()


async def monitor_loop(monitor: Monitor, max_ticks: Optional[int] = None) -> None:
    cfg = monitor.cfg
    poll = max(1, int(cfg.poll_interval_sec))
    target_every = max(poll, int(cfg.target_check_interval_sec))
    last_target_check = time.monotonic()
    ticks = 0

    while max_ticks is None or ticks < max_ticks:
        await asyncio.to_thread(monitor.tick)
        ticks += 1
        if time.monotonic() - last_target_check >= target_every:
            await asyncio.to_thread(monitor.check_targets)
            last_target_check = time.monotonic()
        if max_ticks is not None and ticks >= max_ticks:
            break
        await asyncio.sleep(poll)
