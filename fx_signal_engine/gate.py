from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from .alert_store import AlertStore
from .config import EngineConfig, GateConfig, load_gate_config, load_notify_settings
from .models import BUY, SELL, AlertMessage, Recommendation, StoredAlert
from .notifier import log_sink, make_sink

NOTIFIED_IDS_KEEP = 1000

AlertSink = Callable[[AlertMessage], None]


def format_opportunity(alert: StoredAlert) -> str:
    direction = "+" if alert.action == BUY else "-" if alert.action == SELL else "±"
    return (
        f"Opportunity: {alert.action} {alert.pair} | "
        f"current {alert.current_price:.5f} | target {alert.target_price:.5f} | "
        f"confidence {alert.confidence:.0f}% | expected profit {direction}{alert.potential_profit_pct:.2f}%"
    )


def format_target_reached(alert: StoredAlert, price: float) -> str:
    return (
        f"Target reached: {alert.action} {alert.pair} | "
        f"current {price:.5f} | target {alert.target_price:.5f}"
    )


def target_hit(alert: StoredAlert, price: float) -> bool:
    if alert.action == BUY:
        return price >= alert.target_price
    if alert.action == SELL:
        return price <= alert.target_price
    return False


class NotificationGate:
    """Decides which recommendations become alerts and owns the alert history.

    Rules, checked in order (first failure wins):
      1. recommendation id already alerted
      2. confidence below `min_confidence`
      3. |target - current| / current below `min_profit_pct`
      4. last alert more recent than `cooldown_sec`
      5. same pair+action alerted within `dedupe_window_sec`

    All state changes happen under one lock, so two concurrent callers cannot
    both pass the cooldown/dedupe rules for the same event. Sinks are called
    outside the lock and their failures are logged, never raised.
    """

    def __init__(
        self,
        config: Optional[GateConfig] = None,
        store: Optional[AlertStore] = None,
        sinks: Optional[Iterable[AlertSink]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or GateConfig()
        self.store = store
        self.sinks: List[AlertSink] = list(sinks or [])
        self.clock = clock
        self._lock = threading.Lock()

        self._alerts: List[StoredAlert] = []
        self._notified_ids: List[str] = []
        self._last_alert_ts: Optional[float] = None
        if store is not None:
            self._alerts = list(store.alerts)[: self.config.history_cap]
            self._notified_ids = list(store.notified_ids)
            self._last_alert_ts = store.last_alert_ts

    @property
    def alerts(self) -> List[StoredAlert]:
        with self._lock:
            return [replace(a) for a in self._alerts]

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for a in self._alerts if not a.read)

    @property
    def last_alert_ts(self) -> Optional[float]:
        with self._lock:
            return self._last_alert_ts

    def was_notified(self, rec_id: str) -> bool:
        with self._lock:
            return rec_id in self._notified_ids

    def _rejection(self, rec: Recommendation, now: float) -> Optional[str]:
        cfg = self.config
        if rec.id in self._notified_ids:
            return "already notified"
        if rec.confidence < cfg.min_confidence:
            return f"confidence {rec.confidence:.0f}% below {cfg.min_confidence:.0f}%"
        gap = abs(rec.profit_pct)
        if gap < cfg.min_profit_pct:
            return f"potential profit {gap:.2f}% below {cfg.min_profit_pct:.2f}%"
        if self._last_alert_ts is not None:
            since = now - self._last_alert_ts
            if since < cfg.cooldown_sec:
                return f"last alert was {int(since // 60)} minutes ago"
        for a in self._alerts:
            if a.pair == rec.pair and a.action == rec.action and now - a.timestamp < cfg.dedupe_window_sec:
                return f"similar {a.action} alert for {a.pair} already inside the dedupe window"
        return None

    def rejection_reason(self, rec: Recommendation) -> Optional[str]:
        with self._lock:
            return self._rejection(rec, self.clock())

    def should_alert(self, rec: Recommendation) -> bool:
        return self.rejection_reason(rec) is None

    def process(self, rec: Recommendation) -> Optional[StoredAlert]:
        """Gate one recommendation; on acceptance record it and notify sinks."""
        with self._lock:
            now = self.clock()
            reason = self._rejection(rec, now)
            if reason is not None:
                logging.info("skip alert %s (%s %s): %s", rec.id, rec.action, rec.pair, reason)
                return None

            alert = StoredAlert.from_recommendation(rec, now)
            self._alerts.insert(0, alert)
            del self._alerts[self.config.history_cap :]
            self._notified_ids.append(rec.id)
            del self._notified_ids[:-NOTIFIED_IDS_KEEP]
            self._last_alert_ts = now
            self._persist()
            snapshot = replace(alert)

        logging.info("alert %s: %s %s conf=%.0f", rec.id, rec.action, rec.pair, rec.confidence)
        self._emit(AlertMessage("opportunity", snapshot, format_opportunity(snapshot)))
        return snapshot

    def check_target_reached(self, price: float) -> List[StoredAlert]:
        """Flip target_reached (one way) for every pending alert the price has crossed."""
        with self._lock:
            hits = []
            for a in self._alerts:
                if not a.target_reached and target_hit(a, price):
                    a.target_reached = True
                    hits.append(replace(a))
            if hits:
                self._persist()

        for a in hits:
            logging.info("target reached for %s (%s %s) at %.5f", a.id, a.action, a.pair, price)
            self._emit(AlertMessage("target_reached", a, format_target_reached(a, price)))
        return hits

    def mark_read(self, alert_id: str) -> bool:
        with self._lock:
            for a in self._alerts:
                if a.id == alert_id:
                    a.read = True
                    self._persist()
                    return True
        return False

    def mark_all_read(self) -> int:
        with self._lock:
            n = 0
            for a in self._alerts:
                if not a.read:
                    a.read = True
                    n += 1
            if n:
                self._persist()
            return n

    def delete(self, alert_id: str) -> bool:
        with self._lock:
            before = len(self._alerts)
            self._alerts = [a for a in self._alerts if a.id != alert_id]
            if len(self._alerts) == before:
                return False
            self._persist()
            return True

    def clear(self) -> None:
        with self._lock:
            self._alerts = []
            self._persist()

    def _persist(self) -> None:
        if self.store is None:
            return
        self.store.alerts = [replace(a) for a in self._alerts]
        self.store.notified_ids = list(self._notified_ids)
        self.store.last_alert_ts = self._last_alert_ts
        try:
            self.store.save()
        except OSError:
            logging.exception("alert state save failed (%s)", self.store.path)

    def _emit(self, msg: AlertMessage) -> None:
        for sink in self.sinks:
            try:
                sink(msg)
            except Exception:
                logging.exception("alert sink failed for %s", msg.alert.id)


def build_gate(cfg: EngineConfig, notify_settings: Optional[dict] = None) -> NotificationGate:
    """Gate wired to the configured preset, the JSON alert store and sinks."""
    sinks: List[AlertSink] = [log_sink]
    if cfg.notify_enabled:
        sinks.append(make_sink(notify_settings if notify_settings is not None else load_notify_settings()))
    return NotificationGate(
        load_gate_config(cfg.gate_preset),
        store=AlertStore(cfg.alert_state_path),
        sinks=sinks,
    )
