from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import List, Optional

from .models import StoredAlert


class AlertStore:
    """JSON file mirror of the notification gate state."""

    def __init__(self, path: str = "data/alert_state.json"):
        self.path = Path(path)
        self.alerts: List[StoredAlert] = []
        self.notified_ids: List[str] = []
        self.last_alert_ts: Optional[float] = None
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.alerts = [StoredAlert.from_dict(a) for a in data.get("alerts", [])]
            self.notified_ids = [str(x) for x in data.get("notified_ids", [])]
            last = data.get("last_alert_ts")
            self.last_alert_ts = float(last) if last is not None else None
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logging.warning("alert state unreadable (%s), starting empty: %s", self.path, exc)
            self.alerts = []
            self.notified_ids = []
            self.last_alert_ts = None

    def save(self) -> None:
        payload = {
            "alerts": [a.to_dict() for a in self.alerts],
            "notified_ids": self.notified_ids,
            "last_alert_ts": self.last_alert_ts,
            "updated_at": time.time(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
