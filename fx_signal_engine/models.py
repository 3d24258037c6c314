from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

BUY = "BUY"
SELL = "SELL"
HOLD = "HOLD"
ACTIONS = (BUY, SELL, HOLD)


def iso_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def profit_pct(current_price: float, target_price: float) -> float:
    """Signed % move from current to target (0 when current is 0)."""
    if not current_price:
        return 0.0
    return (target_price - current_price) / current_price * 100.0


@dataclass(frozen=True)
class PricePoint:
    timestamp: str  # YYYY-MM-DD for daily bars
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @property
    def date(self) -> str:
        return self.timestamp[:10]


@dataclass(frozen=True)
class Recommendation:
    pair: str
    timestamp: float
    action: str
    confidence: float
    current_price: float
    target_price: float
    stop_loss: float
    reasoning: str
    id: str
    indicators: Dict[str, Any] = field(default_factory=dict)

    @property
    def profit_pct(self) -> float:
        return profit_pct(self.current_price, self.target_price)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["timestamp"] = iso_ts(self.timestamp)
        return out


@dataclass
class StoredAlert:
    id: str
    pair: str
    action: str
    current_price: float
    target_price: float
    confidence: float
    timestamp: float
    potential_profit_pct: float
    read: bool = False
    target_reached: bool = False

    @classmethod
    def from_recommendation(cls, rec: Recommendation, ts: float) -> "StoredAlert":
        return cls(
            id=rec.id,
            pair=rec.pair,
            action=rec.action,
            current_price=rec.current_price,
            target_price=rec.target_price,
            confidence=rec.confidence,
            timestamp=ts,
            potential_profit_pct=round(abs(rec.profit_pct), 2),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredAlert":
        return cls(
            id=str(data["id"]),
            pair=str(data["pair"]),
            action=str(data["action"]),
            current_price=float(data["current_price"]),
            target_price=float(data["target_price"]),
            confidence=float(data["confidence"]),
            timestamp=float(data["timestamp"]),
            potential_profit_pct=float(data.get("potential_profit_pct", 0.0)),
            read=bool(data.get("read", False)),
            target_reached=bool(data.get("target_reached", False)),
        )


@dataclass(frozen=True)
class AlertMessage:
    kind: str  # opportunity | target_reached
    alert: StoredAlert
    text: str
