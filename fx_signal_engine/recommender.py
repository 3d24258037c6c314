from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from .config import EngineConfig
from .indicators import latest_rsi, latest_sma
from .models import BUY, HOLD, SELL, Recommendation

BASE_REASONING = "Technical picture points to a continuation of the current trend"

def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))

def compute_indicators(closes: Sequence[float], cfg: EngineConfig) -> Dict[str, Any]:
    """Latest SMA/RSI values over `closes` (oldest -> newest); None when undefined."""
    return {
        "sma5": latest_sma(closes, cfg.sma_fast),
        "sma10": latest_sma(closes, cfg.sma_mid),
        "sma20": latest_sma(closes, cfg.sma_slow),
        "rsi": latest_rsi(closes, cfg.rsi_period),
        "prices_analyzed": len(closes),
    }

def _score(
    current_price: float,
    sma5: Optional[float],
    sma10: Optional[float],
    sma20: Optional[float],
    rsi: Optional[float],
    cfg: EngineConfig,
):
    bullish = 0
    bearish = 0
    notes: List[str] = []

    # MA factors need the full stack
    if sma5 is not None and sma10 is not None and sma20 is not None:
        if sma5 > sma10 > sma20:
            bullish += 3
            notes.append("moving averages stacked in a clear uptrend")
        elif sma5 < sma10 < sma20:
            bearish += 3
            notes.append("moving averages stacked in a clear downtrend")

        if current_price > sma20:
            bullish += 1
        else:
            bearish += 1

    if rsi is not None:
        if rsi < cfg.rsi_oversold:
            bullish += 2
            notes.append(f"RSI {rsi:.1f} signals oversold conditions")
        elif rsi > cfg.rsi_overbought:
            bearish += 2
            notes.append(f"RSI {rsi:.1f} signals overbought conditions")
        elif rsi > 50:
            bullish += 1
        else:
            bearish += 1

    return bullish, bearish, notes

def generate_signal(
    current_price: float,
    sma5: Optional[float],
    sma10: Optional[float],
    sma20: Optional[float],
    rsi: Optional[float],
    cfg: EngineConfig,
) -> Dict[str, Any]:
    """Point-scored BUY/SELL/HOLD with target/stop from the fixed volatility."""
    bullish, bearish, notes = _score(current_price, sma5, sma10, sma20, rsi, cfg)

    action = HOLD
    confidence = cfg.neutral_confidence
    target = current_price
    stop = current_price
    vol = cfg.volatility

    if bullish > bearish:
        action = BUY
        target = current_price * (1 + vol * 2)
        stop = current_price * (1 - vol)
    elif bearish > bullish:
        action = SELL
        target = current_price * (1 - vol * 2)
        stop = current_price * (1 + vol)

    if action != HOLD:
        confidence = min(cfg.max_confidence, cfg.base_confidence + abs(bullish - bearish) * cfg.confidence_step)

    return {
        "action": action,
        "confidence": clamp(float(confidence), 0.0, 100.0),
        "target_price": target,
        "stop_loss": stop,
        "reasoning": " | ".join([BASE_REASONING] + notes),
        "bullish_points": bullish,
        "bearish_points": bearish,
    }

def recommend(
    pair: str,
    closes: Sequence[float],
    current_price: float,
    cfg: EngineConfig,
    now: Optional[float] = None,
) -> Recommendation:
    if current_price <= 0:
        raise ValueError(f"current price must be positive, got {current_price}")
    ts = time.time() if now is None else float(now)
    ind = compute_indicators(closes, cfg)
    sig = generate_signal(current_price, ind["sma5"], ind["sma10"], ind["sma20"], ind["rsi"], cfg)
    return Recommendation(
        pair=pair,
        timestamp=ts,
        action=sig["action"],
        confidence=sig["confidence"],
        current_price=float(current_price),
        target_price=float(sig["target_price"]),
        stop_loss=float(sig["stop_loss"]),
        reasoning=sig["reasoning"],
        id=f"{pair}-{int(ts * 1000)}",
        indicators=ind,
    )
