from __future__ import annotations

import logging
import math
import sqlite3
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from . import db
from .config import EngineConfig
from .indicators import change_pct, rolling_rsi, rolling_sma
from .models import PricePoint, Recommendation
from .price_source import PriceSource, PriceSourceError
from .recommender import recommend


def _num(x: float) -> Optional[float]:
    x = float(x)
    return None if math.isnan(x) else x


def indicator_rows(history: List[PricePoint], cfg: EngineConfig) -> List[Dict[str, Any]]:
    """Per-date SMA5/10/20, RSI and change% for a history (oldest -> newest)."""
    closes = [p.close for p in history]
    sma5 = rolling_sma(closes, cfg.sma_fast)
    sma10 = rolling_sma(closes, cfg.sma_mid)
    sma20 = rolling_sma(closes, cfg.sma_slow)
    rsi = rolling_rsi(closes, cfg.rsi_period)
    chg = change_pct(closes)
    return [
        {
            "date": p.date,
            "sma5": _num(sma5[i]),
            "sma10": _num(sma10[i]),
            "sma20": _num(sma20[i]),
            "rsi": _num(rsi[i]),
            "change_pct": _num(chg[i]),
        }
        for i, p in enumerate(history)
    ]


def format_recommendation(rec: Recommendation) -> Dict[str, Any]:
    out = rec.to_dict()
    ind = dict(rec.indicators)
    for k in ("sma5", "sma10", "sma20"):
        if ind.get(k) is not None:
            ind[k] = round(float(ind[k]), 5)
    if ind.get("rsi") is not None:
        ind["rsi"] = round(float(ind["rsi"]), 2)
    out["indicators"] = ind
    out["profit_pct"] = round(rec.profit_pct, 3)
    return out


def persist_analysis(cfg: EngineConfig, history: List[PricePoint], rec: Recommendation, day: str) -> bool:
    """Best-effort writeback of history, indicators and the recommendation."""
    conn = None
    try:
        conn = db.connect(cfg.db_path)
        rows = indicator_rows(history, cfg)
        db.upsert_prices(conn, rec.pair, history, changes=[r["change_pct"] for r in rows])
        db.update_indicators_many(conn, rec.pair, rows)
        db.insert_recommendation(conn, rec, day)
        return True
    except (sqlite3.Error, OSError):
        logging.exception("persisting analysis for %s failed (db=%s)", rec.pair, cfg.db_path)
        return False
    finally:
        if conn is not None:
            conn.close()


def analyze(
    cfg: EngineConfig,
    source: PriceSource,
    *,
    now: Optional[float] = None,
    today: Optional[date] = None,
    persist: bool = True,
) -> Recommendation:
    """Fetch the spot rate, rebuild the trailing window and produce one recommendation.

    Raises PriceSourceError / ValueError before anything is written.
    """
    pair = cfg.pair
    rate = source.current_rate(pair)
    history = source.history(pair, cfg.history_days, anchor=rate, end=today)
    closes = [p.close for p in history]
    rec = recommend(pair, closes, rate, cfg, now=now)

    logging.info(
        "%s %s conf=%.0f price=%.5f target=%.5f stop=%.5f (%d prices)",
        pair, rec.action, rec.confidence, rec.current_price, rec.target_price, rec.stop_loss, len(closes),
    )

    if persist:
        day = (today or datetime.fromtimestamp(rec.timestamp, tz=timezone.utc).date()).isoformat()
        persist_analysis(cfg, history, rec, day)
    return rec


def analysis_failure(cfg: EngineConfig, exc: Exception) -> Dict[str, Any]:
    logging.error("analysis for %s failed: %s", cfg.pair, exc)
    return {"success": False, "error": str(exc)}


def analysis_success(rec: Recommendation) -> Dict[str, Any]:
    return {"success": True, "recommendation": format_recommendation(rec)}


def try_analyze(cfg: EngineConfig, source: PriceSource, **kwargs) -> Tuple[Optional[Recommendation], Dict[str, Any]]:
    """Run `analyze` and build the response body; the recommendation is None on failure."""
    try:
        rec = analyze(cfg, source, **kwargs)
    except (PriceSourceError, ValueError) as exc:
        return None, analysis_failure(cfg, exc)
    return rec, analysis_success(rec)


def run_analysis(cfg: EngineConfig, source: PriceSource, **kwargs) -> Dict[str, Any]:
    """Request/response wrapper: {"success": True, "recommendation": {...}} or {"success": False, "error": "..."}."""
    return try_analyze(cfg, source, **kwargs)[1]
