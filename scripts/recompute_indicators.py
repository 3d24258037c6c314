#!/usr/bin/env python
"""Recompute SMA5/10/20, RSI14 and change% for price_history, optionally for a date range.

This fixes missing indicators caused by partial loads or edited closes.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fx_signal_engine import db  # noqa: E402
from fx_signal_engine.config import EngineConfig  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")


def _to_date(value: str | None) -> str | None:
    if not value:
        return None
    value = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y%m%d"):
        try:
            return datetime.strptime(value, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def rsi_series(close: pd.Series, period: int) -> pd.Series:
    d = close.diff()
    avg_gain = d.clip(lower=0).rolling(period, min_periods=period).sum() / period
    avg_loss = (-d).clip(lower=0).rolling(period, min_periods=period).sum() / period
    rsi = 100 - 100 / (1 + avg_gain / avg_loss)
    # zero average loss saturates at 100
    return rsi.mask(avg_loss == 0, 100.0)


def recompute(df: pd.DataFrame, cfg: EngineConfig) -> pd.DataFrame:
    df = df.sort_values(["pair", "date"]).copy()
    g = df.groupby("pair")["close"]
    df["sma5"] = g.transform(lambda s: s.rolling(cfg.sma_fast).mean())
    df["sma10"] = g.transform(lambda s: s.rolling(cfg.sma_mid).mean())
    df["sma20"] = g.transform(lambda s: s.rolling(cfg.sma_slow).mean())
    df["rsi"] = g.transform(lambda s: rsi_series(s, cfg.rsi_period))
    df["change_pct"] = g.transform(lambda s: s.pct_change() * 100).fillna(0.0)
    return df


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", type=str, default=None, help="SQLite DB path (default: config)")
    parser.add_argument("--pair", type=str, default=None, help="only this pair (default: all)")
    parser.add_argument("--start", type=str, default=None, help="YYYY-MM-DD or YYYYMMDD")
    parser.add_argument("--end", type=str, default=None, help="YYYY-MM-DD or YYYYMMDD")
    args = parser.parse_args()

    cfg = EngineConfig()
    conn = db.connect(args.db or cfg.db_path)
    try:
        # Load full series; rolling windows need the bars before --start too
        df = pd.read_sql_query(
            "SELECT pair, date, close FROM price_history WHERE close IS NOT NULL",
            conn,
        )
        if args.pair:
            df = df[df["pair"] == args.pair.upper()]
        if df.empty:
            logging.warning("price_history empty")
            return

        df = recompute(df, cfg)

        start = _to_date(args.start)
        end = _to_date(args.end)
        if start:
            df = df[df["date"] >= start]
        if end:
            df = df[df["date"] <= end]

        cols = ["sma5", "sma10", "sma20", "rsi", "change_pct"]
        n = 0
        for pair, part in df.groupby("pair"):
            rows = part[["date"] + cols].astype(object).where(part[["date"] + cols].notna(), None).to_dict("records")
            n += db.update_indicators_many(conn, str(pair), rows)
        logging.info("recomputed indicators rows=%d start=%s end=%s", n, start or "ALL", end or "ALL")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
