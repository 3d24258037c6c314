from __future__ import annotations

import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import PricePoint, Recommendation

SCHEMA = """
CREATE TABLE IF NOT EXISTS price_history (
    pair TEXT NOT NULL,
    date TEXT NOT NULL,
    open REAL,
    high REAL,
    low REAL,
    close REAL,
    volume REAL,
    change_pct REAL,
    sma5 REAL,
    sma10 REAL,
    sma20 REAL,
    rsi REAL,
    PRIMARY KEY (pair, date)
);
CREATE TABLE IF NOT EXISTS recommendations (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    pair TEXT NOT NULL,
    action TEXT NOT NULL,
    confidence REAL NOT NULL,
    current_price REAL NOT NULL,
    target_price REAL NOT NULL,
    stop_loss REAL NOT NULL,
    reasoning TEXT,
    indicators TEXT,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_recommendations_pair_date ON recommendations(pair, date);
"""

INDICATOR_COLUMNS = ("sma5", "sma10", "sma20", "rsi", "change_pct")

def connect(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    return conn

def upsert_prices(
    conn: sqlite3.Connection,
    pair: str,
    points: Sequence[PricePoint],
    changes: Optional[Sequence[float]] = None,
) -> int:
    """Insert or refresh OHLCV rows keyed by (pair, date); indicator columns are kept."""
    rows = []
    for i, p in enumerate(points):
        chg = float(changes[i]) if changes is not None else None
        rows.append((pair, p.date, p.open, p.high, p.low, p.close, p.volume, chg))
    conn.executemany(
        """
        INSERT INTO price_history (pair, date, open, high, low, close, volume, change_pct)
        VALUES (?,?,?,?,?,?,?,?)
        ON CONFLICT(pair, date) DO UPDATE SET
            open=excluded.open,
            high=excluded.high,
            low=excluded.low,
            close=excluded.close,
            volume=COALESCE(excluded.volume, price_history.volume),
            change_pct=COALESCE(excluded.change_pct, price_history.change_pct)
        """,
        rows,
    )
    conn.commit()
    return len(rows)

def update_indicators(conn: sqlite3.Connection, pair: str, date: str, values: Dict[str, Any]) -> None:
    """Write computed indicator fields for one date (None values leave the column untouched)."""
    cols = [c for c in INDICATOR_COLUMNS if values.get(c) is not None]
    if not cols:
        return
    params = [float(values[c]) for c in cols]
    conn.execute(
        f"""
        INSERT INTO price_history (pair, date, {", ".join(cols)})
        VALUES (?, ?, {", ".join("?" for _ in cols)})
        ON CONFLICT(pair, date) DO UPDATE SET {", ".join(f"{c}=excluded.{c}" for c in cols)}
        """,
        (pair, date, *params),
    )
    conn.commit()

def update_indicators_many(conn: sqlite3.Connection, pair: str, rows: Iterable[Dict[str, Any]]) -> int:
    n = 0
    for r in rows:
        update_indicators(conn, pair, str(r["date"]), r)
        n += 1
    return n

def insert_recommendation(conn: sqlite3.Connection, rec: Recommendation, date: str) -> None:
    conn.execute(
        """
        INSERT OR REPLACE INTO recommendations
        (id, date, pair, action, confidence, current_price, target_price, stop_loss, reasoning, indicators, created_at)
        VALUES (?,?,?,?,?,?,?,?,?,?,?)
        """,
        (
            rec.id,
            date,
            rec.pair,
            rec.action,
            rec.confidence,
            rec.current_price,
            rec.target_price,
            rec.stop_loss,
            rec.reasoning,
            json.dumps(rec.indicators),
            time.time(),
        ),
    )
    conn.commit()

def fetch_prices(conn: sqlite3.Connection, pair: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Most recent `limit` rows for a pair, returned oldest -> newest."""
    lim_sql = f" LIMIT {int(limit)}" if limit is not None else ""
    cur = conn.execute(
        f"SELECT * FROM price_history WHERE pair=? ORDER BY date DESC{lim_sql}",
        (pair,),
    )
    return [dict(r) for r in reversed(cur.fetchall())]

def fetch_closes(conn: sqlite3.Connection, pair: str, limit: Optional[int] = None) -> List[float]:
    return [float(r["close"]) for r in fetch_prices(conn, pair, limit) if r["close"] is not None]

def fetch_recommendations(conn: sqlite3.Connection, pair: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
    if pair:
        cur = conn.execute(
            "SELECT * FROM recommendations WHERE pair=? ORDER BY created_at DESC LIMIT ?",
            (pair, int(limit)),
        )
    else:
        cur = conn.execute("SELECT * FROM recommendations ORDER BY created_at DESC LIMIT ?", (int(limit),))
    out = []
    for r in cur.fetchall():
        d = dict(r)
        try:
            d["indicators"] = json.loads(d["indicators"]) if d.get("indicators") else {}
        except ValueError:
            d["indicators"] = {}
        out.append(d)
    return out
