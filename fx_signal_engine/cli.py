from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import replace
from typing import Any

from . import db
from .config import GATE_PRESETS, EngineConfig
from .gate import build_gate
from .monitor import Monitor, monitor_loop
from .price_source import build_source
from .service import run_analysis

def _p(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))

def _cfg(args: argparse.Namespace) -> EngineConfig:
    cfg = EngineConfig()
    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
    if args.pair:
        overrides["pair"] = args.pair.upper()
    if getattr(args, "state", None):
        overrides["alert_state_path"] = args.state
    if getattr(args, "preset", None):
        overrides["gate_preset"] = args.preset
    return replace(cfg, **overrides) if overrides else cfg

def cmd_analyze(args: argparse.Namespace) -> None:
    cfg = _cfg(args)
    if args.days:
        cfg = replace(cfg, history_days=args.days)
    out = run_analysis(cfg, build_source(cfg), persist=not args.no_persist)
    _p(out)

def cmd_monitor(args: argparse.Namespace) -> None:
    cfg = _cfg(args)
    if args.interval:
        cfg = replace(cfg, poll_interval_sec=args.interval)
    monitor = Monitor(cfg, build_source(cfg), build_gate(cfg))
    asyncio.run(monitor_loop(monitor, max_ticks=args.ticks))

def cmd_alerts(args: argparse.Namespace) -> None:
    gate = build_gate(_cfg(args))
    if args.action == "read":
        _p({"ok": gate.mark_read(args.id), "id": args.id})
    elif args.action == "read-all":
        _p({"ok": True, "marked": gate.mark_all_read()})
    elif args.action == "delete":
        _p({"ok": gate.delete(args.id), "id": args.id})
    elif args.action == "clear":
        gate.clear()
        _p({"ok": True})
    else:
        _p({"unread": gate.unread_count, "alerts": [a.to_dict() for a in gate.alerts]})

def cmd_prices(args: argparse.Namespace) -> None:
    cfg = _cfg(args)
    conn = db.connect(cfg.db_path)
    try:
        _p(db.fetch_prices(conn, cfg.pair, limit=args.limit))
    finally:
        conn.close()

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fx_signal_engine", description="SMA/RSI point-scored FX signals with alert gating.")
    p.add_argument("--db", default=None, help="SQLite DB path (default: FX_DB_PATH or data/fx_signals.db)")
    p.add_argument("--pair", default=None, help="Currency pair (default: FX_PAIR or EURUSD)")

    sub = p.add_subparsers(dest="cmd", required=True)

    p_an = sub.add_parser("analyze", help="Run one analysis and print the recommendation")
    p_an.add_argument("--days", type=int, default=None, help="Trailing history length (default: config)")
    p_an.add_argument("--no-persist", action="store_true", help="Skip writing prices/recommendation to the DB")
    p_an.set_defaults(func=cmd_analyze)

    p_mon = sub.add_parser("monitor", help="Poll, analyse and gate alerts until interrupted")
    p_mon.add_argument("--interval", type=int, default=None, help="Poll interval seconds (default: config)")
    p_mon.add_argument("--ticks", type=int, default=None, help="Stop after N analyses")
    p_mon.add_argument("--state", default=None, help="Alert state JSON path")
    p_mon.add_argument("--preset", choices=sorted(GATE_PRESETS), default=None)
    p_mon.set_defaults(func=cmd_monitor)

    p_al = sub.add_parser("alerts", help="List or manage stored alerts")
    p_al.add_argument("action", nargs="?", default="list", choices=["list", "read", "read-all", "delete", "clear"])
    p_al.add_argument("--id", default=None, help="Alert id for read/delete")
    p_al.add_argument("--state", default=None, help="Alert state JSON path")
    p_al.set_defaults(func=cmd_alerts)

    p_pr = sub.add_parser("prices", help="Print stored price history with indicators")
    p_pr.add_argument("--limit", type=int, default=30)
    p_pr.set_defaults(func=cmd_prices)

    return p

def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    p = build_parser()
    args = p.parse_args()
    if args.cmd == "alerts" and args.action in ("read", "delete") and not args.id:
        p.error(f"alerts {args.action} requires --id")
    args.func(args)

if __name__ == "__main__":
    main()
