from __future__ import annotations

import logging
import os
import sqlite3
import time
from typing import Callable, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from fx_signal_engine import db
from fx_signal_engine.config import EngineConfig
from fx_signal_engine.gate import NotificationGate, build_gate
from fx_signal_engine.price_source import PriceSource, build_source
from fx_signal_engine.service import try_analyze

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")


def _limit(default: int, cap: int = 500) -> int:
    try:
        n = int(request.args.get("limit", default))
    except (TypeError, ValueError):
        n = default
    return max(1, min(cap, n))


def create_app(
    cfg: Optional[EngineConfig] = None,
    source: Optional[PriceSource] = None,
    gate: Optional[NotificationGate] = None,
    clock: Callable[[], float] = time.time,
) -> Flask:
    cfg = cfg or EngineConfig()
    source = source or build_source(cfg)
    gate = gate or build_gate(cfg)

    app = Flask(__name__)
    CORS(app, origins="*", send_wildcard=True)

    @app.route("/trading-ai", methods=["GET", "POST"])
    def trading_ai():
        rec, body = try_analyze(cfg, source, now=clock())
        if rec is None:
            return jsonify(body), 500

        alert = gate.process(rec)
        gate.check_target_reached(rec.current_price)
        body["alerted"] = alert is not None
        return jsonify(body)

    @app.get("/recommendations")
    def recommendations():
        try:
            conn = db.connect(cfg.db_path)
            try:
                rows = db.fetch_recommendations(conn, pair=request.args.get("pair") or None, limit=_limit(20))
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logging.warning("recommendations query failed: %s", exc)
            rows = []
        return jsonify(rows)

    @app.get("/prices")
    def prices():
        pair = (request.args.get("pair") or cfg.pair).upper()
        try:
            conn = db.connect(cfg.db_path)
            try:
                rows = db.fetch_prices(conn, pair, limit=_limit(cfg.history_days))
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logging.warning("prices query failed: %s", exc)
            rows = []
        return jsonify(rows)

    @app.get("/alerts")
    def alerts():
        return jsonify({"unread": gate.unread_count, "alerts": [a.to_dict() for a in gate.alerts]})

    @app.post("/alerts/<alert_id>/read")
    def alert_read(alert_id: str):
        if not gate.mark_read(alert_id):
            return jsonify({"error": "not_found"}), 404
        return jsonify({"status": "ok", "unread": gate.unread_count})

    @app.post("/alerts/read_all")
    def alerts_read_all():
        n = gate.mark_all_read()
        return jsonify({"status": "ok", "marked": n, "unread": gate.unread_count})

    @app.delete("/alerts/<alert_id>")
    def alert_delete(alert_id: str):
        if not gate.delete(alert_id):
            return jsonify({"error": "not_found"}), 404
        return jsonify({"status": "ok"})

    @app.delete("/alerts")
    def alerts_clear():
        gate.clear()
        return jsonify({"status": "ok"})

    return app


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5001")))
