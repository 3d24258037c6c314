from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict

def _env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default

def _env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default

def _env_str(key: str, default: str) -> str:
    v = os.getenv(key)
    return v if v not in (None, "") else default

def _env_bool(key: str, default: bool = True) -> bool:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    return v.strip().lower() not in ("0", "false", "no", "off")

@dataclass(frozen=True)
class EngineConfig:
    # Data
    db_path: str = _env_str("FX_DB_PATH", "data/fx_signals.db")
    pair: str = _env_str("FX_PAIR", "EURUSD")
    history_days: int = _env_int("FX_HISTORY_DAYS", 30)

    # Indicators
    sma_fast: int = _env_int("FX_SMA_FAST", 5)
    sma_mid: int = _env_int("FX_SMA_MID", 10)
    sma_slow: int = _env_int("FX_SMA_SLOW", 20)
    rsi_period: int = _env_int("FX_RSI_PERIOD", 14)
    rsi_oversold: float = _env_float("FX_RSI_OVERSOLD", 30.0)
    rsi_overbought: float = _env_float("FX_RSI_OVERBOUGHT", 70.0)

    # Signal scoring
    # target = price * (1 +/- 2*volatility), stop = price * (1 -/+ volatility)
    volatility: float = _env_float("FX_VOLATILITY", 0.005)
    base_confidence: float = 60.0
    confidence_step: float = 8.0
    max_confidence: float = 95.0
    neutral_confidence: float = 50.0

    # Upstream spot rate (synthetic source is used when empty)
    exchange_rate_api_key: str = _env_str("EXCHANGE_RATE_API_KEY", "")
    synthetic_seed: int = _env_int("FX_SYNTHETIC_SEED", -1)  # -1 = unseeded

    # Monitor / alerts
    alert_state_path: str = _env_str("FX_ALERT_STATE_PATH", "data/alert_state.json")
    poll_interval_sec: int = _env_int("FX_POLL_INTERVAL_SEC", 30)
    target_check_interval_sec: int = _env_int("FX_TARGET_CHECK_INTERVAL_SEC", 300)
    gate_preset: str = _env_str("FX_GATE_PRESET", "premium")
    notify_enabled: bool = _env_bool("FX_NOTIFY_ENABLED", False)


@dataclass(frozen=True)
class GateConfig:
    min_confidence: float = 85.0
    min_profit_pct: float = 0.5
    cooldown_sec: int = 8 * 3600
    dedupe_window_sec: int = 24 * 3600
    history_cap: int = 50


# Threshold variants seen in the dashboard; "premium" is the strictest.
GATE_PRESETS: Dict[str, GateConfig] = {
    "premium": GateConfig(),
    "standard": GateConfig(min_confidence=75.0, cooldown_sec=3 * 3600),
    "active": GateConfig(
        min_confidence=70.0,
        cooldown_sec=30 * 60,
        dedupe_window_sec=6 * 3600,
        history_cap=20,
    ),
}


def load_gate_config(preset: str = "premium") -> GateConfig:
    """Preset thresholds with FX_GATE_* environment overrides applied."""
    if preset not in GATE_PRESETS:
        raise ValueError(f"unknown gate preset: {preset!r} (choose from {', '.join(GATE_PRESETS)})")
    base = GATE_PRESETS[preset]
    return replace(
        base,
        min_confidence=_env_float("FX_GATE_MIN_CONFIDENCE", base.min_confidence),
        min_profit_pct=_env_float("FX_GATE_MIN_PROFIT_PCT", base.min_profit_pct),
        cooldown_sec=_env_int("FX_GATE_COOLDOWN_SEC", base.cooldown_sec),
        dedupe_window_sec=_env_int("FX_GATE_DEDUPE_WINDOW_SEC", base.dedupe_window_sec),
        history_cap=max(1, _env_int("FX_GATE_HISTORY_CAP", base.history_cap)),
    )


def load_notify_settings() -> Dict[str, Any]:
    return {
        "site_url": _env_str("FX_SITE_URL", ""),
        "discord": {
            "enabled": _env_bool("FX_DISCORD_ENABLED", False),
            "webhook": _env_str("FX_DISCORD_WEBHOOK", ""),
        },
        "telegram": {
            "enabled": _env_bool("FX_TELEGRAM_ENABLED", False),
            "token": _env_str("FX_TELEGRAM_TOKEN", ""),
            "chat_id": _env_str("FX_TELEGRAM_CHAT_ID", ""),
        },
    }
