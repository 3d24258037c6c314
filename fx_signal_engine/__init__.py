"""FX signal engine (EUR/USD by default).

Core idea (daily bars, polled spot rate):
- Indicators over the trailing closes: SMA5 / SMA10 / SMA20 and RSI(14)
- Point scoring: MA stack (+3), price vs SMA20 (+1), RSI zone (+2 / +1)
- BUY / SELL / HOLD with a capped confidence, target = 2x vol, stop = 1x vol
- A notification gate decides which recommendations become user alerts:
    * confidence floor, minimum profit gap, global cooldown
    * same pair+action suppressed inside a dedupe window
    * bounded newest-first alert history with read / target-reached state
"""

__all__ = [
    "config",
    "models",
    "indicators",
    "recommender",
    "price_source",
    "db",
    "gate",
    "alert_store",
    "notifier",
    "service",
    "monitor",
]
