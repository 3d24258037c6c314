import logging
import time
from typing import Callable

import requests

from .models import AlertMessage


def _append_site(settings: dict, message: str) -> str:
    url = settings.get("site_url")
    if not url or url in message:
        return message
    return f"{message} | site: {url}"


def send_telegram(bot_token: str, chat_id: str, text: str, parse_mode: str = "Markdown") -> bool:
    if not bot_token or not chat_id:
        return False
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    try:
        resp = requests.post(url, data={"chat_id": chat_id, "text": text, "parse_mode": parse_mode}, timeout=5)
        if not resp.ok:
            logging.warning("telegram send failed: %s", resp.text)
            return False
        return True
    except requests.RequestException as e:
        logging.warning("telegram send error: %s", e)
        return False


def send_discord(webhook: str, text: str) -> bool:
    try:
        resp = requests.post(webhook, json={"content": text}, timeout=5)
        if resp.status_code == 429:
            # Rate limited - wait and retry once
            try:
                retry_after = float(resp.json().get("retry_after", 1))
            except ValueError:
                retry_after = 1.0
            logging.warning("Discord rate limited. Retrying after %s seconds...", retry_after)
            time.sleep(retry_after + 0.1)
            resp = requests.post(webhook, json={"content": text}, timeout=5)
        if resp.ok:
            return True
        logging.warning("discord send failed: %s", resp.text)
    except requests.RequestException:
        logging.exception("discord send failed")
    return False


def maybe_notify(settings: dict, message: str) -> bool:
    """Discord first, Telegram when Discord is off or failed. Never raises."""
    message = _append_site(settings, message)
    dc = settings.get("discord", {}) if isinstance(settings, dict) else {}
    if dc and dc.get("enabled") and dc.get("webhook"):
        if send_discord(dc["webhook"], message):
            return True

    tg = settings.get("telegram", {}) if isinstance(settings, dict) else {}
    if tg and tg.get("enabled"):
        return send_telegram(tg.get("token"), tg.get("chat_id"), message)
    return False


def make_sink(settings: dict) -> Callable[[AlertMessage], None]:
    def _sink(msg: AlertMessage) -> None:
        maybe_notify(settings, msg.text)
    return _sink


def log_sink(msg: AlertMessage) -> None:
    logging.info("[alert:%s] %s", msg.kind, msg.text)
