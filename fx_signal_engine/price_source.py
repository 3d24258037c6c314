from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, List, Optional

import numpy as np
import requests

from .config import EngineConfig
from .models import PricePoint


class PriceSourceError(RuntimeError):
    pass


def split_pair(pair: str):
    p = pair.replace("/", "").strip().upper()
    if len(p) != 6:
        raise PriceSourceError(f"unsupported pair: {pair!r}")
    return p[:3], p[3:]


class PriceSource:
    """Upstream price collaborator: spot rate + ordered daily history."""

    def current_rate(self, pair: str) -> float:
        raise NotImplementedError

    def history(self, pair: str, days: int, anchor: Optional[float] = None, end: Optional[date] = None) -> List[PricePoint]:
        raise NotImplementedError


class SyntheticPriceSource(PriceSource):
    """Random-walk daily bars for demos and tests (no market data involved).

    - start around `anchor` (or somewhere in 1.05-1.15)
    - per-bar volatility drawn from 0.2%-0.5%, change = (u - 0.5) * vol
    - bars are dated one calendar day apart, ending at `end` (today)
    """

    def __init__(self, seed: Optional[int] = None, anchor: Optional[float] = None):
        self.rng = np.random.default_rng(seed)
        self._anchor = anchor

    def _base(self) -> float:
        if self._anchor is None:
            self._anchor = 1.05 + float(self.rng.random()) * 0.1
        return self._anchor

    def current_rate(self, pair: str) -> float:
        split_pair(pair)
        return round(self._base() + (float(self.rng.random()) - 0.5) * 0.001, 5)

    def history(self, pair: str, days: int, anchor: Optional[float] = None, end: Optional[date] = None) -> List[PricePoint]:
        split_pair(pair)
        end = end or date.today()
        last_close = float(anchor) if anchor is not None else self._base()
        out: List[PricePoint] = []
        for i in range(int(days) - 1, -1, -1):
            vol = 0.002 + float(self.rng.random()) * 0.003
            change = (float(self.rng.random()) - 0.5) * vol
            o = last_close
            c = o + change
            h = max(o, c) + float(self.rng.random()) * vol
            l = min(o, c) - float(self.rng.random()) * vol
            out.append(
                PricePoint(
                    timestamp=(end - timedelta(days=i)).isoformat(),
                    open=round(o, 5),
                    high=round(h, 5),
                    low=round(l, 5),
                    close=round(c, 5),
                    volume=float(self.rng.integers(5000, 15000)),
                )
            )
            last_close = c
        return out


class ExchangeRateApiSource(PriceSource):
    """Spot rate from exchangerate-api.com (v6 pair endpoint).

    The free API has no daily history, so history is synthesised around the
    live rate.
    """

    BASE_URL = "https://v6.exchangerate-api.com/v6"

    def __init__(self, api_key: str, session: Any = None, history_source: Optional[PriceSource] = None, timeout: float = 10.0):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.history_source = history_source or SyntheticPriceSource()
        self.timeout = timeout

    def current_rate(self, pair: str) -> float:
        if not self.api_key:
            raise PriceSourceError("Exchange Rate API key not found")
        base, quote = split_pair(pair)
        url = f"{self.BASE_URL}/{self.api_key}/pair/{base}/{quote}"
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PriceSourceError(f"Exchange Rate API request failed: {exc}") from exc
        if not resp.ok:
            raise PriceSourceError(f"Exchange Rate API error: {resp.status_code}")
        try:
            payload = resp.json()
            rate = float(payload["conversion_rate"])
        except (ValueError, KeyError, TypeError) as exc:
            raise PriceSourceError(f"Exchange Rate API returned an unexpected payload: {exc}") from exc
        if rate <= 0:
            raise PriceSourceError(f"Exchange Rate API returned a non-positive rate: {rate}")
        logging.info("current %s rate: %s", pair, rate)
        return rate

    def history(self, pair: str, days: int, anchor: Optional[float] = None, end: Optional[date] = None) -> List[PricePoint]:
        return self.history_source.history(pair, days, anchor=anchor, end=end)


def build_source(cfg: EngineConfig) -> PriceSource:
    seed = None if cfg.synthetic_seed < 0 else cfg.synthetic_seed
    synthetic = SyntheticPriceSource(seed=seed)
    if cfg.exchange_rate_api_key:
        return ExchangeRateApiSource(cfg.exchange_rate_api_key, history_source=synthetic)
    logging.info("EXCHANGE_RATE_API_KEY not set; using synthetic prices")
    return synthetic
