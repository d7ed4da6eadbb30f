from __future__ import annotations

import logging
import random
import threading
import time
from typing import Any, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


def _is_429(e: Exception) -> bool:
    return ("429" in str(e)) or ("TooManyRequests" in e.__class__.__name__)


def _is_400(e: Exception) -> bool:
    msg = str(e)
    return " 400" in msg or "code 400" in msg


class PyTrendsProvider:
    """
    Google Trends through pytrends.

    TrendReq keeps the last payload as instance state, so every
    build_payload -> fetch pair runs under one lock. Google rate limits hard:
    each call is preceded by a jittered pause and 429s back off exponentially.
    """

    def __init__(self, hl: str = "en-US", tz: int = 0, geo: str = "",
                 timeframe: str = "today 12-m", retries: int = 2, base_sleep: float = 1.0,
                 timeout: float = 10.0, client: Any = None):
        self.hl = hl
        self.tz = tz
        self.geo = geo
        self.timeframe = timeframe
        self.retries = retries
        self.base_sleep = base_sleep
        self.timeout = timeout
        self._client = client
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, s) -> "PyTrendsProvider":
        return cls(hl=s.pytrends_hl, tz=s.pytrends_tz, geo=s.pytrends_geo,
                   timeframe=s.pytrends_timeframe, retries=s.pytrends_retries,
                   base_sleep=s.pytrends_base_sleep, timeout=s.http_timeout)

    @property
    def client(self):
        # TrendReq hits google.com for cookies on construction; defer until first use
        if self._client is None:
            from pytrends.request import TrendReq
            self._client = TrendReq(hl=self.hl, tz=self.tz, timeout=(self.timeout, self.timeout))
        return self._client

    def _sleep_jitter(self, seconds: float):
        if seconds > 0:
            time.sleep(seconds + random.uniform(0.2, 0.9))

    def _call(self, keyword: str, fetch):
        attempt = 0
        while True:
            self._sleep_jitter(self.base_sleep)
            try:
                with self._lock:
                    self.client.build_payload([keyword], timeframe=self.timeframe, geo=self.geo)
                    return fetch(self.client)
            except Exception as e:
                attempt += 1
                if (not _is_429(e)) or (attempt > self.retries):
                    raise
                # 4s, 8s, 16s...
                wait = (2 ** (attempt - 1)) * 4.0
                logger.info(f"Google Trends 429 for {keyword!r}, retry {attempt}/{self.retries} in ~{wait:.0f}s")
                self._sleep_jitter(wait)

    def interest_over_time(self, keyword: str) -> List[float]:
        """Index values (0-100) for one keyword, oldest first. Empty when Google has no data."""
        df: Optional[pd.DataFrame] = self._call(keyword, lambda c: c.interest_over_time())
        if df is None or df.empty or keyword not in df.columns:
            return []
        if "isPartial" in df.columns:
            df = df.drop(columns=["isPartial"])
        return [float(v) for v in df[keyword].dropna().tolist()]

    def rising_queries(self, keyword: str, max_rows: int = 25) -> List[Tuple[str, float]]:
        """(query, % increase) rows from the 'rising' related-queries table."""
        try:
            rq = self._call(keyword, lambda c: c.related_queries()) or {}
        except Exception as e:
            # 400 = keyword/geo combination not supported; retrying does not help
            if _is_400(e):
                return []
            raise

        bundle = rq.get(keyword) or {}
        df = bundle.get("rising")
        if df is None or getattr(df, "empty", True):
            return []

        rows: List[Tuple[str, float]] = []
        for r in df.head(max_rows).itertuples(index=False):
            query = getattr(r, "query", None)
            value = getattr(r, "value", None)
            if not query:
                continue
            rows.append((str(query), float(value) if value is not None else 0.0))
        return rows
