"""
Platform adapters: one external source each, normalized to a SignalSample.

fetch() never raises. Any transport / auth / parse failure, and any adapter
whose credential is missing, yields the zero-value sample for its platform so
one broken source cannot block scoring of the others.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from trendhunter.config import Settings
from trendhunter.models import Platform, SignalSample, history_from_values
from trendhunter.scoring import clamp, round_half_up
from trendhunter.trends_provider import PyTrendsProvider

logger = logging.getLogger(__name__)

REDDIT_SEARCH_URL = "https://www.reddit.com/search.json"
YELP_SEARCH_URL = "https://api.yelp.com/v3/businesses/search"
PLACES_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
HF_SEARCH_URL = "https://datasets-server.huggingface.co/search"

HOURS = 3600


class AdapterFetchError(Exception):
    """Raised inside an adapter when a source answers with something unusable."""


class PlatformAdapter:
    platform: Platform

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time):
        self.settings = settings
        self.clock = clock

    def is_configured(self) -> bool:
        return True

    def enabled(self) -> bool:
        disabled = {p.strip().lower() for p in self.settings.disabled_platforms}
        return self.platform.value.lower() not in disabled and self.is_configured()

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        raise NotImplementedError

    def fetch(self, term: str, region: str) -> SignalSample:
        if not self.enabled():
            return SignalSample.zero(self.platform)
        try:
            return self.fetch_raw(term, region)
        except Exception as e:
            logger.warning(f"{self.platform.value} fetch failed for {term!r}: {e}")
            return SignalSample.zero(self.platform)

    def sample(self, intensity: float, velocity: float = 0, values: Optional[List[float]] = None) -> SignalSample:
        return SignalSample(
            platform=self.platform,
            current_intensity=clamp(round_half_up(intensity), 0, 100),
            velocity=round_half_up(velocity),
            history=history_from_values(values or []),
        )

    def get_json(self, url: str, **kwargs) -> Dict[str, Any]:
        r = requests.get(url, timeout=self.settings.http_timeout, **kwargs)
        r.raise_for_status()
        return r.json()


# ------------------------------
# Reddit-backed proxies
# ------------------------------
class RedditSearchAdapter(PlatformAdapter):
    query_template = "{term}"
    limit = 25

    def search(self, term: str) -> List[Dict[str, Any]]:
        data = self.get_json(
            REDDIT_SEARCH_URL,
            params={"q": self.query_template.format(term=term), "sort": "new", "limit": self.limit},
            headers={"User-Agent": self.settings.reddit_user_agent},
        )
        try:
            return [c["data"] for c in data["data"]["children"]]
        except (KeyError, TypeError) as e:
            raise AdapterFetchError(f"unexpected reddit payload: {e}") from e

    def count_recent(self, posts: List[Dict[str, Any]], window_hours: int) -> int:
        now = self.clock()
        return sum(1 for p in posts if now - float(p.get("created_utc", 0)) < window_hours * HOURS)


class SocialCrossPostAdapter(RedditSearchAdapter):
    """Short-video virality measured as Reddit posts linking TikToks about the term."""

    platform = Platform.TIKTOK
    query_template = '"{term}" site:tiktok.com'
    limit = 50

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        posts = self.search(term)
        recent = self.count_recent(posts, 48)
        return self.sample(min(100, len(posts) * 5), recent * 10)


class CommunityAdapter(RedditSearchAdapter):
    platform = Platform.REDDIT

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        posts = self.search(term)
        recent = self.count_recent(posts, 24)
        return self.sample(min(100, len(posts) * 4), recent * 5)


class VisualDiscoveryAdapter(RedditSearchAdapter):
    """Planning signal (recipes, aesthetics); slow burn, so no velocity."""

    platform = Platform.PINTEREST
    query_template = '"{term}" site:pinterest.com'

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        posts = self.search(term)
        return self.sample(min(100, len(posts) * 10), 0)


# ------------------------------
# Google Trends-backed
# ------------------------------
class TrendsAdapter(PlatformAdapter):
    def __init__(self, settings: Settings, provider: Optional[PyTrendsProvider] = None, **kwargs):
        super().__init__(settings, **kwargs)
        self.provider = provider or PyTrendsProvider.from_settings(settings)

    def is_configured(self) -> bool:
        return self.settings.trends_mode == "pytrends"


class SearchInterestAdapter(TrendsAdapter):
    platform = Platform.GOOGLE_SEARCH

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        values = self.provider.interest_over_time(term)
        if not values:
            return SignalSample.zero(self.platform)
        latest = values[-1]
        prev = values[-2] if len(values) > 1 else 0.0
        return self.sample(latest, latest - prev, values)


class DeliveryIntentAdapter(TrendsAdapter):
    """'<term> delivery' searches stand in for all delivery apps."""

    platform = Platform.DOORDASH

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        values = self.provider.interest_over_time(f"{term} delivery")
        if not values:
            return SignalSample.zero(self.platform)
        return self.sample(values[-1], 0, values)


# ------------------------------
# Business directories
# ------------------------------
class DirectoryAdapter(PlatformAdapter):
    platform = Platform.YELP

    def is_configured(self) -> bool:
        return bool(self.settings.yelp_api_key)

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        data = self.get_json(
            YELP_SEARCH_URL,
            params={"term": term, "location": region, "limit": 50},
            headers={"Authorization": f"Bearer {self.settings.yelp_api_key}"},
        )
        total = int(data.get("total") or 0)
        # 50 listings = saturated
        return self.sample(min(100, (total / 50) * 100), 0)


class PlacesAdapter(PlatformAdapter):
    platform = Platform.GOOGLE_PLACES

    def is_configured(self) -> bool:
        return bool(self.settings.google_maps_api_key)

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        r = requests.post(
            PLACES_SEARCH_URL,
            json={"textQuery": f"{term} in {region}"},
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": self.settings.google_maps_api_key,
                "X-Goog-FieldMask": "places.id,places.displayName",
            },
            timeout=self.settings.http_timeout,
        )
        r.raise_for_status()
        places = r.json().get("places") or []
        # 20 places = saturated
        return self.sample(min(100, len(places) * 5), 0)


# ------------------------------
# LLM chat logs
# ------------------------------
class WildchatAdapter(PlatformAdapter):
    """How often people ask chatbots about the term (WildChat-1M search hits)."""

    platform = Platform.WILDCHAT

    def fetch_raw(self, term: str, region: str) -> SignalSample:
        data = self.get_json(HF_SEARCH_URL, params={
            "dataset": "allenai/WildChat-1M",
            "config": "default",
            "split": "train",
            "query": term,
            "offset": 0,
            "limit": 10,
        })
        rows = data.get("rows") or []
        return self.sample(min(100, len(rows) * 10), 0)


ADAPTER_CLASSES: Dict[Platform, type] = {
    Platform.TIKTOK: SocialCrossPostAdapter,
    Platform.REDDIT: CommunityAdapter,
    Platform.PINTEREST: VisualDiscoveryAdapter,
    Platform.GOOGLE_SEARCH: SearchInterestAdapter,
    Platform.WILDCHAT: WildchatAdapter,
    Platform.YELP: DirectoryAdapter,
    Platform.DOORDASH: DeliveryIntentAdapter,
    Platform.GOOGLE_PLACES: PlacesAdapter,
}

_missing = set(Platform) - set(ADAPTER_CLASSES)
if _missing:
    raise RuntimeError(f"no adapter registered for: {sorted(p.value for p in _missing)}")


def build_adapters(settings: Settings, provider: Optional[PyTrendsProvider] = None) -> List[PlatformAdapter]:
    """One adapter per platform, in Platform order. Trends-backed adapters share one provider."""
    provider = provider or PyTrendsProvider.from_settings(settings)
    out: List[PlatformAdapter] = []
    for platform in Platform:
        cls = ADAPTER_CLASSES[platform]
        if issubclass(cls, TrendsAdapter):
            out.append(cls(settings, provider=provider))
        else:
            out.append(cls(settings))
    return out
