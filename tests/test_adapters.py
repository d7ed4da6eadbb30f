"""Tests for platform adapters: normalization rules and degrade-to-zero behaviour."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from tests.conftest import fake_response, make_settings
from trendhunter.adapters import (
    CommunityAdapter,
    DeliveryIntentAdapter,
    DirectoryAdapter,
    PlacesAdapter,
    SearchInterestAdapter,
    SocialCrossPostAdapter,
    VisualDiscoveryAdapter,
    WildchatAdapter,
    build_adapters,
)
from trendhunter.models import Platform, SignalSample

NOW = 1_700_000_000.0
HOUR = 3600


def reddit_listing(ages_in_hours):
    return {"data": {"children": [{"data": {"title": f"post {i}", "created_utc": NOW - h * HOUR}}
                                  for i, h in enumerate(ages_in_hours)]}}


def clock():
    return NOW


# ---------------------------------------------------------------------------
# Reddit-backed proxies
# ---------------------------------------------------------------------------


def test_tiktok_counts_crossposts_and_recent_ones():
    adapter = SocialCrossPostAdapter(make_settings(), clock=clock)
    listing = reddit_listing([1, 10, 47, 50, 100, 200, 300, 400, 500, 600, 700, 800])

    with patch("trendhunter.adapters.requests.get", return_value=fake_response(listing)) as get:
        s = adapter.fetch("Birria Tacos", "Minneapolis")

    assert s.platform == Platform.TIKTOK
    assert s.current_intensity == 60   # 12 posts * 5
    assert s.velocity == 30            # 3 posts inside 48h * 10
    params = get.call_args.kwargs["params"]
    assert params["q"] == '"Birria Tacos" site:tiktok.com'
    assert params["limit"] == 50
    assert "User-Agent" in get.call_args.kwargs["headers"]


def test_tiktok_intensity_is_capped():
    adapter = SocialCrossPostAdapter(make_settings(), clock=clock)
    with patch("trendhunter.adapters.requests.get", return_value=fake_response(reddit_listing([100] * 30))):
        s = adapter.fetch("Birria Tacos", "Minneapolis")
    assert s.current_intensity == 100
    assert s.velocity == 0


def test_reddit_community_rules():
    adapter = CommunityAdapter(make_settings(), clock=clock)
    listing = reddit_listing([2, 20, 30, 40, 50, 60, 70, 80, 90, 99])

    with patch("trendhunter.adapters.requests.get", return_value=fake_response(listing)) as get:
        s = adapter.fetch("Mochi Donuts", "Minneapolis")

    assert s.platform == Platform.REDDIT
    assert s.current_intensity == 40   # 10 posts * 4
    assert s.velocity == 10            # 2 posts inside 24h * 5
    assert get.call_args.kwargs["params"]["q"] == "Mochi Donuts"


def test_pinterest_has_no_velocity():
    adapter = VisualDiscoveryAdapter(make_settings(), clock=clock)
    with patch("trendhunter.adapters.requests.get", return_value=fake_response(reddit_listing([1, 2, 3]))) as get:
        s = adapter.fetch("Ube Lattes", "Minneapolis")

    assert (s.platform, s.current_intensity, s.velocity) == (Platform.PINTEREST, 30, 0)
    assert get.call_args.kwargs["params"]["q"] == '"Ube Lattes" site:pinterest.com'


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


def test_yelp_without_key_is_zero_and_makes_no_call():
    adapter = DirectoryAdapter(make_settings(yelp_api_key=""))
    with patch("trendhunter.adapters.requests.get") as get:
        s = adapter.fetch("Birria Tacos", "Minneapolis")
    assert s == SignalSample.zero(Platform.YELP)
    get.assert_not_called()


@pytest.mark.parametrize("total,expected", [(0, 0), (7, 14), (25, 50), (120, 100)])
def test_yelp_listing_count_to_intensity(total, expected):
    adapter = DirectoryAdapter(make_settings(yelp_api_key="k"))
    with patch("trendhunter.adapters.requests.get", return_value=fake_response({"total": total})) as get:
        s = adapter.fetch("Birria Tacos", "Minneapolis")

    assert s.current_intensity == expected
    assert s.velocity == 0
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer k"
    assert get.call_args.kwargs["params"]["location"] == "Minneapolis"


def test_places_counts_results():
    adapter = PlacesAdapter(make_settings(google_maps_api_key="gk"))
    payload = {"places": [{"id": str(i)} for i in range(3)]}
    with patch("trendhunter.adapters.requests.post", return_value=fake_response(payload)) as post:
        s = adapter.fetch("Korean Corn Dogs", "Minneapolis")

    assert (s.platform, s.current_intensity) == (Platform.GOOGLE_PLACES, 15)
    assert post.call_args.kwargs["json"] == {"textQuery": "Korean Corn Dogs in Minneapolis"}
    assert post.call_args.kwargs["headers"]["X-Goog-Api-Key"] == "gk"


def test_places_without_key_is_zero():
    adapter = PlacesAdapter(make_settings(google_maps_api_key=""))
    with patch("trendhunter.adapters.requests.post") as post:
        assert adapter.fetch("x", "y") == SignalSample.zero(Platform.GOOGLE_PLACES)
    post.assert_not_called()


def test_wildchat_counts_rows():
    adapter = WildchatAdapter(make_settings())
    with patch("trendhunter.adapters.requests.get", return_value=fake_response({"rows": [{}] * 4})) as get:
        s = adapter.fetch("Birria Tacos", "Minneapolis")
    assert (s.platform, s.current_intensity, s.velocity) == (Platform.WILDCHAT, 40, 0)
    assert get.call_args.kwargs["params"]["query"] == "Birria Tacos"


# ---------------------------------------------------------------------------
# Google Trends-backed
# ---------------------------------------------------------------------------


def test_search_interest_uses_last_two_points():
    provider = MagicMock()
    provider.interest_over_time.return_value = [float(v) for v in range(0, 75, 5)] + [55.0]
    adapter = SearchInterestAdapter(make_settings(trends_mode="pytrends"), provider=provider)

    s = adapter.fetch("Detroit-style Pizza", "Minneapolis")

    provider.interest_over_time.assert_called_once_with("Detroit-style Pizza")
    assert s.current_intensity == 55
    assert s.velocity == -15
    assert len(s.history) == 12
    assert s.history[0][0] == 1 and s.history[-1] == (12, 55.0)


def test_search_interest_single_point_velocity_is_the_value():
    provider = MagicMock()
    provider.interest_over_time.return_value = [42.0]
    adapter = SearchInterestAdapter(make_settings(trends_mode="pytrends"), provider=provider)
    s = adapter.fetch("x", "y")
    assert (s.current_intensity, s.velocity) == (42, 42)


def test_search_interest_without_data_is_zero():
    provider = MagicMock()
    provider.interest_over_time.return_value = []
    adapter = SearchInterestAdapter(make_settings(trends_mode="pytrends"), provider=provider)
    assert adapter.fetch("x", "y") == SignalSample.zero(Platform.GOOGLE_SEARCH)


def test_trends_off_skips_the_provider():
    provider = MagicMock()
    adapter = SearchInterestAdapter(make_settings(trends_mode="off"), provider=provider)
    assert adapter.fetch("x", "y") == SignalSample.zero(Platform.GOOGLE_SEARCH)
    provider.interest_over_time.assert_not_called()


def test_delivery_intent_queries_delivery_searches():
    provider = MagicMock()
    provider.interest_over_time.return_value = [10.0, 20.0, 33.0]
    adapter = DeliveryIntentAdapter(make_settings(trends_mode="pytrends"), provider=provider)

    s = adapter.fetch("Birria Tacos", "Minneapolis")

    provider.interest_over_time.assert_called_once_with("Birria Tacos delivery")
    assert (s.platform, s.current_intensity, s.velocity) == (Platform.DOORDASH, 33, 0)


def test_provider_error_degrades_to_zero():
    provider = MagicMock()
    provider.interest_over_time.side_effect = RuntimeError("Google returned a response with code 429")
    adapter = SearchInterestAdapter(make_settings(trends_mode="pytrends"), provider=provider)
    assert adapter.fetch("x", "y") == SignalSample.zero(Platform.GOOGLE_SEARCH)


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "get_kwargs",
    [
        {"side_effect": requests.ConnectionError("connection refused")},
        {"side_effect": requests.Timeout("read timed out")},
        {"return_value": fake_response({}, status=500)},
        {"return_value": fake_response({"unexpected": True})},
    ],
)
def test_reddit_failures_yield_zero_sample(get_kwargs):
    adapter = CommunityAdapter(make_settings(), clock=clock)
    with patch("trendhunter.adapters.requests.get", **get_kwargs):
        s = adapter.fetch("Birria Tacos", "Minneapolis")
    assert s == SignalSample.zero(Platform.REDDIT)


def test_non_json_body_yields_zero_sample():
    resp = fake_response()
    resp.json.side_effect = ValueError("Expecting value")
    adapter = WildchatAdapter(make_settings())
    with patch("trendhunter.adapters.requests.get", return_value=resp):
        assert adapter.fetch("x", "y") == SignalSample.zero(Platform.WILDCHAT)


def test_disabled_platform_is_skipped_case_insensitively():
    adapter = CommunityAdapter(make_settings(disabled_platforms=["reddit"]), clock=clock)
    with patch("trendhunter.adapters.requests.get") as get:
        assert adapter.fetch("x", "y") == SignalSample.zero(Platform.REDDIT)
    get.assert_not_called()


def test_build_adapters_covers_every_platform_once():
    provider = MagicMock()
    adapters = build_adapters(make_settings(), provider=provider)

    assert [a.platform for a in adapters] == list(Platform)
    trends_backed = [a for a in adapters if a.platform in (Platform.GOOGLE_SEARCH, Platform.DOORDASH)]
    assert all(a.provider is provider for a in trends_backed)
