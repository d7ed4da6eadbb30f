"""HTTP endpoints through Django's test client."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "trendhunter_site.settings")
django.setup()

from django.test import Client  # noqa: E402

from tests.conftest import sample  # noqa: E402
from trends import views  # noqa: E402
from trendhunter.insights import FALLBACK, Summarizer  # noqa: E402
from trendhunter.models import Platform, Scores, TrackedTerm, TrendRecord  # noqa: E402

TERM = TrackedTerm("Birria Tacos", "Mexican", "Minneapolis–St Paul", "Northeast")


def make_record():
    return TrendRecord(
        id="7",
        term=TERM,
        signals=[sample(Platform.TIKTOK, 95, 12)],
        scores=Scores(79, 40, 47, 52),
        predicted_breakout_week=3,
        timestamp=datetime(2026, 5, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def pipeline(monkeypatch):
    p = MagicMock()
    p.run.return_value = [make_record()]
    p.run_one.return_value = make_record()
    p.find_term.side_effect = lambda t: TERM if t.strip().lower() == "birria tacos" else None
    monkeypatch.setattr(views, "get_pipeline", lambda: p)
    monkeypatch.setattr(views, "get_summarizer", lambda: Summarizer(api_key=""))
    return p


@pytest.fixture
def client():
    return Client()


# ---------------------------------------------------------------------------
# /trends
# ---------------------------------------------------------------------------


def test_trends_returns_records(client, pipeline):
    resp = client.get("/trends")

    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 1
    assert body[0]["id"] == "7"
    assert body[0]["unmetDemandScore"] == 47
    assert body[0]["signals"][0]["platform"] == "TikTok"
    assert resp["Access-Control-Allow-Origin"] == "*"
    pipeline.run.assert_called_once_with()


def test_preflight_is_empty_with_cors(client, pipeline):
    resp = client.options("/trends")

    assert resp.status_code == 200
    assert resp.content == b""
    assert resp["Access-Control-Allow-Methods"] == "GET,OPTIONS,PATCH,DELETE,POST,PUT"
    assert resp["Access-Control-Allow-Credentials"] == "true"
    pipeline.run.assert_not_called()


def test_unexpected_failure_is_500(client, pipeline):
    pipeline.run.side_effect = RuntimeError("boom")
    resp = client.get("/trends")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch trends"}
    assert resp["Access-Control-Allow-Origin"] == "*"


def test_other_methods_not_allowed(client, pipeline):
    assert client.post("/trends").status_code == 405


# ---------------------------------------------------------------------------
# /trends/analysis
# ---------------------------------------------------------------------------


def test_analysis_requires_term(client, pipeline):
    assert client.get("/trends/analysis").status_code == 400


def test_analysis_unknown_term(client, pipeline):
    resp = client.get("/trends/analysis", {"term": "Cronuts"})
    assert resp.status_code == 404


def test_analysis_for_tracked_term(client, pipeline):
    resp = client.get("/trends/analysis", {"term": "birria tacos"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["term"] == "Birria Tacos"
    assert body["trend"]["breakoutProbability"] == 52
    assert body["analysis"] == FALLBACK.to_dict()
    pipeline.run_one.assert_called_once_with(TERM)


def test_analysis_failure_is_500(client, pipeline):
    pipeline.run_one.side_effect = RuntimeError("boom")
    resp = client.get("/trends/analysis", {"term": "Birria Tacos"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to analyze trend"}
