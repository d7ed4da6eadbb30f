"""Shared fixtures: settings without live credentials, fake HTTP responses, a sqlite-backed gateway."""

from __future__ import annotations

from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import NullPool

from trendhunter.config import Settings
from trendhunter.models import Platform, SignalSample, TrackedTerm
from trendhunter.storage_pg import PostgresGateway


def make_settings(**overrides: Any) -> Settings:
    base = dict(
        postgres_dsn="",
        yelp_api_key="",
        google_maps_api_key="",
        gemini_api_key="",
        slack_webhook_url="",
        trends_mode="off",
        pytrends_base_sleep=0.0,
        disabled_platforms=[],
        http_timeout=2.0,
        adapter_timeout=5.0,
    )
    base.update(overrides)
    return Settings(**base)


def fake_response(payload: Any = None, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload if payload is not None else {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


def sample(platform: Platform, intensity: float, velocity: float = 0) -> SignalSample:
    return SignalSample(platform=platform, current_intensity=intensity, velocity=velocity)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def tracked_terms() -> list[TrackedTerm]:
    return [
        TrackedTerm("Birria Tacos", "Mexican", "Minneapolis–St Paul", "Northeast"),
        TrackedTerm("Mochi Donuts", "Bakery", "Minneapolis–St Paul", "North Loop"),
    ]


@pytest.fixture
def demand_skewed_signals() -> list[SignalSample]:
    return [
        sample(Platform.TIKTOK, 95, 12),
        sample(Platform.GOOGLE_SEARCH, 70, 8),
        sample(Platform.REDDIT, 65, 5),
        sample(Platform.YELP, 10, 1),
    ]


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'trendhunter.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )

    # take the write lock at BEGIN so concurrent writers queue on the busy timeout
    @event.listens_for(engine, "connect")
    def _connect(dbapi_conn, _rec):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield engine
    engine.dispose()


@pytest.fixture
def gateway(sqlite_engine) -> PostgresGateway:
    gw = PostgresGateway(sqlite_engine)
    gw.init_schema()
    return gw


def count_rows(engine, sql: str, params: Optional[dict] = None) -> int:
    with engine.begin() as conn:
        return int(conn.execute(text(sql), params or {}).scalar_one())
