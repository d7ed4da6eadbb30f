from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

load_dotenv()

PACKAGE_DIR = Path(__file__).parent


def _csv(name: str) -> List[str]:
    return [x.strip() for x in os.getenv(name, "").split(",") if x.strip()]


class Settings(BaseModel):
    postgres_dsn: str = os.getenv("POSTGRES_DSN", "")

    yelp_api_key: str = os.getenv("YELP_API_KEY", "")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")

    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    slack_webhook_url: str = os.getenv("SLACK_WEBHOOK_URL", "")
    slack_channel_daily: str = os.getenv("SLACK_CHANNEL_DAILY", "#trend-hunter-daily")

    # "pytrends" = live Google Trends calls, "off" = search-interest adapters return zero samples
    trends_mode: str = os.getenv("TRENDS_MODE", "pytrends")

    pytrends_hl: str = os.getenv("PYTRENDS_HL", "en-US")
    pytrends_tz: int = int(os.getenv("PYTRENDS_TZ", "360"))
    pytrends_geo: str = os.getenv("PYTRENDS_GEO", "US-MN")
    pytrends_timeframe: str = os.getenv("PYTRENDS_TIMEFRAME", "today 12-m")
    pytrends_retries: int = int(os.getenv("PYTRENDS_RETRIES", "2"))
    pytrends_base_sleep: float = float(os.getenv("PYTRENDS_BASE_SLEEP", "1.0"))

    reddit_user_agent: str = os.getenv("REDDIT_USER_AGENT", "trend-hunter/0.3 (food trend research)")

    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "10"))
    adapter_timeout: float = float(os.getenv("ADAPTER_TIMEOUT", "30"))
    discovery_source_timeout: float = float(os.getenv("DISCOVERY_SOURCE_TIMEOUT", "120"))
    max_workers: int = int(os.getenv("MAX_WORKERS", "8"))

    disabled_platforms: List[str] = _csv("DISABLED_PLATFORMS")
    discovery_seed_limit: int = int(os.getenv("DISCOVERY_SEED_LIMIT", "2"))

    terms_file: str = os.getenv("TERMS_FILE", str(PACKAGE_DIR / "terms.yaml"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("trends_mode")
    @classmethod
    def _check_trends_mode(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("pytrends", "off"):
            raise ValueError(f"TRENDS_MODE must be 'pytrends' or 'off', got {v!r}")
        return v

    @field_validator("max_workers")
    @classmethod
    def _check_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_WORKERS must be >= 1")
        return v

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.postgres_dsn)


settings = Settings()


def setup_logging(level: str | None = None) -> None:
    """Console logging with timestamps, used by the CLI entrypoints."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
