from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import requests
from sqlalchemy.exc import SQLAlchemyError

from trendhunter.adapters import build_adapters
from trendhunter.collector import SignalCollector
from trendhunter.config import Settings, settings, setup_logging
from trendhunter.models import SignalSample, TrackedTerm, TrendRecord
from trendhunter.scoring import predicted_breakout_week, score_signals, weighted_velocity
from trendhunter.slack_notifier import digest_text, send_daily_summary
from trendhunter.storage_pg import PersistenceGateway, build_gateway
from trendhunter.terms import TermsConfig, load_terms_config, merge_terms
from trendhunter.trends_provider import PyTrendsProvider

logger = logging.getLogger(__name__)


class TrendPipeline:
    """Collect -> score -> persist (best effort) for every tracked term."""

    def __init__(self, collector: SignalCollector, gateway: PersistenceGateway, terms_config: TermsConfig):
        self.collector = collector
        self.gateway = gateway
        self.terms_config = terms_config

    @classmethod
    def from_settings(cls, s: Settings, gateway: Optional[PersistenceGateway] = None,
                      provider: Optional[PyTrendsProvider] = None) -> "TrendPipeline":
        collector = SignalCollector(
            build_adapters(s, provider=provider),
            timeout=s.adapter_timeout,
            max_workers=s.max_workers,
        )
        gw = gateway if gateway is not None else build_gateway(s)
        return cls(collector, gw, load_terms_config(s.terms_file))

    def tracked_terms(self) -> List[TrackedTerm]:
        """Terms file entries first, then terms promoted into storage."""
        try:
            stored = self.gateway.list_trends()
        except SQLAlchemyError as e:
            logger.error(f"could not load stored trends, using terms file only: {e}")
            stored = []
        return merge_terms(self.terms_config.terms, stored)

    def find_term(self, term: str) -> Optional[TrackedTerm]:
        probe = TrackedTerm(term=term, category="", region="")
        for t in self.tracked_terms():
            if t.key == probe.key:
                return t
        return None

    def build_record(self, position: int, term: TrackedTerm, signals: List[SignalSample],
                     now: datetime) -> TrendRecord:
        scores = score_signals(signals)
        trend_id = self.persist(term, scores, signals, now)
        return TrendRecord(
            id=str(trend_id) if trend_id is not None else str(position),
            term=term,
            signals=signals,
            scores=scores,
            predicted_breakout_week=predicted_breakout_week(scores.demand_score, weighted_velocity(signals)),
            timestamp=now,
        )

    def persist(self, term: TrackedTerm, scores, signals: List[SignalSample], now: datetime) -> Optional[int]:
        try:
            trend_id = self.gateway.upsert_trend(term.term, term.category, term.region, term.neighborhood)
            if trend_id is not None:
                self.gateway.append_history(trend_id, scores, signals, now)
            return trend_id
        except SQLAlchemyError as e:
            logger.error(f"persisting {term.term!r} failed: {e}")
            return None

    def run(self, terms: Optional[Sequence[TrackedTerm]] = None, progress: bool = False) -> List[TrendRecord]:
        terms = list(terms) if terms is not None else self.tracked_terms()
        signal_sets = self.collector.collect_many(terms, self.terms_config.location, progress=progress)

        now = datetime.now(timezone.utc)
        return [
            self.build_record(i, t, signal_sets[t.key], now)
            for i, t in enumerate(terms, start=1)
        ]

    def run_one(self, term: TrackedTerm) -> TrendRecord:
        signals = self.collector.collect(term.term, self.terms_config.location)
        return self.build_record(1, term, signals, datetime.now(timezone.utc))


def print_table(records: Sequence[TrendRecord]) -> None:
    print(f"{'term':<28} {'demand':>6} {'supply':>6} {'unmet':>6} {'break%':>6} {'wk':>3}")
    for r in records:
        s = r.scores
        print(
            f"{r.term.term[:28]:<28} {s.demand_score:>6} {s.supply_score:>6} "
            f"{s.unmet_demand_score:>6} {s.breakout_probability:>6} {r.predicted_breakout_week:>3}"
        )


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(description="Collect signals, score and store every tracked term.")
    parser.add_argument("--terms", type=str, default="", help="terms YAML override (default: TERMS_FILE)")
    parser.add_argument("--no-slack", action="store_true", help="skip the Slack opportunity digest")
    parser.add_argument("--top", type=int, default=5, help="opportunities listed in the digest")
    args = parser.parse_args(argv)

    setup_logging()

    s = settings
    if args.terms:
        s = s.model_copy(update={"terms_file": args.terms})

    pipeline = TrendPipeline.from_settings(s)
    records = pipeline.run(progress=True)
    print_table(records)

    if not pipeline.gateway.enabled:
        print("(no POSTGRES_DSN) scores were not stored")

    if s.slack_webhook_url and not args.no_slack:
        text = digest_text(records, pipeline.terms_config.region, limit=args.top)
        try:
            send_daily_summary(s.slack_webhook_url, s.slack_channel_daily, text)
        except requests.RequestException as e:
            logger.error(f"Slack digest failed: {e}")


if __name__ == "__main__":
    main()
