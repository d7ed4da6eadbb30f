from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from trendhunter.config import Settings
from trendhunter.db import init_schema, make_engine
from trendhunter.models import (
    CandidateStatus,
    DiscoveryCandidate,
    Scores,
    SignalSample,
    TrackedTerm,
    normalize_term,
)

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Storage boundary shared by the collection and discovery pipelines."""

    enabled = True

    def upsert_trend(self, term: str, category: str, region: str, neighborhood: str) -> Optional[int]:
        raise NotImplementedError

    def append_history(self, trend_id: int, scores: Scores, raw_signals: Iterable[SignalSample],
                       timestamp: datetime) -> None:
        raise NotImplementedError

    def candidate_exists(self, term: str) -> bool:
        raise NotImplementedError

    def trend_exists(self, term: str) -> bool:
        raise NotImplementedError

    def insert_candidate_if_absent(self, term: str, source: str, initial_score: Optional[float]) -> bool:
        raise NotImplementedError

    def list_trends(self) -> List[TrackedTerm]:
        raise NotImplementedError

    def pending_candidates(self, limit: int = 20) -> List[DiscoveryCandidate]:
        raise NotImplementedError

    def set_candidate_status(self, terms: List[str], status: CandidateStatus) -> int:
        raise NotImplementedError


class NullGateway(PersistenceGateway):
    """Used when POSTGRES_DSN is not configured: scoring runs, nothing is written."""

    enabled = False

    def upsert_trend(self, term, category, region, neighborhood):
        return None

    def append_history(self, trend_id, scores, raw_signals, timestamp):
        return None

    def candidate_exists(self, term):
        return False

    def trend_exists(self, term):
        return False

    def insert_candidate_if_absent(self, term, source, initial_score):
        return False

    def list_trends(self):
        return []

    def pending_candidates(self, limit=20):
        return []

    def set_candidate_status(self, terms, status):
        return 0


class PostgresGateway(PersistenceGateway):
    def __init__(self, engine: Engine):
        self.engine = engine

    def init_schema(self) -> None:
        init_schema(self.engine)

    def upsert_trend(self, term: str, category: str, region: str, neighborhood: str) -> int:
        q = text("""
            INSERT INTO trends(term, term_norm, category, region, neighborhood)
            VALUES (:term, :term_norm, :category, :region, :neighborhood)
            ON CONFLICT (term_norm)
            DO UPDATE SET category=EXCLUDED.category,
                          region=EXCLUDED.region,
                          neighborhood=EXCLUDED.neighborhood,
                          last_updated=CURRENT_TIMESTAMP
            RETURNING id;
        """)
        with self.engine.begin() as conn:
            tid = conn.execute(q, {
                "term": term, "term_norm": normalize_term(term),
                "category": category, "region": region, "neighborhood": neighborhood,
            }).scalar_one()
        return int(tid)

    def append_history(self, trend_id: int, scores: Scores, raw_signals: Iterable[SignalSample],
                       timestamp: datetime) -> None:
        q = text("""
            INSERT INTO trend_history(
              trend_id, timestamp, demand_score, supply_score,
              unmet_demand_score, breakout_probability, raw_signals
            ) VALUES (
              :trend_id, :ts, :demand, :supply, :unmet, :breakout, :raw
            );
        """)
        with self.engine.begin() as conn:
            conn.execute(q, {
                "trend_id": trend_id,
                "ts": timestamp.isoformat(),
                "demand": scores.demand_score,
                "supply": scores.supply_score,
                "unmet": scores.unmet_demand_score,
                "breakout": scores.breakout_probability,
                "raw": json.dumps([s.to_dict() for s in raw_signals]),
            })

    def candidate_exists(self, term: str) -> bool:
        q = text("""
            SELECT 1 FROM discovery_queue
            WHERE term_norm=:n AND status='pending'
            LIMIT 1
        """)
        with self.engine.begin() as conn:
            return conn.execute(q, {"n": normalize_term(term)}).fetchone() is not None

    def trend_exists(self, term: str) -> bool:
        q = text("SELECT 1 FROM trends WHERE term_norm=:n LIMIT 1")
        with self.engine.begin() as conn:
            return conn.execute(q, {"n": normalize_term(term)}).fetchone() is not None

    def insert_candidate_if_absent(self, term: str, source: str, initial_score: Optional[float]) -> bool:
        """
        Single statement: skipped when the term is already tracked or was rejected,
        and the partial unique index turns a concurrent duplicate pending insert into a no-op.
        """
        q = text("""
            INSERT INTO discovery_queue(term, term_norm, source, initial_score, status)
            SELECT :term, :n, :source, :score, 'pending'
            WHERE NOT EXISTS (SELECT 1 FROM trends WHERE term_norm=:n)
              AND NOT EXISTS (
                SELECT 1 FROM discovery_queue WHERE term_norm=:n AND status='rejected'
              )
            ON CONFLICT (term_norm) WHERE status = 'pending' DO NOTHING;
        """)
        with self.engine.begin() as conn:
            res = conn.execute(q, {
                "term": term,
                "n": normalize_term(term),
                "source": source,
                "score": float(initial_score) if initial_score is not None else None,
            })
        return (res.rowcount or 0) > 0

    def list_trends(self) -> List[TrackedTerm]:
        q = text("SELECT term, category, region, neighborhood FROM trends ORDER BY id")
        with self.engine.begin() as conn:
            rows = conn.execute(q).fetchall()
        return [TrackedTerm(term=r[0], category=r[1], region=r[2], neighborhood=r[3]) for r in rows]

    def pending_candidates(self, limit: int = 20) -> List[DiscoveryCandidate]:
        q = text("""
            SELECT id, term, source, initial_score
            FROM discovery_queue
            WHERE status='pending'
            ORDER BY COALESCE(initial_score, 0) DESC, created_at DESC, id DESC
            LIMIT :limit
        """)
        with self.engine.begin() as conn:
            rows = conn.execute(q, {"limit": limit}).fetchall()
        return [
            DiscoveryCandidate(
                id=int(r[0]), term=r[1], source=r[2],
                initial_score=float(r[3]) if r[3] is not None else 0.0,
            )
            for r in rows
        ]

    def set_candidate_status(self, terms: List[str], status: CandidateStatus) -> int:
        norms = sorted({normalize_term(t) for t in terms if normalize_term(t)})
        if not norms:
            return 0
        q = text("""
            UPDATE discovery_queue
            SET status=:status, reviewed_at=CURRENT_TIMESTAMP
            WHERE status='pending' AND term_norm IN :norms
        """).bindparams(bindparam("norms", expanding=True))
        with self.engine.begin() as conn:
            res = conn.execute(q, {"status": CandidateStatus(status).value, "norms": norms})
        return res.rowcount or 0


def build_gateway(settings: Settings, engine: Engine | None = None) -> PersistenceGateway:
    """One gateway per process; absence of POSTGRES_DSN yields the no-op variant."""
    if engine is None:
        if not settings.persistence_enabled:
            logger.info("POSTGRES_DSN not set; persistence disabled")
            return NullGateway()
        engine = make_engine(settings.postgres_dsn)
    gw = PostgresGateway(engine)
    gw.init_schema()
    return gw

