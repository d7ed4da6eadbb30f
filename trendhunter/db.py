from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine


def make_engine(dsn: str, **kwargs) -> Engine:
    return create_engine(dsn, pool_pre_ping=True, **kwargs)


def init_schema(engine: Engine) -> None:
    # Postgres in production; sqlite only differs in id/json column types
    if engine.dialect.name == "postgresql":
        id_col, json_col = "BIGSERIAL PRIMARY KEY", "JSONB"
    else:
        id_col, json_col = "INTEGER PRIMARY KEY", "TEXT"

    statements = [
        f"""
        CREATE TABLE IF NOT EXISTS trends (
          id {id_col},
          term TEXT NOT NULL,
          term_norm TEXT NOT NULL,
          category TEXT NOT NULL DEFAULT '',
          region TEXT NOT NULL DEFAULT '',
          neighborhood TEXT NOT NULL DEFAULT '',
          created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
          last_updated TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_trends_term_norm
          ON trends(term_norm)
        """,
        f"""
        CREATE TABLE IF NOT EXISTS trend_history (
          id {id_col},
          trend_id BIGINT NOT NULL REFERENCES trends(id) ON DELETE CASCADE,
          timestamp TIMESTAMPTZ NOT NULL,
          demand_score INT NOT NULL,
          supply_score INT NOT NULL,
          unmet_demand_score INT NOT NULL,
          breakout_probability INT NOT NULL,
          raw_signals {json_col} NOT NULL
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_history_trend_ts
          ON trend_history(trend_id, timestamp DESC)
        """,
        f"""
        CREATE TABLE IF NOT EXISTS discovery_queue (
          id {id_col},
          term TEXT NOT NULL,
          term_norm TEXT NOT NULL,
          source TEXT NOT NULL,
          initial_score DOUBLE PRECISION,
          status TEXT NOT NULL DEFAULT 'pending',   -- pending / approved / rejected
          created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
          reviewed_at TIMESTAMPTZ
        )
        """,
        # at most one pending row per normalized term; insert-if-absent targets this
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_discovery_pending_term
          ON discovery_queue(term_norm) WHERE status = 'pending'
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_discovery_status
          ON discovery_queue(status)
        """,
    ]
    with engine.begin() as conn:
        for ddl in statements:
            conn.execute(text(ddl))
