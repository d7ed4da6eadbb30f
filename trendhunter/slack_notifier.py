from __future__ import annotations

from typing import Any, Dict, List, Sequence

import requests

from trendhunter.models import TrendRecord


def post_webhook(webhook_url: str, payload: Dict[str, Any]) -> None:
    if not webhook_url:
        raise RuntimeError("SLACK_WEBHOOK_URL is empty.")
    r = requests.post(webhook_url, json=payload, timeout=15)
    r.raise_for_status()


def top_opportunities(records: Sequence[TrendRecord], limit: int = 5) -> List[TrendRecord]:
    ranked = sorted(
        records,
        key=lambda r: (r.scores.unmet_demand_score, r.scores.breakout_probability),
        reverse=True,
    )
    return ranked[:limit]


def digest_text(records: Sequence[TrendRecord], region: str, limit: int = 5) -> str:
    lines = [f"📌 Trend Hunter: top unmet demand in {region}"]
    top = top_opportunities(records, limit)
    if not top:
        lines.append("No trends scored in this run.")
    for r in top:
        s = r.scores
        lines.append(
            f"- {r.term.term} ({r.term.category}, {r.term.neighborhood or 'metro'})  "
            f"unmet {s.unmet_demand_score} | demand {s.demand_score} / supply {s.supply_score} | "
            f"breakout {s.breakout_probability}%"
        )
    return "\n".join(lines)


def send_daily_summary(webhook_url: str, channel: str, text: str):
    post_webhook(webhook_url, {"channel": channel, "text": text})
