from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

import yaml

from trendhunter.models import TrackedTerm, normalize_term


@dataclass
class TermsConfig:
    region: str
    location: str
    terms: List[TrackedTerm]
    subreddits: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def merge_terms(*groups: Iterable[TrackedTerm]) -> List[TrackedTerm]:
    """Concatenate term groups, keeping the first entry per normalized term."""
    out: List[TrackedTerm] = []
    seen = set()
    for group in groups:
        for t in group:
            if not t.key or t.key in seen:
                continue
            seen.add(t.key)
            out.append(t)
    return out


def load_terms_config(path: str) -> TermsConfig:
    cfg = load_yaml(path)

    region = str(cfg.get("region") or "").strip()
    if not region:
        raise ValueError(f"{path}: 'region' is required")
    location = str(cfg.get("location") or region).strip()

    rows = cfg.get("terms") or []
    terms = [
        TrackedTerm(
            term=str(r["term"]).strip(),
            category=str(r.get("category") or "").strip(),
            region=region,
            neighborhood=str(r.get("neighborhood") or "").strip(),
        )
        for r in rows
        if r and r.get("term")
    ]

    disc = cfg.get("discovery") or {}
    return TermsConfig(
        region=region,
        location=location,
        terms=merge_terms(terms),
        subreddits=[str(s).strip() for s in disc.get("subreddits") or [] if str(s).strip()],
        keywords=[normalize_term(k) for k in disc.get("keywords") or [] if normalize_term(k)],
    )
