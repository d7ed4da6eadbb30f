# trendhunter/promote_candidates.py
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from trendhunter.config import settings, setup_logging
from trendhunter.models import CandidateStatus, DiscoveryCandidate, normalize_term
from trendhunter.storage_pg import PersistenceGateway, build_gateway
from trendhunter.terms import load_terms_config

DISCOVERED_CATEGORY = "Discovered"


@dataclass
class ReviewResult:
    promoted: List[str] = field(default_factory=list)
    already_tracked: List[str] = field(default_factory=list)
    updated_rows: int = 0


def parse_terms(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def select_candidates(gateway: PersistenceGateway, limit: int, terms: Sequence[str] = ()) -> List[DiscoveryCandidate]:
    """Top pending candidates, or only the pending ones matching `terms` when given."""
    if terms:
        wanted = {normalize_term(t) for t in terms}
        # explicit lists may name candidates below the default top-N
        pool = gateway.pending_candidates(limit=max(limit, 1000))
        return [c for c in pool if c.key in wanted]
    return gateway.pending_candidates(limit=limit)


def promote(gateway: PersistenceGateway, candidates: Sequence[DiscoveryCandidate], region: str,
            dry_run: bool = False) -> ReviewResult:
    """Approved candidates become tracked terms; the queue row is marked approved."""
    res = ReviewResult()
    seen = set()
    for c in candidates:
        if c.key in seen:
            continue
        seen.add(c.key)
        if gateway.trend_exists(c.term):
            res.already_tracked.append(c.term)
            continue
        res.promoted.append(c.term)
        if not dry_run:
            gateway.upsert_trend(c.term, DISCOVERED_CATEGORY, region, "")

    if not dry_run:
        names = res.promoted + res.already_tracked
        res.updated_rows = gateway.set_candidate_status(names, CandidateStatus.APPROVED)
    return res


def reject(gateway: PersistenceGateway, terms: Sequence[str], dry_run: bool = False) -> int:
    if dry_run:
        return 0
    return gateway.set_candidate_status(list(terms), CandidateStatus.REJECTED)


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(description="Review the discovery queue: promote or reject pending candidates.")
    parser.add_argument("--dry-run", action="store_true", help="print what would change without writing")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("promote", help="turn pending candidates into tracked terms")
    p.add_argument("--limit", type=int, default=20, help="top N pending candidates by initial score")
    p.add_argument("--terms", default="", help="comma-separated explicit candidates")

    r = sub.add_parser("reject", help="mark pending candidates rejected")
    r.add_argument("--terms", required=True, help="comma-separated candidates")

    args = parser.parse_args(argv)

    setup_logging()
    gateway = build_gateway(settings)
    if not gateway.enabled:
        print("POSTGRES_DSN is not set; there is no discovery queue to review.")
        return

    if args.cmd == "promote":
        cfg = load_terms_config(settings.terms_file)
        candidates = select_candidates(gateway, args.limit, parse_terms(args.terms))
        if not candidates:
            print("No pending candidates to promote.")
            return
        res = promote(gateway, candidates, cfg.region, dry_run=args.dry_run)
        print(f"Promoted {len(res.promoted)} terms")
        for t in res.promoted:
            print(f" - {t}")
        for t in res.already_tracked:
            print(f" - {t} (already tracked)")
        if args.dry_run:
            print("(dry-run) nothing written")
        else:
            print(f"queue rows approved: {res.updated_rows}")
    else:
        terms = parse_terms(args.terms)
        n = reject(gateway, terms, dry_run=args.dry_run)
        print(f"(dry-run) would reject {len(terms)} terms" if args.dry_run else f"queue rows rejected: {n}")


if __name__ == "__main__":
    main()
