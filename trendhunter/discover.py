# trendhunter/discover.py
from __future__ import annotations

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import requests
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from trendhunter.adapters import YELP_SEARCH_URL
from trendhunter.config import Settings, settings, setup_logging
from trendhunter.models import TrackedTerm, normalize_term
from trendhunter.storage_pg import PersistenceGateway, build_gateway
from trendhunter.terms import TermsConfig, load_terms_config, merge_terms
from trendhunter.trends_provider import PyTrendsProvider

logger = logging.getLogger(__name__)

HOT_AND_NEW_SCORE = 50
MAX_TITLE_LEN = 100


@dataclass(frozen=True)
class Proposal:
    term: str
    source: str
    initial_score: float


@dataclass
class SourceReport:
    proposed: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class DiscoveryReport:
    sources: Dict[str, SourceReport] = field(default_factory=dict)

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.sources.values())

    @property
    def proposed(self) -> int:
        return sum(r.proposed for r in self.sources.values())


def truncate_title(title: str, max_len: int = MAX_TITLE_LEN) -> str:
    title = title.strip()
    return title[: max_len - 3] + "..." if len(title) > max_len else title


def discover_hot_and_new(s: Settings, location: str) -> List[Proposal]:
    """Category labels of Yelp's 'hot and new' food businesses."""
    if not s.yelp_api_key:
        return []
    r = requests.get(
        YELP_SEARCH_URL,
        headers={"Authorization": f"Bearer {s.yelp_api_key}"},
        params={
            "location": location,
            "attributes": "hot_and_new",
            "limit": 20,
            "categories": "food,restaurants",
        },
        timeout=s.http_timeout,
    )
    r.raise_for_status()

    out: List[Proposal] = []
    for b in r.json().get("businesses") or []:
        # track concepts, not individual restaurants
        for cat in b.get("categories") or []:
            title = (cat or {}).get("title")
            if title:
                out.append(Proposal(title, "Yelp Hot & New (Category)", HOT_AND_NEW_SCORE))
    return out


def discover_rising_queries(provider: PyTrendsProvider, seeds: Sequence[TrackedTerm]) -> List[Proposal]:
    """
    Google Trends 'rising' related queries per seed term, one payload per seed.
    Queries that merely contain the seed ("birria tacos recipe") are skipped.
    """
    out: List[Proposal] = []
    for seed in seeds:
        try:
            rows = provider.rising_queries(seed.term)
        except Exception as e:
            logger.warning(f"related queries failed for {seed.term!r}: {e}")
            continue
        for query, value in rows:
            if seed.key in normalize_term(query):
                continue
            out.append(Proposal(query, f"Google Trends Rising (via {seed.term})", value))
    return out


def discover_community_titles(s: Settings, subreddits: Sequence[str], keywords: Sequence[str]) -> List[Proposal]:
    out: List[Proposal] = []
    for sub in subreddits:
        try:
            r = requests.get(
                f"https://www.reddit.com/r/{sub}/hot.json",
                params={"limit": 10},
                headers={"User-Agent": s.reddit_user_agent},
                timeout=s.http_timeout,
            )
            r.raise_for_status()
            posts = [c["data"] for c in r.json()["data"]["children"]]
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.warning(f"failed to fetch r/{sub}: {e}")
            continue

        for post in posts:
            title = str(post.get("title") or "")
            lower = title.lower()
            if any(k in lower for k in keywords):
                out.append(Proposal(truncate_title(title), f"Reddit r/{sub}", float(post.get("score") or 0)))
    return out


class DiscoveryAgent:
    def __init__(self, s: Settings, gateway: PersistenceGateway, terms_config: TermsConfig,
                 provider: Optional[PyTrendsProvider] = None):
        self.settings = s
        self.gateway = gateway
        self.terms_config = terms_config
        self.provider = provider or PyTrendsProvider.from_settings(s)

    def seed_terms(self, limit: int) -> List[TrackedTerm]:
        try:
            stored = self.gateway.list_trends()
        except SQLAlchemyError as e:
            logger.error(f"could not load stored trends for seeding: {e}")
            stored = []
        return merge_terms(self.terms_config.terms, stored)[:limit]

    def sources(self, seed_limit: int) -> Dict[str, Callable[[], List[Proposal]]]:
        s, cfg = self.settings, self.terms_config
        out: Dict[str, Callable[[], List[Proposal]]] = {
            "hot_and_new": lambda: discover_hot_and_new(s, cfg.location),
            "community_titles": lambda: discover_community_titles(s, cfg.subreddits, cfg.keywords),
        }
        if s.trends_mode == "pytrends":
            seeds = self.seed_terms(seed_limit)
            out["rising_queries"] = lambda: discover_rising_queries(self.provider, seeds)
        return out

    def gather(self, seed_limit: int) -> Dict[str, List[Proposal]]:
        """Run every source concurrently; a failed or timed-out source yields nothing."""
        sources = self.sources(seed_limit)
        results: Dict[str, List[Proposal]] = {}
        executor = ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="discovery")
        try:
            futures = {name: executor.submit(fn) for name, fn in sources.items()}
            deadline = time.monotonic() + self.settings.discovery_source_timeout
            for name, fut in futures.items():
                try:
                    results[name] = fut.result(timeout=max(0.0, deadline - time.monotonic()))
                except FutureTimeout:
                    logger.warning(f"discovery source {name} timed out")
                    results[name] = []
                except Exception as e:
                    logger.error(f"discovery source {name} failed: {e}")
                    results[name] = []
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return results

    def submit(self, proposal: Proposal) -> Optional[bool]:
        """True = queued, False = already tracked / pending / rejected, None = write failed."""
        try:
            return self.gateway.insert_candidate_if_absent(proposal.term, proposal.source, proposal.initial_score)
        except SQLAlchemyError as e:
            logger.error(f"queueing {proposal.term!r} failed: {e}")
            return None

    def run(self, seed_limit: Optional[int] = None, progress: bool = False) -> DiscoveryReport:
        limit = self.settings.discovery_seed_limit if seed_limit is None else seed_limit
        gathered = self.gather(limit)

        # configured terms may not be stored yet
        tracked = {t.key for t in self.terms_config.terms}
        report = DiscoveryReport()
        for name, proposals in gathered.items():
            rep = report.sources.setdefault(name, SourceReport())
            items = [p for p in proposals if normalize_term(p.term)]
            rep.proposed = len(items)
            if progress:
                items = tqdm(items, desc=f"queueing {name}", unit="term")
            for p in items:
                if normalize_term(p.term) in tracked:
                    rep.skipped += 1
                    continue
                ok = self.submit(p)
                if ok is None:
                    rep.failed += 1
                elif ok:
                    rep.inserted += 1
                    logger.info(f"Queued new discovery: {p.term} ({p.source})")
                else:
                    rep.skipped += 1
        return report


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(description="Discover new food terms and queue them for review.")
    parser.add_argument("--seed-limit", type=int, default=None,
                        help="tracked terms used as Google Trends seeds (default: DISCOVERY_SEED_LIMIT)")
    parser.add_argument("--subreddits", type=str, default="", help="comma separated override (e.g. Minneapolis,StPaul)")
    parser.add_argument("--terms", type=str, default="", help="terms YAML override (default: TERMS_FILE)")
    args = parser.parse_args(argv)

    setup_logging()

    cfg = load_terms_config(args.terms or settings.terms_file)
    if args.subreddits.strip():
        cfg.subreddits = [x.strip() for x in args.subreddits.split(",") if x.strip()]

    gateway = build_gateway(settings)
    if not gateway.enabled:
        print("(no POSTGRES_DSN) candidates are discovered but nothing is queued")

    agent = DiscoveryAgent(settings, gateway, cfg)
    report = agent.run(seed_limit=args.seed_limit, progress=True)

    for name, rep in report.sources.items():
        print(f"[{name}] proposed {rep.proposed} / queued {rep.inserted} / "
              f"skipped {rep.skipped} / failed {rep.failed}")
    print(f"done. total queued: {report.inserted}")


if __name__ == "__main__":
    main()
