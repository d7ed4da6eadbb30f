from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout, as_completed
from typing import Dict, List, Sequence

from tqdm import tqdm

from trendhunter.adapters import PlatformAdapter
from trendhunter.models import SignalSample, TrackedTerm

logger = logging.getLogger(__name__)


class SignalCollector:
    """
    Fans a term out to every adapter and waits for all of them.

    Each adapter gets the same time budget, measured from submission; a
    timeout or crash becomes that platform's zero-value sample and does not
    cancel the others. The result always has exactly one sample per adapter
    platform, in adapter order.
    """

    def __init__(self, adapters: Sequence[PlatformAdapter], timeout: float = 30.0, max_workers: int = 8):
        platforms = [a.platform for a in adapters]
        if len(set(platforms)) != len(platforms):
            raise ValueError("one adapter per platform")
        self.adapters = list(adapters)
        self.timeout = timeout
        self.max_workers = max_workers

    def collect(self, term: str, region: str) -> List[SignalSample]:
        if not self.adapters:
            return []

        by_platform: Dict = {}
        executor = ThreadPoolExecutor(max_workers=len(self.adapters), thread_name_prefix="adapter")
        try:
            futures = {executor.submit(a.fetch, term, region): a.platform for a in self.adapters}
            deadline = time.monotonic() + self.timeout
            for fut, platform in futures.items():
                try:
                    sample = fut.result(timeout=max(0.0, deadline - time.monotonic()))
                except FutureTimeout:
                    logger.warning(f"{platform.value} timed out after {self.timeout:.0f}s for {term!r}")
                    sample = SignalSample.zero(platform)
                except Exception as e:
                    logger.warning(f"{platform.value} adapter crashed for {term!r}: {e}")
                    sample = SignalSample.zero(platform)

                if sample.platform != platform:
                    logger.warning(f"{platform.value} adapter returned a {sample.platform.value} sample; dropped")
                    sample = SignalSample.zero(platform)
                by_platform[platform] = sample
        finally:
            # don't block on stragglers; their HTTP timeouts end them
            executor.shutdown(wait=False, cancel_futures=True)

        return [by_platform[a.platform] for a in self.adapters]

    def collect_many(self, terms: Sequence[TrackedTerm], region: str,
                     progress: bool = False) -> Dict[str, List[SignalSample]]:
        """Signal sets keyed by normalized term; terms run concurrently."""
        out: Dict[str, List[SignalSample]] = {}
        if not terms:
            return out

        workers = min(self.max_workers, len(terms))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="term") as executor:
            futures = {executor.submit(self.collect, t.term, region): t for t in terms}
            done = as_completed(futures)
            if progress:
                done = tqdm(done, total=len(futures), desc="collecting signals", unit="term")
            for fut in done:
                t = futures[fut]
                out[t.key] = fut.result()
        return out
