##########################################################################################
#
# Script name: dispatcher.py
#
# Description: Fans one refresh cycle out across all feed sources and merges the results.
#
##########################################################################################

import concurrent.futures
import logging
import time
from collections.abc import Sequence

from .config import FETCH_TIMEOUT_SECONDS, MAX_ITEMS_PER_SOURCE
from .models import FeedSource, NewsItem, RawFetchResult, Snapshot
from .strategies import DEFAULT_STRATEGIES, ExtractionStrategy, extract_items
from .transport import Fetcher, TransportError, fetch
from .utils import utc_now


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)


# ****************************************************************************************
# Classes
# ****************************************************************************************


class FetchDispatcher:
    '''
    Runs one fetch+extract task per source and merges them into a Snapshot.

    Tasks run on a thread pool sized to the number of sources unless
    max_workers bounds it. The merge waits for every task and orders the
    result by registry index, then document order, independent of which
    task finished first.
    '''

    def __init__(
        self,
        fetcher: Fetcher = fetch,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        max_items: int = MAX_ITEMS_PER_SOURCE,
        max_workers: int | None = None,
        strategies: tuple[ExtractionStrategy, ...] = DEFAULT_STRATEGIES,
    ):
        self.fetcher = fetcher
        self.timeout = timeout
        self.max_items = max_items
        self.max_workers = max_workers
        self.strategies = strategies

    def fetch_source(self, source: FeedSource) -> RawFetchResult:
        try:
            body = self.fetcher(source.url, self.timeout)
        except TransportError as exc:
            log.warning('Source %s contributed no items: %s', source.source_name, exc)
            body = None
        return RawFetchResult(source=source, body=body, fetched_at=utc_now())

    def run_task(self, source: FeedSource) -> list[NewsItem]:
        result = self.fetch_source(source)
        if not result.ok:
            return []
        return extract_items(result, self.max_items, self.strategies)

    def _safe_task(self, source: FeedSource) -> list[NewsItem]:
        try:
            return self.run_task(source)
        except Exception as exc:  # noqa: BLE001
            log.exception('Source task failed for %s: %s', source.source_name, exc)
            return []

    def collect(self, sources: Sequence[FeedSource]) -> list[list[NewsItem]]:
        if not sources:
            return []
        results: list[list[NewsItem]] = [[] for _ in sources]
        workers = self.max_workers or len(sources)
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix='feed-fetch'
        ) as executor:
            future_to_index = {
                executor.submit(self._safe_task, source): idx for idx, source in enumerate(sources)
            }
            for future in concurrent.futures.as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        return results

    def merge(self, per_source: Sequence[list[NewsItem]], generation: int) -> Snapshot:
        merged: list[NewsItem] = []
        for items in per_source:
            merged.extend(items)
        return Snapshot(generation=generation, items=tuple(merged), published_at=utc_now())

    def run_cycle(self, sources: Sequence[FeedSource], generation: int) -> Snapshot:
        started = time.monotonic()
        per_source = self.collect(sources)
        snapshot = self.merge(per_source, generation)
        log.info(
            'Cycle %d fetched %d item(s) from %d/%d source(s) in %.1fs.',
            generation,
            len(snapshot.items),
            sum(1 for items in per_source if items),
            len(sources),
            time.monotonic() - started,
        )
        return snapshot
