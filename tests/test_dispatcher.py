##########################################################################################
#
# Script name: test_dispatcher.py
#
# Description: Fan-out, partial failure isolation and deterministic merge order tests.
#
##########################################################################################

import threading
import time

from realssa_news.dispatcher import FetchDispatcher
from realssa_news.models import FeedSource
from realssa_news.transport import TransportError


def _source(idx: int) -> FeedSource:
    return FeedSource(
        url=f'https://feed{idx}.example.com/rss',
        source_name=f'Feed {idx}',
        category='General News',
        country='Kenya',
    )


def _document(prefix: str, count: int = 2) -> bytes:
    items = ''.join(f'<item><title>{prefix} story {n}</title></item>' for n in range(count))
    return f'<rss><channel>{items}</channel></rss>'.encode('utf-8')


def test_partial_failure_keeps_other_sources() -> None:
    sources = [_source(1), _source(2), _source(3)]

    def fetcher(url: str, timeout: float) -> bytes:
        if url == sources[1].url:
            raise TransportError(url, 'connection refused')
        return _document(url.split('.')[0].split('//')[1])

    snapshot = FetchDispatcher(fetcher=fetcher).run_cycle(sources, generation=1)

    assert snapshot.generation == 1
    assert {item.source for item in snapshot.items} == {'Feed 1', 'Feed 3'}
    assert [item.title for item in snapshot.items] == [
        'feed1 story 0',
        'feed1 story 1',
        'feed3 story 0',
        'feed3 story 1',
    ]


def test_unexpected_task_error_is_isolated() -> None:
    sources = [_source(1), _source(2)]

    def fetcher(url: str, timeout: float) -> bytes:
        if url == sources[0].url:
            raise RuntimeError('boom')
        return _document('ok')

    snapshot = FetchDispatcher(fetcher=fetcher).run_cycle(sources, generation=4)
    assert [item.source for item in snapshot.items] == ['Feed 2', 'Feed 2']


def test_merge_order_ignores_completion_order() -> None:
    sources = [_source(idx) for idx in range(1, 6)]
    delays = {source.url: 0.05 * (len(sources) - idx) for idx, source in enumerate(sources)}

    def fetcher(url: str, timeout: float) -> bytes:
        time.sleep(delays[url])
        return _document(url, count=3)

    first = FetchDispatcher(fetcher=fetcher).run_cycle(sources, generation=1)
    delays = {source.url: 0.05 * idx for idx, source in enumerate(sources)}
    second = FetchDispatcher(fetcher=fetcher, max_workers=2).run_cycle(sources, generation=2)

    assert first.items == second.items
    assert [item.source for item in first.items] == [
        source.source_name for source in sources for _ in range(3)
    ]


def test_tasks_run_concurrently() -> None:
    sources = [_source(idx) for idx in range(4)]
    barrier = threading.Barrier(len(sources), timeout=5)

    def fetcher(url: str, timeout: float) -> bytes:
        barrier.wait()
        return _document('parallel', count=1)

    snapshot = FetchDispatcher(fetcher=fetcher).run_cycle(sources, generation=1)
    assert len(snapshot.items) == 4


def test_all_sources_failing_yields_empty_snapshot() -> None:
    def fetcher(url: str, timeout: float) -> bytes:
        raise TransportError(url, 'timed out')

    snapshot = FetchDispatcher(fetcher=fetcher).run_cycle([_source(1), _source(2)], generation=7)
    assert snapshot.generation == 7
    assert snapshot.items == ()
    assert snapshot.published_at is not None


def test_per_source_cap_applies_in_merge() -> None:
    def fetcher(url: str, timeout: float) -> bytes:
        return _document('bulk', count=500)

    snapshot = FetchDispatcher(fetcher=fetcher, max_items=30).run_cycle([_source(1), _source(2)], generation=1)
    assert len(snapshot.items) == 60


def test_timeout_is_passed_to_transport() -> None:
    seen = []

    def fetcher(url: str, timeout: float) -> bytes:
        seen.append(timeout)
        return _document('t', count=1)

    FetchDispatcher(fetcher=fetcher, timeout=12.5).run_cycle([_source(1)], generation=1)
    assert seen == [12.5]


def test_no_sources_publishes_empty_generation() -> None:
    snapshot = FetchDispatcher(fetcher=lambda url, timeout: b'').run_cycle([], generation=3)
    assert snapshot.generation == 3
    assert len(snapshot) == 0
