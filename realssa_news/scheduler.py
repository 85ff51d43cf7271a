##########################################################################################
#
# Script name: scheduler.py
#
# Description: Recurring fetch -> merge -> publish loop with an explicit stop signal.
#
##########################################################################################

from __future__ import annotations

import enum
import logging
import threading
import time
from collections.abc import Callable, Sequence

from .cache import SnapshotCache
from .config import REFRESH_INTERVAL_SECONDS
from .dispatcher import FetchDispatcher
from .models import FeedSource, Snapshot


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = 'idle'
    FETCHING = 'fetching'
    MERGING = 'merging'
    PUBLISHED = 'published'
    STOPPED = 'stopped'


# ****************************************************************************************
# Classes
# ****************************************************************************************


class RefreshScheduler:
    '''
    Drives refresh cycles and is the only writer to its SnapshotCache.

    start() runs one cycle in the calling thread so the cache is populated
    before the caller starts serving, then repeats on a background thread
    every `interval` seconds until stop(). Cycles never overlap: the wait
    starts only after the previous cycle has published.
    '''

    def __init__(
        self,
        sources: Sequence[FeedSource],
        cache: SnapshotCache,
        dispatcher: FetchDispatcher,
        interval: float = REFRESH_INTERVAL_SECONDS,
        on_publish: Callable[[Snapshot], None] | None = None,
    ):
        if interval <= 0:
            raise ValueError('interval must be positive')
        self.sources = tuple(sources)
        self.cache = cache
        self.dispatcher = dispatcher
        self.interval = interval
        self.on_publish = on_publish
        self._state = SchedulerState.IDLE
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._ready = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Snapshot:
        with self._cycle_lock:
            started = time.monotonic()
            generation = self.cache.next_generation()
            log.info('Refresh cycle %d started for %d source(s).', generation, len(self.sources))

            self._state = SchedulerState.FETCHING
            per_source = self.dispatcher.collect(self.sources)

            self._state = SchedulerState.MERGING
            snapshot = self.dispatcher.merge(per_source, generation)

            self.cache.publish(snapshot)
            self._state = SchedulerState.PUBLISHED
            self._ready.set()
            log.info(
                'Refresh cycle %d published %d item(s) in %.1fs.',
                generation,
                len(snapshot.items),
                time.monotonic() - started,
            )

        if self.on_publish is not None:
            try:
                self.on_publish(snapshot)
            except Exception as exc:  # noqa: BLE001
                log.exception('Publish callback failed for generation %d: %s', generation, exc)
        return snapshot

    def start(self) -> Snapshot:
        if self.running:
            raise RuntimeError('Refresh scheduler is already running.')
        self._stop_event.clear()
        snapshot = self.run_once()
        self._thread = threading.Thread(target=self._loop, name='refresh-scheduler', daemon=True)
        self._thread.start()
        return snapshot

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception as exc:  # noqa: BLE001
                log.exception('Refresh cycle failed: %s', exc)
        self._state = SchedulerState.STOPPED
        log.info('Refresh scheduler stopped.')

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                log.warning('Refresh scheduler did not stop within %ss.', timeout)
                return
            self._thread = None
        self._state = SchedulerState.STOPPED

    def wait(self, timeout: float | None = None) -> bool:
        '''
        Block until stop() is called or the timeout passes; returns True when stopped.
        '''
        return self._stop_event.wait(timeout)
