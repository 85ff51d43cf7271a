##########################################################################################
#
# Script name: cache.py
#
# Description: Single-generation snapshot holder shared between the scheduler and readers.
#
##########################################################################################

from __future__ import annotations

import logging
import threading
from datetime import datetime

from .models import NewsItem, Snapshot


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)


# ****************************************************************************************
# Classes
# ****************************************************************************************


class SnapshotCache:
    '''
    Holds the most recently published Snapshot.

    Publishing swaps one reference under a writer lock. Readers take the
    reference without locking; since a Snapshot is immutable, whatever they
    hold stays one complete generation even after it is superseded.
    '''

    def __init__(self, initial: Snapshot | None = None):
        self._snapshot = initial or Snapshot.empty()
        self._write_lock = threading.Lock()

    def publish(self, snapshot: Snapshot) -> None:
        with self._write_lock:
            previous = self._snapshot
            if snapshot.generation <= previous.generation:
                raise ValueError(
                    f'Snapshot generation {snapshot.generation} does not advance '
                    f'past {previous.generation}'
                )
            self._snapshot = snapshot
        log.info(
            'Published generation %d with %d item(s) (replaced generation %d).',
            snapshot.generation,
            len(snapshot.items),
            previous.generation,
        )

    def current(self) -> Snapshot:
        return self._snapshot

    def next_generation(self) -> int:
        return self._snapshot.generation + 1

    # Read API consumed by the serving layer.

    def current_snapshot(self) -> tuple[NewsItem, ...]:
        return self._snapshot.items

    def item_count(self) -> int:
        return len(self._snapshot.items)

    def last_refresh_timestamp(self) -> datetime | None:
        return self._snapshot.published_at

    def generation(self) -> int:
        return self._snapshot.generation
