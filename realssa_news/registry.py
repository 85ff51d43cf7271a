##########################################################################################
#
# Script name: registry.py
#
# Description: Loads the immutable feed registry from YAML configuration.
#
##########################################################################################

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import yaml

from .models import FeedSource


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ('url', 'source', 'category', 'country')


@dataclass(frozen=True)
class FeedRegistry:
    sources: tuple[FeedSource, ...] = ()

    def __iter__(self) -> Iterator[FeedSource]:
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    def __getitem__(self, index: int) -> FeedSource:
        return self.sources[index]

    @classmethod
    def from_sources(cls, sources: Iterable[FeedSource]) -> FeedRegistry:
        unique: list[FeedSource] = []
        seen: set[str] = set()
        for source in sources:
            if source.url in seen:
                log.warning('Skipping duplicate feed url: %s', source.url)
                continue
            seen.add(source.url)
            unique.append(source)
        return cls(sources=tuple(unique))

    def countries(self) -> list[str]:
        return sorted({source.country for source in self.sources})

    def categories(self) -> list[str]:
        return sorted({source.category for source in self.sources})


# ****************************************************************************************
# Functions
# ****************************************************************************************


def _row_to_source(row: object, idx: int) -> FeedSource | None:
    if not isinstance(row, dict):
        log.warning('Feed entry %d is not a mapping; skipping.', idx)
        return None
    values = {key: str(row.get(key) or '').strip() for key in REQUIRED_FIELDS}
    missing = [key for key, value in values.items() if not value]
    if missing:
        log.warning('Feed entry %d is missing %s; skipping.', idx, ', '.join(missing))
        return None
    return FeedSource(
        url=values['url'],
        source_name=values['source'],
        category=values['category'],
        country=values['country'],
    )


def parse_registry(payload: object) -> FeedRegistry:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValueError('feed registry must be a mapping with a "feeds" list')
    rows = payload.get('feeds', [])
    if not isinstance(rows, list):
        raise ValueError('config.feeds must be a list')
    sources = []
    for idx, row in enumerate(rows, start=1):
        source = _row_to_source(row, idx)
        if source:
            sources.append(source)
    return FeedRegistry.from_sources(sources)


def load_registry(path: str) -> FeedRegistry:
    with open(path, 'r', encoding='utf-8') as handle:
        payload = yaml.safe_load(handle)
    registry = parse_registry(payload)
    if not registry:
        log.warning('No feeds configured in %s.', path)
    else:
        log.info('Loaded %d feed(s) from %s.', len(registry), path)
    return registry
