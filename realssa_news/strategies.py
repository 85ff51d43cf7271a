##########################################################################################
#
# Script name: strategies.py
#
# Description: Ordered item extraction strategies tried until one yields items.
#
##########################################################################################

import io
import logging
from collections.abc import Callable
from dataclasses import dataclass

import feedparser

from .config import DEFAULT_DESCRIPTION, DEFAULT_IMAGE_URL, DEFAULT_LINK, DEFAULT_PUB_DATE
from .markup import extract_attribute, iter_fragments, normalize_text
from .models import FeedSource, NewsItem, RawFetchResult
from .resolver import URL_PREFIXES, build_item, has_image_extension
from .utils import decode_body


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

Extractor = Callable[[RawFetchResult, str, int], list[NewsItem]]


@dataclass(frozen=True)
class ExtractionStrategy:
    name: str
    extract: Extractor


# ****************************************************************************************
# Functions
# ****************************************************************************************


def fragment_scan(tag: str, allow_attributes: bool = False) -> Extractor:
    def extract(result: RawFetchResult, document: str, max_items: int) -> list[NewsItem]:
        items: list[NewsItem] = []
        for fragment in iter_fragments(document, tag, allow_attributes=allow_attributes):
            item = build_item(fragment, result.source)
            if item is None:
                continue
            items.append(item)
            if len(items) >= max_items:
                break
        return items

    return extract


def _first_url(entries, key: str) -> str:
    for entry in entries or []:
        value = normalize_text(entry.get(key))
        if value:
            return value
    return ''


def _entry_image(entry) -> str:
    image_url = _first_url(entry.get('media_content'), 'url')
    if image_url:
        return image_url
    image_url = _first_url(entry.get('media_thumbnail'), 'url')
    if image_url:
        return image_url
    for enclosure in entry.get('enclosures') or []:
        href = normalize_text(enclosure.get('href'))
        if href and has_image_extension(href):
            return href
    summary = entry.get('summary') or ''
    src = normalize_text(extract_attribute(summary, 'img', 'src'))
    return src or DEFAULT_IMAGE_URL


def _entry_description(entry) -> str:
    description = normalize_text(entry.get('summary'))
    if description:
        return description
    for content in entry.get('content') or []:
        description = normalize_text(content.get('value'))
        if description:
            return description
    return DEFAULT_DESCRIPTION


def _item_from_entry(entry, source: FeedSource) -> NewsItem | None:
    title = normalize_text(entry.get('title'))
    if not title:
        return None
    link = normalize_text(entry.get('link'))
    if not link:
        entry_id = normalize_text(entry.get('id'))
        link = entry_id if entry_id.lower().startswith(URL_PREFIXES) else DEFAULT_LINK
    pub_date = normalize_text(entry.get('published')) or normalize_text(entry.get('updated'))
    return NewsItem(
        title=title,
        link=link,
        description=_entry_description(entry),
        pub_date=pub_date or DEFAULT_PUB_DATE,
        source=source.source_name,
        category=source.category,
        country=source.country,
        image_url=_entry_image(entry),
    )


def parse_with_feedparser(result: RawFetchResult, document: str, max_items: int) -> list[NewsItem]:
    parsed = feedparser.parse(io.BytesIO(result.body or document.encode('utf-8')))
    if getattr(parsed, 'bozo', False):
        log.debug('feedparser reported malformed markup for %s: %s', result.source.url, parsed.get('bozo_exception'))
    items: list[NewsItem] = []
    for entry in parsed.entries:
        item = _item_from_entry(entry, result.source)
        if item is None:
            continue
        items.append(item)
        if len(items) >= max_items:
            break
    return items


DEFAULT_STRATEGIES = (
    ExtractionStrategy('item-scan', fragment_scan('item')),
    ExtractionStrategy('entry-scan', fragment_scan('entry')),
    ExtractionStrategy('attributed-item-scan', fragment_scan('item', allow_attributes=True)),
    ExtractionStrategy('attributed-entry-scan', fragment_scan('entry', allow_attributes=True)),
    ExtractionStrategy('feedparser', parse_with_feedparser),
)


def extract_items(
    result: RawFetchResult,
    max_items: int,
    strategies: tuple[ExtractionStrategy, ...] = DEFAULT_STRATEGIES,
) -> list[NewsItem]:
    '''
    Build the items of one fetched document.

    Strategies run in order and the first one returning at least one item
    wins. Every strategy applies the same field defaults and drops untitled
    items; the result never exceeds max_items.
    '''
    if result.body is None:
        return []
    document = decode_body(result.body)
    for strategy in strategies:
        items = strategy.extract(result, document, max_items)
        if items:
            log.debug('%s: %d item(s) via %s', result.source.source_name, len(items), strategy.name)
            return items[:max_items]
    log.debug('%s: no items found by any strategy', result.source.source_name)
    return []
