##########################################################################################
#
# Script name: resolver.py
#
# Description: Per-field candidate resolution turning one item fragment into a NewsItem.
#
##########################################################################################

from .config import (
    DEFAULT_DESCRIPTION,
    DEFAULT_IMAGE_URL,
    DEFAULT_LINK,
    DEFAULT_PUB_DATE,
    IMAGE_EXTENSIONS,
)
from .markup import extract_attribute, extract_tag, normalize_text, unescape_entities
from .models import FeedSource, NewsItem


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************
# (tag, attribute) pairs in priority order; attribute None means the tag's text content.
FIELD_CANDIDATES = {
    'title': (
        ('title', None),
        ('dc:title', None),
        ('media:title', None),
    ),
    'link': (
        ('link', None),
        ('guid', None),
        ('id', None),
        ('link', 'href'),
    ),
    'description': (
        ('description', None),
        ('content:encoded', None),
        ('summary', None),
        ('media:description', None),
    ),
    'pub_date': (
        ('pubDate', None),
        ('dc:date', None),
        ('updated', None),
        ('published', None),
    ),
}

# Title has no default: an untitled fragment is dropped by build_item.
FIELD_DEFAULTS = {
    'title': '',
    'link': DEFAULT_LINK,
    'description': DEFAULT_DESCRIPTION,
    'pub_date': DEFAULT_PUB_DATE,
}

# Identifier tags that stand in for a link only when they carry a URL (Atom ids are often 'tag:' or 't3_abc').
URL_ONLY_TAGS = ('guid', 'id')
URL_PREFIXES = ('http://', 'https://')

IMAGE_ATTRIBUTE_CANDIDATES = (
    ('media:content', 'url'),
    ('media:thumbnail', 'url'),
)


# ****************************************************************************************
# Functions
# ****************************************************************************************


def _candidate_text(fragment: str, tag: str, attr: str | None) -> str:
    if attr is None:
        raw = extract_tag(fragment, tag)
    else:
        raw = extract_attribute(fragment, tag, attr)
    return normalize_text(raw)


def resolve_field(fragment: str, field_name: str) -> str:
    '''
    Resolve one logical field of an item fragment.

    Candidates are tried in priority order and the first one that normalizes
    to non-empty text wins; later candidates are never consulted. Falls back
    to the field's default when nothing matches.
    '''
    try:
        candidates = FIELD_CANDIDATES[field_name]
    except KeyError:
        raise ValueError(f'Unknown field: {field_name}') from None
    for tag, attr in candidates:
        value = _candidate_text(fragment, tag, attr)
        if value and tag in URL_ONLY_TAGS and not value.lower().startswith(URL_PREFIXES):
            continue
        if value:
            return value
    return FIELD_DEFAULTS[field_name]


def has_image_extension(url: str) -> bool:
    lowered = url.lower()
    return any(extension in lowered for extension in IMAGE_EXTENSIONS)


def resolve_image(fragment: str) -> str:
    for tag, attr in IMAGE_ATTRIBUTE_CANDIDATES:
        value = normalize_text(extract_attribute(fragment, tag, attr))
        if value:
            return value

    enclosure = normalize_text(extract_attribute(fragment, 'enclosure', 'url'))
    if enclosure and has_image_extension(enclosure):
        return enclosure

    # raw description markup, before tag stripping; escaped HTML is unescaped first
    description = extract_tag(fragment, 'description')
    if description:
        src = normalize_text(extract_attribute(unescape_entities(description), 'img', 'src'))
        if src:
            return src

    return DEFAULT_IMAGE_URL


def build_item(fragment: str, source: FeedSource) -> NewsItem | None:
    title = resolve_field(fragment, 'title')
    if not title:
        return None
    return NewsItem(
        title=title,
        link=resolve_field(fragment, 'link'),
        description=resolve_field(fragment, 'description'),
        pub_date=resolve_field(fragment, 'pub_date'),
        source=source.source_name,
        category=source.category,
        country=source.country,
        image_url=resolve_image(fragment),
    )
