##########################################################################################
#
# Script name: markup.py
#
# Description: Lenient first-match tag scanning and text normalization for feed markup.
#
##########################################################################################

import re
from collections.abc import Iterator


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

CDATA_OPEN = '<![CDATA['
CDATA_CLOSE = ']]>'

# '&amp;amp;...' chains collapse to '&' before the table is applied in order.
AMP_CHAIN = re.compile(r'&(?:amp;)+')

ENTITY_TABLE = (
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&apos;', "'"),
)

MAX_NORMALIZE_PASSES = 4


# ****************************************************************************************
# Functions
# ****************************************************************************************


def unwrap_cdata(text: str) -> str:
    '''
    Replace text with the payload of its first CDATA section.

    Content outside the section is discarded. An unterminated section leaves
    the text unchanged.
    '''
    start = text.find(CDATA_OPEN)
    if start == -1:
        return text
    payload_start = start + len(CDATA_OPEN)
    end = text.find(CDATA_CLOSE, payload_start)
    if end == -1:
        return text
    return text[payload_start:end]


def extract_tag(markup: str, tag: str, unwrap: bool = True) -> str | None:
    '''
    Return the content between the first `<tag>` and the next `</tag>` after it.

    The scan is first-match and not nesting-aware: repeated or nested
    same-named tags collapse into the first pair found. Returns None when
    either boundary is missing.
    '''
    opening = f'<{tag}>'
    start = markup.find(opening)
    if start == -1:
        return None
    start += len(opening)
    end = markup.find(f'</{tag}>', start)
    if end == -1:
        return None
    content = markup[start:end]
    return unwrap_cdata(content) if unwrap else content


def _find_opening(markup: str, tag: str, pos: int = 0) -> tuple[int, int]:
    # Returns (index of '<', index of closing '>') for the first `<tag ...>` at or after pos.
    needle = f'<{tag}'
    while True:
        start = markup.find(needle, pos)
        if start == -1:
            return -1, -1
        after = start + len(needle)
        if after < len(markup) and (markup[after].isspace() or markup[after] in '/>'):
            end = markup.find('>', after)
            if end == -1:
                return -1, -1
            return start, end
        pos = after


def extract_attribute(markup: str, tag: str, attr: str) -> str | None:
    '''
    Return the quoted value of `attr` on the first `<tag ...>` opening.

    Only that opening tag's span is scanned; later tags of the same name
    are ignored even when the first one lacks the attribute.
    '''
    start, end = _find_opening(markup, tag)
    if start == -1:
        return None
    span = markup[start:end]
    needle = f'{attr}='
    pos = 0
    while True:
        idx = span.find(needle, pos)
        if idx == -1:
            return None
        pos = idx + len(needle)
        if not span[idx - 1].isspace():
            continue
        if pos >= len(span) or span[pos] not in ('"', "'"):
            continue
        quote = span[pos]
        close = span.find(quote, pos + 1)
        if close == -1:
            return None
        return span[pos + 1:close]


def iter_fragments(document: str, tag: str, allow_attributes: bool = False) -> Iterator[str]:
    '''
    Yield successive `<tag>...</tag>` spans of a document in document order.

    With allow_attributes the opening may carry attributes, as RDF and some
    Atom feeds do (`<item rdf:about="...">`). Scanning stops at the first
    opening that has no closing tag after it.
    '''
    closing = f'</{tag}>'
    plain_opening = f'<{tag}>'
    pos = 0
    while True:
        if allow_attributes:
            start, opening_end = _find_opening(document, tag, pos)
            if start == -1:
                return
            if document[opening_end - 1] == '/':
                pos = opening_end + 1
                continue
            content_start = opening_end + 1
        else:
            start = document.find(plain_opening, pos)
            if start == -1:
                return
            content_start = start + len(plain_opening)
        end = document.find(closing, content_start)
        if end == -1:
            return
        yield document[content_start:end]
        pos = end + len(closing)

def _opens_tag(text: str, pos: int) -> bool:
    nxt = text[pos + 1:pos + 2]
    return nxt.isalpha() or nxt in ('/', '!', '?')


def strip_markup(text: str) -> str:
    '''
    Remove `<...>` spans. A `<` not followed by a tag-name character, `/`,
    `!` or `?` is text (`5 < 6`). An unterminated tag runs to end of string.
    '''
    parts = []
    pos = 0
    search = 0
    while True:
        start = text.find('<', search)
        if start == -1:
            parts.append(text[pos:])
            break
        if not _opens_tag(text, start):
            search = start + 1
            continue
        parts.append(text[pos:start])
        end = text.find('>', start)
        if end == -1:
            # unterminated span runs to end of string
            break
        pos = search = end + 1
    return ''.join(parts)


def unescape_entities(text: str) -> str:
    text = AMP_CHAIN.sub('&', text)
    for entity, replacement in ENTITY_TABLE:
        text = text.replace(entity, replacement)
    return text


def _normalize_pass(text: str) -> str:
    text = unwrap_cdata(text)
    text = strip_markup(text)
    text = unescape_entities(text)
    return ' '.join(text.split())


def normalize_text(text: str | None) -> str:
    '''
    Reduce a field's raw markup to plain display text.

    Runs CDATA unwrap, tag stripping, entity unescape, whitespace collapse and
    trim, repeating the pass until the text no longer changes. Escaped markup
    (`&lt;b&gt;`) decodes on one pass and is stripped on the next; a whole
    `&amp;amp;...` chain decodes in a single pass. Every pass is a linear
    scan and the number of passes is capped, so hostile input cannot make
    the loop quadratic. Feed text settles well within the cap.
    '''
    if not text:
        return ''
    current = text
    for _ in range(MAX_NORMALIZE_PASSES):
        cleaned = _normalize_pass(current)
        if cleaned == current:
            return cleaned
        current = cleaned
    return current
