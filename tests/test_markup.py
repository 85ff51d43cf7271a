##########################################################################################
#
# Script name: test_markup.py
#
# Description: Tag scanning, CDATA unwrapping and text normalization tests.
#
##########################################################################################

import time

import pytest

from realssa_news.markup import (
    extract_attribute,
    extract_tag,
    iter_fragments,
    normalize_text,
    strip_markup,
    unwrap_cdata,
)


def test_extract_tag_returns_first_match_only() -> None:
    markup = '<item><title>First</title><title>Second</title></item>'
    assert extract_tag(markup, 'title') == 'First'


def test_extract_tag_missing_boundaries_returns_none() -> None:
    assert extract_tag('<title>No close', 'title') is None
    assert extract_tag('No open</title>', 'title') is None
    assert extract_tag('<titles>x</titles>', 'title') is None


def test_extract_tag_collapses_nested_same_name_tags() -> None:
    markup = '<div>outer <div>inner</div> tail</div>'
    assert extract_tag(markup, 'div') == 'outer <div>inner'


def test_extract_tag_unwraps_cdata() -> None:
    markup = '<title><![CDATA[Breaking <b>news</b>]]></title>'
    assert extract_tag(markup, 'title') == 'Breaking <b>news</b>'
    assert extract_tag(markup, 'title', unwrap=False) == '<![CDATA[Breaking <b>news</b>]]>'


def test_unwrap_cdata_leaves_unterminated_section_unchanged() -> None:
    assert unwrap_cdata('<![CDATA[never closed') == '<![CDATA[never closed'
    assert unwrap_cdata('plain text') == 'plain text'


def test_extract_attribute_handles_both_quote_styles() -> None:
    assert extract_attribute('<media:content url="https://a/x.jpg" />', 'media:content', 'url') == 'https://a/x.jpg'
    assert extract_attribute("<enclosure type='image/png' url='https://a/y.png'/>", 'enclosure', 'url') == 'https://a/y.png'


def test_extract_attribute_scans_only_first_opening_tag() -> None:
    markup = '<media:content medium="image"/><media:content url="https://a/second.jpg"/>'
    assert extract_attribute(markup, 'media:content', 'url') is None


def test_extract_attribute_requires_attribute_boundary() -> None:
    markup = '<img data-src="https://a/lazy.jpg" src="https://a/real.jpg">'
    assert extract_attribute(markup, 'img', 'src') == 'https://a/real.jpg'


def test_extract_attribute_ignores_longer_tag_names() -> None:
    markup = '<imgset src="https://a/no.jpg"><img src="https://a/yes.jpg">'
    assert extract_attribute(markup, 'img', 'src') == 'https://a/yes.jpg'


def test_iter_fragments_preserves_document_order() -> None:
    document = '<rss><item>a</item><item>b</item><item>c</item></rss>'
    assert list(iter_fragments(document, 'item')) == ['a', 'b', 'c']


def test_iter_fragments_stops_at_unterminated_item() -> None:
    document = '<item>a</item><item>b'
    assert list(iter_fragments(document, 'item')) == ['a']


def test_iter_fragments_with_attributes() -> None:
    document = '<item rdf:about="x">a</item><item/><item>b</item>'
    assert list(iter_fragments(document, 'item')) == ['b']
    assert list(iter_fragments(document, 'item', allow_attributes=True)) == ['a', 'b']


def test_strip_markup_truncates_unterminated_span() -> None:
    assert strip_markup('keep <b>this</b> but <broken') == 'keep this but '


def test_normalize_text_pipeline() -> None:
    raw = '  <p>Tom &amp; Jerry&#39;s\n\n\t&quot;show&quot;</p>  '
    assert normalize_text(raw) == 'Tom & Jerry\'s "show"'


def test_normalize_text_handles_non_ascii_whitespace() -> None:
    assert normalize_text('  Accra news 　') == 'Accra news'
    assert normalize_text('Café — été') == 'Café — été'


def test_normalize_text_empty_inputs() -> None:
    assert normalize_text(None) == ''
    assert normalize_text('') == ''
    assert normalize_text('<br/>  ') == ''


@pytest.mark.parametrize(
    'raw',
    [
        '<description><![CDATA[<b>Hi &amp; Bye</b>]]></description>',
        '&amp;lt;b&amp;gt;bold&amp;lt;/b&amp;gt;',
        '5 &lt; 6 and 7 &gt; 3',
        'a <unterminated',
        '<![CDATA[broken',
        '   spaced\t\tout  ',
        '&amp;amp;amp;',
        'plain',
    ],
)
def test_normalize_text_is_idempotent(raw: str) -> None:
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_normalize_text_collapses_ampersand_chain_quickly() -> None:
    started = time.monotonic()
    assert normalize_text('&' + 'amp;' * 100_000) == '&'
    assert normalize_text('&' + 'amp;' * 50_000 + 'lt;b&gt;x') == 'x'
    assert time.monotonic() - started < 1.0


def test_normalize_text_keeps_bare_less_than() -> None:
    assert normalize_text('Rates &lt; 5% expected this year') == 'Rates < 5% expected this year'
    assert normalize_text('5 &lt; 6 and 7 &gt; 3') == '5 < 6 and 7 > 3'
    assert normalize_text('&lt;b&gt;bold&lt;/b&gt; text') == 'bold text'


def test_strip_markup_leaves_non_tag_angle_bracket() -> None:
    assert strip_markup('a < b and <i>c</i>') == 'a < b and c'
