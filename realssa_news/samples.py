from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from html import escape

from .utils import utc_now


SAMPLE_HEADLINES = [
    ('Central bank holds rates as inflation cools', 'Policy makers signalled a pause after three hikes.'),
    ('Fintech startup raises Series A to expand mobile payments', 'The round was led by regional investors.'),
    ('National team books place in continental final', 'A late goal sealed the semi-final win.'),
    ('Researchers map drought resilience in staple crops', 'Field trials ran across four growing seasons.'),
    ('Telecom regulator opens 5G spectrum auction', 'Bids close at the end of the quarter.'),
    ('Film festival announces opening night line-up', 'Twelve debut features compete this year.'),
]


def build_sample_document(source_name: str, count: int = 6, now: datetime | None = None) -> bytes:
    if now is None:
        now = utc_now()
    items = []
    for idx in range(count):
        title, summary = SAMPLE_HEADLINES[idx % len(SAMPLE_HEADLINES)]
        published = now - timedelta(minutes=45 * idx)
        slug = f"{source_name.lower().replace(' ', '-')}-{idx + 1}"
        items.append(
            "<item>"
            f"<title><![CDATA[{title} ({idx + 1})]]></title>"
            f"<link>https://example.com/{escape(slug)}</link>"
            f"<description><![CDATA[<p>{summary}</p>"
            f"<img src=\"https://example.com/img/{escape(slug)}.jpg\">]]></description>"
            f"<pubDate>{format_datetime(published.astimezone(timezone.utc))}</pubDate>"
            "</item>"
        )
    document = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<rss version=\"2.0\"><channel><title>{escape(source_name)}</title>"
        + "".join(items)
        + "</channel></rss>"
    )
    return document.encode("utf-8")


def sample_fetch(url: str, timeout: float) -> bytes:
    """Offline stand-in for transport.fetch used by the --sample CLI mode."""
    host = url.split("//", 1)[-1].split("/", 1)[0]
    return build_sample_document(host.replace("www.", ""))
