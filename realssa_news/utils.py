from __future__ import annotations

import codecs
import re
from datetime import datetime, timezone

from dateutil import parser as date_parser


XML_ENCODING_PATTERN = re.compile(rb"""<\?xml[^>]*encoding=["']([A-Za-z0-9._-]+)["']""")


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def decode_body(body: bytes) -> str:
    if body.startswith(codecs.BOM_UTF8):
        return body[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")
    encoding = "utf-8"
    match = XML_ENCODING_PATTERN.match(body.lstrip()[:200])
    if match:
        declared = match.group(1).decode("ascii")
        try:
            codecs.lookup(declared)
            encoding = declared
        except LookupError:
            pass
    return body.decode(encoding, errors="replace")


def parse_pub_date(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
