##########################################################################################
#
# Script name: export.py
#
# Description: JSON payloads for news-feed, health and notifications, and static export.
#
##########################################################################################

import json
import logging
import os
import tempfile
from collections import Counter
from datetime import datetime, timedelta, timezone
from html import escape
from pathlib import Path
from typing import Any

from .cache import SnapshotCache
from .config import DEFAULT_PUB_DATE, NOTIFICATION_WINDOW_HOURS
from .models import NewsItem, Snapshot
from .utils import parse_pub_date, utc_now


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

NEWS_FEED_FILE = 'news-feed.json'
HEALTH_FILE = 'health.json'
NOTIFICATIONS_FILE = 'notifications.json'
INDEX_FILE = 'index.html'

CSS = '''
body { font-family: Arial, sans-serif; max-width: 800px; margin: 50px auto; padding: 20px; color: #1d212a; }
h1 { color: #2563eb; }
.endpoint { background: #f3f4f6; padding: 15px; margin: 10px 0; border-radius: 8px; }
.stats { background: #dbeafe; padding: 10px; border-radius: 5px; margin: 20px 0; }
a { color: #2563eb; text-decoration: none; font-weight: bold; }
a:hover { text-decoration: underline; }
'''


# ****************************************************************************************
# Functions
# ****************************************************************************************


def encode_json(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, ensure_ascii=False, indent=indent)


def _timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def news_feed_payload(snapshot: Snapshot) -> list[dict[str, str]]:
    return [item.to_json() for item in snapshot.items]


def health_payload(snapshot: Snapshot) -> dict[str, Any]:
    return {
        'status': 'ok',
        'items': len(snapshot.items),
        'generation': snapshot.generation,
        'timestamp': _timestamp(snapshot.published_at),
    }


def recent_items(
    snapshot: Snapshot,
    window_hours: float = NOTIFICATION_WINDOW_HOURS,
    now: datetime | None = None,
) -> list[NewsItem]:
    '''
    Items whose pubDate falls within the last `window_hours`.

    Items carrying the default date, an unparseable date, or a date in the
    future beyond the window are left out. Snapshot order is kept.
    '''
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window = timedelta(hours=window_hours)
    recent = []
    for item in snapshot.items:
        if item.pub_date == DEFAULT_PUB_DATE:
            continue
        published = parse_pub_date(item.pub_date)
        if published is None:
            continue
        if timedelta(0) <= now - published <= window:
            recent.append(item)
    return recent


def notifications_payload(
    snapshot: Snapshot,
    window_hours: float = NOTIFICATION_WINDOW_HOURS,
    now: datetime | None = None,
) -> dict[str, Any]:
    items = recent_items(snapshot, window_hours=window_hours, now=now)
    return {
        'status': 'ok',
        'windowHours': window_hours,
        'notifications': [item.to_json() for item in items],
    }


def _render_index(snapshot: Snapshot) -> str:
    categories = Counter(item.category for item in snapshot.items)
    countries = Counter(item.country for item in snapshot.items)
    category_rows = ''.join(
        f'<li>{escape(name)}: {count}</li>' for name, count in sorted(categories.items())
    )
    country_rows = ''.join(
        f'<li>{escape(name)}: {count}</li>' for name, count in sorted(countries.items())
    )
    published = escape(_timestamp(snapshot.published_at) or 'never')
    return f'''<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>RealSSA RSS API</title>
  <style>{CSS}</style>
</head>
<body>
  <h1>RealSSA RSS News Feed API</h1>
  <div class="stats">
    <strong>Generation {snapshot.generation}</strong> | {len(snapshot.items)} item(s) | refreshed {published}
  </div>
  <div class="endpoint"><a href="./{NEWS_FEED_FILE}">{NEWS_FEED_FILE}</a> - all news as JSON</div>
  <div class="endpoint"><a href="./{HEALTH_FILE}">{HEALTH_FILE}</a> - status and item count</div>
  <div class="endpoint"><a href="./{NOTIFICATIONS_FILE}">{NOTIFICATIONS_FILE}</a> - latest breaking news</div>
  <h3>Categories</h3>
  <ul>{category_rows}</ul>
  <h3>Countries</h3>
  <ul>{country_rows}</ul>
</body>
</html>
'''


def _write_atomic(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def write_snapshot(cache: SnapshotCache, output_dir: str, now: datetime | None = None) -> Path:
    '''
    Write the current snapshot as static JSON and an index page.

    Each file is replaced atomically, so a client reading the directory sees
    either the previous or the new version of a file, never a partial one.
    '''
    snapshot = cache.current()
    root = Path(output_dir)
    root.mkdir(parents=True, exist_ok=True)
    _write_atomic(root / NEWS_FEED_FILE, encode_json(news_feed_payload(snapshot), indent=2))
    _write_atomic(root / HEALTH_FILE, encode_json(health_payload(snapshot), indent=2))
    _write_atomic(
        root / NOTIFICATIONS_FILE,
        encode_json(notifications_payload(snapshot, now=now), indent=2),
    )
    _write_atomic(root / INDEX_FILE, _render_index(snapshot))
    log.info('Wrote generation %d to %s', snapshot.generation, root)
    return root
