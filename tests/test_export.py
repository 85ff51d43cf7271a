##########################################################################################
#
# Script name: test_export.py
#
# Description: JSON payload shapes, notification window and static export tests.
#
##########################################################################################

import json
from datetime import datetime, timezone
from pathlib import Path

from realssa_news.cache import SnapshotCache
from realssa_news.export import (
    health_payload,
    news_feed_payload,
    notifications_payload,
    recent_items,
    write_snapshot,
)
from realssa_news.models import NewsItem, Snapshot


NOW = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


def _item(title: str, pub_date: str) -> NewsItem:
    return NewsItem(
        title=title,
        link=f'https://example.com/{title}',
        description='Body',
        pub_date=pub_date,
        source='BBC World',
        category='World News',
        country='Global',
        image_url='https://example.com/img.jpg',
    )


def _snapshot() -> Snapshot:
    return Snapshot(
        generation=3,
        items=(
            _item('fresh', 'Mon, 06 May 2024 11:30:00 GMT'),
            _item('old', 'Mon, 06 May 2024 08:00:00 GMT'),
            _item('sentinel', '2024-01-01'),
            _item('garbage', 'not a date'),
            _item('iso', '2024-05-06T10:15:00+00:00'),
            _item('future', 'Mon, 06 May 2024 18:00:00 GMT'),
        ),
        published_at=NOW,
    )


def test_news_feed_payload_uses_wire_keys() -> None:
    payload = news_feed_payload(_snapshot())
    assert len(payload) == 6
    assert set(payload[0]) == {
        'title',
        'link',
        'description',
        'pubDate',
        'source',
        'category',
        'country',
        'imageUrl',
    }
    assert payload[0]['pubDate'] == 'Mon, 06 May 2024 11:30:00 GMT'


def test_health_payload_reports_count_and_timestamp() -> None:
    cache = SnapshotCache()
    assert health_payload(cache.current()) == {'status': 'ok', 'items': 0, 'generation': 0, 'timestamp': None}
    cache.publish(_snapshot())
    assert health_payload(cache.current()) == {
        'status': 'ok',
        'items': 6,
        'generation': 3,
        'timestamp': '2024-05-06T12:00:00+00:00',
    }


def test_recent_items_keeps_only_window_in_order() -> None:
    recent = recent_items(_snapshot(), window_hours=2, now=NOW)
    assert [item.title for item in recent] == ['fresh', 'iso']


def test_notifications_payload_shape() -> None:
    payload = notifications_payload(_snapshot(), window_hours=2, now=NOW)
    assert payload['status'] == 'ok'
    assert payload['windowHours'] == 2
    assert [row['title'] for row in payload['notifications']] == ['fresh', 'iso']


def test_write_snapshot_exports_all_files(tmp_path: Path) -> None:
    cache = SnapshotCache()
    cache.publish(_snapshot())

    root = write_snapshot(cache, str(tmp_path / 'site'), now=NOW)

    feed = json.loads((root / 'news-feed.json').read_text(encoding='utf-8'))
    health = json.loads((root / 'health.json').read_text(encoding='utf-8'))
    notifications = json.loads((root / 'notifications.json').read_text(encoding='utf-8'))
    index_html = (root / 'index.html').read_text(encoding='utf-8')

    assert [row['title'] for row in feed] == ['fresh', 'old', 'sentinel', 'garbage', 'iso', 'future']
    assert health['items'] == 6
    assert len(notifications['notifications']) == 2
    assert 'Generation 3' in index_html
    assert 'World News: 6' in index_html
    assert not list(root.glob('.*.tmp'))


def test_write_snapshot_overwrites_previous_export(tmp_path: Path) -> None:
    cache = SnapshotCache()
    cache.publish(_snapshot())
    write_snapshot(cache, str(tmp_path), now=NOW)
    cache.publish(Snapshot(generation=4, items=(), published_at=NOW))
    write_snapshot(cache, str(tmp_path), now=NOW)

    feed = json.loads((tmp_path / 'news-feed.json').read_text(encoding='utf-8'))
    assert feed == []


class PublishAfterReadCache(SnapshotCache):
    '''Publishes a newer generation right after handing out generation 3.'''

    def current(self) -> Snapshot:
        snapshot = super().current()
        if snapshot.generation == 3:
            self.publish(Snapshot(generation=4, items=(), published_at=NOW))
        return snapshot


def test_write_snapshot_files_describe_one_generation(tmp_path: Path) -> None:
    cache = PublishAfterReadCache()
    cache.publish(_snapshot())

    write_snapshot(cache, str(tmp_path), now=NOW)

    feed = json.loads((tmp_path / 'news-feed.json').read_text(encoding='utf-8'))
    health = json.loads((tmp_path / 'health.json').read_text(encoding='utf-8'))
    assert cache.generation() == 4
    assert health['generation'] == 3
    assert health['items'] == len(feed) == 6
