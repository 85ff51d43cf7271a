from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FeedSource:
    url: str
    source_name: str = field(compare=False)
    category: str = field(compare=False)
    country: str = field(compare=False)


@dataclass(frozen=True)
class RawFetchResult:
    source: FeedSource
    body: bytes | None
    fetched_at: datetime

    @property
    def ok(self) -> bool:
        return self.body is not None


@dataclass(frozen=True)
class NewsItem:
    title: str
    link: str
    description: str
    pub_date: str
    source: str
    category: str
    country: str
    image_url: str = ""

    def to_json(self) -> dict[str, str]:
        return {
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "pubDate": self.pub_date,
            "source": self.source,
            "category": self.category,
            "country": self.country,
            "imageUrl": self.image_url,
        }


@dataclass(frozen=True)
class Snapshot:
    generation: int
    items: tuple[NewsItem, ...] = ()
    published_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    @classmethod
    def empty(cls) -> Snapshot:
        return cls(generation=0)

    def __len__(self) -> int:
        return len(self.items)
