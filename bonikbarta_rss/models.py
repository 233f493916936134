"""Data models for the Bonikbarta RSS generator."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FeedItem:
    """Represents a single item of the generated RSS feed."""

    title: str
    link: str
    description: str
    pub_date: str  # RFC-1123, e.g. "Mon, 01 Jan 2024 10:00:00 GMT"
    guid: str


@dataclass
class FetchResult:
    """Outcome of fetching one API endpoint."""

    url: str
    posts: list[dict[str, Any]] = field(default_factory=list)
    ok: bool = True
    attempts: int = 0
    error: str = ""


@dataclass
class MergeResult:
    """Merged feed plus bookkeeping counts."""

    items: list[FeedItem]
    added: int = 0
    duplicates: int = 0
    truncated: int = 0
