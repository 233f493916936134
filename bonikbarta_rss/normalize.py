"""Mapping of raw API posts to feed items."""

import hashlib
from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import format_datetime
from typing import Any

from dateutil import parser as date_parser
from dateutil import tz

from .config import FeedConfig
from .logging_config import create_execution_logger
from .models import FeedItem


def generate_guid(raw_post: dict[str, Any]) -> str:
    """Content hash of title, excerpt (or summary) and publish timestamp.

    The same source content always produces the same identifier, so items
    survive re-runs without being duplicated.
    """
    excerpt = raw_post.get("excerpt") or raw_post.get("summary") or ""
    hash_input = "".join(
        str(part)
        for part in (
            raw_post.get("title") or "",
            excerpt,
            raw_post.get("first_published_at") or "",
        )
    )
    return hashlib.md5(hash_input.encode("utf-8")).hexdigest()


def format_rfc1123(value: datetime) -> str:
    """Format an aware datetime as ``Mon, 01 Jan 2024 10:00:00 GMT``."""
    return format_datetime(value.astimezone(UTC), usegmt=True)


class PostNormalizer:
    """Turns RawPost dictionaries into FeedItem records."""

    def __init__(
        self,
        config: FeedConfig,
        execution_id: str | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.logger = create_execution_logger("normalizer", execution_id)
        self.now = now or (lambda: datetime.now(UTC))
        self.source_tz = tz.gettz(config.source_timezone) or UTC

    def normalize_posts(self, posts: list[dict[str, Any]]) -> list[FeedItem]:
        """Normalize a batch of posts, skipping the ones that cannot be mapped."""
        items = []
        for post in posts:
            try:
                items.append(self.normalize_post(post))
            except (TypeError, ValueError, AttributeError) as e:
                self.logger.warning(
                    f"Failed to normalize post: {e}",
                    post_title=str(post.get("title", ""))[:80],
                    error=str(e),
                )
        return items

    def normalize_post(self, raw_post: dict[str, Any]) -> FeedItem:
        """Normalize a single RawPost into a FeedItem.

        Args:
            raw_post: Post dictionary as returned by the API

        Returns:
            FeedItem with plain-text title; escaping happens at render time
        """
        title = _text(raw_post.get("title")) or self.config.default_title
        description = (
            _text(raw_post.get("excerpt"))
            or _text(raw_post.get("summary"))
            or self.config.default_description
        )

        return FeedItem(
            title=title,
            link=self.build_link(raw_post.get("url_path")),
            description=description,
            pub_date=self.format_pub_date(raw_post.get("first_published_at")),
            guid=generate_guid(raw_post),
        )

    def build_link(self, url_path: Any) -> str:
        """Join the site base URL with the post path, minus the internal prefix."""
        path = _text(url_path) or "/"
        prefix = self.config.strip_prefix
        if prefix and path.startswith(prefix):
            path = path[len(prefix):]
        if not path.startswith("/"):
            path = "/" + path
        return self.config.base_url.rstrip("/") + path

    def format_pub_date(self, value: Any) -> str:
        """Format the publish timestamp as RFC-1123, defaulting to now."""
        if not value:
            return format_rfc1123(self.now())

        try:
            published = date_parser.parse(str(value))
            # Timestamps without offset are local to the news site
            if published.tzinfo is None:
                published = published.replace(tzinfo=self.source_tz)
            return format_rfc1123(published)
        except (ValueError, OverflowError) as e:
            self.logger.warning(
                f"Unparseable publish date {value!r}, using current time",
                error=str(e),
            )
            return format_rfc1123(self.now())


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
