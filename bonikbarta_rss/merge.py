"""Merging and deduplication of feed items."""

from datetime import UTC, datetime

from dateutil import parser as date_parser

from .logging_config import create_execution_logger
from .models import FeedItem, MergeResult

# Sort position for items whose pubDate cannot be parsed
OLDEST = datetime.min.replace(tzinfo=UTC)


def sort_key(item: FeedItem) -> datetime:
    """Publish datetime of an item in UTC, used for newest-first ordering."""
    if not item.pub_date:
        return OLDEST
    try:
        published = date_parser.parse(item.pub_date)
    except (ValueError, OverflowError):
        return OLDEST
    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    return published.astimezone(UTC)


class FeedMerger:
    """Combines fresh items with the existing feed, without duplicates."""

    def __init__(self, max_items: int = 500, execution_id: str | None = None):
        """Initialize the merger.

        Args:
            max_items: Maximum number of items kept in the feed
            execution_id: Execution ID for logging context
        """
        self.max_items = max_items
        self.logger = create_execution_logger("merger", execution_id)

    def merge(
        self, new_items: list[FeedItem], existing_items: list[FeedItem]
    ) -> MergeResult:
        """Merge new items into the existing feed.

        Existing items seed the guid and link sets; an incoming item is
        dropped when either set already holds its guid or link. Kept new
        items go in front of the existing ones, then everything is sorted
        newest first and cut to ``max_items``.

        Args:
            new_items: Items normalized during this run
            existing_items: Items parsed from the previous feed

        Returns:
            MergeResult with the final item list and counts
        """
        seen_guids: set[str] = set()
        seen_links: set[str] = set()
        duplicates = 0

        kept_existing = []
        for item in existing_items:
            if item.guid in seen_guids or item.link in seen_links:
                duplicates += 1
                continue
            seen_guids.add(item.guid)
            seen_links.add(item.link)
            kept_existing.append(item)

        kept_new = []
        for item in new_items:
            if item.guid in seen_guids or item.link in seen_links:
                duplicates += 1
                self.logger.debug(
                    f"Skipping duplicate item: {item.title}", item_guid=item.guid
                )
                continue
            seen_guids.add(item.guid)
            seen_links.add(item.link)
            kept_new.append(item)

        # sorted() is stable, so new items stay ahead of existing ones on ties
        merged = sorted(kept_new + kept_existing, key=sort_key, reverse=True)
        truncated = max(len(merged) - self.max_items, 0)
        merged = merged[: self.max_items]

        self.logger.info(
            f"Merged feed: {len(kept_new)} new, {len(kept_existing)} existing",
            items_added=len(kept_new),
            items_duplicates=duplicates,
            items_truncated=truncated,
            items_total=len(merged),
        )
        return MergeResult(
            items=merged, added=len(kept_new), duplicates=duplicates, truncated=truncated
        )
