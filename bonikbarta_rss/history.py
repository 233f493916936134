"""Loading of previously generated feed files."""

from pathlib import Path

import feedparser

from .logging_config import create_execution_logger
from .models import FeedItem


class FeedHistory:
    """Reads FeedItems back out of the previous run's output."""

    def __init__(self, execution_id: str | None = None):
        self.logger = create_execution_logger("history", execution_id)

    def load(self, path: Path) -> list[FeedItem]:
        """Parse the prior feed file.

        A missing, unreadable or malformed file is treated as empty history.

        Args:
            path: Location of the previously written feed

        Returns:
            FeedItems in file order
        """
        path = Path(path)
        if not path.exists():
            self.logger.info("No previous feed found", output_path=str(path))
            return []

        try:
            content = path.read_bytes()
        except OSError as e:
            self.logger.warning(
                f"Could not read previous feed {path}: {e}",
                output_path=str(path),
                error=str(e),
            )
            return []

        return self.parse(content, source=str(path))

    def parse(self, content: bytes | str, source: str = "<string>") -> list[FeedItem]:
        """Parse RSS content into FeedItems."""
        # Descriptions must come back exactly as they were written
        feed = feedparser.parse(
            content, sanitize_html=False, resolve_relative_uris=False
        )

        if feed.bozo:
            self.logger.warning(
                f"Previous feed is malformed, starting from empty history: "
                f"{feed.get('bozo_exception')}",
                output_path=source,
                bozo_exception=str(feed.get("bozo_exception")),
            )
            return []

        items = []
        for entry in feed.entries:
            guid = entry.get("id", "")
            link = entry.get("link", "")
            if not guid or not link:
                self.logger.warning(
                    "Skipping previous item without guid or link",
                    output_path=source,
                    item_guid=guid,
                )
                continue

            items.append(
                FeedItem(
                    title=entry.get("title", ""),
                    link=link,
                    description=entry.get("summary", ""),
                    pub_date=entry.get("published", ""),
                    guid=guid,
                )
            )

        self.logger.info(
            f"Loaded {len(items)} items from previous feed",
            output_path=source,
            items_count=len(items),
        )
        return items
