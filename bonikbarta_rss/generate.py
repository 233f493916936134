"""Main entry point for the Bonikbarta RSS generator."""

import argparse
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .config import Config, FeedConfig
from .fetch import PostFetcher
from .history import FeedHistory
from .logging_config import create_execution_logger, setup_structured_logging
from .merge import FeedMerger
from .normalize import PostNormalizer
from .rss import RSSSerializer


class FeedGenerator:
    """Drives one fetch, normalize, merge and write cycle."""

    def __init__(
        self,
        config: FeedConfig,
        execution_id: str | None = None,
        fetcher: PostFetcher | None = None,
    ):
        self.config = config
        self.execution_id = (
            execution_id or f"run_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
        )
        self.logger = create_execution_logger("generator", self.execution_id)
        self.fetcher = fetcher or PostFetcher(config.fetch, execution_id=self.execution_id)
        self.normalizer = PostNormalizer(config, execution_id=self.execution_id)
        self.history = FeedHistory(execution_id=self.execution_id)
        self.merger = FeedMerger(config.max_items, execution_id=self.execution_id)
        self.serializer = RSSSerializer(config.channel, execution_id=self.execution_id)

    def run(self) -> dict[str, Any]:
        """Generate or update the feed file.

        Returns:
            Run metrics

        Raises:
            OSError: If the output file cannot be written
        """
        self.logger.log_execution_start(
            source_count=len(self.config.api_urls),
            output_path=str(self.config.output_path),
        )

        metrics: dict[str, Any] = {
            "sources_processed": 0,
            "sources_failed": 0,
            "items_fetched": 0,
            "items_normalized": 0,
            "items_existing": 0,
            "items_added": 0,
            "items_deduplicated": 0,
            "items_truncated": 0,
            "items_written": 0,
            "output_path": str(self.config.output_path),
            "errors": [],
        }

        try:
            existing_items = self.history.load(self.config.output_path)
            metrics["items_existing"] = len(existing_items)

            posts = []
            for result in self.fetcher.fetch_sources(self.config.api_urls):
                if result.ok:
                    metrics["sources_processed"] += 1
                    posts.extend(result.posts)
                else:
                    metrics["sources_failed"] += 1
                    metrics["errors"].append(f"Failed to load from {result.url}: {result.error}")
            metrics["items_fetched"] = len(posts)

            new_items = self.normalizer.normalize_posts(posts)
            metrics["items_normalized"] = len(new_items)

            merged = self.merger.merge(new_items, existing_items)
            metrics["items_added"] = merged.added
            metrics["items_deduplicated"] = merged.duplicates
            metrics["items_truncated"] = merged.truncated

            if not merged.items:
                self.logger.warning("No articles fetched, writing an empty feed")

            try:
                self.serializer.write(merged.items, self.config.output_path)
            except OSError as e:
                error_msg = f"Failed to write feed {self.config.output_path}: {e}"
                self.logger.error(
                    error_msg, output_path=str(self.config.output_path), error=str(e)
                )
                metrics["errors"].append(error_msg)
                self.logger.log_execution_end(success=False, metrics=metrics)
                raise

            metrics["items_written"] = len(merged.items)
        finally:
            self.fetcher.close()

        self.logger.info(f"RSS feed generated with {len(merged.items)} articles")
        self.logger.log_metrics(metrics)
        self.logger.log_execution_end(success=True, metrics=metrics)
        return metrics


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bonikbarta-rss",
        description="Fetch Bonikbarta articles and update an RSS 2.0 feed file.",
    )
    parser.add_argument("-o", "--output", help="feed file to read and rewrite")
    parser.add_argument("--max-items", type=int, help="maximum items kept in the feed")
    parser.add_argument(
        "--url",
        action="append",
        dest="urls",
        help="API endpoint to fetch (repeatable, replaces the configured list)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging verbosity (default: LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Command line entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    env_config = Config()
    try:
        setup_structured_logging(args.log_level or env_config.log_level)
    except ValueError as e:
        parser.error(str(e))
    logger = create_execution_logger("main")

    try:
        config = env_config.get_feed_config()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}", error=str(e))
        return 1

    if args.output:
        config.output_path = Path(args.output)
    if args.max_items is not None:
        if args.max_items <= 0:
            logger.error(f"--max-items must be positive, got {args.max_items}")
            return 1
        config.max_items = args.max_items
    if args.urls:
        config.api_urls = args.urls

    try:
        FeedGenerator(config, execution_id=logger.execution_id).run()
    except OSError as e:
        logger.error(f"Error generating RSS: {e}", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
