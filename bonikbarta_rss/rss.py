"""RSS 2.0 rendering and writing for the Bonikbarta RSS generator."""

import html
import os
import re
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from .config import ChannelConfig
from .logging_config import create_execution_logger
from .models import FeedItem
from .normalize import format_rfc1123

# Characters XML 1.0 forbids (tab, newline and CR are fine)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F\ud800-\udfff\ufffe\uffff]")


def _sanitize(text: str) -> str:
    return _CONTROL_RE.sub("", text or "")


def escape_text(text: str) -> str:
    """Escape &, < and > for element text."""
    return html.escape(_sanitize(text), quote=False)


def cdata(text: str) -> str:
    """Wrap text in a CDATA block, splitting any embedded ``]]>``."""
    text = _sanitize(text).replace("]]>", "]]]]><![CDATA[>")
    return f"<![CDATA[{text}]]>"


class RSSSerializer:
    """Renders FeedItems as an RSS 2.0 document."""

    def __init__(self, channel: ChannelConfig, execution_id: str | None = None):
        self.channel = channel
        self.logger = create_execution_logger("serializer", execution_id)

    def render(self, items: list[FeedItem], now: datetime | None = None) -> str:
        """Render the channel header and one <item> per FeedItem.

        Args:
            items: Items in final feed order
            now: Build time, defaults to the current UTC time

        Returns:
            The complete XML document
        """
        now = now or datetime.now(UTC)
        channel = self.channel

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "  <channel>",
            f"    <title>{escape_text(channel.title)}</title>",
            f"    <link>{escape_text(channel.link)}</link>",
            f'    <atom:link href="{html.escape(channel.self_link, quote=True)}"'
            ' rel="self" type="application/rss+xml"/>',
            f"    <description>{escape_text(channel.description)}</description>",
            f"    <language>{escape_text(channel.language)}</language>",
            f"    <lastBuildDate>{format_rfc1123(now)}</lastBuildDate>",
            f"    <generator>{escape_text(channel.generator)}</generator>",
        ]

        for item in items:
            lines.extend(
                [
                    "    <item>",
                    f"      <title>{escape_text(item.title)}</title>",
                    f"      <link>{escape_text(item.link)}</link>",
                    f"      <description>{cdata(item.description)}</description>",
                    f"      <pubDate>{escape_text(item.pub_date)}</pubDate>",
                    f'      <guid isPermaLink="false">{escape_text(item.guid)}</guid>',
                    "    </item>",
                ]
            )

        lines.extend(["  </channel>", "</rss>"])
        return "\n".join(lines)

    def write(
        self, items: list[FeedItem], path: Path, now: datetime | None = None
    ) -> Path:
        """Render and atomically replace the feed file.

        Raises:
            OSError: If the file cannot be written
        """
        path = Path(path)
        document = self.render(items, now)

        directory = path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(document)
            # mkstemp creates files as 0600, the feed must be world-readable
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self.logger.info(
            f"Wrote feed with {len(items)} items",
            output_path=str(path),
            items_count=len(items),
            size_bytes=len(document.encode("utf-8")),
        )
        return path
