"""Configuration management for the Bonikbarta RSS generator."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_API_URLS = [
    "https://bonikbarta.com/api/post-filters/41?root_path=00000000010000000001",
    "https://bonikbarta.com/api/post-filters/52?root_path=00000000010000000001",
]


@dataclass
class FetchConfig:
    """Configuration for the JSON API client."""

    timeout: float = 10.0
    retry_attempts: int = 3
    backoff_base: float = 0.2
    backoff_factor: float = 2.0
    user_agent: str = "Mozilla/5.0 (RSS Generator)"
    accept: str = "application/json, text/plain, */*"
    referer: str = "https://bonikbarta.com/"
    accept_language: str = "bn,en;q=0.8"
    cookie: str | None = None

    def headers(self) -> dict[str, str]:
        """Build request headers, adding the auth cookie only when set."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Referer": self.referer,
            "Accept-Language": self.accept_language,
        }
        if self.cookie:
            headers["Cookie"] = self.cookie
        return headers


@dataclass
class ChannelConfig:
    """Static channel header of the generated feed."""

    title: str = "Bonikbarta Combined Feed"
    link: str = "https://harmonious-froyo-665879.netlify.app/"
    self_link: str = "https://harmonious-froyo-665879.netlify.app/feed.xml"
    description: str = "Latest articles from Bonikbarta"
    language: str = "bn"
    generator: str = "GitHub Actions RSS Generator"


@dataclass
class FeedConfig:
    """Everything one generator run needs."""

    api_urls: list[str] = field(default_factory=lambda: list(DEFAULT_API_URLS))
    base_url: str = "https://bonikbarta.com"
    strip_prefix: str = "/home"
    output_path: Path = Path("feed.xml")
    max_items: int = 500
    source_timezone: str = "Asia/Dhaka"
    default_title: str = "No title"
    default_description: str = "No description available"
    fetch: FetchConfig = field(default_factory=FetchConfig)
    channel: ChannelConfig = field(default_factory=ChannelConfig)


class Config:
    """Main configuration manager."""

    DEFAULT_API_URLS = DEFAULT_API_URLS

    # Default sources file path
    SOURCES_FILE = "sources.json"

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.api_urls_env = os.getenv("FEED_API_URLS", "")
        self.sources_file = os.getenv("FEED_SOURCES_FILE", self.SOURCES_FILE)
        self.cookie = os.getenv("BONIK_COOKIE") or None
        self.output_path = os.getenv("FEED_OUTPUT_PATH", "feed.xml")
        self.max_items = os.getenv("FEED_MAX_ITEMS", "500")
        self.timeout = os.getenv("FEED_TIMEOUT", "10")
        self.retry_attempts = os.getenv("FEED_RETRY_ATTEMPTS", "3")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    def get_api_urls(self) -> list[str]:
        """Get API endpoint URLs.

        FEED_API_URLS wins over the sources file, which wins over the
        built-in endpoints.
        """
        if self.api_urls_env.strip():
            return [url.strip() for url in self.api_urls_env.split(",") if url.strip()]

        sources_file = Path(self.sources_file)
        if not sources_file.exists():
            return list(self.DEFAULT_API_URLS)

        try:
            with open(sources_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in sources file: {e}")
        except OSError as e:
            raise ValueError(f"Error reading sources file: {e}")

        if not isinstance(data, dict):
            raise ValueError("Sources file must contain a JSON object")

        sources = data.get("sources", [])
        enabled_urls = [
            source["url"]
            for source in sources
            if isinstance(source, dict) and source.get("enabled", True) and "url" in source
        ]

        if not enabled_urls:
            raise ValueError(f"No enabled sources found in {sources_file}")

        return enabled_urls

    def get_fetch_config(self) -> FetchConfig:
        """Get API client configuration."""
        return FetchConfig(
            timeout=_positive_number(self.timeout, "FEED_TIMEOUT", float),
            retry_attempts=_positive_number(
                self.retry_attempts, "FEED_RETRY_ATTEMPTS", int
            ),
            cookie=self.cookie,
        )

    def get_feed_config(self) -> FeedConfig:
        """Get the full pipeline configuration."""
        return FeedConfig(
            api_urls=self.get_api_urls(),
            output_path=Path(self.output_path),
            max_items=_positive_number(self.max_items, "FEED_MAX_ITEMS", int),
            fetch=self.get_fetch_config(),
        )


def _positive_number(value: str, name: str, kind: type):
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number
