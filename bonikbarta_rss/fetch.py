"""JSON API fetching for the Bonikbarta RSS generator."""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests
from bs4 import BeautifulSoup

from .config import FetchConfig
from .logging_config import create_execution_logger
from .models import FetchResult

SNIPPET_LENGTH = 400


class AttemptOutcome(Enum):
    """Classification of a single request attempt."""

    OK = "ok"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass
class FetchAttempt:
    """Result of one GET against an endpoint."""

    outcome: AttemptOutcome
    payload: Any = None
    error: str = ""
    status_code: int | None = None
    snippet: str = ""


class PostFetcher:
    """Fetches raw post lists from the news site's JSON API."""

    def __init__(
        self,
        config: FetchConfig,
        execution_id: str | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize PostFetcher with configuration.

        Args:
            config: Timeout, retry and header settings
            execution_id: Execution ID for logging context
            session: Optional pre-built HTTP session
            sleep: Function used to wait between retries
        """
        self.config = config
        self.logger = create_execution_logger("fetcher", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update(config.headers())
        self.sleep = sleep

        self.logger.info(
            "PostFetcher initialized",
            timeout=config.timeout,
            retry_attempts=config.retry_attempts,
            has_cookie=bool(config.cookie),
        )

    def close(self) -> None:
        self.session.close()

    def fetch_all(self, urls: list[str]) -> list[dict[str, Any]]:
        """Fetch every endpoint and concatenate the posts of the ones that worked."""
        posts = []
        for result in self.fetch_sources(urls):
            posts.extend(result.posts)
        return posts

    def fetch_sources(self, urls: list[str]) -> list[FetchResult]:
        """Fetch endpoints one after another.

        Args:
            urls: API endpoint URLs

        Returns:
            One FetchResult per URL, in order
        """
        self.logger.log_execution_start(source_count=len(urls))
        results = []

        for url in urls:
            result = self.fetch_posts(url)
            results.append(result)
            if result.ok:
                self.logger.log_source_processing(url, len(result.posts))

        failed = sum(1 for result in results if not result.ok)
        self.logger.log_execution_end(
            success=failed == 0,
            total_posts=sum(len(result.posts) for result in results),
            failed_sources=failed,
        )
        return results

    def fetch_posts(self, url: str) -> FetchResult:
        """Fetch one endpoint. Never raises; failures come back with ok=False."""
        attempt, attempts = self.fetch_json(url)

        if attempt.outcome is not AttemptOutcome.OK:
            self.logger.error(
                f"Failed to load from {url}: {attempt.error}",
                source_url=url,
                attempt=attempts,
                status_code=attempt.status_code,
                error=attempt.error,
            )
            if attempt.snippet:
                self.logger.error(
                    f"snippet: {attempt.snippet[:300]}", source_url=url
                )
            return FetchResult(url=url, ok=False, attempts=attempts, error=attempt.error)

        posts = self.extract_posts(attempt.payload)
        if not posts:
            self.logger.warning("Source returned no posts", source_url=url)
        return FetchResult(url=url, posts=posts, ok=True, attempts=attempts)

    def fetch_json(self, url: str) -> tuple[FetchAttempt, int]:
        """GET a JSON document, retrying transient failures with backoff.

        Args:
            url: Endpoint URL

        Returns:
            The last attempt and the number of attempts made
        """
        attempt = FetchAttempt(AttemptOutcome.PERMANENT, error="no attempt made")
        attempt_number = 0

        for attempt_number in range(1, self.config.retry_attempts + 1):
            attempt = self._attempt(url)

            if attempt.outcome is not AttemptOutcome.TRANSIENT:
                break

            self.logger.warning(
                f"Transient failure (attempt {attempt_number}): {attempt.error}",
                source_url=url,
                attempt=attempt_number,
                status_code=attempt.status_code,
            )
            if attempt_number < self.config.retry_attempts:
                self.handle_backoff(attempt_number)

        return attempt, attempt_number

    def handle_backoff(self, attempt_number: int) -> None:
        """Wait with exponential backoff before the next attempt."""
        backoff_time = self.config.backoff_base * (
            self.config.backoff_factor**attempt_number
        )
        self.logger.debug(
            f"Waiting {backoff_time} seconds before retry {attempt_number + 1}",
            attempt=attempt_number,
            backoff_time=backoff_time,
        )
        self.sleep(backoff_time)

    def _attempt(self, url: str) -> FetchAttempt:
        try:
            response = self.session.get(url, timeout=self.config.timeout)
        except requests.Timeout as e:
            return FetchAttempt(AttemptOutcome.TRANSIENT, error=f"timeout: {e}")
        except requests.ConnectionError as e:
            return FetchAttempt(AttemptOutcome.TRANSIENT, error=f"connection error: {e}")
        except requests.RequestException as e:
            return FetchAttempt(AttemptOutcome.PERMANENT, error=f"request error: {e}")

        return self.classify_response(response)

    def classify_response(self, response: requests.Response) -> FetchAttempt:
        """Turn an HTTP response into an OK, transient or permanent attempt."""
        status = response.status_code
        text = response.text or ""
        content_type = response.headers.get("content-type", "")

        # Bot protection pages come back as HTML, often with a 200 or 403
        if "html" in content_type.lower() or text.lstrip().startswith("<"):
            page_title = self.html_title(text)
            error = f"HTML response status={status}"
            if page_title:
                error += f" title={page_title!r}"
            return FetchAttempt(
                AttemptOutcome.TRANSIENT,
                error=error,
                status_code=status,
                snippet=text[:SNIPPET_LENGTH],
            )

        if status >= 500 or status == 429:
            return FetchAttempt(
                AttemptOutcome.TRANSIENT, error=f"HTTP status={status}", status_code=status
            )

        if status >= 400:
            return FetchAttempt(
                AttemptOutcome.PERMANENT, error=f"HTTP status={status}", status_code=status
            )

        try:
            payload = json.loads(text)
        except ValueError as e:
            return FetchAttempt(
                AttemptOutcome.PERMANENT,
                error=f"malformed JSON: {e}",
                status_code=status,
                snippet=text[:SNIPPET_LENGTH],
            )

        return FetchAttempt(AttemptOutcome.OK, payload=payload, status_code=status)

    @staticmethod
    def html_title(text: str) -> str:
        """Extract the <title> of an HTML page, or an empty string."""
        if not text:
            return ""
        soup = BeautifulSoup(text, "html.parser")
        if soup.title and soup.title.string:
            return " ".join(soup.title.string.split())
        return ""

    @staticmethod
    def extract_posts(payload: Any) -> list[dict[str, Any]]:
        """Pull the post list out of either known response shape.

        Listing endpoints return ``{"posts": [...]}``; filter pages return
        ``{"content": {"items": [...]}}``.
        """
        if not isinstance(payload, dict):
            return []

        posts = payload.get("posts")
        if not isinstance(posts, list):
            content = payload.get("content")
            posts = content.get("items") if isinstance(content, dict) else None
        if not isinstance(posts, list):
            return []

        return [post for post in posts if isinstance(post, dict)]
