"""Property-based tests for configuration management."""

import os
from unittest.mock import patch

from hypothesis import given
from hypothesis import strategies as st

from bonikbarta_rss.config import Config


class TestConfigProperties:
    """Property-based tests for Config class."""

    @given(
        st.lists(
            st.text(
                alphabet=st.characters(blacklist_categories=("Cs", "Cc")),
                min_size=1,
                max_size=100,
            ).filter(lambda x: "," not in x and x.strip()),
            min_size=1,
            max_size=10,
        )
    )
    def test_configurable_api_urls(self, api_urls):
        """
        For any list of endpoint URLs given in FEED_API_URLS, exactly those
        endpoints are used and none of the built-in ones are added.
        """
        api_urls_str = ",".join(api_urls)

        with patch.dict(os.environ, {"FEED_API_URLS": api_urls_str}, clear=True):
            result_urls = Config().get_api_urls()

        expected_urls = [url.strip() for url in api_urls if url.strip()]
        assert result_urls == expected_urls

        for default_url in Config.DEFAULT_API_URLS:
            if default_url not in expected_urls:
                assert default_url not in result_urls

    @given(st.integers(min_value=1, max_value=100_000))
    def test_positive_max_items_accepted(self, max_items):
        """Any positive FEED_MAX_ITEMS becomes the merge cap."""
        env = {
            "FEED_MAX_ITEMS": str(max_items),
            "FEED_SOURCES_FILE": "/nonexistent/sources.json",
        }

        with patch.dict(os.environ, env, clear=True):
            feed_config = Config().get_feed_config()

        assert feed_config.max_items == max_items
