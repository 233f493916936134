"""Property-based tests for FeedMerger."""

from datetime import UTC, datetime, timedelta

from hypothesis import given
from hypothesis import strategies as st

from bonikbarta_rss.merge import FeedMerger, sort_key
from bonikbarta_rss.models import FeedItem
from bonikbarta_rss.normalize import format_rfc1123

EPOCH = datetime(2024, 1, 1, tzinfo=UTC)

# Small alphabets so that guid and link collisions actually happen
feed_items = st.builds(
    lambda guid, link, minutes: FeedItem(
        title=f"Title {guid}",
        link=f"https://bonikbarta.com/{link}",
        description="Body",
        pub_date=format_rfc1123(EPOCH + timedelta(minutes=minutes)),
        guid=guid,
    ),
    st.sampled_from([f"g{i}" for i in range(12)]),
    st.sampled_from([f"l{i}" for i in range(12)]),
    st.integers(min_value=0, max_value=60 * 24 * 30),
)


class TestFeedMergerProperties:
    """Property-based tests for FeedMerger."""

    @given(st.lists(feed_items, max_size=30), st.lists(feed_items, max_size=30))
    def test_no_duplicate_guid_or_link(self, new_items, existing_items):
        """For any inputs, the merged feed has unique guids and unique links."""
        result = FeedMerger(max_items=500).merge(new_items, existing_items)

        guids = [item.guid for item in result.items]
        links = [item.link for item in result.items]
        assert len(guids) == len(set(guids))
        assert len(links) == len(set(links))

    @given(
        st.lists(feed_items, max_size=30),
        st.lists(feed_items, max_size=30),
        st.integers(min_value=1, max_value=10),
    )
    def test_item_count_capped(self, new_items, existing_items, max_items):
        """The feed never exceeds the cap and keeps the newest items."""
        full = FeedMerger(max_items=500).merge(new_items, existing_items)
        result = FeedMerger(max_items=max_items).merge(new_items, existing_items)

        assert len(result.items) == min(len(full.items), max_items)
        assert result.truncated == len(full.items) - len(result.items)
        assert result.items == full.items[:max_items]

    @given(st.lists(feed_items, max_size=30), st.lists(feed_items, max_size=30))
    def test_newest_first(self, new_items, existing_items):
        """Merged items are ordered by descending publish date."""
        result = FeedMerger().merge(new_items, existing_items)

        keys = [sort_key(item) for item in result.items]
        assert keys == sorted(keys, reverse=True)

    @given(st.lists(feed_items, min_size=1, max_size=30))
    def test_refetched_items_not_duplicated(self, items):
        """Re-fetching content already in the feed adds nothing."""
        merger = FeedMerger()
        first = merger.merge(items, [])

        second = merger.merge(items, first.items)

        assert second.added == 0
        assert [item.guid for item in second.items] == [
            item.guid for item in first.items
        ]

    @given(st.lists(feed_items, max_size=30), st.lists(feed_items, max_size=30))
    def test_counts_add_up(self, new_items, existing_items):
        """Every input item is either kept or counted as a duplicate."""
        result = FeedMerger().merge(new_items, existing_items)

        unique_existing = _unique_count(existing_items)
        assert result.added + result.duplicates == len(new_items) + len(
            existing_items
        ) - unique_existing
        assert len(result.items) == result.added + unique_existing


def _unique_count(items):
    guids, links, count = set(), set(), 0
    for item in items:
        if item.guid in guids or item.link in links:
            continue
        guids.add(item.guid)
        links.add(item.link)
        count += 1
    return count
