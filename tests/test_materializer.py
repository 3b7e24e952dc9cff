"""Tests for the quote-topic materializer."""

from datetime import date

from quotefeed.classification import TopicMaterializer, derive_quote_topics
from quotefeed.models import Topic


class TestDeriveQuoteTopics:
    """Pure derivation of quote-topic pairs."""

    def test_shared_keyword_links_quote_to_topic(self):
        topics = [Topic(id=1, name="Economy", slug="economy")]
        pairs = derive_quote_topics(
            topics,
            [{"topic_id": 1, "keyword_id": 10}],
            [{"quote_id": 100, "keyword_id": 10, "quote_date": None}, {"quote_id": 101, "keyword_id": 11}],
        )

        assert pairs == {(100, 1)}

    def test_date_windows_are_ignored_by_default(self):
        topics = [Topic(id=1, name="Recession", slug="recession", start_date=date(2008, 1, 1), end_date=date(2009, 12, 31))]
        pairs = derive_quote_topics(
            topics,
            [{"topic_id": 1, "keyword_id": 10}],
            [
                {"quote_id": 1, "keyword_id": 10, "quote_date": date(2008, 10, 1)},
                {"quote_id": 2, "keyword_id": 10, "quote_date": date(2020, 3, 1)},
            ],
        )

        assert pairs == {(1, 1), (2, 1)}

    def test_date_windows_apply_when_requested(self):
        topics = [Topic(id=1, name="Recession", slug="recession", start_date=date(2008, 1, 1), end_date=date(2009, 12, 31))]
        pairs = derive_quote_topics(
            topics,
            [{"topic_id": 1, "keyword_id": 10}],
            [
                {"quote_id": 1, "keyword_id": 10, "quote_date": date(2008, 10, 1)},
                {"quote_id": 2, "keyword_id": 10, "quote_date": date(2020, 3, 1)},
                {"quote_id": 3, "keyword_id": 10, "quote_date": None},
            ],
            respect_date_windows=True,
        )

        assert pairs == {(1, 1), (3, 1)}


class TestTopicMaterializer:
    """Rebuilds against the store."""

    def setup_store(self, store):
        fed = store.add_keyword("Federal Reserve")
        nato = store.add_keyword("NATO")
        economy = store.add_topic("Economy", [fed])
        defense = store.add_topic("Defense", [nato])
        store.add_quote(1)
        store.add_quote(2, is_visible=False)
        store.add_quote(3)
        store.link_quote_keywords(None, 1, [(fed, "high", "Fed")])
        store.link_quote_keywords(None, 2, [(fed, "high", "Fed")])
        store.link_quote_keywords(None, 3, [(nato, "medium", "Nato")])
        return economy, defense

    def test_materialize_all_replaces_rows(self, conn, store):
        economy, defense = self.setup_store(store)
        store.quote_topics = {(999, economy)}

        result = TopicMaterializer(store).materialize_all(conn)

        assert result.topics_processed == 2
        assert result.links_created == 2
        assert store.quote_topics == {(1, economy), (3, defense)}

    def test_materialize_is_idempotent(self, conn, store):
        self.setup_store(store)
        materializer = TopicMaterializer(store)

        first = materializer.materialize_all(conn)
        rows = set(store.quote_topics)
        second = materializer.materialize_all(conn)

        assert first.links_created == second.links_created
        assert store.quote_topics == rows

    def test_single_topic_leaves_others_untouched(self, conn, store):
        economy, defense = self.setup_store(store)
        store.quote_topics = {(50, defense)}

        result = TopicMaterializer(store).materialize_topic(conn, economy)

        assert result.topics_processed == 1
        assert store.quote_topics == {(50, defense), (1, economy)}
