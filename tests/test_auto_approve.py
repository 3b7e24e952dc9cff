"""Tests for immediate approval of a quote's vocabulary."""

from datetime import date

import pytest

from quotefeed.classification import AutoApprover, SuggestionService
from quotefeed.classification.auto_approve import APPROVED, CREATED, EXISTING
from quotefeed.models import SuggestionSource, SuggestionStatus, SuggestionType


@pytest.fixture
def approver(store):
    return AutoApprover(store, SuggestionService(store))


class TestResolutionOrder:
    """Existing entry, then pending suggestion, then creation."""

    def test_existing_keyword_wins(self, conn, store, approver):
        keyword = store.add_keyword("NATO")
        store.insert_suggestion(conn, SuggestionType.NEW_KEYWORD, {"name": "NATO"}, SuggestionSource.PER_EXTRACTION, "nato")

        assert approver.resolve_keyword(conn, "nato") == (keyword, EXISTING)
        assert len(store.pending(SuggestionType.NEW_KEYWORD)) == 1

    def test_pending_suggestion_is_approved(self, conn, store, approver):
        suggestion_id = store.insert_suggestion(
            conn,
            SuggestionType.NEW_KEYWORD,
            {"name": "Kamala Harris", "type": "person", "suggested_aliases": ["Kamala Harris"]},
            SuggestionSource.PER_EXTRACTION,
            "kamala harris",
        )

        keyword_id, how = approver.resolve_keyword(conn, "Kamala Harris")

        assert how == APPROVED
        assert store.get_keyword(conn, keyword_id).keyword_type == "person"
        assert store.get_suggestion(conn, suggestion_id).status == SuggestionStatus.APPROVED

    def test_unknown_name_is_created(self, conn, store, approver):
        keyword_id, how = approver.resolve_keyword(conn, "  Kamala Harris ")

        assert how == CREATED
        assert store.get_keyword(conn, keyword_id).name == "Kamala Harris"

    def test_topic_resolution_follows_same_order(self, conn, store, approver):
        existing = store.add_topic("Health Care")
        store.insert_suggestion(
            conn, SuggestionType.NEW_TOPIC, {"name": "Space Policy"}, SuggestionSource.PER_EXTRACTION, "space policy"
        )

        assert approver.resolve_topic(conn, "health care") == (existing, EXISTING)
        assert approver.resolve_topic(conn, "Space Policy")[1] == APPROVED
        assert approver.resolve_topic(conn, "Trade")[1] == CREATED


class TestApply:
    """Linking resolved vocabulary to the quote."""

    def test_links_keywords_high_and_topics_in_range(self, conn, store, approver):
        keyword = store.add_keyword("Barack Obama")
        via_keyword = store.add_topic("Obama Presidency", [keyword], start_date=date(2009, 1, 20))
        store.add_topic("Civil War", start_date=date(1861, 1, 1), end_date=date(1865, 12, 31))

        result = approver.apply(conn, 42, date(2012, 1, 1), ["Barack Obama", "Kamala Harris"], ["Civil War", "Trade"])

        assert store.quote_keywords[(42, keyword)]["confidence"] == "high"
        assert len(result.keyword_ids) == 2
        assert result.created == 2
        trade = store.find_topic_id(conn, "Trade")
        assert set(result.topic_ids) == {via_keyword, trade}
        assert store.quote_topics == {(42, via_keyword), (42, trade)}

    def test_blank_names_are_skipped(self, conn, store, approver):
        result = approver.apply(conn, 1, None, ["  "], [""])

        assert result.keyword_ids == [] and result.topic_ids == []
