"""Tests for suggestion review."""

import pytest

from quotefeed.classification import SuggestionService
from quotefeed.exceptions import SuggestionNotFoundError, SuggestionStateError
from quotefeed.models import SuggestionSource, SuggestionStatus, SuggestionType


@pytest.fixture
def service(store):
    return SuggestionService(store)


class TestApproveSuggestion:
    """Approval applies the vocabulary change and records the decision."""

    def test_new_keyword_creates_keyword_and_aliases(self, conn, store, service):
        suggestion_id = store.insert_suggestion(
            conn,
            SuggestionType.NEW_KEYWORD,
            {"name": "Kamala Harris", "type": "person", "suggested_aliases": ["Harris", "Kamala Harris"]},
            SuggestionSource.BATCH_EVOLUTION,
            name_normalized="kamala harris",
        )

        result = service.approve_suggestion(conn, suggestion_id)

        keyword = store.get_keyword(conn, result.keyword_id)
        assert keyword.name == "Kamala Harris"
        assert keyword.keyword_type == "person"
        assert result.aliases_added == 1
        assert store.find_keyword_id(conn, "harris") == keyword.id
        assert store.get_suggestion(conn, suggestion_id).status == SuggestionStatus.APPROVED

    def test_pending_duplicates_are_resolved_with_the_approval(self, conn, store, service):
        ids = [
            store.insert_suggestion(
                conn,
                SuggestionType.NEW_KEYWORD,
                {"name": "Kamala Harris"},
                SuggestionSource.PER_EXTRACTION,
                "kamala harris",
                quote_id=quote_id,
            )
            for quote_id in (1, 2, 3)
        ]
        other = store.insert_suggestion(
            conn, SuggestionType.NEW_TOPIC, {"name": "Kamala Harris"}, SuggestionSource.PER_EXTRACTION, "kamala harris"
        )

        result = service.approve_suggestion(conn, ids[1])

        assert result.duplicates_resolved == 2
        assert [store.get_suggestion(conn, i).status for i in ids] == [SuggestionStatus.APPROVED] * 3
        assert store.get_suggestion(conn, other).status == SuggestionStatus.PENDING
        assert len([k for k in store.get_keywords(conn) if k["name"] == "Kamala Harris"]) == 1

    def test_edited_data_overrides_and_marks_edited(self, conn, store, service):
        suggestion_id = store.insert_suggestion(
            conn, SuggestionType.NEW_KEYWORD, {"name": "Kamala"}, SuggestionSource.PER_EXTRACTION, "kamala"
        )

        result = service.approve_suggestion(conn, suggestion_id, {"name": "Kamala Harris"})

        assert store.get_keyword(conn, result.keyword_id).name == "Kamala Harris"
        suggestion = store.get_suggestion(conn, suggestion_id)
        assert suggestion.status == SuggestionStatus.EDITED
        assert suggestion.suggested_data["name"] == "Kamala Harris"

    def test_new_topic_links_keywords(self, conn, store, service):
        existing = store.add_keyword("NASA")
        suggestion_id = store.insert_suggestion(
            conn,
            SuggestionType.NEW_TOPIC,
            {"name": "Space Policy", "suggested_aliases": ["Space"], "keywords": ["NASA", "SpaceX"]},
            SuggestionSource.BATCH_EVOLUTION,
            "space policy",
        )

        result = service.approve_suggestion(conn, suggestion_id)

        assert store.topics[result.topic_id].slug == "space-policy"
        assert existing in result.keyword_ids
        assert store.find_keyword_id(conn, "spacex") is not None
        assert {k for t, k in store.topic_keywords if t == result.topic_id} == set(result.keyword_ids)

    def test_keyword_alias_adds_aliases(self, conn, store, service):
        keyword = store.add_keyword("Joseph Biden")
        suggestion_id = store.insert_suggestion(
            conn,
            SuggestionType.KEYWORD_ALIAS,
            {"keyword_id": keyword, "keyword_name": "Joseph Biden", "aliases": ["Joe Biden"]},
            SuggestionSource.CONFIDENCE_REVIEW,
            "joseph biden",
        )

        service.approve_suggestion(conn, suggestion_id)

        assert store.find_keyword_id(conn, "joe biden") == keyword

    def test_topic_keyword_and_topic_alias(self, conn, store, service):
        keyword = store.add_keyword("NATO")
        topic = store.add_topic("Foreign Policy")
        link_id = store.insert_suggestion(
            conn,
            SuggestionType.TOPIC_KEYWORD,
            {"topic_id": topic, "keyword_id": keyword},
            SuggestionSource.BATCH_EVOLUTION,
        )
        alias_id = store.insert_suggestion(
            conn,
            SuggestionType.TOPIC_ALIAS,
            {"topic_name": "Foreign Policy", "aliases": ["Diplomacy"]},
            SuggestionSource.BATCH_EVOLUTION,
        )

        service.approve_suggestion(conn, link_id)
        service.approve_suggestion(conn, alias_id)

        assert (topic, keyword) in store.topic_keywords
        assert store.find_topic_id(conn, "diplomacy") == topic

    def test_approval_does_not_reclassify_existing_quotes(self, conn, store, service):
        store.quote_keywords[(1, 99)] = {"confidence": "medium", "matched_text": "x"}
        suggestion_id = store.insert_suggestion(
            conn, SuggestionType.NEW_KEYWORD, {"name": "X Corp"}, SuggestionSource.PER_EXTRACTION, "x corp"
        )

        service.approve_suggestion(conn, suggestion_id)

        assert list(store.quote_keywords) == [(1, 99)]

    def test_approving_twice_raises_state_error(self, conn, store, service):
        suggestion_id = store.insert_suggestion(
            conn, SuggestionType.NEW_KEYWORD, {"name": "NATO"}, SuggestionSource.PER_EXTRACTION, "nato"
        )
        service.approve_suggestion(conn, suggestion_id)

        with pytest.raises(SuggestionStateError):
            service.approve_suggestion(conn, suggestion_id)

    def test_unknown_id_raises_not_found(self, conn, service):
        with pytest.raises(SuggestionNotFoundError):
            service.approve_suggestion(conn, 12345)


class TestRejectSuggestion:
    """Rejection only records the decision."""

    def test_reject_has_no_side_effects(self, conn, store, service):
        suggestion_id = store.insert_suggestion(
            conn, SuggestionType.NEW_KEYWORD, {"name": "NATO"}, SuggestionSource.PER_EXTRACTION, "nato"
        )

        service.reject_suggestion(conn, suggestion_id)

        assert store.keywords == {}
        assert store.get_suggestion(conn, suggestion_id).status == SuggestionStatus.REJECTED

    def test_reject_non_pending_raises(self, conn, store, service):
        suggestion_id = store.insert_suggestion(
            conn, SuggestionType.NEW_KEYWORD, {"name": "NATO"}, SuggestionSource.PER_EXTRACTION, "nato"
        )
        service.reject_suggestion(conn, suggestion_id)

        with pytest.raises(SuggestionStateError):
            service.reject_suggestion(conn, suggestion_id)


class TestListSuggestions:
    """Filtering and pagination."""

    def test_filters_by_type_and_status(self, conn, store, service):
        keyword_id = store.insert_suggestion(
            conn, SuggestionType.NEW_KEYWORD, {"name": "A"}, SuggestionSource.PER_EXTRACTION, "a"
        )
        store.insert_suggestion(conn, SuggestionType.NEW_TOPIC, {"name": "B"}, SuggestionSource.PER_EXTRACTION, "b")
        service.reject_suggestion(conn, keyword_id)

        assert [s.name_normalized for s in service.list_suggestions(conn)] == ["b"]
        rejected = service.list_suggestions(conn, SuggestionType.NEW_KEYWORD, SuggestionStatus.REJECTED)
        assert [s.id for s in rejected] == [keyword_id]
        assert len(service.list_suggestions(conn, status=None, limit=1)) == 1
