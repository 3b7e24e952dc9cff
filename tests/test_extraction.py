"""Tests for extraction output parsing and the checks around it."""

from datetime import date, datetime, timezone

import pytest

from quotefeed.exceptions import ExtractionError
from quotefeed.extraction import (
    ExtractedQuote,
    filter_quotes,
    is_fragment,
    is_visible,
    likely_contains_quotes,
    parse_quotes,
    resolve_quote_date,
)


class TestExtractedQuote:
    """Model coercions for collaborator output."""

    def test_accepts_alternate_field_names(self):
        quote = ExtractedQuote.model_validate(
            {"quote_text": "We are ready", "speaker": "Jane Doe", "keywords": ["Senate", {"name": "NATO"}]}
        )

        assert quote.text == "We are ready"
        assert quote.keywords == ["Senate", "NATO"]

    def test_significance_is_clamped(self):
        assert ExtractedQuote(text="a", speaker="b", significance=14).significance == 10
        assert ExtractedQuote(text="a", speaker="b", significance="n/a").significance == 5


class TestParseQuotes:
    def test_drops_malformed_entries(self):
        payload = '{"quotes": [{"text": "We are ready for it", "speaker": "Jane Doe"}, {"speaker": "No Text"}]}'

        quotes = parse_quotes(payload)

        assert [q.speaker for q in quotes] == ["Jane Doe"]

    def test_invalid_json_raises(self):
        with pytest.raises(ExtractionError):
            parse_quotes("not json")

    def test_non_object_payload_yields_nothing(self):
        assert parse_quotes("[1, 2]") == []


class TestFilters:
    """Prefilter and post-extraction checks."""

    def test_prefilter_needs_quotes_and_attribution(self, article_text):
        assert likely_contains_quotes(article_text)
        assert not likely_contains_quotes("The senator said nothing of note.")
        assert not likely_contains_quotes('A "quoted" word with no attribution.')

    def test_filter_keeps_grounded_direct_quotes(self, article_text, sample_quote):
        invented = sample_quote.model_copy(update={"text": "Nothing in this article reads like this at all"})
        indirect = sample_quote.model_copy(update={"quote_type": "indirect"})
        short = sample_quote.model_copy(update={"text": "We are ready"})
        wrong_speaker = sample_quote.model_copy(update={"speaker": "John Smith"})

        kept = filter_quotes([sample_quote, invented, indirect, short, wrong_speaker], article_text)

        assert kept == [sample_quote]

    def test_fragments(self):
        assert is_fragment("...and that is why")
        assert is_fragment("and that is why we fight")
        assert is_fragment("   ")
        assert not is_fragment("That is why we fight")

    def test_visibility_uses_significance_and_fragments(self, sample_quote):
        assert is_visible(sample_quote, min_significance=5)
        assert not is_visible(sample_quote, min_significance=8)
        assert not is_visible(sample_quote.model_copy(update={"text": "...and more"}))

    def test_quote_date_falls_back_to_publication(self):
        published = datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc)

        assert resolve_quote_date("2019-07-04", published) == date(2019, 7, 4)
        assert resolve_quote_date("unknown", published) == date(2024, 3, 5)
        assert resolve_quote_date("last spring", published) == date(2024, 3, 5)
        assert resolve_quote_date(None, None) is None
