"""Shared fixtures."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from quotefeed.config import Config, ConfigModel
from quotefeed.extraction import ExtractedQuote
from quotefeed.models import Article

from .fakes import InMemoryTaxonomyStore

ARTICLE_TEXT = (
    "WASHINGTON (AP) - The senator spoke to reporters after the vote on Tuesday. "
    '"We will not stop until every family has access to affordable care," Jane Doe said. '
    "She added that the bill still faced a difficult path in the House, where leaders "
    "have signaled they would take it up only after the budget talks conclude next month. "
    '"This is a long fight and we are ready for it," Doe told the crowd gathered outside.'
)


@pytest.fixture
def conn():
    """Connection stand-in; stores under test never touch it."""
    return MagicMock(name="conn")


@pytest.fixture
def store():
    """Empty in-memory taxonomy store."""
    return InMemoryTaxonomyStore()


@pytest.fixture
def config(tmp_path):
    """Config with defaults, not backed by a file."""
    return Config(config_path=tmp_path / "config.yaml", model=ConfigModel())


@pytest.fixture
def article_text():
    return ARTICLE_TEXT


@pytest.fixture
def make_article():
    """Factory for articles."""

    def _make(article_id=1, url="https://apnews.com/article/health-vote", **fields):
        fields.setdefault("published_at", datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc))
        fields.setdefault("title", "Senate passes health bill")
        return Article(id=article_id, url=url, **fields)

    return _make


@pytest.fixture
def sample_quote():
    return ExtractedQuote(
        text="We will not stop until every family has access to affordable care",
        speaker="Jane Doe",
        quote_type="direct",
        quote_date="2024-03-05",
        significance=7,
        topics=["Health Care"],
        entities=[{"name": "Senate", "type": "organization"}, {"name": "House", "type": "organization"}],
    )
