"""Tests for structured logging."""

import json
import logging

from quotefeed.logs import REDACTED, StructuredFormatter, log_event, sanitize


def test_sanitize_redacts_nested_secrets():
    clean = sanitize({"url": "https://api.govinfo.gov", "params": {"api_key": "abc", "page": 2}, "Authorization": "x"})

    assert clean == {"url": "https://api.govinfo.gov", "params": {"api_key": REDACTED, "page": 2}, "Authorization": REDACTED}


def test_structured_formatter_emits_event_fields(caplog):
    logger = logging.getLogger("quotefeed.test")

    with caplog.at_level(logging.INFO, logger="quotefeed.test"):
        log_event(logger, logging.INFO, "fetcher", "feed_failed", duration=1.23456, source="apnews.com", token="t")

    record = caplog.records[-1]
    payload = json.loads(StructuredFormatter().format(record))
    assert payload["component"] == "fetcher"
    assert payload["event"] == "feed_failed"
    assert payload["duration"] == 1.235
    assert payload["context"] == {"source": "apnews.com", "token": REDACTED}
    assert "feed_failed source=apnews.com" in payload["message"]


def test_error_is_added_to_context(caplog):
    logger = logging.getLogger("quotefeed.test")

    with caplog.at_level(logging.WARNING, logger="quotefeed.test"):
        log_event(logger, logging.WARNING, "historical", "provider_failed", error=RuntimeError("boom"), provider="wayback")

    record = caplog.records[-1]
    assert record.context == {"provider": "wayback", "error": "boom"}
    assert record.getMessage().endswith("error=boom")
