"""OpenAI-backed quote extractor."""

import asyncio
import json
import logging
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from ..exceptions import ExtractionError
from ..logs import log_event
from ..models import Article
from .base import QuoteExtractor
from .models import ExtractedQuote

logger = logging.getLogger(__name__)

MAX_ARTICLE_CHARS = 15000

PROMPT_TEMPLATE = """You are a precise news quote extraction system. Extract ONLY direct, verbatim quotes from this news article.

Article published: {published}
Article title: {title}

For each quote, return:
- quote_text: The exact quoted text as it appears in quotation marks.
- speaker: The full name of the person being quoted. Resolve pronouns to the actual name.
- speaker_title: Their role, title, or affiliation as mentioned in the article, or null.
- quote_type: Always "direct".
- context: One sentence describing what the quote is about.
- quote_date: The date the quote was spoken or written (YYYY-MM-DD). Use the publication date for current news; use "unknown" for historical quotes with no stated date.
- topics: Array of 1-3 specific subject categories (e.g. "U.S. Foreign Policy", "Supreme Court", "Climate & Environment").
- entities: Array of 2-5 named entities relevant to the quote, each {{"name": ..., "type": ...}} where type is one of person, organization, place, event, legislation, other. Always use full proper names ("Donald Trump", not "Trump"). Never include the speaker, verbs, adjectives or generic nouns. Return an empty array when there are none.
- significance: Integer 1-10. 9-10 historic statement, 7-8 headline-worthy claim, 5-6 substantive opinion, 3-4 routine statement, 1-2 platitude or fragment.

Rules:
- ONLY extract verbatim quotes inside quotation marks, attributed to a specific named person.
- Do NOT extract paraphrases or reported speech. Do NOT fabricate quotes.

Return a JSON object: {{"quotes": [...]}}
If there are no attributable direct quotes, return: {{"quotes": []}}

Article text:
{text}"""


class OpenAIQuoteExtractor(QuoteExtractor):
    """Extract quotes with an OpenAI chat model in JSON mode."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        max_retries: int = 3,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize OpenAI extractor.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (e.g., for Ollama)
            max_retries: Attempts on rate limits and server errors
            client: Preconfigured client (for testing)
        """
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self.model = model
        self.max_retries = max_retries
        self.total_tokens = 0
        self.api_calls = 0

    async def extract(self, text: str, article: Article) -> List[ExtractedQuote]:
        """Extract quotes, retrying with exponential backoff on transient errors."""
        prompt = PROMPT_TEMPLATE.format(
            published=article.published_at.isoformat() if article.published_at else "Unknown date",
            title=article.title or "Untitled",
            text=text[:MAX_ARTICLE_CHARS],
        )

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                self.api_calls += 1
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=0.1,
                    response_format={"type": "json_object"},
                )
                if response.usage:
                    self.total_tokens += response.usage.total_tokens
                return parse_quotes(response.choices[0].message.content or "")
            except (openai.RateLimitError, openai.InternalServerError, openai.APIConnectionError) as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    delay = 2 ** (attempt + 1)
                    log_event(logger, logging.WARNING, "extractor", "rate_limited", attempt=attempt + 1, delay=delay)
                    await asyncio.sleep(delay)
            except openai.APIError as e:
                last_error = e
                break

        raise ExtractionError(f"Quote extraction failed: {last_error}")

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        return {"model": self.model, "api_calls": self.api_calls, "total_tokens": self.total_tokens}


def parse_quotes(content: str) -> List[ExtractedQuote]:
    """Parse the model's JSON payload, dropping malformed entries."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model returned invalid JSON: {e}")

    raw_quotes = payload.get("quotes", []) if isinstance(payload, dict) else []
    quotes = []
    for raw in raw_quotes:
        try:
            quotes.append(ExtractedQuote.model_validate(raw))
        except ValidationError as e:
            logger.debug("Skipping malformed quote: %s", e)
    return quotes
