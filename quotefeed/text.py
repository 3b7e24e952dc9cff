"""Name normalization shared by the vocabulary and matching code."""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def normalize_name(value: str) -> str:
    """Case-fold, strip diacritics and collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.casefold()).strip()


def slugify(value: str) -> str:
    """URL-safe slug for a topic name."""
    return _NON_SLUG.sub("-", normalize_name(value)).strip("-")
