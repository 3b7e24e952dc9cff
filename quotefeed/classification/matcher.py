"""Entity and topic matching against the curated vocabulary.

Entities are matched exactly on keyword names, then exactly on aliases,
then by Jaro-Winkler similarity against every name and alias. The score
decides the confidence tier:

    score >= 0.95  high
    score >= 0.85  medium (also flagged for review)
    otherwise      unmatched
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from rapidfuzz.distance import JaroWinkler

from ..extraction import ExtractedEntity
from ..models import Confidence, Topic, TopicStatus
from ..text import normalize_name

HIGH_THRESHOLD = 0.95
MEDIUM_THRESHOLD = 0.85


def classify_score(score: float) -> Optional[Confidence]:
    """Confidence tier for a similarity score, or None when unmatched."""
    if score >= HIGH_THRESHOLD:
        return Confidence.HIGH
    if score >= MEDIUM_THRESHOLD:
        return Confidence.MEDIUM
    return None


def similarity(a: str, b: str) -> float:
    """Jaro-Winkler similarity of two normalized strings, in [0, 1]."""
    return JaroWinkler.similarity(a, b)


@dataclass
class VocabularyEntry:
    """One matchable surface form of a keyword."""

    keyword_id: int
    keyword_name: str
    form: str
    is_alias: bool = False


@dataclass
class Vocabulary:
    """Keyword names and aliases, indexed for exact lookup."""

    names: Dict[str, VocabularyEntry] = field(default_factory=dict)
    aliases: Dict[str, VocabularyEntry] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, keywords: Iterable[Dict], aliases: Iterable[Dict]) -> "Vocabulary":
        """Build from keyword rows {id, name, name_normalized} and alias rows."""
        vocabulary = cls()
        for row in keywords:
            form = row.get("name_normalized") or normalize_name(row["name"])
            vocabulary.names[form] = VocabularyEntry(row["id"], row["name"], form)
        for row in aliases:
            form = row["alias_normalized"]
            vocabulary.aliases.setdefault(
                form, VocabularyEntry(row["keyword_id"], row["keyword_name"], form, is_alias=True)
            )
        return vocabulary

    def entries(self) -> List[VocabularyEntry]:
        """All names followed by all aliases."""
        return list(self.names.values()) + list(self.aliases.values())


@dataclass
class KeywordMatch:
    """An entity resolved to a keyword."""

    entity: ExtractedEntity
    keyword_id: int
    keyword_name: str
    score: float
    confidence: Confidence


@dataclass
class MatchResult:
    """Outcome of matching a batch of entities."""

    matched: List[KeywordMatch] = field(default_factory=list)
    unmatched: List[ExtractedEntity] = field(default_factory=list)
    flagged: List[KeywordMatch] = field(default_factory=list)
    closest: Dict[str, KeywordMatch] = field(default_factory=dict)


def best_match(name: str, vocabulary: Vocabulary) -> Optional[VocabularyEntry]:
    """Exact name, then exact alias; None if neither."""
    return vocabulary.names.get(name) or vocabulary.aliases.get(name)


def match_entities(entities: Sequence[ExtractedEntity], vocabulary: Vocabulary) -> MatchResult:
    """
    Resolve entities to keywords.

    Unmatched entities keep their closest candidate (if any) in
    ``result.closest`` so review can show what they nearly matched.
    """
    result = MatchResult()
    entries = vocabulary.entries()

    for entity in entities:
        normalized = normalize_name(entity.name)
        if not normalized:
            continue

        exact = best_match(normalized, vocabulary)
        if exact is not None:
            result.matched.append(
                KeywordMatch(entity, exact.keyword_id, exact.keyword_name, 1.0, Confidence.HIGH)
            )
            continue

        top_entry: Optional[VocabularyEntry] = None
        top_score = 0.0
        for entry in entries:
            score = similarity(normalized, entry.form)
            if score > top_score:
                top_entry, top_score = entry, score

        tier = classify_score(top_score)
        if top_entry is not None and tier is not None:
            match = KeywordMatch(entity, top_entry.keyword_id, top_entry.keyword_name, top_score, tier)
            result.matched.append(match)
            if tier == Confidence.MEDIUM:
                result.flagged.append(match)
        else:
            result.unmatched.append(entity)
            if top_entry is not None:
                result.closest[normalized] = KeywordMatch(
                    entity, top_entry.keyword_id, top_entry.keyword_name, top_score, Confidence.LOW
                )

    return result


@dataclass
class TopicMatchResult:
    """Outcome of matching topic names."""

    matched: List[Topic] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)


def match_topics(
    topic_names: Sequence[str],
    topics: Sequence[Topic],
    aliases: Iterable[Dict],
) -> TopicMatchResult:
    """Exact-match topic names against active topic names and topic aliases."""
    active = {topic.id: topic for topic in topics if topic.status == TopicStatus.ACTIVE}
    by_name = {normalize_name(topic.name): topic for topic in active.values()}
    by_alias = {}
    for row in aliases:
        topic = active.get(row["topic_id"])
        if topic is not None:
            by_alias.setdefault(row["alias_normalized"], topic)

    result = TopicMatchResult()
    seen = set()
    for name in topic_names:
        normalized = normalize_name(name)
        if not normalized:
            continue
        topic = by_name.get(normalized) or by_alias.get(normalized)
        if topic is None:
            result.unmatched.append(name)
        elif topic.id not in seen:
            seen.add(topic.id)
            result.matched.append(topic)
    return result


def topic_in_range(start: Optional[date], end: Optional[date], quote_date: Optional[date]) -> bool:
    """
    Whether a quote date falls inside a topic's window.

    Missing bounds are unconstrained. A quote with no date is in range of
    every topic.
    """
    if quote_date is None:
        return True
    if start is not None and quote_date < start:
        return False
    if end is not None and quote_date > end:
        return False
    return True


def topics_in_range(topics: Iterable[Topic], quote_date: Optional[date]) -> List[Topic]:
    """Topics whose window admits the quote date."""
    return [topic for topic in topics if topic_in_range(topic.start_date, topic.end_date, quote_date)]
