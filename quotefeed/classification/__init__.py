"""Keyword and topic classification, review and evolution."""

from .auto_approve import AutoApprover, AutoApproveResult
from .classifier import ClassificationResult, QuoteClassifier
from .evolution import EvolutionResult, TaxonomyEvolution, run_taxonomy_evolution
from .matcher import (
    HIGH_THRESHOLD,
    MEDIUM_THRESHOLD,
    MatchResult,
    TopicMatchResult,
    Vocabulary,
    classify_score,
    match_entities,
    match_topics,
    topic_in_range,
)
from .materializer import (
    MaterializeResult,
    TopicMaterializer,
    derive_quote_topics,
    materialize_single_topic,
    materialize_topics,
)
from .suggestions import ApprovalResult, SuggestionService

__all__ = [
    "HIGH_THRESHOLD",
    "MEDIUM_THRESHOLD",
    "ApprovalResult",
    "AutoApproveResult",
    "AutoApprover",
    "ClassificationResult",
    "EvolutionResult",
    "MatchResult",
    "MaterializeResult",
    "QuoteClassifier",
    "SuggestionService",
    "TaxonomyEvolution",
    "TopicMatchResult",
    "TopicMaterializer",
    "Vocabulary",
    "classify_score",
    "derive_quote_topics",
    "match_entities",
    "match_topics",
    "materialize_single_topic",
    "materialize_topics",
    "run_taxonomy_evolution",
    "topic_in_range",
]
