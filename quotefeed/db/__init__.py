"""Database management."""

from .articles import ArticleStorage
from .backfill import BackfillLog
from .connection import close_connection_pool, get_connection, get_connection_pool
from .historical import HistoricalSourceManager
from .init import init_database, validate_connection
from .quotes import QuoteStorage
from .runs import RunManager
from .settings import SettingsManager, merge_settings
from .sources import SourceManager
from .taxonomy import TaxonomyStore

__all__ = [
    "ArticleStorage",
    "BackfillLog",
    "HistoricalSourceManager",
    "QuoteStorage",
    "RunManager",
    "SettingsManager",
    "SourceManager",
    "TaxonomyStore",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "merge_settings",
    "validate_connection",
]
