"""Quote ingestion with an evolving keyword and topic taxonomy."""

__version__ = "0.1.0"
