"""Configuration models."""

from typing import List, Optional

from pydantic import BaseModel, Field


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("quotefeed", description="Database name")
    user: str = Field("quotefeed_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    pool_max_size: int = Field(10, description="Maximum pooled connections", ge=1, le=100)


class PipelineSettings(BaseModel):
    """Pipeline knobs. Values persisted in the settings table override these."""

    fetch_interval_minutes: int = Field(5, description="Minutes between cycles", ge=1, le=1440)
    max_articles_per_source: int = Field(
        10, description="Pending articles processed per live source per cycle", ge=1, le=500
    )
    article_lookback_hours: int = Field(24, description="Live discovery lookback window", ge=1, le=720)
    historical_fetch_enabled: bool = Field(False, description="Run historical provider discovery")
    historical_articles_per_provider: int = Field(
        5, description="Items requested from and processed per provider per cycle", ge=1, le=100
    )
    backfill_enabled: bool = Field(False, description="Fill one missing recent day per cycle")
    backfill_max_articles: int = Field(5, description="Articles inserted per backfill day", ge=1, le=100)
    taxonomy_evolution_days: int = Field(7, description="Evidence window for batch evolution", ge=1, le=365)
    auto_approve_extracted_vocabulary: bool = Field(
        False, description="Approve each quote's own keywords and topics immediately"
    )
    min_quote_words: int = Field(5, description="Minimum words in a kept quote", ge=1)
    min_significance: int = Field(5, description="Minimum significance for a visible quote", ge=1, le=10)


class HttpConfig(BaseModel):
    """Outbound HTTP behaviour."""

    user_agent: str = Field("QuoteFeed/1.0", description="User-Agent header")
    feed_timeout: float = Field(10.0, description="Feed request timeout in seconds", gt=0)
    article_timeout: float = Field(15.0, description="Article request timeout in seconds", gt=0)
    provider_timeout: float = Field(15.0, description="Historical provider request timeout", gt=0)
    max_concurrent: int = Field(5, description="Articles processed concurrently", ge=1, le=50)
    per_domain_concurrency: int = Field(2, description="Concurrent requests per origin", ge=1, le=10)
    per_domain_delay_seconds: float = Field(1.0, description="Spacing between request starts per origin", ge=0)


class LLMConfig(BaseModel):
    """Quote extraction model configuration."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API (e.g., for Ollama)")
    max_retries: int = Field(3, description="Attempts on rate limit or server errors", ge=1, le=10)


class HistoricalConfig(BaseModel):
    """Historical provider configuration."""

    govinfo_api_key_env: str = Field("GOVINFO_API_KEY", description="Environment variable for the GovInfo key")
    search_terms: List[str] = Field(
        default_factory=list,
        description="Initial newspaper search terms (empty uses built-in defaults)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    json_format: bool = Field(False, description="Emit JSON lines on the console")
    log_file: Optional[str] = Field(None, description="Optional JSON log file path")


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    http: HttpConfig = Field(default_factory=HttpConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    historical: HistoricalConfig = Field(default_factory=HistoricalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class SourceConfig(BaseModel):
    """Source definition used when seeding the database."""

    domain: str = Field(..., description="Publisher domain, e.g. apnews.com")
    name: str = Field(..., description="Display name")
    rss_url: Optional[str] = Field(None, description="Feed URL (Google News search when empty)")
    enabled: bool = Field(True, description="Whether the source is enabled")
    is_top_story: bool = Field(False, description="Whether the source feeds top stories")
