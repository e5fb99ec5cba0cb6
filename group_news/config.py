"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- SearchConfig: Content-search LLM provider settings
- KeywordConfig: Secondary keyword LLM settings
- ImageConfig: Image search and placeholder settings
- GenerationConfig: Recency window, lookback and stale-run settings
- DedupConfig: Title deduplication settings
- RateLimitConfig: Daily generation quota
- StoreConfig: Storage backend settings
- SchedulerConfig: Dispatcher settings
- ServerConfig: HTTP API settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml

from .errors import ConfigError


DEFAULT_NEWS_SOURCES = [
    "reuters.com",
    "bloomberg.com",
    "techcrunch.com",
    "cnn.com",
    "bbc.com",
    "wsj.com",
    "ft.com",
    "nasdaq.com",
    "marketwatch.com",
]


@dataclass
class SearchConfig:
    """Configuration for the content-search LLM provider.

    Attributes:
        name: Provider name ("perplexity" currently supported)
        model: Model identifier
        base_url: Base URL for the provider API
        api_key_env: Environment variable name containing the API key
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: Overall deadline for one search request, body included
        temperature: Sampling temperature
        max_tokens: Maximum response tokens
        recency_filter: Provider-side recency filter ("day", "week", ...)
        default_sources: Domain allow-list used when a group has none
        max_source_domains: Maximum number of domains sent to the provider
        trust_env: Whether to respect system proxy settings
    """

    name: str = "perplexity"
    model: str = "sonar-pro"
    base_url: str = "https://api.perplexity.ai"
    api_key_env: str = "PERPLEXITY_API_KEY"
    api_key: str | None = None
    timeout_seconds: float = 30.0
    temperature: float = 0.1
    max_tokens: int = 3000
    recency_filter: str = "day"
    default_sources: list[str] = field(default_factory=lambda: list(DEFAULT_NEWS_SOURCES))
    max_source_domains: int = 10
    trust_env: bool = True


@dataclass
class KeywordConfig:
    """Configuration for the one-token keyword LLM call.

    Attributes:
        enabled: Whether to call the LLM when an article has no keyword
        name: Provider name ("openai" compatible APIs)
        model: Model identifier
        base_url: Base URL for the provider API
        api_key_env: Environment variable name containing the API key
        api_key: Optional inline API key
        timeout_seconds: Request timeout
    """

    enabled: bool = True
    name: str = "openai"
    model: str = "gpt-4o-mini"
    base_url: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    api_key: str | None = None
    timeout_seconds: float = 10.0
    trust_env: bool = True


@dataclass
class ImageConfig:
    """Configuration for image enrichment.

    Attributes:
        base_url: Image search API base URL (Unsplash compatible)
        api_key_env: Environment variable name containing the access key
        api_key: Optional inline access key
        timeout_seconds: Request timeout for one search
        orientation: Requested photo orientation
        placeholder_width: Width of the generated fallback image
        placeholder_height: Height of the generated fallback image
    """

    base_url: str = "https://api.unsplash.com"
    api_key_env: str = "UNSPLASH_ACCESS_KEY"
    api_key: str | None = None
    timeout_seconds: float = 10.0
    orientation: str = "landscape"
    placeholder_width: int = 1200
    placeholder_height: int = 630
    trust_env: bool = True


@dataclass
class GenerationConfig:
    """Configuration for one generation attempt.

    Attributes:
        recency_hours: Articles published before now minus this window are dropped
        dedup_lookback_days: How far back stored post titles are checked
        default_news_count: Article count when a group has none configured
        default_update_frequency: Frequency in days when a group has none configured
        stale_running_minutes: A "running" status older than this may be taken over
    """

    recency_hours: int = 48
    dedup_lookback_days: int = 7
    default_news_count: int = 10
    default_update_frequency: int = 1
    stale_running_minutes: int = 15


@dataclass
class DedupConfig:
    """Configuration for title deduplication.

    Attributes:
        title_similarity_threshold: Fuzzy match threshold (0-100); 100 means exact
        dedupe_within_batch: Also drop repeated titles inside one batch
    """

    title_similarity_threshold: int = 100
    dedupe_within_batch: bool = True


@dataclass
class RateLimitConfig:
    """Configuration for the daily generation quota.

    Attributes:
        daily_limit: Attempts allowed per (group, user) per local day
        timezone: IANA timezone for the day boundary; None uses host local time
    """

    daily_limit: int = 5
    timezone: str | None = None


@dataclass
class StoreConfig:
    """Configuration for the storage backend.

    Attributes:
        backend: "memory" or "supabase"
        seed_path: YAML file of group rows loaded into the memory store
        url: Supabase project URL (falls back to url_env)
        url_env: Environment variable holding the project URL
        key_env: Environment variable holding the service role key
        key: Optional inline service role key
        groups_table: Table holding group configuration and status
        posts_table: Table receiving generated posts
        logs_table: Append-only generation log used for rate limiting
        timeout_seconds: Request timeout
    """

    backend: str = "memory"
    seed_path: str | None = None
    url: str | None = None
    url_env: str = "SUPABASE_URL"
    key_env: str = "SUPABASE_SERVICE_ROLE_KEY"
    key: str | None = None
    groups_table: str = "groups"
    posts_table: str = "posts"
    logs_table: str = "news_generation_logs"
    timeout_seconds: float = 15.0


@dataclass
class SchedulerConfig:
    """Configuration for the scheduled dispatcher.

    Attributes:
        trigger_url: Generation endpoint to POST to; None runs in-process
        trigger_token_env: Environment variable holding a bearer token for trigger_url
        concurrency: Number of groups dispatched in parallel
        timeout_seconds: Timeout for one HTTP trigger call
    """

    trigger_url: str | None = None
    trigger_token_env: str = "NEWS_TRIGGER_TOKEN"
    concurrency: int = 1
    timeout_seconds: float = 120.0


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory for log files
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls_authors")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    directory: str = "logs"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = False
    llm_log_redaction: str = "redact_urls_authors"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    redaction: str = "redact_urls_authors"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    search: SearchConfig = field(default_factory=SearchConfig)
    keyword: KeywordConfig = field(default_factory=KeywordConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_SECTIONS: dict[str, type] = {
    "search": SearchConfig,
    "keyword": KeywordConfig,
    "images": ImageConfig,
    "generation": GenerationConfig,
    "dedup": DedupConfig,
    "rate_limit": RateLimitConfig,
    "store": StoreConfig,
    "scheduler": SchedulerConfig,
    "server": ServerConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    sections = {}
    for name, section_cls in _SECTIONS.items():
        try:
            sections[name] = section_cls(**data.get(name, {}))
        except TypeError as exc:
            raise ConfigError(f"Invalid '{name}' config section: {exc}") from exc
    return AppConfig(**sections)


def get_api_key(cfg: SearchConfig | KeywordConfig | ImageConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env) or None


def require_api_key(cfg: SearchConfig) -> str:
    """Return the content-search API key or raise ConfigError."""
    key = get_api_key(cfg)
    if not key:
        raise ConfigError(f"{cfg.api_key_env} is not configured")
    return key


def get_store_credentials(cfg: StoreConfig) -> tuple[str, str]:
    """Get Supabase URL and service key from inline config or environment."""
    url = cfg.url or os.getenv(cfg.url_env)
    key = cfg.key or os.getenv(cfg.key_env)
    if not url or not key:
        raise ConfigError(f"{cfg.url_env} and {cfg.key_env} must be set for the supabase store")
    return url.rstrip("/"), key


def get_trigger_token(cfg: SchedulerConfig) -> str | None:
    return os.getenv(cfg.trigger_token_env) or None
