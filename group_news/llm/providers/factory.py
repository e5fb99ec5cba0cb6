"""Provider factory and registry for the search and keyword backends."""

from __future__ import annotations

import logging

from ...config import GenerationConfig, KeywordConfig, LoggingConfig, SearchConfig, get_api_key, require_api_key
from ...errors import ConfigError
from .base import ContentSearchProvider, KeywordProvider
from .openai_compatible import OpenAICompatibleKeywordProvider
from .perplexity import PerplexityProvider


_SEARCH_REGISTRY: dict[str, type[PerplexityProvider]] = {
    "perplexity": PerplexityProvider,
}

_KEYWORD_REGISTRY: dict[str, type[OpenAICompatibleKeywordProvider]] = {
    "openai": OpenAICompatibleKeywordProvider,
    "openai_compatible": OpenAICompatibleKeywordProvider,
    "openai-compatible": OpenAICompatibleKeywordProvider,
}


def available_search_providers() -> list[str]:
    return sorted(_SEARCH_REGISTRY.keys())


def available_keyword_providers() -> list[str]:
    return sorted(_KEYWORD_REGISTRY.keys())


def create_search_provider(
    cfg: SearchConfig,
    generation_cfg: GenerationConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
) -> ContentSearchProvider:
    """Build the content-search provider.

    Raises:
        ConfigError: For an unknown provider name or a missing API key
    """
    name = cfg.name.lower().strip()
    builder = _SEARCH_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_search_providers())
        raise ConfigError(f"Unsupported search provider: {cfg.name}. Supported: {supported}")
    api_key = require_api_key(cfg)
    return builder(cfg, api_key, log_cfg, llm_logger, recency_hours=generation_cfg.recency_hours)


def create_keyword_provider(cfg: KeywordConfig) -> KeywordProvider | None:
    """Build the keyword provider, or None when disabled or unconfigured."""
    if not cfg.enabled:
        return None
    builder = _KEYWORD_REGISTRY.get(cfg.name.lower().strip())
    if builder is None:
        supported = ", ".join(available_keyword_providers())
        raise ConfigError(f"Unsupported keyword provider: {cfg.name}. Supported: {supported}")
    api_key = get_api_key(cfg)
    if not api_key:
        return None
    return builder(cfg, api_key)
