"""External LLM calls and observability."""

from .providers.base import ContentSearchProvider, KeywordProvider
from .providers.factory import create_keyword_provider, create_search_provider
from .providers.openai_compatible import OpenAICompatibleKeywordProvider
from .providers.perplexity import PerplexityProvider
from .tracing import flush, record_span_error, set_span_output, setup_langfuse, start_span

__all__ = [
    "ContentSearchProvider",
    "KeywordProvider",
    "OpenAICompatibleKeywordProvider",
    "PerplexityProvider",
    "create_keyword_provider",
    "create_search_provider",
    "setup_langfuse",
    "flush",
    "start_span",
    "set_span_output",
    "record_span_error",
]
