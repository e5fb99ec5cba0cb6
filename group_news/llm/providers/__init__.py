from .base import ContentSearchProvider, KeywordProvider
from .factory import create_keyword_provider, create_search_provider
from .openai_compatible import OpenAICompatibleKeywordProvider
from .perplexity import PerplexityProvider

__all__ = [
    "ContentSearchProvider",
    "KeywordProvider",
    "OpenAICompatibleKeywordProvider",
    "PerplexityProvider",
    "create_keyword_provider",
    "create_search_provider",
]
