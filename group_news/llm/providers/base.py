"""Abstract interfaces for the external LLM calls."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ContentSearchProvider(ABC):
    """Provider interface for the search-backed article request."""

    @abstractmethod
    def fetch_articles(self, prompt: str, count: int, source_domains: list[str] | None = None) -> str:
        """Return the raw free-text response listing articles.

        Raises:
            UpstreamError: On a non-2xx response or an empty answer
            FetchTimeoutError: When the request exceeds its timeout
        """
        raise NotImplementedError


class KeywordProvider(ABC):
    """Provider interface for one-word image search keywords."""

    @abstractmethod
    def derive_keyword(self, title: str) -> str | None:
        """Return a single lowercase keyword for a headline, or None."""
        raise NotImplementedError
