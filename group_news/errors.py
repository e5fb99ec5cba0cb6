"""
Error taxonomy for the news generation pipeline.

Only ConfigError is fatal for a whole invocation. Everything else is
caught at the per-group boundary in the runner and turned into a
failed outcome for that group.
"""

from __future__ import annotations


class NewsGenerationError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(NewsGenerationError):
    """A required setting or credential is missing."""


class UpstreamError(NewsGenerationError):
    """The content-search provider returned an error or no content."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FetchTimeoutError(NewsGenerationError, TimeoutError):
    """The content-search request exceeded its hard timeout."""


class ParseError(NewsGenerationError, ValueError):
    """No article array could be recovered from the LLM response."""


class StoreError(NewsGenerationError):
    """A storage read or write failed."""


class PersistenceError(StoreError):
    """Writing generated posts failed."""