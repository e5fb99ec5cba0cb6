"""
Group News - automated news posts for group feeds.

This package runs a scheduled or manually triggered job that asks a
search-backed LLM for recent articles on each group's topic, repairs and
filters the response, attaches an image to every article and stores the
results as group posts.

Main entry points are the CLI (`group-news generate`, `group-news schedule`)
and the HTTP API (`group-news serve`).

Example:
    $ group-news generate --group-id 42 --manual
"""

__all__ = ["__version__", "NewsGenerator", "extract_articles", "filter_articles"]
__version__ = "0.1.0"

from .core.dedup import filter_articles
from .json_parser import extract_articles
from .runner import NewsGenerator
