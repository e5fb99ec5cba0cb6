"""
Candidate article filtering and deduplication.

Candidates are rejected when:
1. A required field (title, summary, url) is missing or the url is not absolute
2. The published date is missing or older than the recency window
3. The title matches a title already posted in the group
4. The title repeats an earlier candidate in the same batch

The surviving list keeps the provider's order and is capped at the
group's article count.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from urllib.parse import urlparse

from rapidfuzz import fuzz

from .types import CandidateArticle

logger = logging.getLogger(__name__)


def normalize_title(title: str) -> str:
    return " ".join(title.split()).casefold()


def is_absolute_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_recent(article: CandidateArticle, now: datetime, recency_hours: int = 48) -> bool:
    """Check the published date against the recency window.

    Published dates carry no time of day, so the comparison is made on
    calendar dates: an article dated on or after the day containing
    ``now - recency_hours`` is recent.
    """
    if article.published_date is None:
        return False
    cutoff = (now - timedelta(hours=recency_hours)).date()
    return article.published_date >= cutoff


def filter_articles(
    candidates: list[CandidateArticle],
    existing_titles: list[str],
    now: datetime,
    limit: int | None = None,
    recency_hours: int = 48,
    threshold: int = 100,
    dedupe_within_batch: bool = True,
) -> list[CandidateArticle]:
    """Filter candidates for completeness, recency and duplicate titles.

    Args:
        candidates: Articles recovered from the search response, in order
        existing_titles: Titles already posted in the group's lookback window
        now: Reference time for the recency window
        limit: Maximum number of articles to keep (None keeps all)
        recency_hours: Width of the recency window
        threshold: rapidfuzz ratio (0-100) at which two normalized titles
                   count as the same; 100 means exact match
        dedupe_within_batch: Whether to drop repeats inside the batch

    Returns:
        The accepted articles, preserving candidate order
    """
    history = [normalize_title(t) for t in existing_titles if t and t.strip()]
    batch: list[str] = []
    kept: list[CandidateArticle] = []

    for article in candidates:
        if limit is not None and len(kept) >= limit:
            break
        if not article.title.strip() or not article.summary.strip() or not article.url.strip():
            logger.debug("Dropping candidate with missing fields: %r", article.title)
            continue
        if not is_absolute_url(article.url):
            logger.debug("Dropping candidate with relative url: %s", article.url)
            continue
        if not is_recent(article, now, recency_hours):
            logger.debug("Dropping stale candidate: %s (%s)", article.title, article.published_date)
            continue
        title = normalize_title(article.title)
        if _is_similar_title(title, history, threshold):
            logger.debug("Dropping already posted title: %s", article.title)
            continue
        if dedupe_within_batch and _is_similar_title(title, batch, threshold):
            logger.debug("Dropping repeated title in batch: %s", article.title)
            continue
        batch.append(title)
        kept.append(article)

    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    """Check if a normalized title matches any title in the given list.

    Uses rapidfuzz's ratio function, which expresses Levenshtein
    distance as a similarity percentage; identical strings score 100.
    """
    for existing in titles:
        if fuzz.ratio(title, existing) >= threshold:
            return True
    return False
