"""Post content template and title recovery from stored posts."""

from __future__ import annotations

from datetime import date
import re

from .types import CandidateArticle

_TITLE_RE = re.compile(r"📰 \*\*(.+?)\*\*")


def format_published_date(value: date | None) -> str:
    """Render a date the way the feed UI expects it (M/D/YYYY)."""
    if value is None:
        return "Unknown"
    return f"{value.month}/{value.day}/{value.year}"


def format_post_content(article: CandidateArticle) -> str:
    return (
        f"📰 **{article.title}**\n"
        "\n"
        f"{article.summary}\n"
        "\n"
        "🤖 AI News Bot\n"
        "\n"
        f"📅 Published: {format_published_date(article.published_date)}"
    )


def extract_post_title(content: str | None) -> str | None:
    """Recover the article title from a stored post body."""
    if not content:
        return None
    match = _TITLE_RE.search(content)
    if not match:
        return None
    return match.group(1).strip() or None
