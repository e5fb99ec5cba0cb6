"""
Core domain models and business logic.

This package contains data types and pure decision logic that is
independent of storage and external APIs.
"""

from .content import extract_post_title, format_post_content
from .dedup import filter_articles, normalize_title
from .frequency import should_generate
from .types import (
    AttemptStatus,
    CandidateArticle,
    Failed,
    GenerationAttempt,
    GenerationStatus,
    Group,
    GroupOutcome,
    Post,
    RateLimitDecision,
    RateLimited,
    RateLimitRecord,
    RunReport,
    Skipped,
    Succeeded,
    SystemAuthor,
)

__all__ = [
    "AttemptStatus",
    "CandidateArticle",
    "Failed",
    "GenerationAttempt",
    "GenerationStatus",
    "Group",
    "GroupOutcome",
    "Post",
    "RateLimitDecision",
    "RateLimited",
    "RateLimitRecord",
    "RunReport",
    "Skipped",
    "Succeeded",
    "SystemAuthor",
    "extract_post_title",
    "filter_articles",
    "format_post_content",
    "normalize_title",
    "should_generate",
]
