"""
Core data types for the group news pipeline.

This module defines the structures threaded through one generation run:
- Group: Group configuration and generation status (read and written)
- CandidateArticle: An article recovered from the search response
- Post: A post record ready to be inserted
- SystemAuthor: The identity generated posts are attributed to
- RateLimitRecord / RateLimitDecision: Quota log rows and checks
- GenerationAttempt: In-memory state of one group's pass
- Skipped / RateLimited / Succeeded / Failed: Per-group outcomes
- RunReport: Aggregated result of one invocation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Union


class GenerationStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AttemptStatus(str, Enum):
    ATTEMPTED = "attempted"
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware datetime (UTC if naive)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


@dataclass
class Group:
    """A group and its news generation configuration.

    Attributes:
        id: Group identifier
        name: Display name, used to key run results
        created_by: User id of the group's creator
        automated_news_enabled: Whether the pipeline may run for this group
        news_prompt: Free-text topic sent to the search provider
        news_count: Target number of articles per run
        news_sources: Optional domain allow-list
        update_frequency: Minimum days between scheduled runs
        last_news_generation: When the last run completed
        last_news_run_at: When the last run moved the group to running
        news_generation_status: Current status
        last_generation_error: Error text of the last failed run
    """

    id: str
    name: str
    created_by: str
    automated_news_enabled: bool = False
    news_prompt: str | None = None
    news_count: int | None = None
    news_sources: list[str] = field(default_factory=list)
    update_frequency: int | None = None
    last_news_generation: datetime | None = None
    last_news_run_at: datetime | None = None
    news_generation_status: GenerationStatus = GenerationStatus.IDLE
    last_generation_error: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Group":
        status = row.get("news_generation_status") or GenerationStatus.IDLE.value
        try:
            status_value = GenerationStatus(status)
        except ValueError:
            status_value = GenerationStatus.IDLE
        sources = row.get("news_sources") or []
        if not isinstance(sources, list):
            sources = []
        return cls(
            id=str(row["id"]),
            name=row.get("name") or str(row["id"]),
            created_by=str(row.get("created_by") or ""),
            automated_news_enabled=bool(row.get("automated_news_enabled")),
            news_prompt=row.get("news_prompt"),
            news_count=row.get("news_count"),
            news_sources=[str(s).strip() for s in sources if str(s).strip()],
            update_frequency=row.get("update_frequency"),
            last_news_generation=parse_timestamp(row.get("last_news_generation")),
            last_news_run_at=parse_timestamp(row.get("last_news_run_at")),
            news_generation_status=status_value,
            last_generation_error=row.get("last_generation_error"),
        )


@dataclass(frozen=True)
class SystemAuthor:
    """The identity generated posts are attributed to.

    The pipeline has no user of its own; posts are written on behalf of
    the group creator, and this type keeps that explicit.
    """

    user_id: str
    label: str = "AI News Bot"

    @classmethod
    def for_group(cls, group: Group) -> "SystemAuthor":
        return cls(user_id=group.created_by)


@dataclass
class CandidateArticle:
    """An unpersisted article recovered from the search response."""

    title: str
    url: str
    published_date: date | None
    summary: str
    keyword: str | None = None


@dataclass
class Post:
    content: str
    group_id: str
    user_id: str
    url: str | None = None
    image_url: str | None = None
    keyword: str | None = None

    def to_row(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "url": self.url,
            "image_url": self.image_url,
            "group_id": self.group_id,
            "user_id": self.user_id,
            "keyword": self.keyword,
        }


@dataclass
class RateLimitRecord:
    group_id: str
    user_id: str
    status: AttemptStatus
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "user_id": self.user_id,
            "status": self.status.value,
            "error_message": self.error_message,
            "created_at": format_timestamp(self.created_at),
        }


@dataclass
class RateLimitDecision:
    can_generate: bool
    remaining_count: int
    limit_count: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "canGenerate": self.can_generate,
            "remainingCount": self.remaining_count,
            "limitCount": self.limit_count,
            "message": self.message,
        }


@dataclass
class GenerationAttempt:
    """State of one pass over one group, owned by the runner."""

    group: Group
    author: SystemAuthor
    started_at: datetime
    is_manual: bool = False
    decision: RateLimitDecision | None = None
    raw_response: str | None = None
    parsed: list[CandidateArticle] = field(default_factory=list)
    filtered: list[CandidateArticle] = field(default_factory=list)
    posts: list[Post] = field(default_factory=list)
    finished: bool = False


@dataclass
class Skipped:
    group: str
    message: str
    status: str = field(default="skipped", init=False)


@dataclass
class RateLimited:
    group: str
    message: str
    status: str = field(default="rate_limited", init=False)


@dataclass
class Succeeded:
    group: str
    message: str
    posts_created: int = 0
    status: str = field(default="success", init=False)


@dataclass
class Failed:
    group: str
    message: str
    status: str = field(default="error", init=False)


GroupOutcome = Union[Skipped, RateLimited, Succeeded, Failed]


@dataclass
class RunReport:
    message: str
    results: list[GroupOutcome] = field(default_factory=list)
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "message": self.message,
            "results": [
                {"group": r.group, "status": r.status, "message": r.message} for r in self.results
            ],
        }
        if self.timestamp is not None:
            payload["timestamp"] = format_timestamp(self.timestamp)
        return payload
