"""Storage interface consumed by the news pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..core.types import AttemptStatus, GenerationStatus, Group, Post, RateLimitRecord

COUNTED_STATUSES = (AttemptStatus.ATTEMPTED, AttemptStatus.SUCCESS, AttemptStatus.FAILED)


class NewsStore(ABC):
    """Group, post and generation-log operations.

    Status writes are compare-and-swap: ``claim_group`` only succeeds when
    the stored status and run stamp still match what the caller read, and
    ``finish_group`` only succeeds for the run that holds the claim.
    Implementations raise StoreError (PersistenceError for post inserts).
    """

    @abstractmethod
    def get_group(self, group_id: str) -> Group | None:
        raise NotImplementedError

    @abstractmethod
    def list_enabled_groups(self) -> list[Group]:
        """Groups with automated news enabled, least recently generated first."""
        raise NotImplementedError

    @abstractmethod
    def claim_group(
        self,
        group_id: str,
        expected_status: GenerationStatus,
        expected_run_at: datetime | None,
        run_at: datetime,
    ) -> bool:
        """Move a group to running and clear its error if nobody else did."""
        raise NotImplementedError

    @abstractmethod
    def finish_group(
        self,
        group_id: str,
        run_at: datetime,
        status: GenerationStatus,
        error: str | None = None,
        last_news_generation: datetime | None = None,
    ) -> bool:
        """Write the terminal status for the run stamped ``run_at``."""
        raise NotImplementedError

    @abstractmethod
    def recent_post_contents(self, group_id: str, since: datetime) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def insert_posts(self, posts: list[Post]) -> None:
        raise NotImplementedError

    @abstractmethod
    def append_generation_log(self, record: RateLimitRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def count_generation_logs(
        self,
        group_id: str,
        user_id: str,
        since: datetime,
        statuses: tuple[AttemptStatus, ...] = COUNTED_STATUSES,
    ) -> int:
        raise NotImplementedError
