"""
Daily generation quota per (group, user) pair.

The quota is computed from the append-only generation log: every
attempt that reached the search provider is logged as ``success`` or
``failed`` and counts against the day; ``rate_limited`` rows do not.
Checking never writes; the runner claims the group right after a
positive check and logs the outcome of each attempt
exactly once through ``record``.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from .config import RateLimitConfig
from .core.types import AttemptStatus, RateLimitDecision, RateLimitRecord
from .store.base import NewsStore


class RateLimiter:
    def __init__(self, store: NewsStore, cfg: RateLimitConfig):
        self.store = store
        self.cfg = cfg
        self._tz: tzinfo | None = ZoneInfo(cfg.timezone) if cfg.timezone else None

    @property
    def daily_limit(self) -> int:
        return max(0, int(self.cfg.daily_limit))

    def day_start(self, now: datetime) -> datetime:
        """Start of the local day containing ``now``, as an aware datetime."""
        local = now.astimezone(self._tz) if self._tz else now.astimezone()
        return local.replace(hour=0, minute=0, second=0, microsecond=0)

    def check_and_reserve(self, group_id: str, user_id: str, now: datetime | None = None) -> RateLimitDecision:
        """Decide whether another attempt is allowed today.

        Raises:
            StoreError: If the log cannot be counted; callers must not
                        treat this as permission to generate
        """
        now = now or datetime.now(timezone.utc)
        used = self.store.count_generation_logs(group_id, user_id, self.day_start(now))
        limit = self.daily_limit
        remaining = max(0, limit - used)
        if remaining == 0:
            return RateLimitDecision(
                can_generate=False,
                remaining_count=0,
                limit_count=limit,
                message=f"Daily limit of {limit} news generations reached. Try again tomorrow.",
            )
        return RateLimitDecision(
            can_generate=True,
            remaining_count=remaining,
            limit_count=limit,
            message=f"{remaining} of {limit} generations remaining today",
        )

    def record(
        self,
        group_id: str,
        user_id: str,
        status: AttemptStatus,
        error_message: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Append one attempt outcome to the generation log."""
        self.store.append_generation_log(
            RateLimitRecord(
                group_id=group_id,
                user_id=user_id,
                status=status,
                error_message=error_message,
                created_at=now or datetime.now(timezone.utc),
            )
        )
