"""Thread-safe in-process store, used for local runs and tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
import threading

import yaml

from ..core.types import AttemptStatus, GenerationStatus, Group, Post, RateLimitRecord
from .base import COUNTED_STATUSES, NewsStore


class MemoryStore(NewsStore):
    def __init__(self, groups: list[Group] | None = None):
        self._lock = threading.Lock()
        self._groups: dict[str, Group] = {}
        self.posts: list[tuple[datetime, Post]] = []
        self.logs: list[RateLimitRecord] = []
        for group in groups or []:
            self.add_group(group)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "MemoryStore":
        """Load groups from a YAML list of group rows."""
        with open(path, "r", encoding="utf-8") as f:
            rows = yaml.safe_load(f) or []
        if isinstance(rows, dict):
            rows = rows.get("groups") or []
        return cls([Group.from_row(row) for row in rows])

    def add_group(self, group: Group) -> None:
        with self._lock:
            self._groups[group.id] = replace(group)

    def add_post(self, post: Post, created_at: datetime | None = None) -> None:
        with self._lock:
            self.posts.append((created_at or datetime.now(timezone.utc), post))

    def get_group(self, group_id: str) -> Group | None:
        with self._lock:
            group = self._groups.get(group_id)
            return replace(group) if group else None

    def list_enabled_groups(self) -> list[Group]:
        with self._lock:
            groups = [replace(g) for g in self._groups.values() if g.automated_news_enabled]
        floor = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            groups,
            key=lambda g: (g.last_news_generation is not None, g.last_news_generation or floor),
        )

    def claim_group(
        self,
        group_id: str,
        expected_status: GenerationStatus,
        expected_run_at: datetime | None,
        run_at: datetime,
    ) -> bool:
        with self._lock:
            group = self._groups.get(group_id)
            if group is None:
                return False
            if group.news_generation_status != expected_status or group.last_news_run_at != expected_run_at:
                return False
            group.news_generation_status = GenerationStatus.RUNNING
            group.last_generation_error = None
            group.last_news_run_at = run_at
            return True

    def finish_group(
        self,
        group_id: str,
        run_at: datetime,
        status: GenerationStatus,
        error: str | None = None,
        last_news_generation: datetime | None = None,
    ) -> bool:
        with self._lock:
            group = self._groups.get(group_id)
            if group is None:
                return False
            if group.news_generation_status != GenerationStatus.RUNNING or group.last_news_run_at != run_at:
                return False
            group.news_generation_status = status
            group.last_generation_error = error
            if last_news_generation is not None:
                group.last_news_generation = last_news_generation
            return True

    def recent_post_contents(self, group_id: str, since: datetime) -> list[str]:
        with self._lock:
            return [p.content for created, p in self.posts if p.group_id == group_id and created >= since]

    def insert_posts(self, posts: list[Post]) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            self.posts.extend((now, replace(p)) for p in posts)

    def append_generation_log(self, record: RateLimitRecord) -> None:
        with self._lock:
            self.logs.append(replace(record))

    def count_generation_logs(
        self,
        group_id: str,
        user_id: str,
        since: datetime,
        statuses: tuple[AttemptStatus, ...] = COUNTED_STATUSES,
    ) -> int:
        with self._lock:
            return sum(
                1
                for r in self.logs
                if r.group_id == group_id
                and r.user_id == user_id
                and r.created_at >= since
                and r.status in statuses
            )
