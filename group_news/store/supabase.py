"""Supabase (PostgREST) store over httpx."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import httpx

from ..config import StoreConfig, get_store_credentials
from ..core.types import AttemptStatus, GenerationStatus, Group, Post, RateLimitRecord, format_timestamp
from ..errors import PersistenceError, StoreError
from .base import COUNTED_STATUSES, NewsStore

logger = logging.getLogger(__name__)


class SupabaseStore(NewsStore):
    """NewsStore backed by the Supabase REST API.

    Compare-and-swap status writes are PATCH requests filtered on the
    expected column values; PostgREST returns the updated rows, so an
    empty result means another run got there first.
    """

    def __init__(
        self,
        cfg: StoreConfig,
        url: str | None = None,
        key: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if url is None or key is None:
            url, key = get_store_credentials(cfg)
        self.cfg = cfg
        self._client = httpx.Client(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
            timeout=cfg.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_group(self, group_id: str) -> Group | None:
        rows = self._request("GET", self.cfg.groups_table, params={"id": f"eq.{group_id}", "select": "*"})
        if not rows:
            return None
        return Group.from_row(rows[0])

    def list_enabled_groups(self) -> list[Group]:
        rows = self._request(
            "GET",
            self.cfg.groups_table,
            params={
                "automated_news_enabled": "eq.true",
                "select": "*",
                "order": "last_news_generation.asc.nullsfirst",
            },
        )
        return [Group.from_row(row) for row in rows or []]

    def claim_group(
        self,
        group_id: str,
        expected_status: GenerationStatus,
        expected_run_at: datetime | None,
        run_at: datetime,
    ) -> bool:
        params = {"id": f"eq.{group_id}", "last_news_run_at": _eq_or_null(expected_run_at)}
        if expected_status == GenerationStatus.IDLE:
            params["or"] = "(news_generation_status.is.null,news_generation_status.eq.idle)"
        else:
            params["news_generation_status"] = f"eq.{expected_status.value}"
        rows = self._request(
            "PATCH",
            self.cfg.groups_table,
            params=params,
            json={
                "news_generation_status": GenerationStatus.RUNNING.value,
                "last_generation_error": None,
                "last_news_run_at": format_timestamp(run_at),
            },
            prefer="return=representation",
        )
        return bool(rows)

    def finish_group(
        self,
        group_id: str,
        run_at: datetime,
        status: GenerationStatus,
        error: str | None = None,
        last_news_generation: datetime | None = None,
    ) -> bool:
        body: dict[str, Any] = {"news_generation_status": status.value, "last_generation_error": error}
        if last_news_generation is not None:
            body["last_news_generation"] = format_timestamp(last_news_generation)
        rows = self._request(
            "PATCH",
            self.cfg.groups_table,
            params={
                "id": f"eq.{group_id}",
                "news_generation_status": f"eq.{GenerationStatus.RUNNING.value}",
                "last_news_run_at": _eq_or_null(run_at),
            },
            json=body,
            prefer="return=representation",
        )
        return bool(rows)

    def recent_post_contents(self, group_id: str, since: datetime) -> list[str]:
        rows = self._request(
            "GET",
            self.cfg.posts_table,
            params={
                "group_id": f"eq.{group_id}",
                "created_at": f"gte.{format_timestamp(since)}",
                "select": "content",
            },
        )
        return [row.get("content") or "" for row in rows or []]

    def insert_posts(self, posts: list[Post]) -> None:
        if not posts:
            return
        try:
            self._request("POST", self.cfg.posts_table, json=[p.to_row() for p in posts], prefer="return=minimal")
        except StoreError as exc:
            raise PersistenceError(f"Failed to insert posts: {exc}") from exc

    def append_generation_log(self, record: RateLimitRecord) -> None:
        self._request("POST", self.cfg.logs_table, json=record.to_row(), prefer="return=minimal")

    def count_generation_logs(
        self,
        group_id: str,
        user_id: str,
        since: datetime,
        statuses: tuple[AttemptStatus, ...] = COUNTED_STATUSES,
    ) -> int:
        status_list = ",".join(s.value for s in statuses)
        params = {
            "group_id": f"eq.{group_id}",
            "user_id": f"eq.{user_id}",
            "created_at": f"gte.{format_timestamp(since)}",
            "status": f"in.({status_list})",
            "select": "id",
            "limit": "1",
        }
        try:
            resp = self._client.get(f"/{self.cfg.logs_table}", params=params, headers={"Prefer": "count=exact"})
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StoreError(f"Counting generation logs failed: {_describe(exc)}") from exc
        return _parse_count(resp.headers.get("content-range"))

    def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else None
        try:
            resp = self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {table} failed: {_describe(exc)}") from exc
        if not resp.content:
            return None
        return resp.json()


def _eq_or_null(value: datetime | None) -> str:
    if value is None:
        return "is.null"
    return f"eq.{format_timestamp(value)}"


def _parse_count(content_range: str | None) -> int:
    if not content_range or "/" not in content_range:
        raise StoreError("Count response is missing a Content-Range total")
    total = content_range.rsplit("/", 1)[1]
    if not total.isdigit():
        raise StoreError(f"Unexpected Content-Range: {content_range}")
    return int(total)


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.text[:300]}"
    return f"{type(exc).__name__}: {exc}"
