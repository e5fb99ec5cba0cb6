"""
Scheduled dispatch of news generation.

The dispatcher lists enabled groups (least recently generated first),
applies the frequency gate and triggers one generation run per due
group. The trigger is either the in-process NewsGenerator or the HTTP
generation endpoint of a deployed service.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from datetime import datetime
import logging
from typing import Any, Callable, Protocol

import httpx

from .config import SchedulerConfig, get_trigger_token
from .core.frequency import should_generate
from .core.types import Failed, GroupOutcome, RateLimited, RunReport, Skipped, Succeeded
from .logging_utils import log_event
from .runner import NewsGenerator, utc_now
from .store.base import NewsStore


class Trigger(Protocol):
    def __call__(self, group_id: str) -> dict[str, Any]:
        ...


class LocalTrigger:
    """Run generation for one group in this process."""

    def __init__(self, generator: NewsGenerator):
        self.generator = generator

    def __call__(self, group_id: str) -> dict[str, Any]:
        return self.generator.generate(group_id=group_id).to_dict()


class HttpTrigger:
    """POST ``{"groupId": ...}`` to a deployed generation endpoint."""

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = 120.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: SchedulerConfig) -> "HttpTrigger":
        if not cfg.trigger_url:
            raise ValueError("scheduler.trigger_url is not set")
        return cls(cfg.trigger_url, get_trigger_token(cfg), cfg.timeout_seconds)

    def __call__(self, group_id: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            resp = client.post(self.url, json={"groupId": group_id}, headers=headers)
            if resp.status_code >= 400:
                try:
                    detail = resp.json().get("error")
                except ValueError:
                    detail = None
                raise RuntimeError(detail or f"Generation endpoint returned HTTP {resp.status_code}")
            return resp.json()


class Dispatcher:
    def __init__(
        self,
        store: NewsStore,
        trigger: Trigger,
        cfg: SchedulerConfig | None = None,
        default_frequency: int = 1,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.trigger = trigger
        self.cfg = cfg or SchedulerConfig()
        self.default_frequency = default_frequency
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

    def run(self) -> RunReport:
        """Dispatch every due group and collect one result per group.

        Raises:
            StoreError: If the enabled groups cannot be listed
        """
        now = self._clock()
        groups = self.store.list_enabled_groups()
        if not groups:
            log_event(self.logger, "No enabled groups", event="schedule_empty")
            return RunReport(message="No groups with automated news enabled", results=[], timestamp=now)

        results: list[GroupOutcome | None] = [None] * len(groups)
        due: list[int] = []
        for idx, group in enumerate(groups):
            if should_generate(group, False, now, self.default_frequency):
                due.append(idx)
                continue
            frequency = group.update_frequency or self.default_frequency
            log_event(self.logger, "Frequency not met", event="group_skipped", group=group.name)
            results[idx] = Skipped(group.name, f"Frequency not met ({frequency} days)")

        concurrency = max(1, int(self.cfg.concurrency))
        if concurrency == 1:
            for idx in due:
                results[idx] = self._dispatch(groups[idx].id, groups[idx].name)
        else:
            log_event(self.logger, "Dispatch concurrency enabled", event="dispatch_concurrency", workers=concurrency)
            with ThreadPoolExecutor(max_workers=concurrency) as executor:
                futures = {
                    idx: executor.submit(copy_context().run, self._dispatch, groups[idx].id, groups[idx].name)
                    for idx in due
                }
                for idx, future in futures.items():
                    results[idx] = future.result()

        log_event(self.logger, "Schedule complete", event="schedule_complete", groups=len(groups), dispatched=len(due))
        return RunReport(
            message="Scheduled news generation completed",
            results=[r for r in results if r is not None],
            timestamp=now,
        )

    def _dispatch(self, group_id: str, group_name: str) -> GroupOutcome:
        try:
            response = self.trigger(group_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Error generating news for group %s: %s", group_name, exc)
            return Failed(group_name, str(exc) or type(exc).__name__)
        return _outcome_from_response(group_name, response)


def _outcome_from_response(group_name: str, response: dict[str, Any]) -> GroupOutcome:
    results = response.get("results") or []
    if not results:
        return Skipped(group_name, response.get("message") or "No generation result")
    first = results[0]
    message = first.get("message") or "News generated"
    status = first.get("status")
    if status == "success":
        return Succeeded(group_name, message)
    if status == "error":
        return Failed(group_name, message)
    if status == "rate_limited":
        return RateLimited(group_name, message)
    return Skipped(group_name, message)
