"""Perplexity (sonar) provider for the search-backed article request."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from contextvars import copy_context
import json
import logging
import time
from typing import Any, Callable
from urllib.parse import urlparse

import httpx

from ...config import LoggingConfig, SearchConfig
from ...errors import FetchTimeoutError, UpstreamError
from ...logging_utils import log_event, redact_text, truncate_text
from ..prompts import build_search_system_prompt, build_search_user_prompt
from ..tracing import record_span_error, set_span_output, start_span
from .base import ContentSearchProvider


class PerplexityProvider(ContentSearchProvider):
    """Chat-completions search provider with a domain and recency filter."""

    def __init__(
        self,
        cfg: SearchConfig,
        api_key: str | None,
        log_cfg: LoggingConfig | None = None,
        llm_logger: logging.Logger | None = None,
        recency_hours: int = 48,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not api_key:
            raise ValueError("Missing Perplexity API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg or LoggingConfig()
        self.llm_logger = llm_logger
        self.recency_hours = recency_hours
        self._transport = transport
        self._clock = clock

    def fetch_articles(self, prompt: str, count: int, source_domains: list[str] | None = None) -> str:
        domains = resolve_source_domains(source_domains, self.cfg.default_sources, self.cfg.max_source_domains)
        user_prompt = build_search_user_prompt(prompt, count, self.recency_hours)
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": build_search_system_prompt()},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.cfg.temperature,
            "top_p": 0.9,
            "max_tokens": self.cfg.max_tokens,
            "return_images": False,
            "return_related_questions": False,
            "search_recency_filter": self.cfg.recency_filter,
            "search_domain_filter": domains,
        }
        with start_span(
            "perplexity.fetch_articles",
            kind="llm",
            input_value=user_prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": "perplexity", "domains": ",".join(domains)},
        ) as span:
            try:
                data = self._post_with_deadline(payload)
            except FetchTimeoutError as exc:
                record_span_error(span, exc)
                self._log_llm_response("timeout", str(exc), prompt)
                raise
            except UpstreamError as exc:
                record_span_error(span, exc)
                self._log_llm_response("provider_error", str(exc), prompt)
                raise
            except httpx.TimeoutException as exc:
                record_span_error(span, exc)
                self._log_llm_response("timeout", str(exc), prompt)
                raise self._timeout_error() from exc
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response("provider_error", str(exc), prompt)
                raise UpstreamError(f"Content search request failed: {type(exc).__name__}: {exc}") from exc

            content = _extract_text(data)
            set_span_output(span, content)

        if not content.strip():
            self._log_llm_response("empty", "", prompt)
            raise UpstreamError("Content search returned no content")
        self._log_llm_response("ok", content, prompt)
        return content

    def _post_with_deadline(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Run the request in a worker and stop waiting once the deadline passes.

        httpx timeouts apply to each connect or read on their own; the
        worker bounds the whole exchange. The worker also checks the
        deadline between body chunks, so it stops soon after the caller
        gives up.
        """
        timeout = self.cfg.timeout_seconds
        deadline = self._clock() + timeout
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="content-search")
        try:
            future = executor.submit(copy_context().run, self._post, payload, deadline)
            try:
                return future.result(timeout=timeout)
            except FuturesTimeoutError as exc:
                raise self._timeout_error() from exc
        finally:
            executor.shutdown(wait=False)

    def _post(self, payload: dict[str, Any], deadline: float) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        with httpx.Client(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            with client.stream("POST", url, headers=headers, json=payload) as resp:
                chunks: list[bytes] = []
                for chunk in resp.iter_bytes():
                    chunks.append(chunk)
                    if self._clock() > deadline:
                        raise self._timeout_error()
                status_code = resp.status_code
        body = b"".join(chunks).decode("utf-8", errors="replace")
        if status_code >= 400:
            raise UpstreamError(
                f"Content search failed with HTTP {status_code}: {truncate_text(body, 500)}",
                status_code=status_code,
            )
        try:
            return json.loads(body)
        except ValueError as exc:
            raise UpstreamError("Content search returned invalid JSON") from exc

    def _timeout_error(self) -> FetchTimeoutError:
        return FetchTimeoutError(f"Content search timed out after {self.cfg.timeout_seconds:g}s")

    def _log_llm_response(self, status: str, content: str, prompt: str) -> None:
        redaction = self.log_cfg.llm_log_redaction
        log_event(
            self.llm_logger,
            "LLM response",
            event="llm_search_response",
            status=status,
            model=self.cfg.model,
            topic=truncate_text(redact_text(prompt, redaction), 500),
            raw_response=truncate_text(redact_text(content, redaction)),
        )


def resolve_source_domains(
    custom: list[str] | None,
    defaults: list[str],
    max_domains: int = 10,
) -> list[str]:
    """Pick the group's own domains when it has any, else the defaults.

    Entries are reduced to bare host names ("https://www.bbc.com/news"
    becomes "bbc.com"), de-duplicated and capped at ``max_domains``.
    """
    chosen = [d for d in (custom or []) if d and d.strip()] or defaults
    domains: list[str] = []
    for entry in chosen:
        host = _bare_host(entry)
        if host and host not in domains:
            domains.append(host)
    return domains[:max_domains]


def _bare_host(entry: str) -> str:
    entry = entry.strip().lower()
    if "://" not in entry:
        entry = f"//{entry}"
    host = urlparse(entry).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host


def _extract_text(data: dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""
