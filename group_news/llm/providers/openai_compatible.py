"""OpenAI-compatible chat provider used for one-word image keywords."""

from __future__ import annotations

from typing import Any

import httpx

from ...config import KeywordConfig
from ...json_parser import normalize_keyword
from ..prompts import build_keyword_prompt
from ..tracing import record_span_error, set_span_output, start_span
from .base import KeywordProvider


class OpenAICompatibleKeywordProvider(KeywordProvider):
    def __init__(
        self,
        cfg: KeywordConfig,
        api_key: str | None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing OpenAI API key")
        self.cfg = cfg
        self.api_key = api_key
        self._transport = transport

    def derive_keyword(self, title: str) -> str | None:
        prompt = build_keyword_prompt(title)
        payload = {
            "model": self.cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0,
            "max_tokens": 5,
        }
        with start_span(
            "openai.derive_keyword",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": "openai"},
        ) as span:
            try:
                data = self._post(payload)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                raise
            content = _extract_text(data)
            set_span_output(span, content)
        return normalize_keyword(content)

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        with httpx.Client(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            resp = client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""
