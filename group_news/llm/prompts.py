"""Prompt loading and rendering helpers for LLM providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: object) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_search_system_prompt() -> str:
    return _load_template("news_search_system")


def build_search_user_prompt(topic: str, count: int, recency_hours: int = 48) -> str:
    return _render_template(
        "news_search_user",
        topic=topic.strip(),
        count=count,
        recency_hours=recency_hours,
    )


def build_keyword_prompt(title: str) -> str:
    return _render_template("keyword", title=title.strip())
