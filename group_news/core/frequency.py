"""Cadence check deciding whether a group is due for generation."""

from __future__ import annotations

from datetime import datetime

from .types import Group

_SECONDS_PER_DAY = 24 * 60 * 60


def days_since(last: datetime, now: datetime) -> int:
    """Whole days elapsed between two instants (floor, not calendar days)."""
    return int((now - last).total_seconds() // _SECONDS_PER_DAY)


def should_generate(
    group: Group,
    is_manual_request: bool,
    now: datetime,
    default_frequency: int = 1,
) -> bool:
    """Return True when the group is due for a run.

    Manual requests always pass. Otherwise a group that never ran is due,
    and one that did is due once the elapsed whole days reach its
    update_frequency.
    """
    if is_manual_request:
        return True
    if group.last_news_generation is None:
        return True
    required = group.update_frequency or default_frequency
    return days_since(group.last_news_generation, now) >= required
