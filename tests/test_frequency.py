"""Tests for the update frequency gate."""

from __future__ import annotations

from datetime import timedelta

from group_news.core.frequency import days_since, should_generate

from conftest import NOW, make_group


def test_days_since_floors_partial_days():
    assert days_since(NOW - timedelta(hours=47), NOW) == 1
    assert days_since(NOW - timedelta(hours=23, minutes=59), NOW) == 0


def test_group_that_never_ran_is_due():
    assert should_generate(make_group(last_news_generation=None), False, NOW)


def test_group_run_earlier_today_is_not_due():
    group = make_group(last_news_generation=NOW - timedelta(hours=2), update_frequency=1)

    assert not should_generate(group, False, NOW)


def test_group_is_due_after_frequency_days():
    group = make_group(last_news_generation=NOW - timedelta(days=3), update_frequency=3)

    assert should_generate(group, False, NOW)


def test_manual_request_bypasses_frequency():
    group = make_group(last_news_generation=NOW - timedelta(minutes=5), update_frequency=7)

    assert should_generate(group, True, NOW)


def test_missing_frequency_uses_default():
    group = make_group(last_news_generation=NOW - timedelta(days=1), update_frequency=None)

    assert should_generate(group, False, NOW, default_frequency=1)
    assert not should_generate(group, False, NOW, default_frequency=2)
