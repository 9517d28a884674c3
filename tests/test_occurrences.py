"""Tests for recurring-task occurrence expansion."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from app.domain.models import Task
from app.services.occurrences import (
    expand_occurrences,
    is_valid_recurrence_rule,
    occurrence_key,
)
from app.services.overlap_layout import calculate_layout

_DAY_START = datetime(2025, 10, 7)
_DAY_END = datetime(2025, 10, 8)


def _series(**overrides) -> Task:
    defaults = dict(
        id=7,
        title="Standup",
        start_datetime=datetime(2025, 10, 1, 9, 0),
        end_datetime=datetime(2025, 10, 1, 9, 30),
        recurrence_rule="FREQ=DAILY",
    )
    defaults.update(overrides)
    return Task(**defaults)


# ---------------------------------------------------------------------------
# occurrence_key
# ---------------------------------------------------------------------------


def test_occurrence_key_uses_epoch_millis():
    start = datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
    assert occurrence_key(42, start) == "42-1000"


def test_occurrence_key_naive_is_utc():
    naive = datetime(2025, 10, 7, 9, 0)
    aware = naive.replace(tzinfo=timezone.utc)
    assert occurrence_key(7, naive) == occurrence_key(7, aware)


# ---------------------------------------------------------------------------
# is_valid_recurrence_rule
# ---------------------------------------------------------------------------


def test_valid_rules():
    assert is_valid_recurrence_rule(None)
    assert is_valid_recurrence_rule("  ")
    assert is_valid_recurrence_rule("FREQ=WEEKLY;BYDAY=MO,WE")
    assert is_valid_recurrence_rule("RRULE:FREQ=DAILY;INTERVAL=2")


def test_invalid_rules():
    assert not is_valid_recurrence_rule("FREQ=SOMETIMES")
    assert not is_valid_recurrence_rule("COUNT=3")


def test_utc_until_rules_are_valid():
    assert is_valid_recurrence_rule("FREQ=WEEKLY;UNTIL=20251031T235959Z")
    assert is_valid_recurrence_rule("FREQ=DAILY;INTERVAL=2;UNTIL=20251031T235959Z")


# ---------------------------------------------------------------------------
# expand_occurrences
# ---------------------------------------------------------------------------


def test_non_recurring_task_in_range():
    task = Task(
        id=1,
        start_datetime=datetime(2025, 10, 7, 10, 0),
        end_datetime=datetime(2025, 10, 7, 11, 0),
    )
    assert expand_occurrences(task, _DAY_START, _DAY_END) == [task]


def test_non_recurring_task_out_of_range():
    task = Task(
        id=1,
        start_datetime=datetime(2025, 10, 6, 10, 0),
        end_datetime=datetime(2025, 10, 6, 11, 0),
    )
    assert expand_occurrences(task, _DAY_START, _DAY_END) == []


def test_task_without_bounds_yields_nothing():
    assert expand_occurrences(Task(id=1), _DAY_START, _DAY_END) == []


def test_daily_series_yields_one_occurrence_per_day():
    occurrences = expand_occurrences(_series(), _DAY_START, _DAY_END)

    assert len(occurrences) == 1
    occ = occurrences[0]
    assert occ.start_datetime == datetime(2025, 10, 7, 9, 0)
    assert occ.end_datetime == datetime(2025, 10, 7, 9, 30)
    assert occ.occurrence_id == occurrence_key(7, datetime(2025, 10, 7, 9, 0))
    assert occ.key == occ.occurrence_id
    assert occ.id == 7
    assert occ.recurrence_rule is None
    assert not occ.is_recurring


def test_occurrence_running_into_range_is_kept():
    task = _series(
        start_datetime=datetime(2025, 10, 1, 23, 0),
        end_datetime=datetime(2025, 10, 2, 1, 0),
    )
    starts = [o.start_datetime for o in expand_occurrences(task, _DAY_START, _DAY_END)]
    assert starts == [datetime(2025, 10, 6, 23, 0), datetime(2025, 10, 7, 23, 0)]


def test_same_day_occurrences_have_distinct_keys():
    task = _series(
        start_datetime=datetime(2025, 10, 7, 9, 0),
        end_datetime=datetime(2025, 10, 7, 10, 30),
        recurrence_rule="FREQ=HOURLY;COUNT=2",
    )
    occurrences = expand_occurrences(task, _DAY_START, _DAY_END)
    keys = [o.key for o in occurrences]

    assert len(set(keys)) == 2
    layout = calculate_layout(occurrences)
    assert sorted(layout[k].layer for k in keys) == [0, 1]


def test_exception_dates_are_skipped():
    task = _series(recurrence_exceptions=[datetime(2025, 10, 7, 9, 0)])
    assert expand_occurrences(task, _DAY_START, _DAY_END) == []

    next_day = expand_occurrences(task, _DAY_END, _DAY_END + timedelta(days=1))
    assert len(next_day) == 1


def test_recurrence_end_caps_series():
    task = _series(recurrence_end=datetime(2025, 10, 5, 23, 59))
    assert expand_occurrences(task, _DAY_START, _DAY_END) == []


def test_utc_until_with_wall_clock_start():
    task = _series(recurrence_rule="FREQ=DAILY;UNTIL=20251005T235959Z")

    occurrences = expand_occurrences(task, datetime(2025, 10, 2), datetime(2025, 10, 3))

    assert [o.start_datetime for o in occurrences] == [datetime(2025, 10, 2, 9, 0)]
    assert expand_occurrences(task, _DAY_START, _DAY_END) == []


def test_utc_until_with_aware_start():
    task = _series(
        start_datetime=datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc),
        end_datetime=datetime(2025, 10, 1, 9, 30, tzinfo=timezone.utc),
        recurrence_rule="FREQ=DAILY;UNTIL=20251005T235959Z",
    )

    occurrences = expand_occurrences(task, datetime(2025, 10, 5), datetime(2025, 10, 6))

    assert len(occurrences) == 1
    assert expand_occurrences(task, _DAY_START, _DAY_END) == []


def test_aware_series_with_naive_range():
    task = _series(
        start_datetime=datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc),
        end_datetime=datetime(2025, 10, 1, 9, 30, tzinfo=timezone.utc),
    )
    occurrences = expand_occurrences(task, _DAY_START, _DAY_END)

    assert len(occurrences) == 1
    assert occurrences[0].start_datetime == datetime(2025, 10, 7, 9, 0, tzinfo=timezone.utc)


def test_invalid_rule_is_logged_and_empty(caplog):
    task = _series(recurrence_rule="FREQ=SOMETIMES")

    with caplog.at_level(logging.ERROR, logger="app.services.occurrences"):
        assert expand_occurrences(task, _DAY_START, _DAY_END) == []
    assert "Invalid RRULE" in caplog.text


def test_max_occurrences_limit(caplog):
    task = _series(recurrence_rule="FREQ=MINUTELY", end_datetime=datetime(2025, 10, 1, 9, 1))

    with caplog.at_level(logging.WARNING, logger="app.services.occurrences"):
        occurrences = expand_occurrences(task, _DAY_START, _DAY_END, max_occurrences=5)

    assert len(occurrences) == 5
    assert "Reached max occurrences" in caplog.text
