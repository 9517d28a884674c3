"""Expansion of recurring tasks into the concrete occurrences of a time range.

Each occurrence is a plain (non-recurring) copy of its series task with its
own ``occurrence_id``, so two occurrences of one series on the same day are
laid out as independent tasks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from dateutil.rrule import rrulestr

from app.core.config import settings
from app.domain.models import Task

logger = logging.getLogger(__name__)


def occurrence_key(task_id: int | str, start: datetime) -> str:
    """Build the ``"<task id>-<epoch milliseconds>"`` key of one occurrence.

    Naive datetimes are read as UTC.
    """
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return f"{task_id}-{int(start.timestamp() * 1000)}"


def parse_rule(rule: str, dtstart: datetime):
    """Parse *rule* anchored at *dtstart*.

    Rules store ``UNTIL`` in UTC (``...T235959Z``); for wall-clock (naive)
    starts that bound is read as wall-clock time too.
    """
    return rrulestr(rule.strip(), dtstart=dtstart, ignoretz=dtstart.tzinfo is None)


def is_valid_recurrence_rule(rule: str | None) -> bool:
    """Return True for an empty rule or one ``dateutil`` can parse."""
    if rule is None or not rule.strip():
        return True
    try:
        parse_rule(rule, datetime(2000, 1, 1))
    except (ValueError, TypeError):
        logger.debug("Invalid RRULE: %s", rule)
        return False
    return True


def _align(value: datetime, reference: datetime) -> datetime:
    """Make *value* comparable with *reference* (naive vs aware)."""
    if reference.tzinfo is None:
        return value.replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value


def _intersects(start: datetime, end: datetime, range_start: datetime, range_end: datetime) -> bool:
    if start == end:
        return range_start <= start < range_end
    return start < range_end and end > range_start


def expand_occurrences(
    task: Task,
    range_start: datetime,
    range_end: datetime,
    max_occurrences: int | None = None,
) -> list[Task]:
    """Return the occurrences of *task* that intersect ``[range_start, range_end)``.

    A non-recurring task yields itself when it falls in the range. A recurring
    task yields one copy per occurrence with the series duration; dates listed
    in ``recurrence_exceptions`` are skipped and ``recurrence_end`` caps the
    series. Tasks without both bounds yield nothing, as do unparseable rules.
    """
    if task.start_datetime is None or task.end_datetime is None:
        return []

    dtstart = task.start_datetime
    range_start = _align(range_start, dtstart)
    range_end = _align(range_end, dtstart)

    if not task.is_recurring:
        if _intersects(dtstart, _align(task.end_datetime, dtstart), range_start, range_end):
            return [task]
        return []

    try:
        rule = parse_rule(task.recurrence_rule, dtstart)
    except (ValueError, TypeError):
        logger.error("Invalid RRULE for task %r: %s", task.id, task.recurrence_rule)
        return []

    limit = max_occurrences or settings.MAX_OCCURRENCES
    duration = _align(task.end_datetime, dtstart) - dtstart
    series_end = _align(task.recurrence_end, dtstart) if task.recurrence_end else None
    exceptions = {_align(ex, dtstart) for ex in task.recurrence_exceptions}

    occurrences: list[Task] = []
    # Start early enough to catch an occurrence already running at range_start.
    for occ_start in rule.xafter(range_start - duration, inc=True):
        if occ_start >= range_end:
            break
        if series_end is not None and occ_start > series_end:
            break
        if occ_start in exceptions:
            logger.debug("Skipping exception date %s of task %r", occ_start, task.id)
            continue

        occ_end = occ_start + duration
        if not _intersects(occ_start, occ_end, range_start, range_end):
            continue

        occurrences.append(
            task.model_copy(
                update={
                    "occurrence_id": occurrence_key(task.id, occ_start),
                    "start_datetime": occ_start,
                    "end_datetime": occ_end,
                    "recurrence_rule": None,
                    "recurrence_end": None,
                    "recurrence_exceptions": [],
                }
            )
        )
        if len(occurrences) >= limit:
            logger.warning("Reached max occurrences (%d) for task %r", limit, task.id)
            break

    return occurrences
