"""Preparation of day and week views for the layout engine.

The engine reads wall-clock fields straight off each datetime, so everything
handed to it here is first converted to the viewer's timezone and clipped to
the visible day.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo

from dateutil import tz as dateutil_tz

from app.core.config import settings
from app.domain.errors import UnknownTimezoneError
from app.domain.models import DayLayout, LayoutConfig, Task
from app.services.occurrences import expand_occurrences
from app.services.overlap_layout import (
    calculate_layout,
    has_too_many_layers,
    max_total_layers,
)

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | tzinfo | None) -> tzinfo:
    """Look up a timezone by IANA name, falling back to the configured default."""
    if isinstance(name, tzinfo):
        return name
    name = name or settings.DEFAULT_TIMEZONE
    zone = dateutil_tz.gettz(name)
    if zone is None:
        raise UnknownTimezoneError(name)
    return zone


def to_local_wall_clock(value: datetime, zone: tzinfo) -> datetime:
    """Naive wall-clock time of *value* in *zone*.

    Naive input is taken to be wall-clock time already and returned as is.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(zone).replace(tzinfo=None)


def tasks_for_day(tasks: list[Task], day: date, zone: tzinfo) -> list[Task]:
    """Occurrences of *tasks* visible on *day*, in local time, clipped to the day.

    Tasks lacking a bound are passed through so the caller can report them as
    not laid out.
    """
    day_start = datetime.combine(day, time())
    day_end = day_start + timedelta(days=1)
    range_start = day_start.replace(tzinfo=zone)
    range_end = day_end.replace(tzinfo=zone)

    visible: list[Task] = []
    for task in tasks:
        if task.start_datetime is None or task.end_datetime is None:
            visible.append(task)
            continue

        for occurrence in expand_occurrences(task, range_start, range_end):
            start = to_local_wall_clock(occurrence.start_datetime, zone)
            end = to_local_wall_clock(occurrence.end_datetime, zone)
            visible.append(
                occurrence.model_copy(
                    update={
                        "start_datetime": max(start, day_start),
                        "end_datetime": min(end, day_end),
                    }
                )
            )

    return visible


def build_day_layout(
    tasks: list[Task],
    day: date,
    zone: str | tzinfo | None = None,
    config: LayoutConfig | None = None,
) -> DayLayout:
    zone = resolve_timezone(zone)
    config = config or LayoutConfig.from_settings()

    day_tasks = tasks_for_day(tasks, day, zone)
    layout = calculate_layout(day_tasks, config)

    results = sorted(layout.values(), key=lambda r: (r.layer, str(r.task_key)))
    excluded = [task.key for task in day_tasks if task.key not in layout]
    if excluded:
        logger.debug("%d task(s) on %s received no layout", len(excluded), day)

    return DayLayout(
        day=day,
        max_layers=max_total_layers(results),
        too_many_layers=any(has_too_many_layers(r, config) for r in results),
        results=results,
        excluded_keys=excluded,
    )


def build_week_layout(
    tasks: list[Task],
    week_start: date,
    zone: str | tzinfo | None = None,
    config: LayoutConfig | None = None,
) -> list[DayLayout]:
    """Seven independent day layouts starting at *week_start*."""
    zone = resolve_timezone(zone)
    return [
        build_day_layout(tasks, week_start + timedelta(days=offset), zone, config)
        for offset in range(7)
    ]
