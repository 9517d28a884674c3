"""Overlap layout engine for day views.

Tasks that overlap in time are drawn side by side with a growing left offset
(Google Calendar style). The engine splits a day's tasks into groups of
transitively overlapping intervals and gives every task a layer inside its
group. Layer 0 is the widest, bottom-most lane; higher layers are shifted right
and stacked above.

All functions here are pure: callers re-run :func:`calculate_layout` whenever
the task set for a day changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from app.domain.errors import DuplicateTaskKeyError
from app.domain.models import LayoutConfig, LayoutResult, Task, TaskKey, TimeInterval

logger = logging.getLogger(__name__)


def hour_float(value: datetime) -> float:
    """Wall-clock time of *value* as fractional hours (10:30 -> 10.5).

    No timezone conversion happens here; the datetime's own fields are used.
    """
    return value.hour + value.minute / 60 + value.second / 3600


def to_interval(task: Task) -> TimeInterval | None:
    """Project *task* onto its day, or ``None`` if it cannot be laid out.

    The end is measured from the start's calendar date, so a task ending after
    midnight yields an end above 24.
    """
    if task.start_datetime is None or task.end_datetime is None:
        return None

    start = hour_float(task.start_datetime)
    days = (task.end_datetime.date() - task.start_datetime.date()).days
    end = hour_float(task.end_datetime) + 24 * days
    if end < start:
        return None
    return TimeInterval(key=task.key, start=start, end=end)


def _ordering(interval: TimeInterval) -> tuple[float, float, str]:
    # Start ascending, longest first, then key so identical spans stay stable.
    return (interval.start, -interval.duration, str(interval.key))


def find_overlapping_groups(intervals: Iterable[TimeInterval]) -> list[list[TimeInterval]]:
    """Partition intervals into maximal runs of transitively overlapping spans.

    A single sweep in start order: an interval joins the current group when it
    starts before the latest end seen in that group.
    """
    groups: list[list[TimeInterval]] = []
    current: list[TimeInterval] = []
    group_end = 0.0

    for interval in sorted(intervals, key=_ordering):
        if current and interval.start < group_end:
            current.append(interval)
            group_end = max(group_end, interval.end)
        else:
            if current:
                groups.append(current)
            current = [interval]
            group_end = interval.end

    if current:
        groups.append(current)
    return groups


def assign_layers(group: Iterable[TimeInterval]) -> dict[TaskKey, int]:
    """Greedy first-fit layering of one overlap group.

    Each interval goes to the lowest layer holding nothing it overlaps; a new
    layer is opened when every existing one conflicts.
    """
    layers: list[list[TimeInterval]] = []
    assigned: dict[TaskKey, int] = {}

    for interval in sorted(group, key=_ordering):
        for index, members in enumerate(layers):
            if not any(interval.overlaps(other) for other in members):
                members.append(interval)
                assigned[interval.key] = index
                break
        else:
            layers.append([interval])
            assigned[interval.key] = len(layers) - 1

    return assigned


def _collect_intervals(tasks: Iterable[Task], config: LayoutConfig) -> list[TimeInterval]:
    intervals: list[TimeInterval] = []
    seen: set[TaskKey] = set()

    for task in tasks:
        interval = to_interval(task)
        if interval is None:
            logger.debug("Task %r has no usable time span; skipping layout", task.key)
            continue
        if interval.key in seen:
            if config.strict_keys:
                raise DuplicateTaskKeyError(interval.key)
            logger.warning(
                "Duplicate layout key %r; the later task replaces the earlier one",
                interval.key,
            )
            intervals = [i for i in intervals if i.key != interval.key]
        seen.add(interval.key)
        intervals.append(interval)

    return intervals


def _build_result(
    key: TaskKey, layer: int, total_layers: int, config: LayoutConfig
) -> LayoutResult:
    offset = layer * config.offset_unit
    return LayoutResult(
        task_key=key,
        layer=layer,
        total_layers=total_layers,
        left_offset=offset,
        width=f"calc(100% - {offset}px)",
        z_index=config.base_z_index + layer,
    )


def calculate_layout(
    tasks: Iterable[Task] | None, config: LayoutConfig | None = None
) -> dict[TaskKey, LayoutResult]:
    """Compute a :class:`LayoutResult` for every task with a usable time span.

    Tasks missing a bound, or ending before they start, are left out of the
    returned mapping.
    """
    if not tasks:
        return {}
    config = config or LayoutConfig.from_settings()

    layout: dict[TaskKey, LayoutResult] = {}
    for group in find_overlapping_groups(_collect_intervals(tasks, config)):
        layers = assign_layers(group)
        total_layers = max(layers.values()) + 1
        for key, layer in layers.items():
            layout[key] = _build_result(key, layer, total_layers, config)

    return layout


def max_total_layers(results: Iterable[LayoutResult]) -> int:
    """Deepest group among *results*; 1 when there are none."""
    return max((result.total_layers for result in results), default=1)


def get_max_layers(
    tasks: Iterable[Task] | None, config: LayoutConfig | None = None
) -> int:
    """Largest group depth of the day; at least 1 so a column is always reserved."""
    layout = calculate_layout(tasks, config)
    return max_total_layers(layout.values())


def has_too_many_layers(result: LayoutResult, config: LayoutConfig | None = None) -> bool:
    config = config or LayoutConfig.from_settings()
    return result.total_layers > config.max_visible_layers


def get_effective_width_percent(
    result: LayoutResult, config: LayoutConfig | None = None
) -> float:
    """Rough share of the column left to *result* after its offset.

    Assumes a column of about 200 units; only meant for secondary decisions
    such as truncating the title.
    """
    config = config or LayoutConfig.from_settings()
    offset = result.layer * config.offset_unit
    return max(config.min_effective_width_percent, 100 - offset / 2)
