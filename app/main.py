"""FastAPI application — stateless HTTP front for the overlap layout engine."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException

from app.core.config import settings
from app.core.log import configure_logging
from app.domain.errors import DuplicateTaskKeyError, LayoutError
from app.domain.models import (
    DayLayout,
    DayLayoutRequest,
    LayoutConfig,
    LayoutRequest,
    LayoutResponse,
    Task,
    WeekLayoutRequest,
)
from app.services.day_view import build_day_layout, build_week_layout
from app.services.occurrences import is_valid_recurrence_rule
from app.services.overlap_layout import calculate_layout, max_total_layers

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.PROJECT_NAME)

layout_config = LayoutConfig.from_settings(settings)


def _http_error(exc: LayoutError) -> HTTPException:
    status = 422 if isinstance(exc, DuplicateTaskKeyError) else 400
    return HTTPException(status_code=status, detail=str(exc))


def _check_recurrence_rules(tasks: list[Task]) -> None:
    invalid = [t.id for t in tasks if not is_valid_recurrence_rule(t.recurrence_rule)]
    if invalid:
        raise HTTPException(
            status_code=422, detail=f"Invalid recurrence rule for task(s): {invalid}"
        )


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/layout", response_model=LayoutResponse)
def layout_tasks(payload: LayoutRequest) -> LayoutResponse:
    """Lay out the given tasks as they are, without any day filtering."""
    try:
        layout = calculate_layout(payload.tasks, layout_config)
    except LayoutError as exc:
        raise _http_error(exc) from exc

    results = sorted(layout.values(), key=lambda r: (r.layer, str(r.task_key)))
    return LayoutResponse(
        max_layers=max_total_layers(results),
        results=results,
    )


@app.post("/layout/day", response_model=DayLayout)
def layout_day(payload: DayLayoutRequest) -> DayLayout:
    """Lay out the occurrences visible on one day in the viewer's timezone."""
    _check_recurrence_rules(payload.tasks)
    try:
        return build_day_layout(
            payload.tasks, payload.day, payload.timezone, layout_config
        )
    except LayoutError as exc:
        raise _http_error(exc) from exc


@app.post("/layout/week", response_model=list[DayLayout])
def layout_week(payload: WeekLayoutRequest) -> list[DayLayout]:
    """Return seven day layouts starting at ``week_start``."""
    _check_recurrence_rules(payload.tasks)
    try:
        return build_week_layout(
            payload.tasks, payload.week_start, payload.timezone, layout_config
        )
    except LayoutError as exc:
        raise _http_error(exc) from exc
