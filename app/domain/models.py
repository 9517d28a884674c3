"""Domain models for the overlap layout service."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import Settings, settings

TaskKey = int | str


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class Task(BaseModel):
    """A calendar task as handed over by the task store.

    Either bound may be missing; such tasks are accepted here and simply get
    no layout.
    """

    id: TaskKey
    occurrence_id: str | None = None
    title: str = ""
    description: str | None = None
    location: str | None = None
    color: str = "#3788d8"
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    recurrence_rule: str | None = None
    recurrence_end: datetime | None = None
    recurrence_exceptions: list[datetime] = Field(default_factory=list)

    @property
    def key(self) -> TaskKey:
        """Layout key: the occurrence id for expanded recurring tasks."""
        if self.occurrence_id:
            return self.occurrence_id
        return self.id

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule and self.recurrence_rule.strip())


# ---------------------------------------------------------------------------
# Engine types
# ---------------------------------------------------------------------------


class TimeInterval(BaseModel):
    """A task reduced to fractional hours of its day (10:30 -> 10.5)."""

    model_config = ConfigDict(frozen=True)

    key: TaskKey
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def overlaps(self, other: TimeInterval) -> bool:
        # Touching bounds (end == start) do not overlap.
        return self.start < other.end and self.end > other.start


class LayoutConfig(BaseModel):
    """Named parameters of the layout engine."""

    model_config = ConfigDict(frozen=True)

    offset_unit: int = Field(default=26, ge=0)
    max_visible_layers: int = Field(default=5, ge=1)
    base_z_index: int = 10
    min_effective_width_percent: float = Field(default=20.0, ge=0, le=100)
    strict_keys: bool = False

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> LayoutConfig:
        source = source or settings
        return cls(
            offset_unit=source.LAYER_OFFSET_UNIT,
            max_visible_layers=source.MAX_VISIBLE_LAYERS,
            base_z_index=source.BASE_Z_INDEX,
            min_effective_width_percent=source.MIN_EFFECTIVE_WIDTH_PERCENT,
            strict_keys=source.STRICT_KEYS,
        )


class LayoutResult(BaseModel):
    """Rendering directives for one task."""

    task_key: TaskKey
    layer: int = Field(ge=0)
    total_layers: int = Field(ge=1)
    left_offset: int
    width: str
    z_index: int

    @property
    def left_offset_px(self) -> str:
        return f"{self.left_offset}px"


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class DayLayout(BaseModel):
    day: date
    max_layers: int = 1
    too_many_layers: bool = False
    results: list[LayoutResult] = Field(default_factory=list)
    excluded_keys: list[TaskKey] = Field(default_factory=list)


class LayoutRequest(BaseModel):
    tasks: list[Task] = Field(default_factory=list)


class LayoutResponse(BaseModel):
    max_layers: int
    results: list[LayoutResult] = Field(default_factory=list)


class DayLayoutRequest(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    day: date
    timezone: str | None = None


class WeekLayoutRequest(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    week_start: date
    timezone: str | None = None
