# src/focus_timeline/core/models.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from enum import StrEnum

MINUTES_PER_DAY = 24 * 60
LAST_MINUTE_OF_DAY = MINUTES_PER_DAY - 1  # 23:59
MIN_SLOT_MINUTES = 15


class OriginalKind(StrEnum):
    """Source table an entity was read from. Routes every write-back."""

    TIME_BLOCK = "time_block"
    MEETING = "meeting"
    TODO = "todo"

    @property
    def wire_name(self) -> str:
        # Skip records store the legacy discriminant ("timeblock").
        if self is OriginalKind.TIME_BLOCK:
            return "timeblock"
        return self.value


class BlockType(StrEnum):
    FOCUS = "focus"
    MEETING = "meeting"
    PERSONAL = "personal"
    GOAL = "goal"
    PROJECT = "project"
    ROUTINE = "routine"
    WORK = "work"
    SOCIAL = "social"
    TODO = "todo"

    @classmethod
    def from_wire(cls, raw: object) -> BlockType:
        if not isinstance(raw, str) or not raw.strip():
            return cls.PERSONAL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.PERSONAL


class Priority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_wire(cls, raw: object) -> Priority:
        if not isinstance(raw, str) or not raw.strip():
            return cls.NORMAL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.NORMAL


class KindTag(StrEnum):
    TIME_BLOCK = "time_block"
    MEETING = "meeting"
    TODO = "todo"
    SOCIAL = "social"


@dataclass(frozen=True, slots=True)
class Kind:
    """
    Presentation category of an entity.

    Closed variant: TimeBlock(subtype) | Meeting | Todo | Social.
    Only TimeBlock carries a subtype. Not 1:1 with OriginalKind.
    """

    tag: KindTag
    block_type: BlockType | None = None

    def __post_init__(self) -> None:
        if self.tag is KindTag.TIME_BLOCK and self.block_type is None:
            raise ValueError("TimeBlock kind requires a block_type")
        if self.tag is not KindTag.TIME_BLOCK and self.block_type is not None:
            raise ValueError(f"{self.tag.value} kind does not take a block_type")

    @classmethod
    def time_block(cls, block_type: BlockType) -> Kind:
        return cls(KindTag.TIME_BLOCK, block_type)

    @classmethod
    def meeting(cls) -> Kind:
        return cls(KindTag.MEETING)

    @classmethod
    def todo(cls) -> Kind:
        return cls(KindTag.TODO)

    @classmethod
    def social(cls) -> Kind:
        return cls(KindTag.SOCIAL)

    @property
    def display_name(self) -> str:
        if self.block_type is not None:
            return self.block_type.value.capitalize()
        if self.tag is KindTag.TODO:
            return "Task"
        return self.tag.value.capitalize()


def clamp_minutes(total: int) -> int:
    """Clamp a minute-of-day into 00:00..23:59 (no rollover to the next day)."""
    return max(0, min(LAST_MINUTE_OF_DAY, total))


def split_minutes(total: int) -> tuple[int, int]:
    return divmod(total, 60)


def format_wire_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}:00"


def _format_12h(hour: int, minute: int) -> str:
    period = "PM" if hour >= 12 else "AM"
    h = 12 if hour == 0 else (hour - 12 if hour > 12 else hour)
    return f"{h}:{minute:02d} {period}"


@dataclass(frozen=True, slots=True)
class UnifiedTask:
    """
    Source-agnostic timeline entity.

    Time is kept as wall-clock components (start/end hour and minute) on a
    calendar date. Timestamps are derived on demand and never stored.
    """

    id: str
    original_id: str
    original_kind: OriginalKind
    kind: Kind

    title: str
    date: date

    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int

    priority: Priority = Priority.NORMAL
    is_completed: bool = False
    is_skipped: bool = False
    skip_reason: str | None = None

    description: str | None = None
    notes: str | None = None
    meeting_link: str | None = None
    is_recurring: bool = False

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_minutes(self) -> int:
        return self.end_hour * 60 + self.end_minute

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def derived_start(self) -> datetime:
        return datetime.combine(self.date, time(self.start_hour, self.start_minute))

    @property
    def derived_end(self) -> datetime:
        end = datetime.combine(self.date, time(self.end_hour, self.end_minute))
        # Inverted components (end before start) are read as "same day, no extent".
        return max(end, self.derived_start)

    @property
    def time_text(self) -> str:
        return f"{_format_12h(self.start_hour, self.start_minute)} - {_format_12h(self.end_hour, self.end_minute)}"

    def is_upcoming(self, now: datetime) -> bool:
        return self.derived_start > now

    def is_now(self, now: datetime) -> bool:
        return self.derived_start <= now <= self.derived_end

    def is_past(self, now: datetime) -> bool:
        return self.derived_end < now

    def with_times(self, start_total: int, end_total: int) -> UnifiedTask:
        """Return a copy with new wall-clock start/end given as minutes of day."""
        sh, sm = split_minutes(clamp_minutes(start_total))
        eh, em = split_minutes(clamp_minutes(end_total))
        return replace(self, start_hour=sh, start_minute=sm, end_hour=eh, end_minute=em)


@dataclass(frozen=True, slots=True)
class TaskLayout:
    """Column assignment for one entity in one render pass."""

    task_id: str
    column: int
    total_columns: int


@dataclass(frozen=True, slots=True)
class SkipMark:
    """A persisted "skipped" marker for one source record."""

    original_kind: OriginalKind
    original_id: str
    reason: str | None


@dataclass(frozen=True, slots=True)
class NewTaskFields:
    """Fields for a drag-create / quick-add gesture."""

    title: str
    date: date
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int

    original_kind: OriginalKind = OriginalKind.TIME_BLOCK
    block_type: BlockType = BlockType.PERSONAL
    priority: Priority = Priority.NORMAL
    description: str | None = None
    meeting_link: str | None = None
