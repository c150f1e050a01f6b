"""Timeline axis and bar placement for the Gantt view."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta

from cutover_planner.models import Task, TaskType

LEAD_DAYS = 3
TRAIL_DAYS = 5
EMPTY_SPAN_DAYS = 14
CELL_WIDTH = 44


@dataclass
class PlanSummary:
    task_count: int = 0
    span_days: int = 0
    milestones: int = 0
    by_status: dict[str, int] = field(default_factory=dict)


def date_range(tasks: list[Task], today: date | None = None) -> list[date]:
    """Every day shown on the axis.

    Spans all tasks (filters do not apply, so the axis stays put while
    filtering), padded by ``LEAD_DAYS`` before and ``TRAIL_DAYS`` after.
    """
    if not tasks:
        first = today or date.today()
        last = first + timedelta(days=EMPTY_SPAN_DAYS)
    else:
        first = min(min(t.start, t.end) for t in tasks) - timedelta(days=LEAD_DAYS)
        last = max(max(t.start, t.end) for t in tasks) + timedelta(days=TRAIL_DAYS)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def day_offset(day: date, range_start: date) -> int:
    return (day - range_start).days


def duration_days(start: date, end: date) -> int:
    """Inclusive length in days."""
    return (end - start).days + 1


def bar_geometry(task: Task, range_start: date, cell_width: int = CELL_WIDTH) -> tuple[int, int]:
    """(left, width) in pixels. Milestones take one column; bars never shrink below one."""
    columns = 1 if task.type == TaskType.MILESTONE else max(1, duration_days(task.start, task.end))
    return day_offset(task.start, range_start) * cell_width, columns * cell_width


def plan_summary(tasks: list[Task]) -> PlanSummary:
    if not tasks:
        return PlanSummary()
    first = min(t.start for t in tasks)
    last = max(t.end for t in tasks)
    statuses = Counter(t.status.value for t in tasks)
    return PlanSummary(
        task_count=len(tasks),
        span_days=max(0, duration_days(first, last)),
        milestones=sum(1 for t in tasks if t.type == TaskType.MILESTONE),
        by_status=dict(statuses),
    )
