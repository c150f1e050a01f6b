# tests/test_timeline.py

from __future__ import annotations

from datetime import date

from cutover_planner.core.timeline import (
    CELL_WIDTH,
    EMPTY_SPAN_DAYS,
    bar_geometry,
    date_range,
    duration_days,
    plan_summary,
)
from cutover_planner.models import default_tasks

from .fakes import make_task


def test_date_range_pads_before_and_after() -> None:
    tasks = [
        make_task(1, start=date(2025, 3, 10), end=date(2025, 3, 12)),
        make_task(2, start=date(2025, 3, 11), end=date(2025, 3, 20)),
    ]
    days = date_range(tasks)
    assert days[0] == date(2025, 3, 7)
    assert days[-1] == date(2025, 3, 25)
    assert len(days) == (days[-1] - days[0]).days + 1


def test_date_range_without_tasks_starts_today() -> None:
    today = date(2025, 1, 1)
    days = date_range([], today=today)
    assert days[0] == today
    assert len(days) == EMPTY_SPAN_DAYS + 1


def test_bar_geometry() -> None:
    start = date(2025, 3, 1)
    task = make_task(1, start=date(2025, 3, 3), end=date(2025, 3, 5))
    assert bar_geometry(task, start) == (2 * CELL_WIDTH, 3 * CELL_WIDTH)

    milestone = make_task(2, type="milestone", start=date(2025, 3, 4), end=date(2025, 3, 9))
    assert bar_geometry(milestone, start) == (3 * CELL_WIDTH, CELL_WIDTH)

    inverted = make_task(3, start=date(2025, 3, 5), end=date(2025, 3, 2))
    assert bar_geometry(inverted, start)[1] == CELL_WIDTH


def test_duration_is_inclusive() -> None:
    assert duration_days(date(2025, 3, 1), date(2025, 3, 1)) == 1
    assert duration_days(date(2025, 3, 1), date(2025, 3, 7)) == 7


def test_plan_summary_on_seed_plan() -> None:
    summary = plan_summary(default_tasks())
    assert summary.task_count == 10
    assert summary.milestones == 1
    assert summary.span_days == duration_days(date(2025, 3, 17), date(2025, 5, 4))
    assert summary.by_status == {"done": 1, "todo": 9}


def test_plan_summary_empty() -> None:
    assert plan_summary([]).task_count == 0
