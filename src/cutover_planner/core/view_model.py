"""Render-ready task list: filtered, sorted and flattened into indented rows.

The same row sequence drives the list panel and the timeline, so both stay
aligned row-for-row. Everything here is a pure function of its inputs.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from cutover_planner.core.hierarchy import find_cycle_members
from cutover_planner.models import SortConfig, Task, TaskFilters


@dataclass(frozen=True)
class TaskRow:
    task: Task
    depth: int
    has_children: bool


def filter_tasks(tasks: Iterable[Task], filters: TaskFilters | None = None) -> list[Task]:
    filters = filters or TaskFilters()
    return [t for t in tasks if filters.matches(t)]


def sort_tasks(tasks: Iterable[Task], sort: SortConfig | None = None) -> list[Task]:
    """Stable sort on a single key; ties keep their input order in both directions.

    ``start``/``end`` are ``date`` values, so they compare chronologically.
    """
    sort = sort or SortConfig()
    return sorted(tasks, key=lambda t: getattr(t, sort.key), reverse=sort.direction == "desc")


def build_view_model(
    tasks: Iterable[Task],
    filters: TaskFilters | None = None,
    sort: SortConfig | None = None,
) -> list[TaskRow]:
    """Flatten the filtered task forest into ``TaskRow``s.

    Roots are tasks without a parent, tasks whose parent is not in the
    filtered set, and tasks on a parent cycle. Children of a collapsed task
    are skipped. Each level is sorted independently with the same key.
    """
    visible = filter_tasks(tasks, filters)
    ids = {t.id for t in visible}
    cyclic = find_cycle_members(visible)

    children: dict[int, list[Task]] = defaultdict(list)
    roots: list[Task] = []
    for t in visible:
        if t.parent_id is None or t.parent_id not in ids or t.id in cyclic:
            roots.append(t)
        else:
            children[t.parent_id].append(t)

    rows: list[TaskRow] = []
    # explicit stack: hierarchies deeper than the recursion limit still flatten
    stack = [(t, 0) for t in reversed(sort_tasks(roots, sort))]
    while stack:
        task, depth = stack.pop()
        kids = children.get(task.id)
        rows.append(TaskRow(task=task, depth=depth, has_children=bool(kids)))
        if kids and task.is_expanded:
            stack.extend((c, depth + 1) for c in reversed(sort_tasks(kids, sort)))
    return rows
