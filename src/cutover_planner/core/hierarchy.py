"""Parent/child and dependency helpers over a flat task collection."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from cutover_planner.models import Task


def find_cycle_members(tasks: Iterable[Task]) -> set[int]:
    """Return ids of tasks that sit on a parent cycle (including self-parents).

    Only links that resolve inside ``tasks`` are followed; a dangling parent id
    ends the walk.
    """
    parent_of = {t.id: t.parent_id for t in tasks}
    cyclic: set[int] = set()
    settled: set[int] = set()
    for start in parent_of:
        path: list[int] = []
        on_path: set[int] = set()
        node = start
        while node is not None and node in parent_of and node not in settled:
            if node in on_path:
                cyclic.update(path[path.index(node):])
                break
            path.append(node)
            on_path.add(node)
            node = parent_of[node]
        settled.update(path)
    return cyclic


def collect_descendants(tasks: Iterable[Task], task_id: int) -> list[int]:
    """``task_id`` followed by every transitive child, breadth-first."""
    children: dict[int, list[int]] = defaultdict(list)
    for t in tasks:
        if t.parent_id is not None:
            children[t.parent_id].append(t.id)

    ids = [task_id]
    seen = {task_id}
    queue = [task_id]
    while queue:
        pid = queue.pop(0)
        for cid in children.get(pid, []):
            if cid in seen:
                continue
            seen.add(cid)
            ids.append(cid)
            queue.append(cid)
    return ids


def relationships(tasks: list[Task], task_id: int) -> tuple[list[int], list[int]]:
    """(predecessors, successors) of the focused task, by dependency links."""
    current = next((t for t in tasks if t.id == task_id), None)
    if current is None:
        return [], []
    successors = [t.id for t in tasks if task_id in t.dependencies]
    return list(current.dependencies), successors


def unique_owners(tasks: Iterable[Task]) -> list[str]:
    owners: list[str] = []
    for t in tasks:
        if t.owner not in owners:
            owners.append(t.owner)
    return owners
