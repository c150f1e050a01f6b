"""Task store: the single owner of the live task collection.

Every mutation is written through a ``TaskBackend`` first; the cached
collection only changes (and subscribers only hear about it) once the
backend call succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, timedelta
from typing import Any, Protocol

from cutover_planner.core.hierarchy import collect_descendants
from cutover_planner.models import Task, TaskStatus, TaskType, default_tasks, next_task_id

logger = logging.getLogger(__name__)

Subscriber = Callable[[list[Task]], None]


class StoreError(RuntimeError):
    """A backend call failed; the in-memory collection was left as it was."""


class TaskBackend(Protocol):
    def list_tasks(self) -> list[Task]: ...
    def upsert_task(self, task: Task) -> int: ...
    def delete_task(self, task_id: int) -> bool: ...
    def sync_tasks(self, tasks: list[Task]) -> None: ...
    def replace_tasks(self, tasks: list[Task]) -> None: ...
    def reset_tasks(self) -> None: ...


class TaskStore:
    def __init__(self, backend: TaskBackend, *, seed_defaults: bool = True) -> None:
        self._backend = backend
        self._seed_defaults = seed_defaults
        self._tasks: list[Task] = []
        self._loaded = False
        self._subscribers: list[Subscriber] = []

    @property
    def tasks(self) -> list[Task]:
        self._ensure_loaded()
        return list(self._tasks)

    def get(self, task_id: int) -> Task | None:
        self._ensure_loaded()
        return next((t for t in self._tasks if t.id == task_id), None)

    # ---- subscription ----

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` now and after every completed mutation."""
        self._ensure_loaded()
        self._subscribers.append(callback)
        callback(list(self._tasks))

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for cb in list(self._subscribers):
            cb(list(self._tasks))

    def reload(self) -> list[Task]:
        tasks = self._call("load tasks", self._backend.list_tasks)
        if not tasks and self._seed_defaults:
            tasks = default_tasks()
            self._call("seed default tasks", self._backend.sync_tasks, tasks)
            logger.info("Backend was empty; seeded %d default tasks", len(tasks))
        self._tasks = list(tasks)
        self._loaded = True
        self._notify()
        return list(self._tasks)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.reload()

    def _call(self, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception as e:
            logger.warning("Store: %s failed: %s", action, e)
            raise StoreError(f"Failed to {action}: {e}") from e

    # ---- mutations ----

    def add_task(self, task: Task) -> Task:
        self._ensure_loaded()
        new_id = self._call("save task", self._backend.upsert_task, task)
        stored = task.model_copy(update={"id": new_id or task.id}, deep=True)
        self._tasks.append(stored)
        logger.debug("Task added id=%s parent=%s", stored.id, stored.parent_id)
        self._notify()
        return stored

    def update_task(self, task: Task) -> Task:
        """Full replace by id."""
        self._ensure_loaded()
        self._call("save task", self._backend.upsert_task, task)
        stored = task.model_copy(deep=True)
        for i, t in enumerate(self._tasks):
            if t.id == task.id:
                self._tasks[i] = stored
                break
        else:
            self._tasks.append(stored)
        self._notify()
        return stored

    def delete_task(self, task_id: int) -> None:
        self._ensure_loaded()
        self._call("delete task", self._backend.delete_task, task_id)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        self._notify()

    def delete_cascade(self, task_id: int) -> list[int]:
        """Delete a task and all of its descendants. Returns the removed ids."""
        self._ensure_loaded()
        ids = collect_descendants(self._tasks, task_id)
        deleted: set[int] = set()
        try:
            # children before parents, so a failure part-way never leaves orphans
            for tid in reversed(ids):
                self._call("delete task", self._backend.delete_task, tid)
                deleted.add(tid)
        finally:
            if deleted:
                self._tasks = [t for t in self._tasks if t.id not in deleted]
                self._notify()
        logger.info("Deleted task %s with %d descendants", task_id, len(ids) - 1)
        return ids

    def replace_all_tasks(self, tasks: list[Task]) -> None:
        self._ensure_loaded()
        self._call("replace tasks", self._backend.replace_tasks, tasks)
        self._tasks = [t.model_copy(deep=True) for t in tasks]
        self._notify()

    def reset_to_default(self) -> None:
        self._ensure_loaded()
        tasks = default_tasks()
        self._call("reset tasks", self._backend.replace_tasks, tasks)
        self._tasks = tasks
        self._notify()

    # ---- helpers built on the mutations ----

    def new_task(
        self,
        parent_id: int | None = None,
        reference_id: int | None = None,
        today: date | None = None,
    ) -> Task:
        """Build (not persist) a task with sensible defaults.

        Dates come from the reference task, else the last task, else
        today..today+3.
        """
        tasks = self.tasks
        today = today or date.today()
        start, end = today, today + timedelta(days=3)
        ref = next((t for t in tasks if t.id == reference_id), None) or (tasks[-1] if tasks else None)
        if ref is not None:
            start, end = ref.start, ref.end
        return Task(
            id=next_task_id(),
            name="New Subtask" if parent_id is not None else "New Task",
            start=start,
            end=end,
            type=TaskType.DOWNSTREAM,
            status=TaskStatus.TODO,
            owner="TBD",
            dependencies=[],
            order=max((t.order for t in tasks), default=0) + 1,
            parent_id=parent_id,
            is_expanded=True,
        )

    def add_subtask(self, parent_id: int, today: date | None = None) -> Task:
        parent = self.get(parent_id)
        if parent is None:
            raise StoreError(f"Task {parent_id} not found")
        child = self.add_task(self.new_task(parent_id=parent_id, reference_id=parent_id, today=today))
        self.expand(parent_id)
        return child

    def expand(self, task_id: int) -> None:
        task = self.get(task_id)
        if task is not None and not task.is_expanded:
            self.update_task(task.model_copy(update={"is_expanded": True}))

    def toggle_expanded(self, task_id: int) -> Task:
        task = self.get(task_id)
        if task is None:
            raise StoreError(f"Task {task_id} not found")
        return self.update_task(task.model_copy(update={"is_expanded": not task.is_expanded}))
