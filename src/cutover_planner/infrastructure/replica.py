"""Replicated task map for peer-to-peer editing without a server.

Merge policy: whole-task last-writer-wins. Every write (including a delete,
stored as a tombstone) is stamped ``(lamport_clock, replica_id)``; on merge
the entry with the greater stamp wins, so merging is commutative,
associative and idempotent and all replicas that saw the same writes hold
the same tasks. Concurrent edits to different fields of one task do not
combine: the later stamp replaces the whole task.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cutover_planner.models import Task

logger = logging.getLogger(__name__)


class ReplicaStateError(ValueError):
    """Peer or on-disk replica state that cannot be merged."""


@dataclass(frozen=True, order=True)
class Stamp:
    clock: int
    replica: str


@dataclass(frozen=True)
class Entry:
    stamp: Stamp
    value: dict[str, Any] | None  # None marks a deleted task


class ReplicatedTaskMap:
    def __init__(self, replica_id: str | None = None):
        self.replica_id = replica_id or uuid.uuid4().hex[:12]
        self._clock = 0
        self._entries: dict[int, Entry] = {}
        self._observers: list[Callable[[list[int]], None]] = []

    def observe(self, callback: Callable[[list[int]], None]) -> Callable[[], None]:
        """``callback(changed_ids)`` runs after local writes and effective merges."""
        self._observers.append(callback)
        return lambda: self._observers.remove(callback)

    def _emit(self, changed: list[int]) -> None:
        if changed:
            for cb in list(self._observers):
                cb(changed)

    def _tick(self) -> Stamp:
        self._clock += 1
        return Stamp(self._clock, self.replica_id)

    # ---- local writes ----

    def put(self, task: Task) -> None:
        self._entries[task.id] = Entry(self._tick(), task.to_wire())
        self._emit([task.id])

    def remove(self, task_id: int) -> bool:
        existed = self.get(task_id) is not None
        self._entries[task_id] = Entry(self._tick(), None)
        self._emit([task_id])
        return existed

    # ---- reads ----

    def get(self, task_id: int) -> Task | None:
        entry = self._entries.get(task_id)
        if entry is None or entry.value is None:
            return None
        return Task.model_validate(entry.value)

    def tasks(self) -> list[Task]:
        return [Task.model_validate(e.value) for e in self._entries.values() if e.value is not None]

    # ---- replication ----

    def state(self) -> dict[str, Any]:
        return {
            "replica": self.replica_id,
            "clock": self._clock,
            "entries": {
                str(tid): {"clock": e.stamp.clock, "replica": e.stamp.replica, "value": e.value}
                for tid, e in self._entries.items()
            },
        }

    def merge(self, state: dict[str, Any]) -> list[int]:
        """Fold another replica's state into this one. Returns the ids that changed.

        The whole state is checked first; on ``ReplicaStateError`` nothing is merged.
        """
        incoming = _parse_entries(state)
        peer_clock = _as_int(state.get("clock", 0), "clock")
        changed: list[int] = []
        for tid, entry in incoming:
            current = self._entries.get(tid)
            if current is None or entry.stamp > current.stamp:
                self._entries[tid] = entry
                changed.append(tid)
            self._clock = max(self._clock, entry.stamp.clock)
        self._clock = max(self._clock, peer_clock)
        logger.debug("Merged state from replica %s: %d changed", state.get("replica"), len(changed))
        self._emit(changed)
        return changed

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.state(), indent=2))

    @classmethod
    def load(cls, path: Path, replica_id: str | None = None) -> ReplicatedTaskMap:
        if not path.exists():
            return cls(replica_id)
        state = read_state(path)
        replica = cls(replica_id or state.get("replica"))
        replica.merge(state)
        return replica


def read_state(path: Path) -> dict[str, Any]:
    """Read a replica state file written by ``ReplicatedTaskMap.save``."""
    try:
        state = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ReplicaStateError(f"Invalid replica state in {path}: {e}") from None
    if not isinstance(state, dict):
        raise ReplicaStateError(f"Invalid replica state in {path}: expected an object")
    return state


def _as_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ReplicaStateError(f"Invalid replica state: {what} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ReplicaStateError(f"Invalid replica state: {what} must be an integer") from None


def _parse_entries(state: Any) -> list[tuple[int, Entry]]:
    if not isinstance(state, dict):
        raise ReplicaStateError("Invalid replica state: expected an object")
    entries = state.get("entries", {})
    if not isinstance(entries, dict):
        raise ReplicaStateError("Invalid replica state: 'entries' must be an object")

    parsed: list[tuple[int, Entry]] = []
    for key, raw in entries.items():
        tid = _as_int(key, f"entry key {key!r}")
        if not isinstance(raw, dict) or "clock" not in raw or "replica" not in raw:
            raise ReplicaStateError(f"Invalid replica state: entry {key} needs clock and replica")
        stamp = Stamp(_as_int(raw["clock"], f"clock of entry {key}"), str(raw["replica"]))
        value = raw.get("value")
        if value is not None:
            try:
                task = Task.model_validate(value)
            except ValidationError as e:
                raise ReplicaStateError(f"Invalid task in entry {key}: {e}") from None
            if task.id != tid:
                raise ReplicaStateError(f"Entry {key} holds task {task.id}")
            value = task.to_wire()
        parsed.append((tid, Entry(stamp, value)))
    return parsed


class ReplicaBackend:
    """``TaskBackend`` over a ``ReplicatedTaskMap``, persisted to ``path`` after each write."""

    def __init__(self, replica: ReplicatedTaskMap, path: Path | None = None):
        self.replica = replica
        self.path = path

    def _persist(self) -> None:
        if self.path is not None:
            self.replica.save(self.path)

    def list_tasks(self) -> list[Task]:
        return sorted(self.replica.tasks(), key=lambda t: (t.order, t.id))

    def upsert_task(self, task: Task) -> int:
        self.replica.put(task)
        self._persist()
        return task.id

    def delete_task(self, task_id: int) -> bool:
        existed = self.replica.remove(task_id)
        self._persist()
        return existed

    def sync_tasks(self, tasks: list[Task]) -> None:
        for t in tasks:
            self.replica.put(t)
        self._persist()

    def replace_tasks(self, tasks: list[Task]) -> None:
        keep = {t.id for t in tasks}
        for t in self.replica.tasks():
            if t.id not in keep:
                self.replica.remove(t.id)
        for t in tasks:
            self.replica.put(t)
        self._persist()

    def reset_tasks(self) -> None:
        for t in self.replica.tasks():
            self.replica.remove(t.id)
        self._persist()
