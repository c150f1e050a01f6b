"""Pydantic models for cutover tasks, snapshots and list view settings."""

from __future__ import annotations

import enum
import threading
import time
from datetime import date, datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

WILDCARD = "all"


class TaskType(enum.StrEnum):
    PREP = "prep"
    CUTOVER = "cutover"
    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"
    MILESTONE = "milestone"


class TaskStatus(enum.StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


TASK_TYPE_LABELS: dict[TaskType, str] = {
    TaskType.PREP: "Preparation / wrap-up",
    TaskType.CUTOVER: "Core cutover",
    TaskType.UPSTREAM: "Upstream integration",
    TaskType.DOWNSTREAM: "Downstream integration",
    TaskType.MILESTONE: "Milestone",
}


def parse_day(value: Any) -> date:
    """Parse a calendar day. Accepts ``YYYY-MM-DD`` with or without zero padding."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        parts = value.strip().split("-")
        if len(parts) == 3 and all(p.isdigit() for p in parts):
            return date(int(parts[0]), int(parts[1]), int(parts[2]))
    raise ValueError(f"not a calendar date: {value!r}")


class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    start: date
    end: date  # inclusive; end >= start is expected but not enforced
    type: TaskType
    status: TaskStatus
    owner: str
    dependencies: list[int] = Field(default_factory=list)  # advisory predecessor ids
    order: int = 0
    parent_id: int | None = Field(default=None, alias="parentId")
    is_expanded: bool = Field(default=True, alias="isExpanded")

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_day(cls, value: Any) -> date:
        return parse_day(value)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _default_dependencies(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the camelCase field names of the HTTP API."""
        return self.model_dump(mode="json", by_alias=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    name: str
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    tasks: list[Task] = Field(default_factory=list)


class TaskFilters(BaseModel):
    type: str = WILDCARD
    owner: str = WILDCARD
    status: str = WILDCARD

    def matches(self, task: Task) -> bool:
        if self.type != WILDCARD and task.type != self.type:
            return False
        if self.owner != WILDCARD and task.owner != self.owner:
            return False
        if self.status != WILDCARD and task.status != self.status:
            return False
        return True


SortKey = Literal["order", "start", "end", "name", "owner", "status", "type", "id"]


class SortConfig(BaseModel):
    key: SortKey = "order"
    direction: Literal["asc", "desc"] = "asc"


_last_id = 0
_id_lock = threading.Lock()


def next_task_id() -> int:
    """Millisecond timestamp id, strictly increasing within this process."""
    global _last_id
    with _id_lock:
        _last_id = max(int(time.time() * 1000), _last_id + 1)
        return _last_id


_SEED: list[dict[str, Any]] = [
    {"id": 1, "name": "Pre-cutover preparation and rehearsal", "start": "2025-03-17", "end": "2025-03-23",
     "type": "prep", "status": "done", "owner": "PMO", "dependencies": [], "order": 0},
    {"id": 2, "name": "Data freeze and system downtime", "start": "2025-03-24", "end": "2025-03-24",
     "type": "cutover", "status": "todo", "owner": "Operations", "dependencies": [1], "order": 1},
    {"id": 3, "name": "Upstream onboarding (week 1: ERP/HR)", "start": "2025-03-24", "end": "2025-03-30",
     "type": "upstream", "status": "todo", "owner": "Upstream team", "dependencies": [2], "order": 2},
    {"id": 4, "name": "Upstream onboarding (week 2: CRM/external data)", "start": "2025-03-31", "end": "2025-04-06",
     "type": "upstream", "status": "todo", "owner": "Upstream team", "dependencies": [3], "order": 3},
    {"id": 5, "name": "MDM production go-live", "start": "2025-03-31", "end": "2025-03-31",
     "type": "milestone", "status": "todo", "owner": "MDM team", "dependencies": [4], "order": 4},
    {"id": 6, "name": "Downstream batch 1: financial reporting", "start": "2025-03-31", "end": "2025-04-06",
     "type": "downstream", "status": "todo", "owner": "Downstream A", "dependencies": [5], "order": 5},
    {"id": 7, "name": "Downstream batch 2: marketing analytics", "start": "2025-04-07", "end": "2025-04-13",
     "type": "downstream", "status": "todo", "owner": "Downstream B", "dependencies": [6], "order": 6},
    {"id": 8, "name": "Downstream batch 3: supply chain execution", "start": "2025-04-14", "end": "2025-04-20",
     "type": "downstream", "status": "todo", "owner": "Downstream C", "dependencies": [7], "order": 7},
    {"id": 9, "name": "Downstream batch 4: archive and omnichannel sync", "start": "2025-04-21", "end": "2025-04-27",
     "type": "downstream", "status": "todo", "owner": "Downstream D", "dependencies": [8], "order": 8},
    {"id": 10, "name": "Hypercare and project close-out", "start": "2025-04-28", "end": "2025-05-04",
     "type": "prep", "status": "todo", "owner": "All teams", "dependencies": [9], "order": 9},
]


def default_tasks() -> list[Task]:
    """Fresh copy of the seed cutover plan."""
    return [Task.model_validate(row) for row in _SEED]
