"""Request/response models for the API."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from cutover_planner.models import Task, TaskStatus, TaskType


# --- Tasks ---

class TaskIn(BaseModel):
    """A task as posted by clients; ``id`` may be left out to get a server id."""

    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    name: str
    start: date
    end: date
    type: TaskType
    status: TaskStatus = TaskStatus.TODO
    owner: str = ""
    dependencies: list[int] = Field(default_factory=list)
    order: int = 0
    parent_id: int | None = Field(default=None, alias="parentId")
    is_expanded: bool = Field(default=True, alias="isExpanded")

    def to_task(self) -> Task:
        return Task.model_validate(self.model_dump())


class CreatedOut(BaseModel):
    id: int


class SuccessOut(BaseModel):
    success: bool = True


# --- View ---

class TaskRowOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task: Task
    depth: int
    has_children: bool = Field(alias="hasChildren")
    left: int
    width: int


class ViewOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    range_start: date = Field(alias="rangeStart")
    range_end: date = Field(alias="rangeEnd")
    cell_width: int = Field(alias="cellWidth")
    rows: list[TaskRowOut]


class SummaryOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_count: int = Field(alias="taskCount")
    span_days: int = Field(alias="spanDays")
    milestones: int
    by_status: dict[str, int] = Field(alias="byStatus")
    owners: list[str]


# --- Snapshots ---

class SnapshotCreate(BaseModel):
    name: str | None = None


# --- Plan ---

class PlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    parent_id: int | None = Field(default=None, alias="parentId")
    apply: bool = False


class RejectedOut(BaseModel):
    index: int
    error: str


class PlanResponse(BaseModel):
    tasks: list[Task]
    rejected: list[RejectedOut] = Field(default_factory=list)
    applied: bool = False
