"""Task CRUD, bulk sync and the derived view/summary endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, Response

from cutover_planner.api.deps import get_db
from cutover_planner.api.schemas import CreatedOut, SuccessOut, SummaryOut, TaskIn, TaskRowOut, ViewOut
from cutover_planner.core.hierarchy import collect_descendants, unique_owners
from cutover_planner.core.timeline import CELL_WIDTH, bar_geometry, date_range, plan_summary
from cutover_planner.core.view_model import build_view_model
from cutover_planner.models import WILDCARD, SortConfig, SortKey, Task, TaskFilters

router = APIRouter(prefix="/api", tags=["tasks"])


@router.get("/tasks", response_model=list[Task])
def list_tasks(request: Request):
    db = get_db(request)
    try:
        return db.list_tasks()
    finally:
        db.close()


@router.post("/tasks", response_model=CreatedOut | SuccessOut)
def upsert_task(body: TaskIn, request: Request, response: Response):
    db = get_db(request)
    try:
        if body.id is None:
            t = db.add_task(
                name=body.name, start=body.start, end=body.end, type=body.type, status=body.status,
                owner=body.owner, dependencies=body.dependencies, order=body.order,
                parent_id=body.parent_id, is_expanded=body.is_expanded,
            )
            response.status_code = 201
            return CreatedOut(id=t.id)
        db.upsert_task(body.to_task())
        return SuccessOut()
    finally:
        db.close()


@router.put("/tasks/sync", response_model=SuccessOut)
def sync_tasks(body: list[Task], request: Request, replace: bool = False):
    db = get_db(request)
    try:
        if replace:
            db.replace_tasks(body)
        else:
            db.sync_tasks(body)
        return SuccessOut()
    finally:
        db.close()


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: int, request: Request, cascade: bool = False):
    db = get_db(request)
    try:
        ids = collect_descendants(db.list_tasks(), task_id) if cascade else [task_id]
        # children first so the parent row is the last to go
        for tid in reversed(ids[1:]):
            db.delete_task(tid)
        if not db.delete_task(task_id):
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    finally:
        db.close()


@router.post("/tasks/reset", response_model=SuccessOut)
def reset_tasks(request: Request):
    db = get_db(request)
    try:
        db.reset_tasks()
        return SuccessOut()
    finally:
        db.close()


@router.get("/view", response_model=ViewOut)
def get_view(
    request: Request,
    type: str = WILDCARD,
    owner: str = WILDCARD,
    status: str = WILDCARD,
    sort: SortKey = "order",
    direction: str = "asc",
):
    if direction not in ("asc", "desc"):
        raise HTTPException(status_code=422, detail="direction must be 'asc' or 'desc'")
    db = get_db(request)
    try:
        tasks = db.list_tasks()
    finally:
        db.close()

    days = date_range(tasks)
    rows = build_view_model(
        tasks,
        TaskFilters(type=type, owner=owner, status=status),
        SortConfig(key=sort, direction=direction),
    )
    out = []
    for row in rows:
        left, width = bar_geometry(row.task, days[0])
        out.append(TaskRowOut(task=row.task, depth=row.depth, has_children=row.has_children, left=left, width=width))
    return ViewOut(range_start=days[0], range_end=days[-1], cell_width=CELL_WIDTH, rows=out)


@router.get("/summary", response_model=SummaryOut)
def get_summary(request: Request):
    db = get_db(request)
    try:
        tasks = db.list_tasks()
    finally:
        db.close()
    s = plan_summary(tasks)
    return SummaryOut(
        task_count=s.task_count, span_days=s.span_days, milestones=s.milestones,
        by_status=s.by_status, owners=unique_owners(tasks),
    )
