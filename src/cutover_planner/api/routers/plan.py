"""AI plan generation endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from cutover_planner.api.deps import get_db, get_planner, get_task_or_404
from cutover_planner.api.schemas import PlanRequest, PlanResponse, RejectedOut
from cutover_planner.services.planner import PlanGenerationError, apply_plan, apply_subtasks, remap_subtasks
from cutover_planner.services.store import StoreError, TaskStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plan", tags=["plan"])


@router.post("", response_model=PlanResponse)
def generate_plan(body: PlanRequest, request: Request):
    planner = get_planner(request)
    db = get_db(request)
    try:
        parent = get_task_or_404(db, body.parent_id) if body.parent_id is not None else None
        try:
            if parent is None:
                result = planner.generate_plan(body.description)
            else:
                result = planner.generate_subtasks(parent, body.description)
        except PlanGenerationError as e:
            logger.warning("Plan generation failed: %s", e)
            raise HTTPException(status_code=502, detail=str(e)) from e

        tasks = result.tasks
        if body.apply:
            store = TaskStore(db, seed_defaults=False)
            try:
                tasks = apply_plan(store, result) if parent is None else apply_subtasks(store, parent, result)
            except StoreError as e:
                raise HTTPException(status_code=500, detail=str(e)) from e
        elif parent is not None:
            tasks = remap_subtasks(tasks, parent)

        return PlanResponse(
            tasks=tasks,
            rejected=[RejectedOut(index=r.index, error=r.error) for r in result.rejected],
            applied=body.apply,
        )
    finally:
        db.close()
