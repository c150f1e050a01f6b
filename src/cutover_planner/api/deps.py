"""Helpers that pull per-app state off the request."""

from __future__ import annotations

from fastapi import HTTPException, Request

from cutover_planner.infrastructure.db import Database
from cutover_planner.models import Task
from cutover_planner.services.planner import PlanGenerator


def get_db(request: Request) -> Database:
    return Database(request.app.state.settings.db_path)


def get_planner(request: Request) -> PlanGenerator:
    return request.app.state.planner


def get_task_or_404(db: Database, task_id: int) -> Task:
    task = db.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task
