"""Snapshot endpoints: save, list, fetch, delete and restore."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from cutover_planner.api.deps import get_db
from cutover_planner.api.schemas import SnapshotCreate, SuccessOut
from cutover_planner.models import Snapshot
from cutover_planner.services.snapshots import default_snapshot_name

router = APIRouter(prefix="/api/snapshots", tags=["snapshots"])


@router.get("", response_model=list[Snapshot])
def list_snapshots(request: Request):
    db = get_db(request)
    try:
        return db.list_snapshots()
    finally:
        db.close()


@router.post("", response_model=Snapshot, status_code=201)
def create_snapshot(body: SnapshotCreate, request: Request):
    db = get_db(request)
    try:
        return db.add_snapshot(body.name or default_snapshot_name(), db.list_tasks())
    finally:
        db.close()


@router.get("/{snapshot_id}", response_model=Snapshot)
def get_snapshot(snapshot_id: int, request: Request):
    db = get_db(request)
    try:
        snap = db.get_snapshot(snapshot_id)
        if snap is None:
            raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
        return snap
    finally:
        db.close()


@router.delete("/{snapshot_id}", status_code=204)
def delete_snapshot(snapshot_id: int, request: Request):
    db = get_db(request)
    try:
        if not db.delete_snapshot(snapshot_id):
            raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
    finally:
        db.close()


@router.post("/{snapshot_id}/restore", response_model=SuccessOut)
def restore_snapshot(snapshot_id: int, request: Request):
    db = get_db(request)
    try:
        snap = db.get_snapshot(snapshot_id)
        if snap is None:
            raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
        db.replace_tasks(snap.tasks)
        return SuccessOut()
    finally:
        db.close()
