"""Snapshot export/import (JSON) and spreadsheet export (CSV)."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from cutover_planner.models import Snapshot, Task

CSV_COLUMNS = ["ID", "Name", "Start", "End", "Type", "Status", "Owner", "ParentID", "Dependencies"]


class SnapshotFormatError(ValueError):
    """Imported data is not a task array or snapshot."""


def default_snapshot_name(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"Snapshot {now:%H:%M}"


def export_tasks_json(tasks: list[Task]) -> str:
    return json.dumps([t.to_wire() for t in tasks], indent=2, ensure_ascii=False)


def export_snapshot_json(snapshot: Snapshot) -> str:
    return snapshot.model_dump_json(by_alias=True, indent=2)


def import_tasks_json(text: str) -> list[Task]:
    """Parse an exported task array or a snapshot object. All-or-nothing."""
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotFormatError(f"Failed to parse JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("tasks"), list):
        data = data["tasks"]
    if not isinstance(data, list) or not data:
        raise SnapshotFormatError("Invalid format: expected a non-empty array of tasks.")

    tasks: list[Task] = []
    for i, row in enumerate(data):
        try:
            tasks.append(Task.model_validate(row))
        except ValidationError as e:
            raise SnapshotFormatError(f"Invalid task at index {i}: {e.error_count()} error(s)") from e

    seen: set[int] = set()
    for t in tasks:
        if t.id in seen:
            raise SnapshotFormatError(f"Duplicate task id {t.id}")
        seen.add(t.id)
    return tasks


def export_tasks_csv(tasks: list[Task]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    for t in tasks:
        writer.writerow([
            t.id,
            t.name,
            t.start.isoformat(),
            t.end.isoformat(),
            t.type.value,
            t.status.value,
            t.owner,
            "" if t.parent_id is None else t.parent_id,
            ", ".join(str(d) for d in t.dependencies),
        ])
    return buf.getvalue()
