# tests/test_snapshots.py

from __future__ import annotations

import csv
import io
import json
from datetime import datetime

import pytest

from cutover_planner.core.view_model import build_view_model
from cutover_planner.models import Snapshot, default_tasks
from cutover_planner.services.snapshots import (
    CSV_COLUMNS,
    SnapshotFormatError,
    default_snapshot_name,
    export_snapshot_json,
    export_tasks_csv,
    export_tasks_json,
    import_tasks_json,
)

from .fakes import make_task


def test_export_import_reproduces_collection() -> None:
    tasks = default_tasks() + [make_task(11, parent_id=2, is_expanded=False, dependencies=[3])]
    restored = import_tasks_json(export_tasks_json(tasks))
    assert restored == tasks
    assert [r.task.id for r in build_view_model(restored)] == [r.task.id for r in build_view_model(tasks)]


def test_snapshot_object_is_accepted() -> None:
    snap = Snapshot(id=1, name="before go-live", tasks=default_tasks())
    assert import_tasks_json(export_snapshot_json(snap)) == default_tasks()


def test_export_uses_wire_field_names() -> None:
    row = json.loads(export_tasks_json([make_task(1, parent_id=5)]))[0]
    assert row["parentId"] == 5
    assert row["isExpanded"] is True
    assert row["start"] == "2025-03-01"


@pytest.mark.parametrize(
    "text",
    ["[]", "{}", '"tasks"', "not json", '[{"id": 1}]', '{"tasks": 5}'],
)
def test_import_rejects_bad_input(text: str) -> None:
    with pytest.raises(SnapshotFormatError):
        import_tasks_json(text)


def test_import_rejects_duplicate_ids() -> None:
    text = export_tasks_json([make_task(1), make_task(1, name="again")])
    with pytest.raises(SnapshotFormatError, match="Duplicate"):
        import_tasks_json(text)


def test_csv_export() -> None:
    text = export_tasks_csv([make_task(1), make_task(2, parent_id=1, dependencies=[1, 3])])
    rows = list(csv.reader(io.StringIO(text)))
    assert rows[0] == CSV_COLUMNS
    assert rows[1][7] == ""
    assert rows[2][7] == "1"
    assert rows[2][8] == "1, 3"


def test_default_snapshot_name() -> None:
    assert default_snapshot_name(datetime(2025, 3, 24, 9, 5)) == "Snapshot 09:05"
