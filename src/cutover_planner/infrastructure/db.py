"""SQLite database layer for tasks and snapshots."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

from cutover_planner.models import Snapshot, Task, TaskStatus, TaskType

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("planner.sqlite3")

_UPSERT_SQL = (
    "INSERT INTO tasks (id, name, start_date, end_date, type, status, owner, dependencies, "
    "display_order, parent_id, is_expanded) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT (id) DO UPDATE SET "
    "name = excluded.name, start_date = excluded.start_date, end_date = excluded.end_date, "
    "type = excluded.type, status = excluded.status, owner = excluded.owner, "
    "dependencies = excluded.dependencies, display_order = excluded.display_order, "
    "parent_id = excluded.parent_id, is_expanded = excluded.is_expanded"
)


class Database:
    def __init__(self, db_path: Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                type TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'todo',
                owner TEXT NOT NULL DEFAULT '',
                dependencies TEXT NOT NULL DEFAULT '[]',
                display_order INTEGER NOT NULL DEFAULT 0,
                parent_id INTEGER,
                is_expanded INTEGER NOT NULL DEFAULT 1
            );
            CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_id);
            CREATE TABLE IF NOT EXISTS snapshots (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL,
                tasks_json TEXT NOT NULL DEFAULT '[]'
            );
        """)
        self.conn.commit()

    def close(self):
        self.conn.close()

    # --- Tasks ---

    def list_tasks(self) -> list[Task]:
        rows = self.conn.execute("SELECT * FROM tasks ORDER BY display_order, id").fetchall()
        return [_row_to_task(r) for r in rows]

    def get_task(self, task_id: int) -> Task | None:
        row = self.conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None

    def add_task(
        self,
        name: str,
        start: date,
        end: date,
        type: TaskType,
        status: TaskStatus = TaskStatus.TODO,
        owner: str = "",
        dependencies: list[int] | None = None,
        order: int = 0,
        parent_id: int | None = None,
        is_expanded: bool = True,
    ) -> Task:
        """Insert a task and let SQLite assign its id."""
        deps = dependencies or []
        cur = self.conn.execute(
            "INSERT INTO tasks (name, start_date, end_date, type, status, owner, dependencies, "
            "display_order, parent_id, is_expanded) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (name, start.isoformat(), end.isoformat(), str(type), str(status), owner, json.dumps(deps),
             order, parent_id, int(is_expanded)),
        )
        self.conn.commit()
        return Task(
            id=cur.lastrowid, name=name, start=start, end=end, type=type, status=status, owner=owner,
            dependencies=deps, order=order, parent_id=parent_id, is_expanded=is_expanded,
        )

    def upsert_task(self, task: Task) -> int:
        self.conn.execute(_UPSERT_SQL, _task_params(task))
        self.conn.commit()
        return task.id

    def sync_tasks(self, tasks: list[Task]) -> None:
        """Bulk upsert in one transaction; nothing is written if any row fails."""
        with self.conn:
            self.conn.executemany(_UPSERT_SQL, [_task_params(t) for t in tasks])
        logger.debug("Synced %d tasks into %s", len(tasks), self.db_path)

    def replace_tasks(self, tasks: list[Task]) -> None:
        """Make the table hold exactly ``tasks``, atomically."""
        with self.conn:
            self.conn.execute("DELETE FROM tasks")
            self.conn.executemany(_UPSERT_SQL, [_task_params(t) for t in tasks])

    def delete_task(self, task_id: int) -> bool:
        cur = self.conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        self.conn.commit()
        return cur.rowcount > 0

    def reset_tasks(self) -> None:
        self.conn.execute("DELETE FROM tasks")
        self.conn.commit()
        logger.info("Task table truncated (%s)", self.db_path)

    # --- Snapshots ---

    def add_snapshot(self, name: str, tasks: list[Task]) -> Snapshot:
        now = datetime.now(timezone.utc)
        payload = json.dumps([t.to_wire() for t in tasks])
        cur = self.conn.execute(
            "INSERT INTO snapshots (name, created_at, tasks_json) VALUES (?, ?, ?)",
            (name, now.isoformat(), payload),
        )
        self.conn.commit()
        return Snapshot(id=cur.lastrowid, name=name, created_at=now, tasks=[t.model_copy(deep=True) for t in tasks])

    def list_snapshots(self) -> list[Snapshot]:
        """Newest first."""
        rows = self.conn.execute("SELECT * FROM snapshots ORDER BY created_at DESC, id DESC").fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def get_snapshot(self, snapshot_id: int) -> Snapshot | None:
        row = self.conn.execute("SELECT * FROM snapshots WHERE id = ?", (snapshot_id,)).fetchone()
        return _row_to_snapshot(row) if row else None

    def delete_snapshot(self, snapshot_id: int) -> bool:
        cur = self.conn.execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))
        self.conn.commit()
        return cur.rowcount > 0


def _task_params(t: Task) -> tuple:
    return (
        t.id,
        t.name,
        t.start.isoformat(),
        t.end.isoformat(),
        t.type.value,
        t.status.value,
        t.owner,
        json.dumps(t.dependencies),
        t.order,
        t.parent_id,
        int(t.is_expanded),
    )


def _row_to_task(r: sqlite3.Row) -> Task:
    return Task(
        id=r["id"],
        name=r["name"],
        start=r["start_date"],
        end=r["end_date"],
        type=r["type"],
        status=r["status"],
        owner=r["owner"],
        dependencies=json.loads(r["dependencies"]),
        order=r["display_order"],
        parent_id=r["parent_id"],
        is_expanded=bool(r["is_expanded"]),
    )


def _row_to_snapshot(r: sqlite3.Row) -> Snapshot:
    return Snapshot(
        id=r["id"],
        name=r["name"],
        created_at=r["created_at"],
        tasks=[Task.model_validate(t) for t in json.loads(r["tasks_json"])],
    )
