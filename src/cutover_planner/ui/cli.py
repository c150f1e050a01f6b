"""Click entry point: inspect and edit a cutover plan from the terminal."""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
import uvicorn
from dotenv import load_dotenv
from pydantic import ValidationError

from cutover_planner.config import Settings, get_settings
from cutover_planner.core.hierarchy import collect_descendants, unique_owners
from cutover_planner.core.timeline import date_range, plan_summary
from cutover_planner.core.view_model import build_view_model
from cutover_planner.infrastructure.db import Database
from cutover_planner.infrastructure.replica import ReplicaBackend, ReplicaStateError, ReplicatedTaskMap, read_state
from cutover_planner.infrastructure.rest_client import RestTaskBackend
from cutover_planner.logging_setup import setup_logging
from cutover_planner.models import WILDCARD, SortConfig, Task, TaskFilters, TaskStatus, TaskType
from cutover_planner.services.planner import (
    PlanGenerationError,
    PlanGenerator,
    apply_plan,
    apply_subtasks,
)
from cutover_planner.services.snapshots import (
    SnapshotFormatError,
    default_snapshot_name,
    export_tasks_csv,
    export_tasks_json,
    import_tasks_json,
)
from cutover_planner.services.store import StoreError, TaskStore
from cutover_planner.ui.rendering import (
    confirm_action,
    console,
    print_error,
    print_success,
    show_gantt,
    show_plan_result,
    show_snapshots,
    show_summary,
    show_task,
)

load_dotenv()

logger = logging.getLogger(__name__)

SORT_KEYS = ["order", "start", "end", "name", "owner", "status", "type", "id"]
TYPE_CHOICES = [t.value for t in TaskType]
STATUS_CHOICES = [s.value for s in TaskStatus]


@dataclass
class CliContext:
    settings: Settings
    backend: str
    db_path: Path
    api_url: str
    replica_path: Path
    _store: TaskStore | None = None
    _db: Database | None = None
    _replica: ReplicatedTaskMap | None = None
    _closers: list[Any] = field(default_factory=list)

    def database(self) -> Database:
        if self._db is None:
            self._db = Database(self.db_path)
            self._closers.append(self._db.close)
        return self._db

    def replica(self) -> ReplicatedTaskMap:
        if self._replica is None:
            self._replica = ReplicatedTaskMap.load(self.replica_path)
        return self._replica

    def store(self) -> TaskStore:
        if self._store is None:
            if self.backend == "rest":
                rest = RestTaskBackend(self.api_url, timeout=self.settings.llm_timeout_seconds)
                self._closers.append(rest.close)
                backend: Any = rest
            elif self.backend == "replica":
                backend = ReplicaBackend(self.replica(), self.replica_path)
            else:
                backend = self.database()
            self._store = TaskStore(backend, seed_defaults=self.settings.seed_defaults)
            logger.debug("Opened %s backend", self.backend)
        return self._store

    def close(self) -> None:
        for close in reversed(self._closers):
            close()
        self._closers.clear()


def handle_errors(fn):
    """Turn recoverable domain errors into a red notice and exit code 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (StoreError, SnapshotFormatError, PlanGenerationError, ReplicaStateError, json.JSONDecodeError) as e:
            print_error(str(e))
            raise SystemExit(1) from None

    return wrapper


def _require_task(store: TaskStore, task_id: int) -> Task:
    task = store.get(task_id)
    if task is None:
        raise click.ClickException(f"Task {task_id} not found")
    return task


def _parse_ids(raw: str) -> list[int]:
    try:
        return [int(p) for p in raw.replace(" ", "").split(",") if p]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated task ids, got {raw!r}") from None


def _with_updates(task: Task, updates: dict[str, Any]) -> Task:
    """Re-validate a task with some fields replaced (dates may be strings)."""
    try:
        return Task.model_validate({**task.model_dump(), **updates})
    except ValidationError as e:
        raise click.BadParameter(str(e)) from None


# --- Group ---


@click.group()
@click.option("--backend", type=click.Choice(["sqlite", "rest", "replica"]), default="sqlite", show_default=True)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite file (sqlite backend, snapshots).")
@click.option("--api-url", default=None, help="Base URL of a running planner API (rest backend).")
@click.option("--replica-path", type=click.Path(path_type=Path), default=None, help="Replica state file.")
@click.option("--log-level", default=None, help="Console log level.")
@click.pass_context
def cli(ctx: click.Context, backend: str, db_path: Path | None, api_url: str | None,
        replica_path: Path | None, log_level: str | None):
    """Cutover planner: a Gantt view of a data-migration cutover plan."""
    settings = get_settings()
    setup_logging(log_dir=settings.data_dir, console_level=log_level or settings.log_level)
    obj = CliContext(
        settings=settings,
        backend=backend,
        db_path=db_path or settings.db_path,
        api_url=api_url or settings.api_url,
        replica_path=replica_path or settings.data_dir / "replica.json",
    )
    ctx.obj = obj
    ctx.call_on_close(obj.close)


# --- Viewing ---


@cli.command()
@click.option("--type", "type_", default=WILDCARD, type=click.Choice([WILDCARD, *TYPE_CHOICES]), show_default=True)
@click.option("--owner", default=WILDCARD, show_default=True)
@click.option("--status", default=WILDCARD, type=click.Choice([WILDCARD, *STATUS_CHOICES]), show_default=True)
@click.option("--sort", "sort_key", default="order", type=click.Choice(SORT_KEYS), show_default=True)
@click.option("--desc", is_flag=True, help="Sort descending.")
@click.option("--summary/--no-summary", default=True, show_default=True)
@click.pass_obj
@handle_errors
def show(obj: CliContext, type_: str, owner: str, status: str, sort_key: str, desc: bool, summary: bool):
    """Render the plan as an indented list with a day-by-day bar chart."""
    tasks = obj.store().tasks
    rows = build_view_model(
        tasks,
        TaskFilters(type=type_, owner=owner, status=status),
        SortConfig(key=sort_key, direction="desc" if desc else "asc"),
    )
    show_gantt(rows, date_range(tasks))
    if summary:
        show_summary(plan_summary(tasks), unique_owners(tasks))


@cli.command()
@click.argument("task_id", type=int)
@click.pass_obj
@handle_errors
def info(obj: CliContext, task_id: int):
    """Show one task with its dependency links."""
    store = obj.store()
    show_task(_require_task(store, task_id), store.tasks)


# --- Editing ---


@cli.command()
@click.option("--parent", "parent_id", type=int, default=None, help="Create a subtask of this task.")
@click.option("--name", default=None)
@click.option("--start", default=None, help="YYYY-MM-DD")
@click.option("--end", default=None, help="YYYY-MM-DD")
@click.option("--type", "type_", type=click.Choice(TYPE_CHOICES), default=None)
@click.option("--status", type=click.Choice(STATUS_CHOICES), default=None)
@click.option("--owner", default=None)
@click.pass_obj
@handle_errors
def add(obj: CliContext, parent_id: int | None, name: str | None, start: str | None, end: str | None,
        type_: str | None, status: str | None, owner: str | None):
    """Add a task (or a subtask with --parent)."""
    store = obj.store()
    if parent_id is not None:
        _require_task(store, parent_id)
    draft = store.new_task(parent_id=parent_id, reference_id=parent_id)
    updates = {k: v for k, v in {
        "name": name, "start": start, "end": end, "type": type_, "status": status, "owner": owner,
    }.items() if v is not None}
    task = store.add_task(_with_updates(draft, updates) if updates else draft)
    if parent_id is not None:
        store.expand(parent_id)
    print_success(f"Added task {task.id}: {task.name}")


@cli.command(name="set")
@click.argument("task_id", type=int)
@click.option("--name", default=None)
@click.option("--start", default=None, help="YYYY-MM-DD")
@click.option("--end", default=None, help="YYYY-MM-DD")
@click.option("--type", "type_", type=click.Choice(TYPE_CHOICES), default=None)
@click.option("--status", type=click.Choice(STATUS_CHOICES), default=None)
@click.option("--owner", default=None)
@click.option("--order", type=int, default=None)
@click.option("--deps", default=None, help="Comma-separated predecessor ids ('' clears).")
@click.option("--parent", "parent_id", type=int, default=None)
@click.option("--root", is_flag=True, help="Detach from its parent.")
@click.pass_obj
@handle_errors
def set_fields(obj: CliContext, task_id: int, name, start, end, type_, status, owner, order, deps, parent_id, root):
    """Change fields of an existing task."""
    store = obj.store()
    task = _require_task(store, task_id)
    updates: dict[str, Any] = {k: v for k, v in {
        "name": name, "start": start, "end": end, "type": type_, "status": status, "owner": owner, "order": order,
    }.items() if v is not None}
    if deps is not None:
        updates["dependencies"] = _parse_ids(deps)
    if root:
        updates["parent_id"] = None
    elif parent_id is not None:
        if parent_id == task_id:
            raise click.BadParameter("a task cannot be its own parent")
        _require_task(store, parent_id)
        updates["parent_id"] = parent_id
    if not updates:
        raise click.UsageError("Nothing to change.")
    store.update_task(_with_updates(task, updates))
    print_success(f"Updated task {task_id}")


@cli.command()
@click.argument("task_id", type=int)
@click.pass_obj
@handle_errors
def toggle(obj: CliContext, task_id: int):
    """Expand or collapse a task's subtasks."""
    store = obj.store()
    _require_task(store, task_id)
    task = store.toggle_expanded(task_id)
    print_success(f"Task {task_id} {'expanded' if task.is_expanded else 'collapsed'}")


@cli.command()
@click.argument("task_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
@handle_errors
def delete(obj: CliContext, task_id: int, yes: bool):
    """Delete a task together with all of its subtasks."""
    store = obj.store()
    task = _require_task(store, task_id)
    ids = collect_descendants(store.tasks, task_id)
    if len(ids) > 1 and not yes:
        message = f"'{task.name}' has {len(ids) - 1} subtask(s). Delete it and all of them?"
        if not confirm_action("Delete task", message):
            console.print("[dim]Cancelled.[/dim]")
            return
    store.delete_cascade(task_id)
    print_success(f"Deleted {len(ids)} task(s)")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
@handle_errors
def reset(obj: CliContext, yes: bool):
    """Replace the plan with the default cutover template."""
    if not yes and not confirm_action("Reset plan", "Discard all tasks and restore the default plan?"):
        console.print("[dim]Cancelled.[/dim]")
        return
    obj.store().reset_to_default()
    print_success("Plan reset to defaults")


# --- Import / export ---


@cli.command()
@click.argument("path", type=click.Path(path_type=Path, dir_okay=False))
@click.option("--csv", "as_csv", is_flag=True, help="Spreadsheet export instead of JSON.")
@click.pass_obj
@handle_errors
def export(obj: CliContext, path: Path, as_csv: bool):
    """Write the current plan to PATH."""
    tasks = obj.store().tasks
    text = export_tasks_csv(tasks) if as_csv else export_tasks_json(tasks)
    path.write_text(text, encoding="utf-8", newline="" if as_csv else None)
    print_success(f"Exported {len(tasks)} tasks to {path}")


@cli.command(name="import")
@click.argument("path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.pass_obj
@handle_errors
def import_(obj: CliContext, path: Path):
    """Replace the plan with the tasks in a JSON export or snapshot file."""
    tasks = import_tasks_json(path.read_text(encoding="utf-8"))
    obj.store().replace_all_tasks(tasks)
    print_success(f"Imported {len(tasks)} tasks")


# --- Snapshots ---


@cli.group()
def snapshot():
    """Named copies of the plan, kept in the local SQLite file."""


@snapshot.command(name="save")
@click.argument("name", required=False)
@click.pass_obj
@handle_errors
def snapshot_save(obj: CliContext, name: str | None):
    snap = obj.database().add_snapshot(name or default_snapshot_name(), obj.store().tasks)
    print_success(f"Saved snapshot {snap.id}: {snap.name} ({len(snap.tasks)} tasks)")


@snapshot.command(name="list")
@click.pass_obj
def snapshot_list(obj: CliContext):
    show_snapshots(obj.database().list_snapshots())


@snapshot.command(name="restore")
@click.argument("snapshot_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
@handle_errors
def snapshot_restore(obj: CliContext, snapshot_id: int, yes: bool):
    snap = obj.database().get_snapshot(snapshot_id)
    if snap is None:
        raise click.ClickException(f"Snapshot {snapshot_id} not found")
    if not yes and not confirm_action("Restore snapshot", f"Replace the current plan with '{snap.name}'?"):
        console.print("[dim]Cancelled.[/dim]")
        return
    obj.store().replace_all_tasks(snap.tasks)
    print_success(f"Restored '{snap.name}' ({len(snap.tasks)} tasks)")


@snapshot.command(name="delete")
@click.argument("snapshot_id", type=int)
@click.pass_obj
def snapshot_delete(obj: CliContext, snapshot_id: int):
    if not obj.database().delete_snapshot(snapshot_id):
        raise click.ClickException(f"Snapshot {snapshot_id} not found")
    print_success(f"Deleted snapshot {snapshot_id}")


# --- AI generation ---


@cli.command()
@click.argument("description")
@click.option("--parent", "parent_id", type=int, default=None, help="Generate subtasks for this task.")
@click.option("--yes", "-y", is_flag=True, help="Apply without asking.")
@click.pass_obj
@handle_errors
def generate(obj: CliContext, description: str, parent_id: int | None, yes: bool):
    """Ask the LLM for a plan (or subtasks) and apply it."""
    store = obj.store()
    parent = _require_task(store, parent_id) if parent_id is not None else None
    planner = PlanGenerator(obj.settings)
    with console.status("Generating plan..."):
        if parent is None:
            result = planner.generate_plan(description)
        else:
            result = planner.generate_subtasks(parent, description)
    show_plan_result(result)

    if parent is None:
        prompt = f"Replace the current plan with these {len(result.tasks)} tasks?"
    else:
        prompt = f"Add these {len(result.tasks)} subtasks under '{parent.name}'?"
    if not yes and not confirm_action("Apply generated plan", prompt):
        console.print("[dim]Discarded.[/dim]")
        return
    if parent is None:
        apply_plan(store, result)
    else:
        apply_subtasks(store, parent, result)
    print_success(f"Applied {len(result.tasks)} generated tasks")


# --- Replication ---


@cli.command()
@click.argument("path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.pass_obj
@handle_errors
def merge(obj: CliContext, path: Path):
    """Fold another replica's state file into the local replica."""
    if obj.backend != "replica":
        raise click.UsageError("merge needs --backend replica")
    replica = obj.replica()
    changed = replica.merge(read_state(path))
    replica.save(obj.replica_path)
    obj.store().reload()
    print_success(f"Merged {len(changed)} changed task(s) from {path}")


# --- Server ---


@cli.command()
@click.option("--host", default=None)
@click.option("--port", type=int, default=None)
@click.pass_obj
def serve(obj: CliContext, host: str | None, port: int | None):
    """Run the HTTP API under uvicorn."""
    uvicorn.run(
        "cutover_planner.api.app:app",
        host=host or obj.settings.api_host,
        port=port or obj.settings.api_port,
        reload=False,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
