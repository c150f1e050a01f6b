"""Rich console helpers: Gantt table, summaries, confirmations."""

from __future__ import annotations

from datetime import date

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cutover_planner.core.hierarchy import relationships
from cutover_planner.core.timeline import PlanSummary, day_offset, duration_days
from cutover_planner.core.view_model import TaskRow
from cutover_planner.models import TASK_TYPE_LABELS, Snapshot, Task, TaskType
from cutover_planner.services.planner import PlanResult

console = Console()

_session: PromptSession | None = None

TYPE_STYLES: dict[TaskType, str] = {
    TaskType.PREP: "grey70",
    TaskType.CUTOVER: "red",
    TaskType.UPSTREAM: "blue",
    TaskType.DOWNSTREAM: "green",
    TaskType.MILESTONE: "bold magenta",
}

STATUS_STYLES = {"todo": "white", "in-progress": "yellow", "done": "green"}


def _prompt_session() -> PromptSession:
    global _session
    if _session is None:
        _session = PromptSession()
    return _session


def print_error(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] [red]{escape(message)}[/red]")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def confirm_action(title: str, message: str) -> bool:
    """Show a confirmation panel and prompt y/n. EOF or Ctrl-C means no."""
    console.print(Panel(message, title=title, border_style="yellow"))
    console.print("[dim](y)es  (n)o[/dim]")
    while True:
        try:
            choice = _prompt_session().prompt("Confirm> ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        if choice in ("y", "yes"):
            return True
        if choice in ("n", "no"):
            return False
        console.print("[red]Please enter y or n.[/red]")


def _name_cell(row: TaskRow) -> Text:
    if row.has_children:
        marker = "▾ " if row.task.is_expanded else "▸ "
    else:
        marker = "  "
    text = Text("  " * row.depth + marker)
    text.append(row.task.name, style="bold" if row.depth == 0 else "")
    return text


def _bar_cell(task: Task, days: list[date]) -> Text:
    """One character per day on the axis, so every row lines up with the header."""
    start = day_offset(task.start, days[0])
    style = TYPE_STYLES.get(task.type, "white")
    if task.type == TaskType.MILESTONE:
        span = range(start, start + 1)
    else:
        span = range(start, start + max(1, duration_days(task.start, task.end)))
    text = Text()
    for i in range(len(days)):
        if i not in span:
            text.append("·", style="grey30")
        elif task.type == TaskType.MILESTONE:
            text.append("◆", style=style)
        else:
            text.append("█", style=style)
    return text


def render_gantt(rows: list[TaskRow], days: list[date], title: str = "Cutover Plan") -> Table:
    table = Table(title=title, show_lines=False, expand=False)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Task", no_wrap=True, max_width=48)
    table.add_column("Owner", style="white", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Start", style="dim", no_wrap=True)
    table.add_column("End", style="dim", no_wrap=True)
    table.add_column(f"{days[0]:%m-%d} → {days[-1]:%m-%d}", no_wrap=True)
    for row in rows:
        t = row.task
        table.add_row(
            str(t.id),
            _name_cell(row),
            t.owner,
            Text(t.status.value, style=STATUS_STYLES.get(t.status.value, "white")),
            t.start.isoformat(),
            t.end.isoformat(),
            _bar_cell(t, days),
        )
    return table


def show_gantt(rows: list[TaskRow], days: list[date]) -> None:
    if not rows:
        console.print("[dim]No tasks match the current filters.[/dim]")
        return
    console.print(render_gantt(rows, days))
    legend = "  ".join(f"[{TYPE_STYLES[k]}]■[/] {label}" for k, label in TASK_TYPE_LABELS.items())
    console.print(legend)


def show_summary(summary: PlanSummary, owners: list[str]) -> None:
    statuses = ", ".join(f"{k}: {v}" for k, v in sorted(summary.by_status.items())) or "-"
    lines = [
        f"[cyan]Tasks:[/cyan] {summary.task_count}",
        f"[cyan]Span:[/cyan] {summary.span_days} days",
        f"[cyan]Milestones:[/cyan] {summary.milestones}",
        f"[cyan]Status:[/cyan] {statuses}",
        f"[cyan]Owners:[/cyan] {', '.join(owners) or '-'}",
    ]
    console.print(Panel("\n".join(lines), title="Summary", border_style="bright_blue"))


def show_task(task: Task, tasks: list[Task]) -> None:
    preds, succs = relationships(tasks, task.id)
    lines = [
        f"[cyan]Name:[/cyan] {task.name}",
        f"[cyan]Type:[/cyan] {TASK_TYPE_LABELS.get(task.type, task.type.value)}",
        f"[cyan]Status:[/cyan] {task.status.value}",
        f"[cyan]Owner:[/cyan] {task.owner}",
        f"[cyan]Dates:[/cyan] {task.start} → {task.end} ({duration_days(task.start, task.end)} days)",
        f"[cyan]Parent:[/cyan] {task.parent_id if task.parent_id is not None else '-'}",
        f"[cyan]Depends on:[/cyan] {', '.join(map(str, preds)) or '-'}",
        f"[cyan]Blocks:[/cyan] {', '.join(map(str, succs)) or '-'}",
    ]
    console.print(Panel("\n".join(lines), title=f"Task {task.id}", border_style="cyan"))


def show_snapshots(snapshots: list[Snapshot]) -> None:
    if not snapshots:
        console.print("[dim]No snapshots saved yet.[/dim]")
        return
    table = Table(title="Snapshots", show_lines=True)
    table.add_column("ID", style="cyan", width=4)
    table.add_column("Name", style="green")
    table.add_column("Created", style="white")
    table.add_column("Tasks", style="magenta", width=5)
    for s in snapshots:
        table.add_row(str(s.id), s.name, f"{s.created_at:%Y-%m-%d %H:%M}", str(len(s.tasks)))
    console.print(table)


def show_plan_result(result: PlanResult) -> None:
    table = Table(title="Generated Tasks", show_lines=False)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type")
    table.add_column("Owner")
    table.add_column("Start", style="dim")
    table.add_column("End", style="dim")
    table.add_column("Deps", style="dim")
    for t in result.tasks:
        table.add_row(
            str(t.id),
            t.name,
            Text(t.type.value, style=TYPE_STYLES.get(t.type, "white")),
            t.owner,
            t.start.isoformat(),
            t.end.isoformat(),
            ", ".join(map(str, t.dependencies)),
        )
    console.print(table)
    for r in result.rejected:
        console.print(f"[yellow]Skipped entry #{r.index}:[/yellow] [dim]{r.error.splitlines()[0]}[/dim]")
