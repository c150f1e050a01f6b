# tests/test_view_model.py

from __future__ import annotations

from cutover_planner.core.view_model import build_view_model, filter_tasks, sort_tasks
from cutover_planner.models import SortConfig, TaskFilters

from .fakes import make_task


def _ids(rows) -> list[int]:
    return [r.task.id for r in rows]


def test_filters_are_a_conjunction() -> None:
    tasks = [
        make_task(1, type="prep", owner="A", status="todo"),
        make_task(2, type="cutover", owner="A", status="todo"),
        make_task(3, type="prep", owner="B", status="todo"),
        make_task(4, type="prep", owner="A", status="done"),
    ]
    assert [t.id for t in filter_tasks(tasks, TaskFilters(type="prep"))] == [1, 3, 4]
    assert [t.id for t in filter_tasks(tasks, TaskFilters(type="prep", owner="A"))] == [1, 4]
    assert [t.id for t in filter_tasks(tasks, TaskFilters(type="prep", owner="A", status="todo"))] == [1]
    assert len(filter_tasks(tasks, TaskFilters())) == 4


def test_filter_single_type_example() -> None:
    tasks = [make_task(1, type="prep"), make_task(2, type="cutover")]
    rows = build_view_model(tasks, TaskFilters(type="prep"))
    assert _ids(rows) == [1]


def test_dangling_parent_is_a_root() -> None:
    tasks = [make_task(1), make_task(2, parent_id=999)]
    rows = build_view_model(tasks)
    assert [(r.task.id, r.depth) for r in rows] == [(1, 0), (2, 0)]


def test_filtered_out_parent_promotes_child_to_root() -> None:
    tasks = [make_task(1, type="cutover"), make_task(2, parent_id=1, type="prep")]
    rows = build_view_model(tasks, TaskFilters(type="prep"))
    assert [(r.task.id, r.depth) for r in rows] == [(2, 0)]


def test_collapsed_parent_hides_descendants() -> None:
    tasks = [
        make_task(1, is_expanded=False),
        make_task(2, parent_id=1),
        make_task(3, parent_id=2),
    ]
    rows = build_view_model(tasks)
    assert _ids(rows) == [1]
    assert rows[0].has_children is True


def test_expanding_shows_nested_descendants_only_when_expanded() -> None:
    tasks = [
        make_task(1, is_expanded=True),
        make_task(2, parent_id=1, is_expanded=False),
        make_task(3, parent_id=2),
    ]
    assert _ids(build_view_model(tasks)) == [1, 2]

    tasks[1] = tasks[1].model_copy(update={"is_expanded": True})
    assert _ids(build_view_model(tasks)) == [1, 2, 3]


def test_child_depth_is_parent_depth_plus_one() -> None:
    tasks = [
        make_task(1),
        make_task(2, parent_id=1),
        make_task(3, parent_id=2),
        make_task(4, parent_id=1),
        make_task(5),
    ]
    rows = build_view_model(tasks)
    depth = {r.task.id: r.depth for r in rows}
    for r in rows:
        if r.task.parent_id in depth:
            assert r.depth == depth[r.task.parent_id] + 1
    assert _ids(rows) == [1, 2, 3, 4, 5]


def test_children_follow_parent_in_preorder() -> None:
    tasks = [make_task(10, order=1), make_task(20, order=2), make_task(11, parent_id=10, order=5)]
    assert _ids(build_view_model(tasks)) == [10, 11, 20]


def test_sort_is_stable_on_ties() -> None:
    tasks = [make_task(7, order=1), make_task(3, order=1), make_task(5, order=0)]
    assert [t.id for t in sort_tasks(tasks)] == [5, 7, 3]
    assert [t.id for t in sort_tasks(tasks, SortConfig(key="order", direction="desc"))] == [7, 3, 5]


def test_sort_by_start_compares_dates_not_strings() -> None:
    # lexically "2025-10-01" < "2025-9-30"; chronologically the reverse
    tasks = [make_task(1, start="2025-10-01"), make_task(2, start="2025-9-30")]
    rows = build_view_model(tasks, sort=SortConfig(key="start"))
    assert _ids(rows) == [2, 1]


def test_sort_by_start_example_dates() -> None:
    tasks = [make_task(1, start="2025-04-06"), make_task(2, start="2025-03-31")]
    assert _ids(build_view_model(tasks, sort=SortConfig(key="start"))) == [2, 1]


def test_sort_applies_within_each_level() -> None:
    tasks = [
        make_task(1, name="b"),
        make_task(2, name="a"),
        make_task(3, parent_id=1, name="z"),
        make_task(4, parent_id=1, name="y"),
    ]
    rows = build_view_model(tasks, sort=SortConfig(key="name"))
    assert _ids(rows) == [2, 1, 4, 3]


def test_parent_cycle_terminates_and_shows_each_task_once() -> None:
    tasks = [
        make_task(1, parent_id=2),
        make_task(2, parent_id=1),
        make_task(3, parent_id=3),
        make_task(4, parent_id=1),
    ]
    rows = build_view_model(tasks)
    assert sorted(_ids(rows)) == [1, 2, 3, 4]
    assert {r.task.id: r.depth for r in rows}[4] == 1


def test_deep_chain_does_not_recurse() -> None:
    tasks = [make_task(1)] + [make_task(i, parent_id=i - 1) for i in range(2, 3002)]
    rows = build_view_model(tasks)
    assert len(rows) == 3001
    assert rows[-1].depth == 3000


def test_empty_input_gives_no_rows() -> None:
    assert build_view_model([]) == []
