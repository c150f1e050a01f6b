# tests/test_replica.py

from __future__ import annotations

import copy
from pathlib import Path

import pytest

from cutover_planner.infrastructure.replica import ReplicaBackend, ReplicaStateError, ReplicatedTaskMap
from cutover_planner.services.store import TaskStore

from .fakes import make_task


def _names(replica: ReplicatedTaskMap) -> dict[int, str]:
    return {t.id: t.name for t in replica.tasks()}


def test_concurrent_edits_converge_by_stamp() -> None:
    a = ReplicatedTaskMap("a")
    b = ReplicatedTaskMap("b")
    a.put(make_task(1, name="base"))
    b.merge(a.state())

    a.put(make_task(1, name="from a"))
    b.put(make_task(1, name="from b"))

    a.merge(b.state())
    b.merge(a.state())
    # same clock on both sides; replica id "b" > "a" breaks the tie
    assert _names(a) == _names(b) == {1: "from b"}


def test_merge_is_commutative_and_idempotent() -> None:
    a, b, c = ReplicatedTaskMap("a"), ReplicatedTaskMap("b"), ReplicatedTaskMap("c")
    a.put(make_task(1, name="a1"))
    b.put(make_task(1, name="b1"))
    b.put(make_task(2, name="b2"))
    c.put(make_task(3, name="c3"))
    c.remove(3)

    left = ReplicatedTaskMap("x")
    for s in (a.state(), b.state(), c.state()):
        left.merge(copy.deepcopy(s))
    right = ReplicatedTaskMap("y")
    for s in (c.state(), b.state(), a.state()):
        right.merge(copy.deepcopy(s))

    assert _names(left) == _names(right)
    assert right.merge(left.state()) == []


def test_delete_tombstone_wins_over_older_write() -> None:
    a = ReplicatedTaskMap("a")
    b = ReplicatedTaskMap("b")
    a.put(make_task(1))
    b.merge(a.state())
    b.remove(1)
    a.merge(b.state())
    assert a.get(1) is None
    assert b.get(1) is None


def test_observers_hear_changed_ids() -> None:
    a = ReplicatedTaskMap("a")
    heard: list[list[int]] = []
    stop = a.observe(heard.append)
    a.put(make_task(5))
    other = ReplicatedTaskMap("b")
    other.put(make_task(6))
    a.merge(other.state())
    stop()
    a.put(make_task(7))
    assert heard == [[5], [6]]


def test_save_and_load(tmp_path: Path) -> None:
    path = tmp_path / "replica.json"
    a = ReplicatedTaskMap("a")
    a.put(make_task(1, name="kept"))
    a.put(make_task(2))
    a.remove(2)
    a.save(path)

    loaded = ReplicatedTaskMap.load(path)
    assert loaded.replica_id == "a"
    assert _names(loaded) == {1: "kept"}
    loaded.put(make_task(3))
    assert loaded.state()["entries"]["3"]["clock"] > a.state()["clock"]


def test_replica_backend_drives_a_store(tmp_path: Path) -> None:
    path = tmp_path / "replica.json"
    store = TaskStore(ReplicaBackend(ReplicatedTaskMap("a"), path))
    assert len(store.tasks) == 10
    store.replace_all_tasks([make_task(1), make_task(99)])
    assert [t.id for t in store.tasks] == [1, 99]

    reopened = ReplicatedTaskMap.load(path)
    assert sorted(_names(reopened)) == [1, 99]


def _seeded() -> ReplicatedTaskMap:
    local = ReplicatedTaskMap("local")
    local.put(make_task(1, name="one"))
    local.put(make_task(2, name="two"))
    return local


def test_merge_rejects_nonconforming_task() -> None:
    local = _seeded()
    before = local.state()
    bad = {"entries": {
        "3": {"clock": 1, "replica": "peer", "value": make_task(3).to_wire()},
        "77": {"clock": 9, "replica": "peer", "value": {"id": 77, "name": "x"}},
    }}
    with pytest.raises(ReplicaStateError, match="entry 77"):
        local.merge(bad)
    assert local.state() == before
    assert _names(local) == {1: "one", 2: "two"}


def test_merge_rejects_value_under_another_id() -> None:
    local = _seeded()
    peer = {"entries": {"999": {"clock": 5, "replica": "peer", "value": make_task(2, name="moved").to_wire()}}}
    with pytest.raises(ReplicaStateError, match="holds task 2"):
        local.merge(peer)
    assert sorted(t.id for t in local.tasks()) == [1, 2]


def test_merge_rejects_malformed_stamps() -> None:
    local = _seeded()
    with pytest.raises(ReplicaStateError):
        local.merge({"entries": {"1": {"clock": "late", "replica": "peer", "value": None}}})
    with pytest.raises(ReplicaStateError):
        local.merge({"entries": {"abc": {"clock": 1, "replica": "peer", "value": None}}})
    with pytest.raises(ReplicaStateError):
        local.merge({"entries": [1, 2]})
    assert _names(local) == {1: "one", 2: "two"}


def test_load_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "replica.json"
    path.write_text("{not json")
    with pytest.raises(ReplicaStateError, match="Invalid replica state"):
        ReplicatedTaskMap.load(path)
    path.write_text("[]")
    with pytest.raises(ReplicaStateError):
        ReplicatedTaskMap.load(path)
