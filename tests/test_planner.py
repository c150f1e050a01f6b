# tests/test_planner.py

from __future__ import annotations

import json
from dataclasses import replace
from datetime import date

import pytest

from cutover_planner.config import Settings
from cutover_planner.services.planner import (
    PlanGenerationError,
    PlanGenerator,
    PlanResult,
    apply_plan,
    apply_subtasks,
    extract_task_array,
    normalize_entries,
    remap_subtasks,
)
from cutover_planner.services.store import TaskStore

from .fakes import FailingOpenAIClient, FakeGenAIClient, FakeOpenAIClient, InMemoryBackend, make_task

TODAY = date(2025, 6, 2)


def _entry(task_id: int, **fields) -> dict:
    data = {
        "id": task_id,
        "name": f"Step {task_id}",
        "start": "2025-06-03",
        "end": "2025-06-05",
        "type": "prep",
        "status": "todo",
        "owner": "PMO",
        "dependencies": [],
        "order": task_id,
        "isExpanded": True,
    }
    data.update(fields)
    return data


def test_extract_accepts_common_wrappings() -> None:
    payload = [_entry(1)]
    assert extract_task_array(json.dumps(payload)) == payload
    assert extract_task_array(json.dumps({"tasks": payload})) == payload
    assert extract_task_array(json.dumps({"plan": payload})) == payload
    assert extract_task_array(f"Here you go:\n```json\n{json.dumps(payload)}\n```") == payload
    assert extract_task_array(f"Sure! {json.dumps(payload)[:-1]},] hope it helps") == payload


def test_extract_rejects_non_json() -> None:
    with pytest.raises(PlanGenerationError):
        extract_task_array("I cannot help with that.")
    with pytest.raises(PlanGenerationError):
        extract_task_array('{"message": "no tasks"}')


def test_normalize_fixes_dates_and_dependencies() -> None:
    result = normalize_entries([_entry(1, start="next monday", end=None, dependencies=None)], TODAY)
    task = result.tasks[0]
    assert (task.start, task.end) == (TODAY, TODAY)
    assert task.dependencies == []
    assert result.rejected == []


def test_normalize_replaces_impossible_calendar_days() -> None:
    result = normalize_entries([_entry(1, start="2025-02-30", end="2025-13-01")], TODAY)
    assert result.rejected == []
    assert (result.tasks[0].start, result.tasks[0].end) == (TODAY, TODAY)


def test_normalize_quarantines_nonconforming_entries() -> None:
    raw = [
        _entry(1),
        _entry(2, type="party"),
        "not an object",
        _entry(1, name="dup"),
        {"name": "no id"},
    ]
    result = normalize_entries(raw, TODAY)
    assert [t.id for t in result.tasks] == [1]
    assert [r.index for r in result.rejected] == [1, 2, 3, 4]


def test_remap_subtasks_rewrites_internal_dependencies() -> None:
    parent = make_task(500)
    generated = [make_task(1), make_task(2, dependencies=[1, 77])]
    out = remap_subtasks(generated, parent, base_id=1000)
    assert [t.id for t in out] == [1000, 1001]
    assert all(t.parent_id == 500 for t in out)
    assert out[1].dependencies == [1000, 77]


def test_remap_without_base_id_gives_fresh_increasing_ids() -> None:
    out = remap_subtasks([make_task(1), make_task(2)], make_task(500))
    assert out[0].id < out[1].id
    assert out[0].id > 500


def test_generate_plan_with_openai_provider(settings: Settings) -> None:
    llm = FakeOpenAIClient(json.dumps({"tasks": [_entry(1), _entry(2, dependencies=[1])]}))
    result = PlanGenerator(settings, client=llm).generate_plan("Two week ERP cutover", today=TODAY)

    assert [t.id for t in result.tasks] == [1, 2]
    call = llm.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    system = call["messages"][0]["content"]
    assert "2025-06-02" in system
    assert call["messages"][1]["content"] == "Two week ERP cutover"


def test_generate_subtasks_prompt_names_parent(settings: Settings) -> None:
    llm = FakeOpenAIClient(json.dumps([_entry(1)]))
    parent = make_task(9, name="Data freeze", start=date(2025, 6, 10), end=date(2025, 6, 12))
    PlanGenerator(settings, client=llm).generate_subtasks(parent, "break it down", today=TODAY)
    system = llm.calls[0]["messages"][0]["content"]
    assert '"Data freeze"' in system
    assert "2025-06-10 to 2025-06-12" in system


def test_generate_plan_with_gemini_provider(settings: Settings) -> None:
    gemini = FakeGenAIClient(json.dumps([_entry(1)]))
    planner = PlanGenerator(replace(settings, llm_provider="gemini", llm_model="gemini-test"), client=gemini)
    result = planner.generate_plan("cutover", today=TODAY)
    assert [t.id for t in result.tasks] == [1]
    call = gemini.calls[0]
    assert call["model"] == "gemini-test"
    assert call["config"].response_mime_type == "application/json"


def test_transport_failure_becomes_plan_error(settings: Settings) -> None:
    with pytest.raises(PlanGenerationError, match="LLM request failed"):
        PlanGenerator(settings, client=FailingOpenAIClient()).generate_plan("x")


def test_missing_api_key(settings: Settings) -> None:
    with pytest.raises(PlanGenerationError, match="API key"):
        PlanGenerator(replace(settings, llm_api_key=None)).generate_plan("x")


def test_all_entries_rejected_is_an_error(settings: Settings) -> None:
    llm = FakeOpenAIClient(json.dumps([{"bogus": True}]))
    with pytest.raises(PlanGenerationError, match="no usable tasks"):
        PlanGenerator(settings, client=llm).generate_plan("x")


def test_empty_description_is_refused(settings: Settings, llm: FakeOpenAIClient) -> None:
    with pytest.raises(PlanGenerationError):
        PlanGenerator(settings, client=llm).generate_plan("   ")
    assert llm.calls == []


def test_apply_plan_replaces_everything() -> None:
    store = TaskStore(InMemoryBackend())
    apply_plan(store, PlanResult(tasks=[make_task(1), make_task(2)]))
    assert [t.id for t in store.tasks] == [1, 2]


def test_apply_subtasks_adds_under_parent_and_expands() -> None:
    backend = InMemoryBackend([make_task(10, is_expanded=False)])
    store = TaskStore(backend)
    added = apply_subtasks(store, store.get(10), PlanResult(tasks=[make_task(1), make_task(2)]), base_id=2000)
    assert [t.id for t in added] == [2000, 2001]
    assert {t.id for t in store.tasks} == {10, 2000, 2001}
    assert store.get(10).is_expanded is True
