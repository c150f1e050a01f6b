"""LLM plan generation: prompt an OpenAI-compatible model or Gemini for a task list."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import httpx
import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from openai import OpenAI
from pydantic import ValidationError

from cutover_planner.config import Settings
from cutover_planner.models import Task, next_task_id, parse_day
from cutover_planner.prompts import PLAN_SYSTEM_PROMPT, SUBTASK_CONTEXT_PROMPT
from cutover_planner.services.store import TaskStore

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

GEMINI_TASK_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "id": types.Schema(type=types.Type.INTEGER),
            "name": types.Schema(type=types.Type.STRING),
            "start": types.Schema(type=types.Type.STRING, description="YYYY-MM-DD format"),
            "end": types.Schema(type=types.Type.STRING, description="YYYY-MM-DD format"),
            "type": types.Schema(
                type=types.Type.STRING, enum=["prep", "cutover", "upstream", "downstream", "milestone"]
            ),
            "status": types.Schema(type=types.Type.STRING, enum=["todo", "in-progress", "done"]),
            "owner": types.Schema(type=types.Type.STRING),
            "dependencies": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.INTEGER)),
            "order": types.Schema(type=types.Type.INTEGER),
            "parentId": types.Schema(type=types.Type.INTEGER, nullable=True),
            "isExpanded": types.Schema(type=types.Type.BOOLEAN),
        },
        required=["id", "name", "start", "end", "type", "status", "owner", "order", "isExpanded"],
    ),
)


class PlanGenerationError(RuntimeError):
    """The model could not be reached or its output was unusable."""


@dataclass
class RejectedEntry:
    index: int
    entry: Any
    error: str


@dataclass
class PlanResult:
    tasks: list[Task] = field(default_factory=list)
    rejected: list[RejectedEntry] = field(default_factory=list)


def extract_task_array(text: str) -> list[Any]:
    """Pull the task array out of a model reply.

    Accepts a bare array, ``{"tasks": [...]}``, an object whose first array
    value holds the tasks, fenced code blocks and surrounding chatter.
    """
    data = _parse_json_lenient(text)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("tasks"), list):
            return data["tasks"]
        first = next((v for v in data.values() if isinstance(v, list)), None)
        if first is not None:
            return first
    raise PlanGenerationError("Model reply does not contain a task array.")


def _parse_json_lenient(text: str) -> Any:
    text = (text or "").strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    # widest bracketed span, with trailing commas removed (common model mistake)
    for opener, closer in (("[", "]"), ("{", "}")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            cleaned = re.sub(r",\s*([\]}])", r"\1", text[start : end + 1])
            try:
                return json.loads(cleaned)
            except json.JSONDecodeError:
                continue

    raise PlanGenerationError(f"Failed to parse AI plan. Reply started with: {text[:100]!r}")


def _is_real_day(value: Any) -> bool:
    if not (isinstance(value, str) and DATE_RE.match(value)):
        return False
    try:
        parse_day(value)
    except ValueError:
        return False
    return True


def normalize_entries(raw: list[Any], today: date) -> PlanResult:
    """Validate generated entries against the ``Task`` schema.

    Malformed dates become ``today`` and a missing ``dependencies`` becomes
    ``[]``; any other problem quarantines the entry in ``rejected``.
    """
    result = PlanResult()
    seen: set[int] = set()
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            result.rejected.append(RejectedEntry(i, entry, "not an object"))
            continue
        fixed = dict(entry)
        for key in ("start", "end"):
            if not _is_real_day(fixed.get(key)):
                fixed[key] = today.isoformat()
        if fixed.get("dependencies") is None:
            fixed["dependencies"] = []
        try:
            task = Task.model_validate(fixed)
        except ValidationError as e:
            result.rejected.append(RejectedEntry(i, entry, str(e)))
            continue
        if task.id in seen:
            result.rejected.append(RejectedEntry(i, entry, f"duplicate id {task.id}"))
            continue
        seen.add(task.id)
        result.tasks.append(task)

    if result.rejected:
        logger.warning("Quarantined %d of %d generated tasks", len(result.rejected), len(raw))
    return result


def remap_subtasks(tasks: list[Task], parent: Task, base_id: int | None = None) -> list[Task]:
    """Give generated subtasks fresh ids under ``parent``.

    Dependencies pointing inside the batch follow the new ids; anything
    else is kept as-is.
    """
    if base_id is None:
        id_map = {t.id: next_task_id() for t in tasks}
    else:
        id_map = {t.id: base_id + i for i, t in enumerate(tasks)}
    return [
        t.model_copy(
            update={
                "id": id_map[t.id],
                "parent_id": parent.id,
                "dependencies": [id_map.get(d, d) for d in t.dependencies],
            }
        )
        for t in tasks
    ]


def apply_plan(store: TaskStore, result: PlanResult) -> list[Task]:
    store.replace_all_tasks(result.tasks)
    return result.tasks


def apply_subtasks(store: TaskStore, parent: Task, result: PlanResult, base_id: int | None = None) -> list[Task]:
    added = [store.add_task(t) for t in remap_subtasks(result.tasks, parent, base_id)]
    store.expand(parent.id)
    return added


class PlanGenerator:
    def __init__(self, settings: Settings, client: Any | None = None):
        self.settings = settings
        self._client = client

    def generate_plan(self, description: str, today: date | None = None) -> PlanResult:
        today = today or date.today()
        system = PLAN_SYSTEM_PROMPT.format(today=today.isoformat())
        return self._generate(system, description, today)

    def generate_subtasks(self, parent: Task, description: str, today: date | None = None) -> PlanResult:
        today = today or date.today()
        system = PLAN_SYSTEM_PROMPT.format(today=today.isoformat()) + SUBTASK_CONTEXT_PROMPT.format(
            parent_name=parent.name,
            parent_start=parent.start.isoformat(),
            parent_end=parent.end.isoformat(),
        )
        return self._generate(system, description, today)

    def _generate(self, system: str, description: str, today: date) -> PlanResult:
        if not description.strip():
            raise PlanGenerationError("Describe the plan to generate.")
        text = self._complete(system, description)
        result = normalize_entries(extract_task_array(text), today)
        if not result.tasks:
            raise PlanGenerationError("The model returned no usable tasks.")
        logger.info("Generated %d tasks (%d rejected)", len(result.tasks), len(result.rejected))
        return result

    def _complete(self, system: str, user: str) -> str:
        provider = self.settings.llm_provider
        try:
            if provider == "gemini":
                return self._complete_gemini(system, user)
            return self._complete_openai(system, user)
        except (openai.OpenAIError, genai_errors.APIError, httpx.HTTPError) as e:
            raise PlanGenerationError(f"LLM request failed ({provider}): {e}") from e

    def _require_key(self) -> str:
        key = self.settings.llm_api_key
        if not key or not key.strip():
            raise PlanGenerationError(
                "LLM is not configured (missing API key). Set CUTOVER_LLM_API_KEY in .env."
            )
        return key

    def _complete_openai(self, system: str, user: str) -> str:
        client = self._client or OpenAI(
            base_url=self.settings.llm_base_url,
            api_key=self._require_key(),
            timeout=self.settings.llm_timeout_seconds,
            max_retries=0,
        )
        response = client.chat.completions.create(
            model=self.settings.llm_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        if not content:
            raise PlanGenerationError("No response from the model.")
        return content

    def _complete_gemini(self, system: str, user: str) -> str:
        client = self._client or genai.Client(api_key=self._require_key())
        response = client.models.generate_content(
            model=self.settings.llm_model,
            contents=user,
            config=types.GenerateContentConfig(
                system_instruction=system,
                response_mime_type="application/json",
                response_schema=GEMINI_TASK_SCHEMA,
            ),
        )
        if not response.text:
            raise PlanGenerationError("No response from Gemini.")
        return response.text
