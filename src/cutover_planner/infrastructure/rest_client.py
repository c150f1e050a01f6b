"""Task backend that talks to a running planner API over HTTP."""

from __future__ import annotations

import httpx

from cutover_planner.models import Task


class RestTaskBackend:
    def __init__(self, base_url: str, client: httpx.Client | None = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self.client.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def list_tasks(self) -> list[Task]:
        resp = self.client.get(self._url("/tasks"))
        resp.raise_for_status()
        return [Task.model_validate(row) for row in resp.json()]

    def upsert_task(self, task: Task) -> int:
        resp = self.client.post(self._url("/tasks"), json=task.to_wire())
        resp.raise_for_status()
        return resp.json().get("id") or task.id

    def delete_task(self, task_id: int) -> bool:
        resp = self.client.delete(self._url(f"/tasks/{task_id}"))
        if resp.status_code == 404:
            return False
        resp.raise_for_status()
        return True

    def sync_tasks(self, tasks: list[Task]) -> None:
        resp = self.client.put(self._url("/tasks/sync"), json=[t.to_wire() for t in tasks])
        resp.raise_for_status()

    def replace_tasks(self, tasks: list[Task]) -> None:
        resp = self.client.put(
            self._url("/tasks/sync"), params={"replace": "true"}, json=[t.to_wire() for t in tasks]
        )
        resp.raise_for_status()

    def reset_tasks(self) -> None:
        resp = self.client.post(self._url("/tasks/reset"))
        resp.raise_for_status()
