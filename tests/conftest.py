# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cutover_planner.api.app import create_app
from cutover_planner.config import Settings
from cutover_planner.infrastructure.db import Database
from cutover_planner.services.planner import PlanGenerator
from cutover_planner.services.store import TaskStore

from .fakes import FakeOpenAIClient, InMemoryBackend


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing every path at the per-test tmp dir.

    Built directly rather than from the environment, so a developer's .env
    never leaks into a test run.
    """
    return Settings(
        data_dir=tmp_path,
        db_path=tmp_path / "planner.sqlite3",
        llm_provider="openai",
        llm_api_key="test-key",
        llm_model="test-model",
    )


@pytest.fixture()
def db(settings: Settings) -> Iterator[Database]:
    database = Database(settings.db_path)
    yield database
    database.close()


@pytest.fixture()
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture()
def store(backend: InMemoryBackend) -> TaskStore:
    """Store over an empty in-memory backend; first access seeds the default plan."""
    return TaskStore(backend)


@pytest.fixture()
def llm() -> FakeOpenAIClient:
    return FakeOpenAIClient()


@pytest.fixture()
def client(settings: Settings, llm: FakeOpenAIClient) -> Iterator[TestClient]:
    app = create_app(settings, planner=PlanGenerator(settings, client=llm))
    with TestClient(app) as c:
        yield c
