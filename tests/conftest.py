# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from client import TaskApiClient
from config import Settings
from main import create_app
from store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file per test."""
    return Settings(
        database_path=tmp_path / "tasks.db",
        api_prefix="/api",
        environment="test",
        log_level="DEBUG",
        cors_origins=["*"],
        host="127.0.0.1",
        port=3001,
        api_url="http://testserver/api",
        client_timeout=None,
    )


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    # Context manager runs the lifespan, which creates the schema.
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_task(client):
    def _make(**fields):
        body = {"title": "Task", **fields}
        r = client.post("/api/tasks", json=body)
        assert r.status_code == 201, r.json()
        return r.json()["data"]

    return _make


@pytest.fixture()
def store(client, settings: Settings) -> TaskStore:
    """A store talking to the real app through the TestClient transport."""
    return TaskStore(TaskApiClient(settings.api_url, session=client))
