# tests/test_store.py

from __future__ import annotations

import requests

from client import TaskApiClient
from store import FALLBACK_ERROR, TaskFilters, TaskState, TaskStore

from .fakes import CountingSession, FakeResponse, FakeSession, task_dict

API = "http://testserver/api"


def _store_for(session) -> TaskStore:
    return TaskStore(TaskApiClient(API, session=session))


# ---- against the real app ----


def test_mount_loads_tasks_once(client, make_task) -> None:
    make_task(title="first")
    make_task(title="second")
    session = CountingSession(client)
    store = _store_for(session)

    store.mount()

    assert [t.title for t in store.state.tasks] == ["second", "first"]
    assert store.state.loading is False
    assert store.state.error is None
    assert len(session.list_calls()) == 1


def test_create_prepends_server_task(store, make_task) -> None:
    make_task(title="existing")
    store.mount()

    result = store.create_task({"title": "  fresh  "})

    assert result.success is True
    assert result.data.title == "fresh"
    assert result.data.status == "pending"
    assert [t.title for t in store.state.tasks] == ["fresh", "existing"]
    assert store.state.loading is False


def test_update_and_status_patch_replace_in_place(store, make_task) -> None:
    a = make_task(title="a")
    b = make_task(title="b")
    store.mount()
    order = [t.id for t in store.state.tasks]

    res = store.update_task(a["id"], {"title": "a2", "description": "more"})
    assert res.success is True
    assert res.data.created_at == a["created_at"]

    res2 = store.update_task_status(b["id"], "completed")
    assert res2.success is True

    assert [t.id for t in store.state.tasks] == order
    by_id = {t.id: t for t in store.state.tasks}
    assert by_id[a["id"]].title == "a2"
    assert by_id[a["id"]].description == "more"
    assert by_id[b["id"]].status == "completed"


def test_delete_removes_task(store, make_task) -> None:
    a = make_task(title="a")
    make_task(title="b")
    store.mount()

    res = store.delete_task(a["id"])

    assert res.success is True
    assert res.data is None
    assert [t.title for t in store.state.tasks] == ["b"]


def test_get_task_leaves_list_untouched(store, make_task) -> None:
    a = make_task(title="a")
    store.mount()
    before = store.state.tasks

    res = store.get_task(a["id"])

    assert res.success is True
    assert res.data.id == a["id"]
    assert store.state.tasks == before
    assert store.state.loading is False


def test_failed_write_reports_server_error(store, make_task) -> None:
    make_task(title="a")
    store.mount()
    before = store.state.tasks

    res = store.create_task({"title": ""})

    assert res.success is False
    assert res.error == "Validation failed"
    assert store.state.error == "Validation failed"
    assert store.state.loading is False
    assert store.state.tasks == before

    missing = store.update_task_status(9999, "completed")
    assert missing.success is False
    assert missing.error == "Task not found"


def test_next_operation_clears_previous_error(store) -> None:
    store.mount()
    store.delete_task(9999)
    assert store.state.error == "Task not found"

    store.create_task({"title": "ok"})
    assert store.state.error is None


def test_filter_changes_issue_one_list_per_distinct_value(client, make_task) -> None:
    make_task(title="done", status="completed")
    make_task(title="todo", status="pending")
    session = CountingSession(client)
    store = _store_for(session)

    store.set_filters(status="completed")  # not mounted yet: pure state update
    assert session.list_calls() == []
    assert store.state.filters == TaskFilters(status="completed")

    store.mount()
    assert [t.title for t in store.state.tasks] == ["done"]
    assert session.list_calls() == [{"status": "completed"}]

    store.set_filters(status="completed")
    store.clear_error()
    assert len(session.list_calls()) == 1

    store.set_filters(search="to", status="")
    assert session.list_calls()[-1] == {"search": "to"}
    assert [t.title for t in store.state.tasks] == ["todo"]
    assert len(session.list_calls()) == 2


def test_subscribers_see_every_state_and_can_unsubscribe(store) -> None:
    seen: list[TaskState] = []
    unsubscribe = store.subscribe(seen.append)

    store.mount()
    assert seen[0].loading is True
    assert seen[-1].loading is False

    unsubscribe()
    count = len(seen)
    store.create_task({"title": "quiet"})
    assert len(seen) == count


# ---- scripted transports ----


def test_transport_error_message_is_surfaced() -> None:
    def refuse(method, url, kwargs):
        raise requests.ConnectionError("Connection refused")

    store = _store_for(FakeSession(refuse))
    store.mount()

    assert store.state.error == "Connection refused"
    assert store.state.loading is False

    res = store.create_task({"title": "x"})
    assert res == type(res)(success=False, error="Connection refused")


def test_rejected_envelope_without_error_uses_operation_message() -> None:
    store = _store_for(FakeSession(lambda m, u, k: FakeResponse({"success": False}, 500)))
    store.mount()
    assert store.state.error == "Failed to fetch tasks"

    assert store.delete_task(1).error == "Failed to delete task"


def test_blank_failure_falls_back_to_generic_message() -> None:
    def blank(method, url, kwargs):
        raise requests.RequestException()

    store = _store_for(FakeSession(blank))
    res = store.update_task_status(1, "completed")
    assert res.error == FALLBACK_ERROR
    assert store.state.error == FALLBACK_ERROR


def test_non_json_response_is_reported() -> None:
    store = _store_for(FakeSession(lambda m, u, k: FakeResponse("<html>", 502, "Bad Gateway")))
    store.mount()
    assert store.state.error == "502 Bad Gateway"


def test_stale_list_response_is_discarded() -> None:
    """A slow earlier list must not overwrite the result of a later one."""
    holder = {}

    def handler(method, url, kwargs):
        params = kwargs.get("params") or {}
        if params.get("status") == "completed":
            return FakeResponse({"success": True, "data": [task_dict(2, "fresh", "completed")], "count": 1})
        # While the first (unfiltered) request is in flight, the user changes filters.
        holder["store"].set_filters(status="completed")
        return FakeResponse({"success": True, "data": [task_dict(1, "stale")], "count": 1})

    session = FakeSession(handler)
    store = _store_for(session)
    holder["store"] = store

    store.mount()

    assert [t.title for t in store.state.tasks] == ["fresh"]
    assert store.state.filters.status == "completed"
    assert store.state.loading is False
    assert len(session.calls) == 2


def test_list_replaces_tasks_wholesale() -> None:
    pages = [
        [task_dict(1, "one"), task_dict(2, "two")],
        [task_dict(3, "three")],
    ]

    def handler(method, url, kwargs):
        return FakeResponse({"success": True, "data": pages.pop(0)})

    store = _store_for(FakeSession(handler))
    store.fetch_tasks()
    assert [t.id for t in store.state.tasks] == [1, 2]
    store.fetch_tasks()
    assert [t.id for t in store.state.tasks] == [3]
