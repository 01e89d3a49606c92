"""
Client-side task store.

State lives in one immutable ``TaskState``. ``task_reducer`` is the only way
state changes; ``TaskStore`` is the effect boundary that talks to the API and
dispatches the outcome. Views subscribe to the store and re-render from the
state they are handed.

Every API-backed operation follows the same pattern:
- SET_LOADING(True) + CLEAR_ERROR
- call the API
- merge the server's representation into ``tasks`` or capture the error

Failures never escape the store: write operations return a ``StoreResult``
and ``fetch_tasks`` only updates ``state.error``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from client import TaskApiClient
from models import Task

logger = logging.getLogger(__name__)

FALLBACK_ERROR = "An unexpected error occurred"

Listener = Callable[["TaskState"], None]


@dataclass(frozen=True)
class TaskFilters:
    status: str = ""
    search: str = ""


@dataclass(frozen=True)
class TaskState:
    tasks: Tuple[Task, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    filters: TaskFilters = field(default_factory=TaskFilters)


class ActionType(str, Enum):
    SET_LOADING = "SET_LOADING"
    SET_ERROR = "SET_ERROR"
    CLEAR_ERROR = "CLEAR_ERROR"
    SET_TASKS = "SET_TASKS"
    ADD_TASK = "ADD_TASK"
    UPDATE_TASK = "UPDATE_TASK"
    DELETE_TASK = "DELETE_TASK"
    SET_FILTERS = "SET_FILTERS"


@dataclass(frozen=True)
class Action:
    type: ActionType
    payload: Any = None


@dataclass(frozen=True)
class StoreResult:
    success: bool
    data: Optional[Task] = None
    error: Optional[str] = None


def task_reducer(state: TaskState, action: Action) -> TaskState:
    """Pure transition function: never mutates ``state``, unknown actions are a no-op."""
    t = action.type

    if t == ActionType.SET_LOADING:
        return replace(state, loading=bool(action.payload))

    if t == ActionType.SET_ERROR:
        return replace(state, error=action.payload, loading=False)

    if t == ActionType.CLEAR_ERROR:
        return replace(state, error=None)

    if t == ActionType.SET_TASKS:
        return replace(state, tasks=tuple(action.payload), loading=False)

    if t == ActionType.ADD_TASK:
        return replace(state, tasks=(action.payload,) + state.tasks, loading=False)

    if t == ActionType.UPDATE_TASK:
        updated = action.payload
        return replace(
            state,
            tasks=tuple(updated if task.id == updated.id else task for task in state.tasks),
            loading=False,
        )

    if t == ActionType.DELETE_TASK:
        return replace(
            state,
            tasks=tuple(task for task in state.tasks if task.id != action.payload),
            loading=False,
        )

    if t == ActionType.SET_FILTERS:
        changes = {k: v or "" for k, v in dict(action.payload).items()}
        return replace(state, filters=replace(state.filters, **changes))

    return state


class _EnvelopeRejected(Exception):
    pass


def error_message(exc: BaseException) -> str:
    """
    Text shown for a failed call: the exception message, or a generic fallback.

    Rejected envelopes arrive here as ``_EnvelopeRejected`` carrying the
    server's error string, so a server message always wins over transport text.
    """
    text = str(exc).strip()
    return text or FALLBACK_ERROR


class TaskStore:
    def __init__(self, api: TaskApiClient, state: Optional[TaskState] = None) -> None:
        self.api = api
        self._state = state or TaskState()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._list_seq = 0
        self._mounted = False
        self._listed_filters: Optional[TaskFilters] = None
        self._listeners.append(self._filters_effect)

    # ---- state container ----

    @property
    def state(self) -> TaskState:
        return self._state

    def dispatch(self, action: Action) -> TaskState:
        with self._lock:
            new_state = task_reducer(self._state, action)
            if new_state is self._state:
                return new_state
            self._state = new_state
            listeners = list(self._listeners)

        # listeners may issue requests (filter effect), so never under the lock
        for listener in listeners:
            listener(new_state)
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ---- effects ----

    def mount(self) -> None:
        """Start the filter effect; issues the initial list for the current filters."""
        self._mounted = True
        self._filters_effect(self._state)

    def _filters_effect(self, state: TaskState) -> None:
        with self._lock:
            if not self._mounted or state.filters == self._listed_filters:
                return
            self._listed_filters = state.filters
        self.fetch_tasks(state.filters)

    def _begin(self) -> None:
        self.dispatch(Action(ActionType.SET_LOADING, True))
        self.dispatch(Action(ActionType.CLEAR_ERROR))

    def _fail(self, exc: BaseException) -> str:
        logger.warning("API Error: %s", exc)
        message = error_message(exc)
        self.dispatch(Action(ActionType.SET_ERROR, message))
        return message

    @staticmethod
    def _unwrap(body: Mapping[str, Any], fallback: str) -> Any:
        if not body.get("success"):
            raise _EnvelopeRejected(body.get("error") or fallback)
        return body.get("data")

    def _write(self, call: Callable[[], Dict[str, Any]], fallback: str, on_success: Callable[[Any], Action]) -> StoreResult:
        self._begin()
        try:
            data = self._unwrap(call(), fallback)
            task = Task.model_validate(data) if data is not None else None
        except Exception as e:
            return StoreResult(success=False, error=self._fail(e))
        self.dispatch(on_success(task))
        return StoreResult(success=True, data=task)

    # ---- operations ----

    def fetch_tasks(self, filters: Optional[TaskFilters] = None) -> None:
        filters = filters if filters is not None else self._state.filters
        with self._lock:
            self._list_seq += 1
            seq = self._list_seq

        self._begin()
        try:
            data = self._unwrap(self.api.list_tasks(filters.status, filters.search), "Failed to fetch tasks")
            tasks = [Task.model_validate(item) for item in data or []]
        except Exception as e:
            if seq != self._list_seq:
                logger.debug("Discarding stale list failure seq=%s latest=%s", seq, self._list_seq)
                return
            self._fail(e)
            return

        # 较早发出的请求晚返回时直接丢弃
        if seq != self._list_seq:
            logger.debug("Discarding stale list response seq=%s latest=%s", seq, self._list_seq)
            return
        self.dispatch(Action(ActionType.SET_TASKS, tasks))

    def get_task(self, task_id: int) -> StoreResult:
        return self._write(
            lambda: self.api.get_task(task_id),
            "Failed to fetch task",
            lambda task: Action(ActionType.SET_LOADING, False),
        )

    def create_task(self, data: Mapping[str, Any]) -> StoreResult:
        return self._write(
            lambda: self.api.create_task(dict(data)),
            "Failed to create task",
            lambda task: Action(ActionType.ADD_TASK, task),
        )

    def update_task(self, task_id: int, data: Mapping[str, Any]) -> StoreResult:
        return self._write(
            lambda: self.api.update_task(task_id, dict(data)),
            "Failed to update task",
            lambda task: Action(ActionType.UPDATE_TASK, task),
        )

    def update_task_status(self, task_id: int, status: str) -> StoreResult:
        return self._write(
            lambda: self.api.update_task_status(task_id, status),
            "Failed to update task status",
            lambda task: Action(ActionType.UPDATE_TASK, task),
        )

    def delete_task(self, task_id: int) -> StoreResult:
        return self._write(
            lambda: self.api.delete_task(task_id),
            "Failed to delete task",
            lambda task: Action(ActionType.DELETE_TASK, task_id),
        )

    def set_filters(self, **changes: str) -> None:
        """Merge filter changes. Once mounted, the filter effect runs the list call inline, before this returns."""
        self.dispatch(Action(ActionType.SET_FILTERS, changes))

    def clear_error(self) -> None:
        self.dispatch(Action(ActionType.CLEAR_ERROR))
