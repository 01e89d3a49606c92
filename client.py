"""Thin HTTP client for the task API, returning decoded JSON envelopes."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class TaskApiError(Exception):
    """The server answered with something that is not a JSON envelope."""


class TaskApiClient:
    def __init__(
        self,
        base_url: str = "http://localhost:3001/api",
        *,
        session: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        logger.debug("%s %s %s", method, url, kwargs.get("params") or kwargs.get("json") or "")
        r = self.session.request(method, url, **kwargs)
        try:
            body = r.json()
        except ValueError as e:
            raise TaskApiError(f"{r.status_code} {getattr(r, 'reason_phrase', None) or getattr(r, 'reason', '')}".strip()) from e
        if not isinstance(body, dict):
            raise TaskApiError(f"Unexpected response body from {method} {path}")
        return body

    def list_tasks(self, status: Optional[str] = None, search: Optional[str] = None) -> Dict[str, Any]:
        params = {}
        if status:
            params["status"] = status
        if search:
            params["search"] = search
        return self._request("GET", "/tasks", params=params)

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", json=data)

    def update_task(self, task_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/tasks/{task_id}", json=data)

    def update_task_status(self, task_id: int, status: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/tasks/{task_id}/status", json={"status": status})

    def delete_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/tasks/{task_id}")
