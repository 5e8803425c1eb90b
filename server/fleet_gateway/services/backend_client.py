"""HTTP clients for the port registry and process manager services."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from ..models.fleet import BulkAction, CommandResult, NewProject, PortEntry, Project, SystemStats, Verb

logger = logging.getLogger(__name__)

_PORTS = TypeAdapter(dict[str, PortEntry])
_PROJECTS = TypeAdapter(dict[str, Project])


class BackendError(ConnectionError):
    """A collaborator service was unreachable or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class _JsonService:
    """Shared request/decode plumbing for one collaborator base URL."""

    def __init__(self, base_url: str, *, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, *, json: Any = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %d", method, url, resp.status_code)
        return resp

    async def _get_json(self, path: str) -> Any:
        resp = await self._request("GET", path)
        if resp.is_error:
            raise BackendError(f"GET {path} returned {resp.status_code}", status_code=resp.status_code)
        return _decode(resp)


def _decode(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise BackendError(
            f"Invalid JSON from {resp.request.url} (status {resp.status_code})",
            status_code=resp.status_code,
        ) from exc


def _command_result(resp: httpx.Response) -> CommandResult:
    data = _decode(resp)
    if not isinstance(data, dict):
        return CommandResult(success=False, message=f"Unexpected response (status {resp.status_code})")
    try:
        return CommandResult.model_validate(data)
    except ValidationError as exc:
        raise BackendError(f"Malformed command result (status {resp.status_code})") from exc


class PortRegistryClient(_JsonService):
    """Client for the port-allocation registry (default port 4444)."""

    async def fetch_ports(self) -> dict[str, PortEntry]:
        data = await self._get_json("/ports")
        try:
            return _PORTS.validate_python(data)
        except ValidationError as exc:
            raise BackendError(f"Malformed port registry payload: {exc.error_count()} errors") from exc


class ProcessManagerClient(_JsonService):
    """Client for the process-control service (default port 7777)."""

    async def fetch_stats(self) -> SystemStats:
        data = await self._get_json("/api/system/stats")
        try:
            return SystemStats.model_validate(data)
        except ValidationError as exc:
            raise BackendError("Malformed system stats payload") from exc

    async def fetch_projects(self) -> dict[str, Project]:
        data = await self._get_json("/api/projects")
        try:
            return _PROJECTS.validate_python(data)
        except ValidationError as exc:
            raise BackendError(f"Malformed project payload: {exc.error_count()} errors") from exc

    async def add_project(self, project: NewProject) -> CommandResult:
        resp = await self._request("POST", "/api/projects", json=project.to_payload())
        return _command_result(resp)

    async def delete_project(self, project_id: str) -> None:
        resp = await self._request("DELETE", f"/api/projects/{quote(project_id, safe='')}")
        if resp.is_error:
            raise BackendError(f"Delete of '{project_id}' returned {resp.status_code}", status_code=resp.status_code)

    async def send_action(self, project_id: str, verb: Verb) -> CommandResult:
        """Issue a lifecycle command.

        Only ``sync`` carries a contractual body; for the other verbs the
        result just reflects the HTTP status.
        """
        resp = await self._request("POST", f"/api/projects/{quote(project_id, safe='')}/{verb.value}")
        if verb is not Verb.SYNC:
            return CommandResult(success=resp.is_success)
        return _command_result(resp)

    async def bulk(self, action: BulkAction) -> None:
        await self._request("POST", f"/api/pm2/{action.value}")
