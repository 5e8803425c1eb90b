"""Shared fixtures: an in-memory fake of both backends and a virtual-clock scheduler."""

from __future__ import annotations

import heapq
import itertools
import json

import httpx
import pytest

from fleet_gateway.app_state import GatewayState
from fleet_gateway.config import GatewayConfig
from fleet_gateway.services.backend_client import PortRegistryClient, ProcessManagerClient

REGISTRY_URL = "http://registry.test:4444"
PM_URL = "http://pm.test:7777"


def make_project(name: str, status: str = "stopped", **extra) -> dict:
    data = {
        "name": name,
        "description": f"{name} service",
        "tech": "Python (FastAPI)",
        "path": f"/srv/{name}",
        "status": status,
        "ports": [],
        "open_ports": [],
        "memory_mb": 0,
        "cpu_percent": 0,
        "disk_usage": "12M",
    }
    data.update(extra)
    return data


class FakeBackend:
    """Serves the port registry and process manager from plain dicts.

    ``fail`` holds resource names that should answer 500 (``ports``,
    ``stats``, ``projects``) or drop the connection (``*-down`` variants and
    ``actions-down``). ``status_script`` maps a project id to statuses that
    successive project reads report, one per read.
    """

    def __init__(self) -> None:
        self.projects: dict[str, dict] = {}
        self.ports: dict[str, dict] = {}
        self.stats: dict = {"cpu_total": 12.5, "memory": {"percent": 41.0}}
        self.fail: set[str] = set()
        self.status_script: dict[str, list[str]] = {}
        self.sync_result: dict = {"success": True}
        self.add_result: dict = {"success": True}
        self.requests: list[tuple[str, str]] = []
        self.commands: list[tuple[str, str]] = []
        self.project_reads = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))

        if request.url.host == "registry.test":
            return self._resource("ports", request, lambda: self.ports)

        if path == "/api/system/stats":
            return self._resource("stats", request, lambda: self.stats)

        if path == "/api/projects" and method == "GET":
            return self._resource("projects", request, self._read_projects)

        if path == "/api/projects" and method == "POST":
            body = json.loads(request.content)
            if self.add_result.get("success"):
                self.projects[body["name"]] = make_project(body["name"], category=body.get("category"))
            return httpx.Response(200, json=self.add_result)

        if path.startswith("/api/pm2/"):
            self.commands.append(("*", path.rsplit("/", 1)[-1]))
            return httpx.Response(200, json={"ok": True})

        parts = path.strip("/").split("/")  # api, projects, id[, verb]
        if method == "DELETE" and len(parts) == 3:
            self.projects.pop(parts[2], None)
            return httpx.Response(200, json={"removed": parts[2]})

        if method == "POST" and len(parts) == 4:
            if "actions-down" in self.fail:
                raise httpx.ConnectError("connection refused", request=request)
            project_id, verb = parts[2], parts[3]
            self.commands.append((project_id, verb))
            if verb == "sync":
                return httpx.Response(200, json=self.sync_result)
            return httpx.Response(200, json={"ok": True})

        return httpx.Response(404, json={"detail": "not found"})

    def _resource(self, name: str, request: httpx.Request, payload) -> httpx.Response:
        if f"{name}-down" in self.fail:
            raise httpx.ConnectError("connection refused", request=request)
        if name in self.fail:
            return httpx.Response(500, json={"detail": "boom"})
        return httpx.Response(200, json=payload())

    def _read_projects(self) -> dict:
        self.project_reads += 1
        for project_id, statuses in self.status_script.items():
            if statuses and project_id in self.projects:
                self.projects[project_id]["status"] = statuses.pop(0)
        return self.projects

    def command_count(self, project_id: str) -> int:
        return sum(1 for pid, _ in self.commands if pid == project_id)


class FakeScheduler:
    """Deterministic scheduler driven by a virtual clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_later(self, delay, step) -> None:
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), step))

    async def run_next(self) -> bool:
        if not self._queue:
            return False
        due, _, step = heapq.heappop(self._queue)
        self.now = due
        await step()
        return True

    async def run_all(self, limit: int = 200) -> int:
        steps = 0
        while self._queue and steps < limit:
            await self.run_next()
            steps += 1
        return steps


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def gateway(backend, scheduler) -> GatewayState:
    transport = httpx.MockTransport(backend.handler)
    return GatewayState(
        GatewayConfig(),
        registry=PortRegistryClient(REGISTRY_URL, client=httpx.AsyncClient(transport=transport)),
        process_manager=ProcessManagerClient(PM_URL, client=httpx.AsyncClient(transport=transport)),
        scheduler=scheduler,
    )
