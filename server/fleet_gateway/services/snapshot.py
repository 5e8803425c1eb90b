"""Snapshot fetcher: pulls ports, system stats and projects into the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .backend_client import BackendError, PortRegistryClient, ProcessManagerClient
from .entity_store import EntityStore

logger = logging.getLogger(__name__)

PROJECTS_UNAVAILABLE = "Cannot fetch project list from process manager (:{port})"
CONNECTION_ERROR = "Connection error with backend services."


@dataclass
class RefreshResult:
    ports_ok: bool
    stats_ok: bool
    projects_ok: bool
    error: str | None = None


class SnapshotFetcher:
    """Performs one refresh cycle against both collaborator services.

    Each of the three resources is replaced wholesale on success and left
    untouched on failure. Only the project read drives the error flag.
    """

    def __init__(
        self,
        store: EntityStore,
        registry: PortRegistryClient,
        process_manager: ProcessManagerClient,
        *,
        pm_port: int = 7777,
    ) -> None:
        self._store = store
        self._registry = registry
        self._pm = process_manager
        self._pm_port = pm_port

    async def refresh(self) -> RefreshResult:
        ports_ok = await self._refresh_ports()
        stats_ok = await self._refresh_stats()
        projects_ok = await self._refresh_projects()
        self._store.mark_loaded()
        return RefreshResult(ports_ok, stats_ok, projects_ok, self._store.error)

    async def _refresh_ports(self) -> bool:
        try:
            ports = await self._registry.fetch_ports()
        except BackendError as exc:
            logger.warning("Port registry unavailable, keeping last-known ports: %s", exc)
            return False
        self._store.replace_ports(ports)
        return True

    async def _refresh_stats(self) -> bool:
        try:
            stats = await self._pm.fetch_stats()
        except BackendError as exc:
            logger.debug("System stats unavailable: %s", exc)
            return False
        self._store.replace_stats(stats)
        return True

    async def _refresh_projects(self) -> bool:
        try:
            projects = await self._pm.fetch_projects()
        except BackendError as exc:
            if exc.status_code is not None and exc.status_code >= 400:
                message = PROJECTS_UNAVAILABLE.format(port=self._pm_port)
            else:
                message = CONNECTION_ERROR
            logger.error("Project list fetch failed: %s", exc)
            self._store.set_error(message)
            return False
        self._store.replace_projects(projects)
        self._store.set_error(None)
        return True
