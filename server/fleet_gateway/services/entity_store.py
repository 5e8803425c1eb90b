"""Entity store: last-known mirror of the fleet plus per-project busy markers.

The store never invents keys. Projects and ports only arrive through
wholesale replacement from a snapshot (or disappear through a local echo of
a successful delete). Busy markers live here too so that the
one-action-per-project rule is enforced in a single place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from ..models.fleet import PortEntry, Project, SystemStats, Verb

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class EntityStore:
    """In-memory state container with an explicit mutation API."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._ports: dict[str, PortEntry] = {}
        self._stats: SystemStats | None = None
        self._busy: dict[str, Verb] = {}
        self._error: str | None = None
        self._loading = True
        self._version = 0
        self._listeners: list[Listener] = []

    # ── Read views ───────────────────────────────────────────────────────

    def get(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def all(self) -> dict[str, Project]:
        return dict(self._projects)

    def ports(self) -> dict[str, PortEntry]:
        return dict(self._ports)

    @property
    def stats(self) -> SystemStats | None:
        return self._stats

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def version(self) -> int:
        return self._version

    def busy_verb(self, project_id: str) -> Verb | None:
        return self._busy.get(project_id)

    def busy_map(self) -> dict[str, Verb]:
        return dict(self._busy)

    # ── Snapshot mutation ────────────────────────────────────────────────

    def replace_projects(self, projects: Mapping[str, Project]) -> None:
        self._projects = dict(projects)
        self._changed()

    def replace_ports(self, ports: Mapping[str, PortEntry]) -> None:
        self._ports = dict(ports)
        self._changed()

    def replace_stats(self, stats: SystemStats) -> None:
        self._stats = stats
        self._changed()

    def remove_project(self, project_id: str) -> None:
        """Drop a project after the process manager confirmed its deletion."""
        if self._projects.pop(project_id, None) is not None:
            self._changed()

    def set_error(self, message: str | None) -> None:
        if message != self._error:
            self._error = message
            self._changed()

    def mark_loaded(self) -> None:
        if self._loading:
            self._loading = False
            self._changed()

    # ── Busy markers ─────────────────────────────────────────────────────

    def try_set_busy(self, project_id: str, verb: Verb) -> bool:
        """Set the busy marker unless one is already outstanding."""
        current = self._busy.get(project_id)
        if current is not None:
            logger.info("Rejected %s for '%s': %s already in flight", verb.value, project_id, current.value)
            return False
        self._busy[project_id] = verb
        self._changed()
        return True

    def clear_busy(self, project_id: str) -> None:
        if self._busy.pop(project_id, None) is not None:
            self._changed()

    # ── Change notification ──────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _changed(self) -> None:
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as exc:
                logger.warning("Store listener failed: %s", exc)
