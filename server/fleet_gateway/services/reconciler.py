"""Action reconciler: lifecycle commands and bounded convergence polling.

Per project the reconciler is either idle or busy with exactly one verb.
A request marks the project busy, fires the command at the process
manager, then polls: after each snapshot refresh the project is re-read
from the store and checked against the verb's convergence predicate. The
marker is released on convergence, when the attempt bound is hit, or as
soon as the command itself cannot be issued.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from ..models.fleet import RUNNING, STOPPED, BulkAction, CommandResult, NewProject, Project, Verb
from .backend_client import BackendError, ProcessManagerClient
from .entity_store import EntityStore
from .scheduler import Scheduler
from .snapshot import SnapshotFetcher

logger = logging.getLogger(__name__)


class ActionOutcome(BaseModel):
    project_id: str
    verb: Verb
    accepted: bool
    command_failed: bool = False
    sync_result: CommandResult | None = None


def is_converged(verb: Verb, project: Project | None) -> bool:
    """Decide whether an in-flight ``verb`` has settled for ``project``.

    A project missing from the store (deleted while busy) counts as settled.
    Restart never settles early; it always runs to the attempt bound since
    it passes through ``stopped`` on the way back up.
    """
    if project is None:
        return True
    if verb is Verb.STOP:
        return project.status == STOPPED
    if verb is Verb.START:
        return project.status == RUNNING
    if verb is Verb.SYNC:
        return not (project.git and project.git.is_dirty)
    return False


class ActionReconciler:
    def __init__(
        self,
        store: EntityStore,
        fetcher: SnapshotFetcher,
        process_manager: ProcessManagerClient,
        scheduler: Scheduler,
        *,
        initial_delay: float = 1.0,
        poll_interval: float = 1.0,
        max_attempts: int = 10,
        bulk_refresh_delay: float = 1.5,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._pm = process_manager
        self._scheduler = scheduler
        self._initial_delay = initial_delay
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._bulk_refresh_delay = bulk_refresh_delay

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def request(self, project_id: str, verb: Verb) -> ActionOutcome:
        """Start ``verb`` on ``project_id`` unless an action is already in flight."""
        if not self._store.try_set_busy(project_id, verb):
            return ActionOutcome(project_id=project_id, verb=verb, accepted=False)

        try:
            result = await self._pm.send_action(project_id, verb)
        except BackendError as exc:
            logger.warning("Could not issue %s for '%s': %s", verb.value, project_id, exc)
            self._store.clear_busy(project_id)
            sync_result = CommandResult(success=False, message=str(exc)) if verb is Verb.SYNC else None
            return ActionOutcome(
                project_id=project_id, verb=verb, accepted=True, command_failed=True, sync_result=sync_result
            )

        sync_result = None
        if verb is Verb.SYNC:
            sync_result = result
            if result.success:
                logger.info("Sync succeeded for '%s'", project_id)
            else:
                logger.warning("Sync failed for '%s': %s", project_id, result.message)
        elif not result.success:
            logger.warning("%s for '%s' answered with an error status; polling anyway", verb.value, project_id)

        self._schedule_poll(project_id, verb, 1, self._initial_delay)
        return ActionOutcome(project_id=project_id, verb=verb, accepted=True, sync_result=sync_result)

    def _schedule_poll(self, project_id: str, verb: Verb, attempt: int, delay: float) -> None:
        async def _step() -> None:
            await self._poll(project_id, verb, attempt)

        self._scheduler.call_later(delay, _step)

    async def _poll(self, project_id: str, verb: Verb, attempt: int) -> None:
        try:
            await self._fetcher.refresh()
            # Always re-read after the refresh has landed.
            project = self._store.get(project_id)
            done = is_converged(verb, project)
        except Exception:
            logger.exception("Poll %d for %s '%s' failed; releasing", attempt, verb.value, project_id)
            self._store.clear_busy(project_id)
            return

        if done:
            if project is None:
                logger.info("'%s' disappeared while %s was in flight", project_id, verb.value)
            else:
                logger.info("%s for '%s' converged after %d poll(s)", verb.value, project_id, attempt)
            self._store.clear_busy(project_id)
        elif attempt >= self._max_attempts:
            if verb is not Verb.RESTART:
                logger.info(
                    "%s for '%s' did not converge after %d polls (status %s); giving up",
                    verb.value, project_id, attempt, project.status,
                )
            self._store.clear_busy(project_id)
        else:
            self._schedule_poll(project_id, verb, attempt + 1, self._poll_interval)

    # ── Fleet-level commands ─────────────────────────────────────────────

    async def add_project(self, new: NewProject) -> CommandResult:
        result = await self._pm.add_project(new)
        if result.success:
            logger.info("Registered project '%s' at %s", new.name, new.path)
            await self._fetcher.refresh()
        else:
            logger.warning("Process manager refused '%s': %s", new.name, result.message)
        return result

    async def delete_project(self, project_id: str) -> None:
        await self._pm.delete_project(project_id)
        logger.info("Deleted project '%s'", project_id)
        self._store.remove_project(project_id)
        await self._fetcher.refresh()

    async def bulk(self, action: BulkAction) -> None:
        try:
            await self._pm.bulk(action)
        except BackendError as exc:
            logger.warning("Bulk %s failed: %s", action.value, exc)
        if action is BulkAction.SHUTDOWN:
            return

        async def _refresh() -> None:
            await self._fetcher.refresh()

        self._scheduler.call_later(self._bulk_refresh_delay, _refresh)
