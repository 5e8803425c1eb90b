"""Gateway state: wires the store, backend clients, fetcher and reconciler.

Replaces ambient shared variables with one owned container that the
routers and the WebSocket poller resolve through ``get_state()``.
"""

from __future__ import annotations

import logging

from .config import GatewayConfig, config
from .services.backend_client import PortRegistryClient, ProcessManagerClient
from .services.entity_store import EntityStore
from .services.reconciler import ActionReconciler
from .services.scheduler import AsyncioScheduler, Scheduler
from .services.snapshot import SnapshotFetcher

logger = logging.getLogger(__name__)


class GatewayState:
    """Holds the service instances for one gateway process."""

    def __init__(
        self,
        cfg: GatewayConfig,
        *,
        registry: PortRegistryClient | None = None,
        process_manager: ProcessManagerClient | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = cfg
        self.store = EntityStore()
        self.registry = registry or PortRegistryClient(cfg.registry_url, timeout=cfg.http_timeout)
        self.process_manager = process_manager or ProcessManagerClient(cfg.pm_url, timeout=cfg.http_timeout)
        self.scheduler = scheduler or AsyncioScheduler()
        self.fetcher = SnapshotFetcher(self.store, self.registry, self.process_manager, pm_port=cfg.pm_port)
        self.reconciler = ActionReconciler(
            self.store,
            self.fetcher,
            self.process_manager,
            self.scheduler,
            initial_delay=cfg.poll_initial_delay,
            poll_interval=cfg.poll_interval,
            max_attempts=cfg.poll_max_attempts,
            bulk_refresh_delay=cfg.bulk_refresh_delay,
        )

    async def close(self) -> None:
        """Cancel pending polls and close HTTP clients (called on shutdown)."""
        if isinstance(self.scheduler, AsyncioScheduler):
            await self.scheduler.shutdown()
        await self.registry.aclose()
        await self.process_manager.aclose()
        logger.info("Gateway state closed")


# Module-level singleton
_state: GatewayState | None = None


def get_state() -> GatewayState:
    """Get (or create) the singleton GatewayState."""
    global _state
    if _state is None:
        _state = GatewayState(config)
    return _state


def set_state(state: GatewayState | None) -> None:
    """Install a prebuilt state (tests) or drop the current one."""
    global _state
    _state = state
