"""WebSocket connection manager with the periodic background refresh."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import WebSocket

from ..app_state import GatewayState
from ..services.projection import build_dashboard

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks dashboard WebSocket clients and pushes the view on every store change."""

    def __init__(self) -> None:
        # ws -> hostname the client connected on (for open-port links)
        self._connections: dict[WebSocket, str] = {}
        self._poller_task: asyncio.Task | None = None
        self._push_task: asyncio.Task | None = None
        self._dirty = False
        self._unsubscribe = None
        self._state: GatewayState | None = None

    @property
    def client_count(self) -> int:
        return len(self._connections)

    def attach(self, state: GatewayState) -> None:
        """Follow a gateway state's store for change notifications."""
        self.detach()
        self._state = state
        self._unsubscribe = state.store.subscribe(self._on_store_change)

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self._state = None

    async def connect(self, ws: WebSocket, host: str = "localhost") -> None:
        await ws.accept()
        self._connections[ws] = host
        logger.info("WebSocket client connected (%d total)", len(self._connections))
        if self._state is not None:
            await self._send(ws, host)

    def disconnect(self, ws: WebSocket) -> None:
        self._connections.pop(ws, None)
        logger.info("WebSocket client disconnected (%d total)", len(self._connections))

    async def broadcast(self) -> None:
        """Send the current dashboard view to every connected client."""
        disconnected: list[WebSocket] = []
        for ws, host in list(self._connections.items()):
            try:
                await self._send(ws, host)
            except Exception:
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(ws)

    async def _send(self, ws: WebSocket, host: str) -> None:
        view = build_dashboard(self._state.store, host)
        await ws.send_text(json.dumps({"type": "dashboard", "data": view.model_dump(mode="json")}))

    def _on_store_change(self) -> None:
        # Coalesce bursts of store mutations into a single push.
        if not self._connections:
            return
        self._dirty = True
        if self._push_task is not None and not self._push_task.done():
            return
        try:
            self._push_task = asyncio.get_running_loop().create_task(self._push_soon())
        except RuntimeError:
            pass  # no running loop

    async def _push_soon(self) -> None:
        await asyncio.sleep(0)
        # Changes landing mid-broadcast set the flag again and get another pass.
        while self._dirty:
            self._dirty = False
            await self.broadcast()

    def start_poller(self, interval: float) -> None:
        """Start the background refresh task."""
        if self._poller_task is None or self._poller_task.done():
            self._poller_task = asyncio.create_task(self._poll_loop(interval))
            logger.info("Background refresh started (every %.1fs)", interval)

    def stop_poller(self) -> None:
        """Stop the background refresh task."""
        if self._poller_task and not self._poller_task.done():
            self._poller_task.cancel()
            logger.info("Background refresh stopped")

    async def _poll_loop(self, interval: float) -> None:
        """Refresh the store every ``interval`` seconds, independent of in-flight actions."""
        while True:
            try:
                await asyncio.sleep(interval)
                if self._state is not None:
                    await self._state.fetcher.refresh()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("Background refresh error: %s", exc)


# Singleton
ws_manager = ConnectionManager()
