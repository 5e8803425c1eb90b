"""FastAPI dependencies for gateway state resolution."""

from __future__ import annotations

from fastapi import Request

from .app_state import GatewayState, get_state


async def gateway_state() -> GatewayState:
    return get_state()


def request_host(request: Request) -> str:
    """Hostname the dashboard was requested on, used for open-port links."""
    return request.url.hostname or "localhost"
