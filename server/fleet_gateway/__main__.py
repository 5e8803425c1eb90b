"""Run the gateway with uvicorn: ``python -m fleet_gateway``."""

from __future__ import annotations

import uvicorn

from .config import config


def main() -> None:
    uvicorn.run("fleet_gateway.app:app", host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
