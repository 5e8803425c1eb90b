"""Environment-based configuration for the Fleet Gateway."""

from __future__ import annotations

import os


class GatewayConfig:
    """Gateway configuration loaded from environment variables."""

    def __init__(self) -> None:
        self.host = os.environ.get("FLEET_GATEWAY_HOST", "0.0.0.0")
        self.port = int(os.environ.get("FLEET_GATEWAY_PORT", "8090"))
        self.log_level = os.environ.get("FLEET_LOG_LEVEL", "INFO").upper()

        # Collaborator services (same host, fixed well-known ports)
        self.backend_host = os.environ.get("FLEET_BACKEND_HOST", "localhost")
        self.registry_port = int(os.environ.get("FLEET_REGISTRY_PORT", "4444"))
        self.pm_port = int(os.environ.get("FLEET_PM_PORT", "7777"))
        self.http_timeout = float(os.environ.get("FLEET_HTTP_TIMEOUT", "10.0"))

        # Refresh cadence and convergence polling
        self.refresh_interval = float(os.environ.get("FLEET_REFRESH_INTERVAL", "5.0"))
        self.poll_initial_delay = float(os.environ.get("FLEET_POLL_INITIAL_DELAY", "1.0"))
        self.poll_interval = float(os.environ.get("FLEET_POLL_INTERVAL", "1.0"))
        self.poll_max_attempts = int(os.environ.get("FLEET_POLL_MAX_ATTEMPTS", "10"))
        self.bulk_refresh_delay = float(os.environ.get("FLEET_BULK_REFRESH_DELAY", "1.5"))

        # CORS origins (comma-separated)
        origins = os.environ.get("FLEET_CORS_ORIGINS", "")
        self.cors_origins: list[str] = [o.strip() for o in origins.split(",") if o.strip()] if origins else ["*"]

        if self.poll_max_attempts < 1:
            raise ValueError(f"FLEET_POLL_MAX_ATTEMPTS must be >= 1 (got {self.poll_max_attempts})")

    @property
    def registry_url(self) -> str:
        return f"http://{self.backend_host}:{self.registry_port}"

    @property
    def pm_url(self) -> str:
        return f"http://{self.backend_host}:{self.pm_port}"


# Singleton
config = GatewayConfig()
