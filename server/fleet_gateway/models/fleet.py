"""Fleet data models matching the port registry and process manager payloads."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Verb(str, Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    SYNC = "sync"


class BulkAction(str, Enum):
    START_ALL = "start-all"
    STOP_ALL = "stop-all"
    SHUTDOWN = "shutdown"


class Category(str, Enum):
    AGENT = "agent"
    INFRA = "infra"


RUNNING = "running"
STOPPED = "stopped"


class GitInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    is_repo: bool = False
    branch: str | None = None
    is_dirty: bool = False
    remote: str | None = None
    status_summary: str | None = None
    error: str | None = None


class Project(BaseModel):
    """A tracked process as reported by the process manager."""

    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""
    tech: str = ""
    path: str = ""
    status: str = ""  # opaque backend string
    category: str | None = None
    ports: list[int] = []
    open_ports: list[int] = []
    memory_mb: float = 0
    cpu_percent: float = 0
    disk_usage: str = ""
    token_usage: int = 0
    relations: list[str] = []
    services: list[str] | None = None
    git: GitInfo | None = None

    @property
    def is_dirty_repo(self) -> bool:
        return bool(self.git and self.git.is_repo and self.git.is_dirty)


class PortEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    port: int
    project: str = ""
    description: str = ""
    in_use: bool = False


class MemoryStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    percent: float = 0


class SystemStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cpu_total: float = 0
    memory: MemoryStats = Field(default_factory=MemoryStats)


class NewProject(BaseModel):
    """Registration request forwarded to the process manager."""

    name: str
    path: str
    description: str = ""
    tech: str = ""
    category: Category = Category.AGENT
    start_script: str | None = None
    pm2_name: str | None = None
    service_name: str = ""

    @field_validator("name", "path")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("start_script", "pm2_name")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    def to_payload(self) -> dict:
        """Request body in the process manager's wire shape."""
        return {
            "name": self.name,
            "path": self.path,
            "description": self.description,
            "tech": self.tech,
            "category": self.category.value,
            "start_script": self.start_script,
            "pm2_name": self.pm2_name,
            "serviceName": self.service_name,
        }


class CommandResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    message: str | None = None
