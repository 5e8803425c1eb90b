"""Display-ready view models served to the dashboard frontend."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .fleet import GitInfo, SystemStats


class Controls(BaseModel):
    start: bool
    stop: bool
    restart: bool
    sync: bool


class PortTag(BaseModel):
    port: int
    active: bool


class ProjectCard(BaseModel):
    id: str
    name: str
    description: str
    tech: str
    path: str
    category: str | None = None
    status: str
    displayState: str  # online | offline | stopping
    busy: str | None = None
    ports: list[PortTag] = []
    backgroundLabel: str | None = None
    openUrl: str | None = None
    cpu: str | None = None
    memory: str | None = None
    diskUsage: str = ""
    controls: Controls


class ProjectGroups(BaseModel):
    agent: list[ProjectCard] = []
    infra: list[ProjectCard] = []
    uncategorized: list[ProjectCard] = []


class GitCard(BaseModel):
    id: str
    name: str
    git: GitInfo | None = None
    syncing: bool = False
    canSync: bool = False


class PortRow(BaseModel):
    service: str
    port: int
    project: str
    description: str
    inUse: bool


class Health(BaseModel):
    state: str  # connecting | error | ok
    color: str
    label: str


class DashboardView(BaseModel):
    health: Health
    error: str | None = None
    systemStats: SystemStats | None = None
    groups: ProjectGroups = Field(default_factory=ProjectGroups)
    git: list[GitCard] = []
    ports: list[PortRow] = []
