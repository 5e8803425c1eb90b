"""View projection: derives display state from the store and busy markers."""

from __future__ import annotations

from ..models.fleet import RUNNING, Category, Project, Verb
from ..models.view import (
    Controls,
    DashboardView,
    GitCard,
    Health,
    PortRow,
    PortTag,
    ProjectCard,
    ProjectGroups,
)
from .entity_store import EntityStore

ONLINE = "online"
OFFLINE = "offline"
STOPPING = "stopping"


def classify(status: str) -> str:
    return ONLINE if status == RUNNING else OFFLINE


def display_state(project: Project, busy: Verb | None) -> str:
    """``stopping`` while a stop is in flight and the process still reports running."""
    state = classify(project.status)
    if busy is Verb.STOP and state == ONLINE:
        return STOPPING
    return state


def controls(project: Project, busy: Verb | None) -> Controls:
    online = classify(project.status) == ONLINE
    idle = busy is None
    return Controls(
        start=idle and not online,
        stop=idle and online,
        restart=idle,
        sync=idle and project.is_dirty_repo,
    )


def open_url(project: Project, state: str, host: str) -> str | None:
    if state == ONLINE and project.open_ports:
        return f"http://{host}:{project.open_ports[0]}"
    return None


def background_label(project: Project, state: str) -> str | None:
    if project.ports or state == OFFLINE:
        return None
    return "bg bash loop" if "bash" in project.tech.lower() else "background"


def project_card(project_id: str, project: Project, busy: Verb | None, host: str) -> ProjectCard:
    state = display_state(project, busy)
    open_ports = set(project.open_ports)
    return ProjectCard(
        id=project_id,
        name=project.name,
        description=project.description,
        tech=project.tech,
        path=project.path,
        category=project.category,
        status=project.status,
        displayState=state,
        busy=busy.value if busy else None,
        ports=[PortTag(port=p, active=p in open_ports) for p in project.ports],
        backgroundLabel=background_label(project, state),
        openUrl=open_url(project, state, host),
        cpu=f"{project.cpu_percent:g}%" if project.status == RUNNING else None,
        memory=f"{project.memory_mb:g} MB" if project.memory_mb > 0 else None,
        diskUsage=project.disk_usage,
        controls=controls(project, busy),
    )


def group_projects(store: EntityStore, host: str = "localhost") -> ProjectGroups:
    """Partition every stored project into exactly one category bucket."""
    groups = ProjectGroups()
    busy = store.busy_map()
    for project_id, project in store.all().items():
        card = project_card(project_id, project, busy.get(project_id), host)
        if project.category == Category.AGENT.value:
            groups.agent.append(card)
        elif project.category == Category.INFRA.value:
            groups.infra.append(card)
        else:
            groups.uncategorized.append(card)
    return groups


def health(store: EntityStore) -> Health:
    if store.loading:
        return Health(state="connecting", color="yellow", label="Connecting...")
    if store.error:
        return Health(state="error", color="red", label="Connection error")
    return Health(state="ok", color="green", label="All systems operational")


def port_table(store: EntityStore) -> list[PortRow]:
    entries = sorted(store.ports().items(), key=lambda item: item[1].port)
    return [
        PortRow(service=name, port=e.port, project=e.project, description=e.description, inUse=e.in_use)
        for name, e in entries
    ]


def git_view(store: EntityStore) -> list[GitCard]:
    busy = store.busy_map()
    cards = []
    for project_id, project in store.all().items():
        verb = busy.get(project_id)
        cards.append(GitCard(
            id=project_id,
            name=project.name,
            git=project.git,
            syncing=verb is Verb.SYNC,
            canSync=controls(project, verb).sync,
        ))
    return cards


def build_dashboard(store: EntityStore, host: str = "localhost") -> DashboardView:
    return DashboardView(
        health=health(store),
        error=store.error,
        systemStats=store.stats,
        groups=group_projects(store, host),
        git=git_view(store),
        ports=port_table(store),
    )
