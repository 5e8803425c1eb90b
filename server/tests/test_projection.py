"""Tests for the view projection."""

from __future__ import annotations

from fleet_gateway.models.fleet import GitInfo, PortEntry, Project, Verb
from fleet_gateway.services.entity_store import EntityStore
from fleet_gateway.services.projection import (
    background_label,
    build_dashboard,
    classify,
    controls,
    display_state,
    group_projects,
    health,
    open_url,
    port_table,
)


def _store(projects: dict[str, Project]) -> EntityStore:
    store = EntityStore()
    store.replace_projects(projects)
    store.mark_loaded()
    return store


def test_classify():
    assert classify("running") == "online"
    assert classify("stopped") == "offline"
    assert classify("errored") == "offline"


def test_stopping_only_while_stop_in_flight_and_online():
    running = Project(name="a", status="running")
    stopped = Project(name="a", status="stopped")
    assert display_state(running, Verb.STOP) == "stopping"
    assert display_state(running, Verb.RESTART) == "online"
    assert display_state(running, None) == "online"
    assert display_state(stopped, Verb.STOP) == "offline"


def test_controls_idle():
    online = controls(Project(name="a", status="running"), None)
    assert not online.start and online.stop and online.restart and not online.sync

    offline = controls(Project(name="a", status="stopped"), None)
    assert offline.start and not offline.stop and offline.restart


def test_controls_disabled_while_busy():
    dirty = Project(name="a", status="stopped", git=GitInfo(is_repo=True, is_dirty=True))
    busy = controls(dirty, Verb.RESTART)
    assert not (busy.start or busy.stop or busy.restart or busy.sync)


def test_sync_needs_dirty_repo():
    assert controls(Project(name="a", git=GitInfo(is_repo=True, is_dirty=True)), None).sync
    assert not controls(Project(name="a", git=GitInfo(is_repo=True, is_dirty=False)), None).sync
    assert not controls(Project(name="a", git=GitInfo(is_repo=False, is_dirty=True)), None).sync
    assert not controls(Project(name="a"), None).sync


def test_open_url_and_background_label():
    served = Project(name="a", status="running", ports=[8001, 8002], open_ports=[8002])
    assert open_url(served, "online", "box") == "http://box:8002"
    assert open_url(served, "stopping", "box") is None
    assert background_label(served, "online") is None

    loop = Project(name="b", status="running", tech="Bash")
    assert open_url(loop, "online", "box") is None
    assert background_label(loop, "online") == "bg bash loop"
    assert background_label(Project(name="c", status="running", tech="Node"), "online") == "background"
    assert background_label(Project(name="c", tech="Node"), "offline") is None


def test_grouping_is_disjoint_and_exhaustive():
    projects = {
        "a1": Project(name="a1", category="agent"),
        "a2": Project(name="a2", category="agent"),
        "i1": Project(name="i1", category="infra"),
        "u1": Project(name="u1"),
        "u2": Project(name="u2", category="experimental"),
    }
    groups = group_projects(_store(projects))

    buckets = [groups.agent, groups.infra, groups.uncategorized]
    ids = [card.id for bucket in buckets for card in bucket]
    assert sorted(ids) == sorted(projects)
    assert len(ids) == len(set(ids))
    assert {c.id for c in groups.agent} == {"a1", "a2"}
    assert {c.id for c in groups.infra} == {"i1"}
    assert {c.id for c in groups.uncategorized} == {"u1", "u2"}


def test_card_reflects_busy_marker():
    store = _store({"web": Project(name="web", status="running", ports=[80], open_ports=[80], cpu_percent=2.5)})
    store.try_set_busy("web", Verb.STOP)

    card = group_projects(store).uncategorized[0]
    assert card.displayState == "stopping"
    assert card.busy == "stop"
    assert card.openUrl is None
    assert card.cpu == "2.5%"
    assert card.memory is None
    assert card.ports[0].active
    assert not card.controls.restart


def test_health_states():
    store = EntityStore()
    assert health(store).state == "connecting"
    store.mark_loaded()
    assert health(store).color == "green"
    store.set_error("down")
    assert health(store).state == "error"


def test_port_table_sorted_by_port():
    store = EntityStore()
    store.replace_ports({
        "b": PortEntry(port=9000, project="y"),
        "a": PortEntry(port=4444, project="x", in_use=True),
    })
    rows = port_table(store)
    assert [r.port for r in rows] == [4444, 9000]
    assert rows[0].service == "a" and rows[0].inUse


def test_dashboard_keeps_entities_on_error():
    store = _store({"web": Project(name="web", category="agent", git=GitInfo(is_repo=True, is_dirty=True))})
    store.set_error("Connection error with backend services.")

    view = build_dashboard(store, "box")
    assert view.error
    assert view.health.state == "error"
    assert [c.id for c in view.groups.agent] == ["web"]
    assert view.git[0].canSync
