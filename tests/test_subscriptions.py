from project_sync.schema import ErrorKind, Identity, Origin
from project_sync.subscriptions import SubscriptionManager


def _manager(service, timers):
    changes = []
    manager = SubscriptionManager(
        service,
        lambda legacy, shared: changes.append((legacy, shared)),
        legacy_collection="user_projects",
        shared_collection="projects",
        first_push_timeout_sec=5.0,
        timer_factory=timers,
    )
    return manager, changes


def test_start_opens_owner_and_membership_subscriptions(quiet_service, timers, alice) -> None:
    manager, _ = _manager(quiet_service, timers)

    manager.start(alice)

    locations = sorted((s["location"] for s in quiet_service.active_subscriptions()), key=lambda loc: loc.collection)
    assert [loc.collection for loc in locations] == ["projects", "user_projects"]
    assert locations[0].member_id == "alice" and locations[0].owner_id is None
    assert locations[1].owner_id == "alice" and locations[1].member_id is None
    assert manager.loaded is False


def test_push_tags_items_with_origin(quiet_service, timers, alice) -> None:
    quiet_service.seed("user_projects", {"id": "p1", "ownerId": "alice", "name": "Mine"})
    quiet_service.seed("projects", {"id": "p2", "memberIds": ["alice", "bob"], "name": "Team"})
    manager, changes = _manager(quiet_service, timers)
    manager.start(alice)

    quiet_service.push()

    legacy, shared = changes[-1]
    assert [item["origin"] for item in legacy.items] == ["legacy"]
    assert [item["origin"] for item in shared.items] == ["shared"]
    assert legacy.loaded and shared.loaded
    assert manager.loaded is True


def test_first_push_cancels_the_timeout(quiet_service, timers, alice) -> None:
    manager, _ = _manager(quiet_service, timers)
    manager.start(alice)
    assert [t.interval for t in timers.created] == [5.0, 5.0]

    quiet_service.push("user_projects")

    assert timers.created[0].cancelled is True
    assert timers.created[1].cancelled is False


def test_timeout_marks_a_silent_subscription_loaded(quiet_service, timers, alice) -> None:
    manager, changes = _manager(quiet_service, timers)
    manager.start(alice)
    quiet_service.push("user_projects")
    assert manager.loaded is False

    timers.fire_all()

    assert manager.loaded is True
    assert manager.snapshot(Origin.SHARED).items == ()
    assert changes[-1][1].loaded is True


def test_permission_error_keeps_other_subscription_and_last_snapshot(quiet_service, timers, alice) -> None:
    quiet_service.seed("projects", {"id": "p2", "memberIds": ["alice"]})
    quiet_service.seed("user_projects", {"id": "p1", "ownerId": "alice"})
    manager, _ = _manager(quiet_service, timers)
    manager.start(alice)
    quiet_service.push()

    quiet_service.emit_error("projects", PermissionError("Missing or insufficient permissions"))

    shared = manager.snapshot(Origin.SHARED)
    assert shared.error is ErrorKind.PERMISSION
    assert [item["id"] for item in shared.items] == ["p2"]
    assert manager.error is ErrorKind.PERMISSION
    assert len(quiet_service.active_subscriptions()) == 2

    quiet_service.seed("user_projects", {"id": "p3", "ownerId": "alice"})
    quiet_service.push("user_projects")
    assert sorted(item["id"] for item in manager.snapshot(Origin.LEGACY).items) == ["p1", "p3"]


def test_connection_error_is_classified_and_cleared_by_next_push(quiet_service, timers, alice) -> None:
    manager, _ = _manager(quiet_service, timers)
    manager.start(alice)

    quiet_service.emit_error("user_projects", ConnectionError("network unreachable"))
    assert manager.error is ErrorKind.CONNECTION
    assert manager.snapshot(Origin.LEGACY).loaded is True

    quiet_service.push("user_projects")
    assert manager.error is None


def test_postgrest_style_error_code_is_permission(quiet_service, timers, alice) -> None:
    manager, _ = _manager(quiet_service, timers)
    manager.start(alice)

    rls_error = Exception("new row violates policy")
    rls_error.code = "42501"
    quiet_service.emit_error("projects", rls_error)

    assert manager.snapshot(Origin.SHARED).error is ErrorKind.PERMISSION


def test_restart_tears_down_previous_subscriptions(quiet_service, timers, alice) -> None:
    manager, _ = _manager(quiet_service, timers)
    manager.start(alice)
    first_subs = list(quiet_service.active_subscriptions())

    manager.start(Identity(uid="bob"))

    assert all(not sub["active"] for sub in first_subs)
    assert len(quiet_service.active_subscriptions()) == 2
    assert all(t.cancelled for t in timers.created[:2])


def test_no_pushes_are_applied_after_stop(quiet_service, timers, alice) -> None:
    manager, changes = _manager(quiet_service, timers)
    manager.start(alice)
    stale = [sub["on_snapshot"] for sub in quiet_service.subscribers]

    manager.stop()
    count = len(changes)
    quiet_service.seed("user_projects", {"id": "late", "ownerId": "alice"})
    for handler in stale:
        handler([{"id": "late"}])
    timers.fire_all()

    assert len(changes) == count
    assert quiet_service.active_subscriptions() == []


def test_signed_out_start_is_loaded_and_empty(quiet_service, timers) -> None:
    manager, changes = _manager(quiet_service, timers)

    manager.start(None)

    assert manager.loaded is True
    assert quiet_service.subscribers == []
    assert changes[-1][0].items == () and changes[-1][1].items == ()


def test_subscribe_failure_is_reported_as_error(quiet_service, timers, alice) -> None:
    quiet_service.failures["subscribe"] = ConnectionError("offline")
    manager, _ = _manager(quiet_service, timers)

    manager.start(alice)

    assert manager.snapshot(Origin.LEGACY).error is ErrorKind.CONNECTION
    assert manager.snapshot(Origin.LEGACY).loaded is True
    assert len(quiet_service.active_subscriptions()) == 1
