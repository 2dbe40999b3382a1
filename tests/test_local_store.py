from pathlib import Path

from project_sync import storage
from project_sync.local_store import LocalProjectStore, storage_key_for
from project_sync.schema import Identity, parse_timestamp


def test_storage_key_is_per_identity(alice) -> None:
    assert storage_key_for(alice) == "aeo-projects-alice"
    assert storage_key_for(None) == "aeo-projects"
    assert storage_key_for(Identity(uid="")) == "aeo-projects"


def test_local_store_never_loads_or_errors(tmp_path: Path, alice) -> None:
    store = LocalProjectStore(alice, db_path=tmp_path / "sync.db")

    assert store.loading is False
    assert store.error is None
    assert store.projects == []
    assert store.active_project is None


def test_create_persists_across_instances(tmp_path: Path, alice) -> None:
    db = tmp_path / "sync.db"
    store = LocalProjectStore(alice, db_path=db)
    first = store.create_project("First", "first.test")
    second = store.create_project("Second")

    reopened = LocalProjectStore(alice, db_path=db)

    assert [p["id"] for p in reopened.projects] == [second["id"], first["id"]]
    assert reopened.active_project_id == second["id"]
    assert reopened.active_project["ownerId"] == "alice"
    assert storage.get_value("aeo-projects-alice-active", db_path=db) == second["id"]


def test_identities_do_not_see_each_other(tmp_path: Path, alice) -> None:
    db = tmp_path / "sync.db"
    LocalProjectStore(alice, db_path=db).create_project("Alice's")

    bob = LocalProjectStore(Identity(uid="bob"), db_path=db)

    assert bob.projects == []


def test_update_merges_fields_and_bumps_updated_at(tmp_path: Path, alice) -> None:
    store = LocalProjectStore(alice, db_path=tmp_path / "sync.db")
    created = store.create_project("Draft")

    store.update_project(created["id"], {"notes": "n", "id": "other"})
    store.rename_project(created["id"], "Final")

    project = store.active_project
    assert project["id"] == created["id"]
    assert project["notes"] == "n"
    assert project["name"] == "Final"
    assert parse_timestamp(project["updatedAt"]) > parse_timestamp(created["updatedAt"])


def test_update_of_unknown_id_is_ignored(tmp_path: Path, alice) -> None:
    store = LocalProjectStore(alice, db_path=tmp_path / "sync.db")
    store.create_project("Only")
    before = store.projects

    store.update_project("missing", {"name": "x"})
    store.update_project(None, {"name": "x"})

    assert store.projects == before


def test_delete_active_falls_back_to_first_remaining(tmp_path: Path, alice) -> None:
    store = LocalProjectStore(alice, db_path=tmp_path / "sync.db")
    older = store.create_project("Older")
    newer = store.create_project("Newer")

    store.delete_project(newer["id"])

    assert store.active_project_id == older["id"]

    store.delete_project(older["id"])

    assert store.projects == []
    assert store.active_project_id is None


def test_stale_pointer_resolves_to_first_project(tmp_path: Path, alice) -> None:
    db = tmp_path / "sync.db"
    store = LocalProjectStore(alice, db_path=db)
    created = store.create_project("Only")
    storage.set_value("aeo-projects-alice-active", "gone", db_path=db)

    reopened = LocalProjectStore(alice, db_path=db)

    assert reopened.active_project_id == created["id"]


def test_toggle_check_item_and_listeners(tmp_path: Path, alice) -> None:
    store = LocalProjectStore(alice, db_path=tmp_path / "sync.db")
    store.create_project("Checklist")
    seen = []
    store.add_listener(seen.append)

    store.toggle_check_item("llms-txt")

    assert store.active_project["checked"] == {"llms-txt": True}
    assert seen[-1].active_project["checked"] == {"llms-txt": True}


def test_corrupt_stored_value_starts_empty(tmp_path: Path, alice) -> None:
    db = tmp_path / "sync.db"
    storage.set_value("aeo-projects-alice", {"not": "a list"}, db_path=db)

    store = LocalProjectStore(alice, db_path=db)

    assert store.projects == []


def test_records_are_tagged_in_memory_but_stored_without_origin(tmp_path: Path, alice) -> None:
    db = tmp_path / "sync.db"
    store = LocalProjectStore(alice, db_path=db)
    created = store.create_project("Tagged")
    store.update_project(created["id"], {"origin": "shared", "notes": "n"})

    assert created["origin"] == "legacy"
    assert store.active_project["origin"] == "legacy"
    assert [("origin" in p) for p in storage.get_value("aeo-projects-alice", db_path=db)] == [False]
    assert LocalProjectStore(alice, db_path=db).projects[0]["origin"] == "legacy"
