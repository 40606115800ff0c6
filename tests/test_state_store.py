"""
Test the sync state store.
"""
from connectors.state_store import StateStore


def test_state_store(tmp_path):
    store = StateStore(db_path=str(tmp_path / "test_state.db"))

    # Test set and get
    store.set_state("dropbox", "/notes", {"last_sync_at": "2024-01-01"})
    state = store.get_state("dropbox", "/notes")

    assert state is not None
    assert state["last_sync_at"] == "2024-01-01"
    assert "_updated_at" in state

    # Test update
    store.update_state("dropbox", "/notes", {"documents_indexed": 4})
    state = store.get_state("dropbox", "/notes")

    assert state["last_sync_at"] == "2024-01-01"
    assert state["documents_indexed"] == 4

    # Roots are kept apart
    store.set_state("dropbox", "", {"last_sync_at": "2024-01-02"})
    assert store.get_state("dropbox", "/notes")["last_sync_at"] == "2024-01-01"
    assert store.get_state("dropbox", "")["last_sync_at"] == "2024-01-02"


def test_internal_fields_are_not_persisted(tmp_path):
    store = StateStore(db_path=str(tmp_path / "state.db"))

    store.set_state("dropbox", "/notes", {"_updated_at": "stale", "documents_found": 1})
    store.update_state("dropbox", "/notes", {"documents_found": 2})

    state = store.get_state("dropbox", "/notes")
    assert state["documents_found"] == 2
    assert state["_updated_at"] != "stale"


def test_state_survives_reopen(tmp_path):
    db_path = str(tmp_path / "state.db")
    StateStore(db_path=db_path).set_state("dropbox", "", {"degraded_links": 3})

    assert StateStore(db_path=db_path).get_state("dropbox", "")["degraded_links"] == 3


def test_missing_state_is_none(tmp_path):
    store = StateStore(db_path=str(tmp_path / "nested" / "state.db"))
    assert store.get_state("dropbox", "/notes") is None
