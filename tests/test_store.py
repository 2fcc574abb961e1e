import json
import stat
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from envport.snapshot import Snapshot
from envport.store import (
    LockTimeoutError,
    NoteNotFoundError,
    NotFoundError,
    NotPinnedError,
    Store,
    StoreError,
)


@pytest.fixture
def store(tmp_path):
    s = Store(tmp_path / "store", lock_timeout=0.2)
    s.init()
    return s


def save_snap(store, name, env=None):
    Snapshot(name, env if env is not None else {"K": "V"}).save(store.path(name))


# store


def test_init_creates_nested_private_dir(tmp_path):
    directory = tmp_path / "nested" / "envport"
    Store(directory).init()
    assert directory.is_dir()
    assert stat.S_IMODE(directory.stat().st_mode) == 0o700


def test_list_empty(store):
    assert store.list() == []


def test_list_missing_dir(tmp_path):
    assert Store(tmp_path / "absent").list() == []


def test_list_and_delete(store):
    for name in ["dev", "prod", "staging"]:
        store.path(name).write_text(json.dumps({"name": name}))
    assert store.list() == ["dev", "prod", "staging"]
    store.delete("prod")
    assert store.list() == ["dev", "staging"]


def test_list_ignores_bookkeeping_files(store):
    save_snap(store, "mysnap")
    store.set_note("mysnap", "hello")
    store.pin("mysnap")
    store.append_history("mysnap", "save")
    (store.directory / "sub.json").mkdir()
    assert store.list() == ["mysnap"]


def test_delete_not_found(store):
    with pytest.raises(NotFoundError):
        store.delete("ghost")


def test_exists(store):
    assert store.exists("missing") is False
    store.path("present").write_text("{}")
    assert store.exists("present") is True


def test_read_name(store):
    store.path("dev").write_text('{"name": "dev-name"}')
    assert store.read_name("dev") == "dev-name"


# lock


def test_lock_and_unlock(store):
    with store.lock():
        assert store.locked() is True
    assert store.locked() is False


def test_locked_false_initially(store):
    assert store.locked() is False


def test_lock_is_exclusive(store):
    with store.lock():
        with pytest.raises(LockTimeoutError):
            with store.lock():
                pass
        assert store.locked() is True
    assert store.locked() is False


def test_lock_released_on_error(store):
    with pytest.raises(RuntimeError):
        with store.lock():
            raise RuntimeError("boom")
    assert store.locked() is False


def test_lock_waits_for_release(tmp_path):
    s = Store(tmp_path, lock_timeout=2.0)
    observed = []

    def contender():
        with s.lock():
            observed.append(s.locked())

    with s.lock():
        worker = threading.Thread(target=contender)
        worker.start()
        time.sleep(0.15)
        assert observed == []
        assert s.locked() is True
    worker.join(timeout=3)
    assert observed == [True]
    assert s.locked() is False


def test_force_unlock(store):
    (store.directory / ".lock").write_text("")
    assert store.locked() is True
    store.force_unlock()
    assert store.locked() is False


def test_force_unlock_without_lock(store):
    with pytest.raises(StoreError, match="no lock file"):
        store.force_unlock()


# history


def test_history_append_and_read(store):
    store.append_history("myenv", "save")
    store.append_history("myenv", "load")
    entries = store.read_history()
    assert [e.operation for e in entries] == ["save", "load"]
    assert all(e.name == "myenv" for e in entries)
    assert entries[0].timestamp.tzinfo is not None
    assert entries[0].timestamp <= datetime.now(timezone.utc)


def test_history_empty_on_missing_file(store):
    assert store.read_history() == []


def test_history_clear(store):
    store.append_history("env1", "save")
    store.clear_history()
    assert store.read_history() == []


def test_history_clear_idempotent(store):
    store.clear_history()
    assert store.read_history() == []


def test_history_file_format(store):
    store.append_history("env1", "save")
    data = json.loads((store.directory / "history.json").read_text())
    assert data[0]["name"] == "env1"
    assert data[0]["operation"] == "save"
    assert data[0]["timestamp"].endswith("Z")


# notes


def test_set_and_get_note(store):
    save_snap(store, "proj")
    store.set_note("proj", "my note")
    assert store.get_note("proj") == "my note"


def test_get_note_missing(store):
    save_snap(store, "proj")
    with pytest.raises(NoteNotFoundError):
        store.get_note("proj")


def test_clear_note(store):
    save_snap(store, "proj")
    store.set_note("proj", "hello")
    store.clear_note("proj")
    with pytest.raises(NoteNotFoundError):
        store.get_note("proj")


def test_clear_note_idempotent(store):
    save_snap(store, "proj")
    store.clear_note("proj")
    with pytest.raises(NoteNotFoundError):
        store.get_note("proj")


def test_set_note_not_found(store):
    with pytest.raises(NotFoundError):
        store.set_note("ghost", "text")


def test_get_note_snapshot_not_found(store):
    with pytest.raises(NotFoundError):
        store.get_note("ghost")


# pin


def test_pin_and_pinned(store):
    save_snap(store, "mysnap", {"KEY": "val"})
    store.pin("mysnap")
    assert store.pinned() == "mysnap"


def test_pin_not_found(store):
    with pytest.raises(NotFoundError):
        store.pin("ghost")


def test_pinned_missing(store):
    with pytest.raises(NotPinnedError):
        store.pinned()


def test_unpin(store):
    save_snap(store, "snap", {"A": "1"})
    store.pin("snap")
    store.unpin()
    with pytest.raises(NotPinnedError):
        store.pinned()


def test_unpin_when_not_pinned(store):
    with pytest.raises(NotPinnedError):
        store.unpin()


def test_pin_overwrite(store):
    for name in ["a", "b"]:
        save_snap(store, name, {"X": name})
    store.pin("a")
    store.pin("b")
    assert store.pinned() == "b"


# expiry


def test_set_and_get_expiry(store):
    save_snap(store, "mysnap")
    store.set_expiry("mysnap", timedelta(minutes=10))
    expiry = store.get_expiry("mysnap")
    assert expiry.expires_at > datetime.now(timezone.utc)


def test_set_expiry_accepts_seconds(store):
    save_snap(store, "mysnap")
    expiry = store.set_expiry("mysnap", 60)
    assert store.get_expiry("mysnap") == expiry


def test_get_expiry_missing(store):
    save_snap(store, "mysnap")
    assert store.get_expiry("mysnap") is None


def test_clear_expiry(store):
    save_snap(store, "mysnap")
    store.set_expiry("mysnap", timedelta(minutes=1))
    store.clear_expiry("mysnap")
    assert store.get_expiry("mysnap") is None


def test_prune_expired(store):
    save_snap(store, "old")
    save_snap(store, "fresh")
    store.set_expiry("old", timedelta(seconds=-1))
    store.set_expiry("fresh", timedelta(hours=1))

    assert store.prune_expired() == ["old"]
    assert store.exists("fresh") is True
    assert store.exists("old") is False
    assert store.get_expiry("old") is None


def test_set_expiry_not_found(store):
    with pytest.raises(NotFoundError):
        store.set_expiry("ghost", timedelta(minutes=1))