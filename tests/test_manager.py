import pytest

from envport.manager import Manager, MergeStrategy, SearchOptions
from envport.snapshot import Snapshot
from envport.store import NoteNotFoundError, NotFoundError, Store, StoreError


@pytest.fixture
def store(tmp_path):
    s = Store(tmp_path / "store")
    s.init()
    return s


@pytest.fixture
def manager(store):
    return Manager(store)


def snap(env):
    return Snapshot(name="", env=dict(env))


def test_save_and_load(manager):
    manager.save_environ("test", ["FOO=bar", "BAZ=qux"])
    loaded = manager.load("test")
    assert loaded.name == "test"
    assert loaded.env["FOO"] == "bar"
    assert loaded.env["BAZ"] == "qux"


def test_save_sets_name(manager):
    manager.save("given", Snapshot(name="other", env={"A": "1"}))
    assert manager.load("given").name == "given"


def test_load_not_found(manager):
    with pytest.raises(NotFoundError):
        manager.load("ghost")


def test_list(manager):
    manager.save_environ("alpha", ["A=1"])
    manager.save_environ("beta", ["B=2"])
    assert manager.list() == ["alpha", "beta"]


def test_delete(manager):
    manager.save_environ("gone", ["A=1"])
    manager.delete("gone")
    assert manager.list() == []
    with pytest.raises(NotFoundError):
        manager.delete("gone")


def test_rename(manager, store):
    manager.save_environ("old", ["X=1"])
    manager.rename("old", "new")
    loaded = manager.load("new")
    assert loaded.name == "new"
    assert loaded.env == {"X": "1"}
    assert not store.path("old").exists()


def test_rename_conflict(manager):
    manager.save_environ("a", [])
    manager.save_environ("b", [])
    with pytest.raises(StoreError):
        manager.rename("a", "b")
    assert manager.list() == ["a", "b"]


def test_rename_missing(manager):
    with pytest.raises(NotFoundError):
        manager.rename("missing", "new")


def test_clone_success(manager):
    manager.save("src", snap({"FOO": "bar"}))
    manager.clone("src", "dst", False)
    loaded = manager.load("dst")
    assert loaded.env["FOO"] == "bar"
    assert loaded.name == "dst"


def test_clone_keeps_tags(manager):
    original = snap({"A": "1"})
    original.add_tag("v1")
    manager.save("src", original)
    manager.clone("src", "dst", False)
    assert manager.load("dst").tags == ["v1"]


def test_clone_src_not_found(manager):
    with pytest.raises(NotFoundError):
        manager.clone("missing", "dst", False)


def test_clone_dest_exists(manager):
    manager.save("src", snap({"A": "1"}))
    manager.save("dst", snap({"B": "2"}))
    with pytest.raises(StoreError):
        manager.clone("src", "dst", False)
    assert manager.load("dst").env == {"B": "2"}


def test_clone_overwrite(manager):
    manager.save("src", snap({"X": "new"}))
    manager.save("dst", snap({"X": "old"}))
    manager.clone("src", "dst", True)
    assert manager.load("dst").env["X"] == "new"


def test_copy(manager):
    manager.save("prod", snap({"FOO": "bar"}))
    manager.copy("prod", "staging", False)
    assert manager.load("staging").env == {"FOO": "bar"}


def test_copy_dest_exists(manager):
    manager.save("prod", snap({"FOO": "bar"}))
    manager.save("staging", snap({"FOO": "old"}))
    with pytest.raises(StoreError, match="already exists"):
        manager.copy("prod", "staging", False)
    manager.copy("prod", "staging", True)
    assert manager.load("staging").env == {"FOO": "bar"}


def test_copy_src_missing(manager):
    with pytest.raises(NotFoundError):
        manager.copy("missing", "dst", False)


def test_merge_adds_new_keys(manager):
    manager.save("base", snap({"A": "1", "B": "2"}))
    manager.save("extra", snap({"C": "3"}))
    result = manager.merge("extra", "base", MergeStrategy.SKIP)
    assert result.added == ["C"]
    assert manager.load("base").env == {"A": "1", "B": "2", "C": "3"}


def test_merge_skip_conflict(manager):
    manager.save("base", snap({"A": "original"}))
    manager.save("src", snap({"A": "new"}))
    result = manager.merge("src", "base", MergeStrategy.SKIP)
    assert result.skipped == ["A"]
    assert manager.load("base").env["A"] == "original"


def test_merge_overwrite_conflict(manager):
    manager.save("base", snap({"A": "original"}))
    manager.save("src", snap({"A": "new"}))
    result = manager.merge("src", "base", MergeStrategy.OVERWRITE)
    assert result.overwritten == ["A"]
    assert manager.load("base").env["A"] == "new"


def test_merge_src_not_found(manager):
    manager.save("base", snap({}))
    with pytest.raises(NotFoundError):
        manager.merge("missing", "base", MergeStrategy.SKIP)


def _search_fixture(manager):
    manager.save("dev", snap({"DEBUG": "true", "PORT": "8080"}))
    manager.save("prod", snap({"PORT": "443"}))


def test_search_by_key(manager):
    _search_fixture(manager)
    assert manager.search(SearchOptions(terms=["DEBUG"])) == ["dev"]


def test_search_by_key_value(manager):
    _search_fixture(manager)
    assert manager.search(SearchOptions(terms=["PORT=443"])) == ["prod"]


def test_search_match_all(manager):
    _search_fixture(manager)
    assert manager.search(SearchOptions(terms=["DEBUG", "PORT"], match_all=True)) == ["dev"]


def test_search_no_match(manager):
    manager.save("dev", snap({"PORT": "8080"}))
    assert manager.search(SearchOptions(terms=["MISSING"])) == []


def test_search_or_semantics(manager):
    manager.save("a", snap({"FOO": "1"}))
    manager.save("b", snap({"BAR": "2"}))
    assert manager.search(SearchOptions(terms=["FOO", "BAR"], match_all=False)) == ["a", "b"]


def test_notes(manager):
    manager.save("proj", snap({"A": "1"}))
    with pytest.raises(NoteNotFoundError):
        manager.get_note("proj")
    manager.set_note("proj", "my note")
    assert manager.get_note("proj") == "my note"
    manager.clear_note("proj")
    with pytest.raises(NoteNotFoundError):
        manager.get_note("proj")


def test_set_note_missing_snapshot(manager):
    with pytest.raises(NotFoundError):
        manager.set_note("ghost", "text")


def test_history(manager, store):
    store.append_history("prod", "save")
    store.append_history("prod", "load")
    assert [e.operation for e in manager.history()] == ["save", "load"]
    manager.clear_history()
    assert manager.history() == []


def test_lock_state(manager, store):
    assert manager.is_locked() is False
    with store.lock():
        assert manager.is_locked() is True
        manager.force_unlock()
        assert manager.is_locked() is False


def test_force_unlock_without_lock(manager):
    with pytest.raises(StoreError):
        manager.force_unlock()