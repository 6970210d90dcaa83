from __future__ import annotations

import pytest

from config import Settings
from services.storage import MemoryStore, SqlStore, StorageQuotaExceeded, StoreFactory


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path):
    if request.param == "memory":
        return MemoryStore(quota_bytes=1024)
    return SqlStore(f"sqlite:///{tmp_path / 'autosave.db'}", quota_bytes=1024)


def test_set_get_remove(store) -> None:
    assert store.get("a") is None
    store.set("a", "one")
    store.set("a", "two")
    assert store.get("a") == "two"
    store.remove("a")
    store.remove("a")
    assert store.get("a") is None


def test_keys(store) -> None:
    store.set("b", "1")
    store.set("a", "2")
    assert sorted(store.keys()) == ["a", "b"]


def test_quota_rejects_oversized_write(store) -> None:
    store.set("a", "x" * 500)
    with pytest.raises(StorageQuotaExceeded):
        store.set("b", "y" * 600)
    assert store.get("b") is None
    # replacing an existing key only counts the new value
    store.set("a", "z" * 900)
    assert store.get("a") == "z" * 900


def test_sql_store_persists_between_instances(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'autosave.db'}"
    SqlStore(url).set("blog-editor-autosave", "{}")
    assert SqlStore(url).get("blog-editor-autosave") == "{}"


def test_factory_picks_backend(tmp_path) -> None:
    mem = StoreFactory.create(Settings(store_backend="memory"))
    assert isinstance(mem, MemoryStore)
    sql = StoreFactory.create(Settings(store_backend="sqlite", db_url=f"sqlite:///{tmp_path / 'x.db'}"))
    assert isinstance(sql, SqlStore)
