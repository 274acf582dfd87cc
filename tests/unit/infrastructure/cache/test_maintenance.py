import os
from pathlib import Path

from objcache.domain.models.common import CacheEntry
from objcache.infrastructure.cache.maintenance import StoreMaintenance
from objcache.infrastructure.cache.memory_cache import MemoryCache
from objcache.infrastructure.filesystem.entry_store import FileEntryStore


def _fill(store: FileEntryStore, resolver, count: int) -> None:
    for i in range(count):
        key = f"k{i}"
        store.write(resolver.resolve("g", key), CacheEntry(group="g", key=key, value=i))


def test_flush_removes_records_and_keeps_sentinel(store, resolver, audit, clock, store_dir: Path):
    memory = MemoryCache(clock=clock)
    memory.put("g", "k", 1)
    _fill(store, resolver, 3)
    nested = store_dir / "sub"
    nested.mkdir()
    (nested / "stray.json").write_text("{}")

    result = StoreMaintenance(store, memory, audit).flush()

    assert result.success
    assert result.removed == 4
    assert len(memory) == 0
    assert [p.name for p in store_dir.rglob("*") if p.is_file()] == ["index.html"]


def test_flush_of_fresh_store_creates_root(store, audit, clock, store_dir: Path):
    result = StoreMaintenance(store, MemoryCache(clock=clock), audit).flush()
    assert result.success
    assert result.removed == 0
    assert (store_dir / "index.html").is_file()


def test_flush_records_audit_line(store, resolver, audit, audit_file: Path, clock):
    _fill(store, resolver, 2)
    StoreMaintenance(store, MemoryCache(clock=clock), audit).flush()
    lines = audit_file.read_text(encoding="utf-8").splitlines()
    # truncate-on-flush leaves only the flush line
    assert len(lines) == 1
    assert 'flush: "OK" "2"' in lines[0]


def test_flush_fails_when_root_unavailable(tmp_path: Path, audit, clock):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    store = FileEntryStore(blocker / "store", audit=audit, clock=clock)
    memory = MemoryCache(clock=clock)
    memory.put("g", "k", 1)

    result = StoreMaintenance(store, memory, audit).flush()

    assert not result.success
    assert result.removed == 0
    # memory is cleared regardless
    assert len(memory) == 0


def test_flush_skips_files_it_cannot_remove(store, resolver, audit, clock, mocker):
    _fill(store, resolver, 2)
    real_access = os.access
    locked = resolver.resolve("g", "k0")

    def fake_access(path, mode):
        if Path(path) == locked:
            return False
        return real_access(path, mode)

    mocker.patch("objcache.infrastructure.cache.maintenance.os.access", side_effect=fake_access)
    result = StoreMaintenance(store, MemoryCache(clock=clock), audit).flush()

    assert result.success
    assert result.removed == 1
    assert locked.exists()
