import os

import pytest
from pathlib import Path
from typer.testing import CliRunner

from objcache.infrastructure.cache.caching_service import CachingServiceImpl, build_object_cache
from objcache.infrastructure.config.settings import CacheSettings
from objcache.infrastructure.filesystem.entry_store import FileEntryStore
from objcache.infrastructure.filesystem.key_resolver import KeyResolver
from objcache.infrastructure.monitoring.audit_log import AuditLog


class FakeClock:
    """Controllable replacement for time.time()."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch):
    """Keeps user config, .env files and OBJCACHE_* variables out of tests."""
    for name in list(os.environ):
        if name.startswith("OBJCACHE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "objcache.infrastructure.config.settings.DEFAULT_CONFIG_FILE",
        tmp_path / "no-such-config.yaml",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def audit_file(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "object-cache.log"


@pytest.fixture
def audit(audit_file: Path):
    log = AuditLog(enabled=True, log_file=audit_file)
    yield log
    log.close()


@pytest.fixture
def resolver(store_dir: Path) -> KeyResolver:
    return KeyResolver(store_dir)


@pytest.fixture
def store(store_dir: Path, audit: AuditLog, clock: FakeClock) -> FileEntryStore:
    return FileEntryStore(store_dir, audit=audit, clock=clock)


@pytest.fixture
def make_cache(store_dir: Path, audit_file: Path, clock: FakeClock):
    """Builds caches sharing one store directory, like separate processes would."""
    created = []

    def _make(**overrides) -> CachingServiceImpl:
        values = {"store_path": store_dir, "audit_enabled": True, "audit_file": audit_file}
        values.update(overrides)
        cache = build_object_cache(CacheSettings(**values), clock=clock)
        created.append(cache)
        return cache

    yield _make
    for cache in created:
        cache.audit.close()


@pytest.fixture
def cache(make_cache) -> CachingServiceImpl:
    return make_cache()
