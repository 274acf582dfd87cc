"""Concrete implementation of the two-level object cache.

L1 is the in-process MemoryCache; L2 is the FileEntryStore. Reads consult
L1 first and fall back to L2, backfilling L1 on a hit. Writes always land
in L1 and are written through to L2 unless the ExclusionPolicy says the
group or key must stay in memory. Storage problems never reach the caller;
they surface only in the logs and the audit trail.

Consistency across processes is last-writer-wins: add/replace and
incr/decr are check-then-write sequences without cross-process locking.
"""

import json
import logging
import time
from typing import Any, Callable, Iterable, Optional, Tuple, Union

from objcache.domain.interfaces.cache import ObjectCache
from objcache.domain.interfaces.store import EntryStore
from objcache.domain.models.common import (
    CacheEntry,
    CacheKey,
    CacheStats,
    FlushResult,
    GroupStats,
    normalize_group,
)
from objcache.infrastructure.cache.exclusion_policy import ExclusionPolicy
from objcache.infrastructure.cache.maintenance import StoreMaintenance
from objcache.infrastructure.cache.memory_cache import MemoryCache
from objcache.infrastructure.config.settings import CacheSettings
from objcache.infrastructure.filesystem.entry_store import FileEntryStore
from objcache.infrastructure.filesystem.key_resolver import KeyResolver
from objcache.infrastructure.filesystem.record_codec import RecordCodecError, encode_value
from objcache.infrastructure.monitoring.audit_log import AuditLog, AuditTag

logger = logging.getLogger(__name__)

Number = Union[int, float]


def _as_number(value: Any) -> Number:
    """Numeric view of a stored value; anything non-numeric counts as zero."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return 0
    return 0


class CachingServiceImpl(ObjectCache):
    """Memory-fronted, disk-persisted, group-scoped object cache."""

    def __init__(
        self,
        resolver: KeyResolver,
        store: EntryStore,
        policy: Optional[ExclusionPolicy] = None,
        memory: Optional[MemoryCache] = None,
        audit: Optional[AuditLog] = None,
        max_ttl: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        """Initializes the caching service from its collaborators."""
        self.resolver = resolver
        self.store = store
        self.policy = policy or ExclusionPolicy()
        self.memory = memory or MemoryCache(clock=clock)
        self.audit = audit or AuditLog()
        self.max_ttl = max(int(max_ttl), 0)
        self.clock = clock
        self.maintenance = StoreMaintenance(self.store, self.memory, self.audit)
        self._suspend_addition = False

        logger.debug(f"CachingService initialized. store={self.store.root}, max_ttl={self.max_ttl}s")

    # --- Internals ---

    def _op_id(self, group: str, key: str) -> str:
        return f"{group}:{key}"

    def _load_from_store(self, group: str, key: str) -> Optional[CacheEntry]:
        entry = self.store.read(self.resolver.resolve(group, key))
        if entry is None:
            return None
        if entry.group != group or entry.key != key:
            # another pair hashed to the same file
            logger.debug(f"Stored record for {entry.group}:{entry.key} does not match {group}:{key}; treating as miss")
            return None
        return entry

    def _exists(self, group: str, key: str) -> bool:
        """Checks L1, then L2; an L2 hit is copied into L1."""
        if self.memory.contains(group, key):
            return True
        entry = self._load_from_store(group, key)
        if entry is None:
            return False
        self.memory.put(group, key, entry.value, entry.expires_at)
        self.audit.record(AuditTag.HIT, self._op_id(group, key), self.resolver.item_id(group, key))
        return True

    def _expires_at(self, ttl: Any) -> int:
        ttl = int(ttl or 0)
        if ttl < 0:
            ttl = 0
        if self.max_ttl:
            ttl = self.max_ttl if ttl == 0 else min(ttl, self.max_ttl)
        return int(self.clock()) + ttl if ttl > 0 else 0

    def _adjust(self, key: str, offset: Any, group: str, sign: int) -> Union[Number, bool]:
        group = normalize_group(group)
        key = CacheKey(str(key))
        if not self._exists(group, key):
            return False
        current, _ = self.memory.peek(group, key)
        result = _as_number(current) + sign * int(offset)
        if result < 0:
            result = 0
        self.memory.put(group, key, result, self.memory.expires_at(group, key))
        self.store.rewrite(self.resolver.resolve(group, key), group, key, result)
        return result

    # --- ObjectCache Interface Implementation ---

    def lookup(self, key: str, group: str = "default", force: bool = False) -> Tuple[Any, bool]:
        group = normalize_group(group)
        key = CacheKey(str(key))
        if force:
            entry = self._load_from_store(group, key)
            if entry is not None:
                self.memory.put(group, key, entry.value, entry.expires_at)
        else:
            self._exists(group, key)
        return self.memory.get(group, key)

    def get(self, key: str, group: str = "default", force: bool = False, default: Any = None) -> Any:
        value, found = self.lookup(key, group, force)
        return value if found else default

    def set(self, key: str, value: Any, group: str = "default", ttl: int = 0) -> bool:
        group = normalize_group(group)
        key = CacheKey(str(key))
        expires_at = self._expires_at(ttl)
        self.memory.put(group, key, value, expires_at)

        if self.policy.persistable(group, key):
            entry = CacheEntry(group=group, key=key, value=value, expires_at=expires_at)
            self.store.write(self.resolver.resolve(group, key), entry)
        else:
            logger.debug(f"Not persisting {group}:{key} (excluded by policy)")
        return True

    def add(self, key: str, value: Any, group: str = "default", ttl: int = 0) -> bool:
        if self._suspend_addition:
            return False
        group = normalize_group(group)
        if self._exists(group, CacheKey(str(key))):
            return False
        return self.set(key, value, group, ttl)

    def replace(self, key: str, value: Any, group: str = "default", ttl: int = 0) -> bool:
        group = normalize_group(group)
        if not self._exists(group, CacheKey(str(key))):
            return False
        return self.set(key, value, group, ttl)

    def delete(self, key: str, group: str = "default") -> bool:
        group = normalize_group(group)
        key = CacheKey(str(key))
        if not self._exists(group, key):
            return False
        self.memory.remove(group, key)
        path = self.resolver.resolve(group, key)
        if self.store.remove(path):
            self.audit.record(AuditTag.DELETE, self._op_id(group, key), path.stem)
        return True

    def incr(self, key: str, offset: int = 1, group: str = "default") -> Union[Number, bool]:
        return self._adjust(key, offset, group, 1)

    def decr(self, key: str, offset: int = 1, group: str = "default") -> Union[Number, bool]:
        return self._adjust(key, offset, group, -1)

    def flush(self) -> FlushResult:
        return self.maintenance.flush()

    def stats(self) -> CacheStats:
        groups = {}
        for group, items in self.memory.group_items().items():
            size = 0
            for value in items.values():
                try:
                    size += len(json.dumps(encode_value(value, warn=False)[1], default=str))
                except (RecordCodecError, TypeError, ValueError):
                    continue
            groups[group] = GroupStats(entries=len(items), size_bytes=size)
        disk_entries, disk_bytes = self.store.usage()
        return CacheStats(
            hits=self.memory.hits,
            misses=self.memory.misses,
            groups=groups,
            disk_entries=disk_entries,
            disk_bytes=disk_bytes,
            persistent=self.store.available,
        )

    def add_global_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self.policy.add_global_groups(groups)

    def add_non_persistent_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self.policy.add_non_persistent_groups(groups)

    def add_non_persistent_keys(self, keys: Union[str, Iterable[str]]) -> None:
        self.policy.add_non_persistent_keys(keys)

    # --- Extras ---

    def is_global_group(self, group: str) -> bool:
        return self.policy.is_global_group(normalize_group(group))

    def suspend_addition(self, suspend: Optional[bool] = None) -> bool:
        """Toggles add() suppression; returns the current state.

        Called without an argument it only reports the state.
        """
        if suspend is not None:
            self._suspend_addition = bool(suspend)
        return self._suspend_addition

    def path_for(self, key: str, group: str = "default") -> str:
        """Returns the file path an entry would be stored at."""
        return str(self.resolver.resolve(normalize_group(group), str(key)))

    def close(self) -> bool:
        """Releases the audit file handle. Cache operations keep working."""
        self.audit.close()
        return True

    @property
    def hits(self) -> int:
        return self.memory.hits

    @property
    def misses(self) -> int:
        return self.memory.misses


def build_object_cache(settings: CacheSettings, clock: Callable[[], float] = time.time) -> CachingServiceImpl:
    """Composes a CachingServiceImpl from explicit settings."""
    audit = AuditLog(
        enabled=settings.audit_enabled,
        log_file=settings.audit_file,
        max_bytes=settings.audit_max_bytes,
        truncate_on_flush=settings.audit_truncate_on_flush,
    )
    store = FileEntryStore(settings.store_path, audit=audit, clock=clock)
    policy = ExclusionPolicy(
        global_groups=settings.global_groups,
        non_persistent_groups=settings.non_persistent_groups,
        non_persistent_keys=settings.non_persistent_keys,
        namespace_prefix=settings.namespace_prefix,
    )
    return CachingServiceImpl(
        resolver=KeyResolver(settings.store_path),
        store=store,
        policy=policy,
        audit=audit,
        max_ttl=settings.max_ttl,
        clock=clock,
    )
