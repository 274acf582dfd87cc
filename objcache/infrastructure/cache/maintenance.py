"""Flush: empties the in-memory cache and the store directory.

The sweep walks the store root recursively and deletes every regular file
except the sentinel. Files that cannot be deleted are skipped and the sweep
carries on. The flush counts as successful when the sentinel is still in
place afterwards; it does not require every file to have gone.
"""

import logging
import os
from pathlib import Path

from objcache.domain.interfaces.store import EntryStore
from objcache.domain.models.common import FlushResult
from objcache.infrastructure.cache.memory_cache import MemoryCache
from objcache.infrastructure.monitoring.audit_log import AuditLog, AuditTag

logger = logging.getLogger(__name__)


class StoreMaintenance:
    """Clears both cache layers."""

    def __init__(self, store: EntryStore, memory: MemoryCache, audit: AuditLog):
        self.store = store
        self.memory = memory
        self.audit = audit

    def _sweep(self, root: Path, sentinel: Path) -> int:
        removed = 0

        def _on_walk_error(err: OSError) -> None:
            logger.warning(f"Skipping unreadable path during flush: {err}")

        for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_walk_error):
            for name in filenames:
                file_path = Path(dirpath) / name
                if file_path == sentinel:
                    continue
                if not file_path.is_file() or not os.access(file_path, os.W_OK):
                    continue
                try:
                    file_path.unlink()
                except OSError as e:
                    # gone already, or not ours to delete
                    logger.debug(f"Could not remove {file_path} during flush: {e}")
                    continue
                removed += 1
        return removed

    def flush(self) -> FlushResult:
        """Clears memory unconditionally, then sweeps the store root."""
        self.memory.clear()

        if not self.store.ensure_root():
            logger.error(f"Object cache could not be flushed: store root {self.store.root} unavailable.")
            self.audit.record(AuditTag.ERROR, "flush", "Object cache could not be flushed")
            return FlushResult(success=False, removed=0)

        removed = self._sweep(self.store.root, self.store.sentinel_path)

        if self.store.sentinel_path.is_file():
            logger.info(f"Flushed object cache: removed {removed} file(s) from {self.store.root}")
            self.audit.record(AuditTag.FLUSH, "OK", removed)
            return FlushResult(success=True, removed=removed)

        logger.error(f"Object cache flush left store root {self.store.root} without its sentinel.")
        self.audit.record(AuditTag.ERROR, "flush", "Object cache could not be flushed")
        return FlushResult(success=False, removed=removed)
