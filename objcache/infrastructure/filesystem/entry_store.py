"""File-per-entry persistent store.

Each entry lives in its own JSON record file under the store root; the
root also holds an empty ``index.html`` sentinel that marks it as an
initialized store (and keeps web servers from listing it). Writes go to a
temporary file in the same directory and are moved into place with
``os.replace``, so readers see either the old record or the new one.

Failures never propagate: they are logged, recorded in the audit trail
with the ``error`` tag, and reported to the caller as a False/None result.
"""

import logging
import os
import stat
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from objcache.domain.interfaces.store import EntryStore
from objcache.domain.models.common import CacheEntry
from objcache.infrastructure.filesystem.record_codec import RecordCodec, RecordCodecError
from objcache.infrastructure.monitoring.audit_log import AuditLog, AuditTag

logger = logging.getLogger(__name__)

SENTINEL_NAME = "index.html"
TEMP_SUFFIX = ".tmp"


class FileEntryStore(EntryStore):
    """Stores CacheEntry records as individual files under a root directory."""

    def __init__(
        self,
        root: Union[str, Path],
        audit: Optional[AuditLog] = None,
        codec: Optional[RecordCodec] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._root = Path(root)
        self.audit = audit or AuditLog()
        self.codec = codec or RecordCodec()
        self.clock = clock
        # None: not checked yet; False: bootstrap failed, stay memory-only
        self._available: Optional[bool] = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def sentinel_path(self) -> Path:
        return self._root / SENTINEL_NAME

    @property
    def available(self) -> bool:
        return self._available is not False

    def ensure_root(self) -> bool:
        """Creates the root directory and sentinel on first use.

        A failure here is remembered for the rest of the process: later
        writes are skipped rather than retried.
        """
        if self._available is False:
            return False
        if self._available and self.sentinel_path.is_file():
            return True
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            if not self.sentinel_path.is_file():
                self.sentinel_path.touch()
        except OSError as e:
            self._available = False
            logger.error(f"Unable to initialize store directory {self._root}: {e}. Continuing memory-only.")
            self.audit.record(AuditTag.ERROR, "ensure_root", f"Unable to create directory: {self._root}")
            return False
        self._available = True
        return True

    # --- Reads ---

    def _load(self, path: Path) -> Optional[CacheEntry]:
        """Parses the record at ``path`` without applying expiry."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read cache file {path}: {e}")
            return None
        try:
            return self.codec.loads(text)
        except (RecordCodecError, RecursionError) as e:
            logger.warning(f"Ignoring malformed cache file {path}: {e}")
            return None

    def read(self, path: Path) -> Optional[CacheEntry]:
        entry = self._load(path)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            logger.debug(f"Cache entry expired: {entry.group}:{entry.key}")
            self.audit.record(AuditTag.EXPIRE, f"{entry.group}:{entry.key}", path.stem)
            self.remove(path)
            return None
        return entry

    # --- Writes ---

    def _file_mode(self) -> int:
        try:
            dir_mode = stat.S_IMODE(self._root.stat().st_mode)
        except OSError:
            dir_mode = 0o755
        return dir_mode & 0o666

    def _put(self, path: Path, text: str) -> bool:
        """Atomically replaces ``path`` with ``text``.

        The temporary file is removed on any failure, so an aborted write
        leaves nothing behind in the store.
        """
        temp_name = None
        moved = False
        try:
            fd, temp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.stem}.", suffix=TEMP_SUFFIX)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.chmod(temp_name, self._file_mode())
            os.replace(temp_name, str(path))
            moved = True
        except (OSError, ValueError) as e:
            # ValueError covers text the utf-8 codec refuses (lone surrogates)
            logger.error(f"Failed to write cache file {path}: {e}")
            self.audit.record(AuditTag.ERROR, "write", f"Unable to write to file: {path}")
        finally:
            if temp_name is not None and not moved:
                try:
                    os.unlink(temp_name)
                except OSError:
                    pass  # never created
        return moved

    def write(self, path: Path, entry: CacheEntry) -> bool:
        if not self.ensure_root():
            return False
        op_id = f"{entry.group}:{entry.key}"
        try:
            text = self.codec.dumps(entry)
        except RecordCodecError as e:
            logger.error(f"Cannot serialize cache entry {op_id}: {e}")
            self.audit.record(AuditTag.ERROR, "write", f"{op_id}: {e}")
            return False
        if not self._put(path, text):
            return False
        logger.debug(f"Stored cache entry {op_id} in {path.name}")
        self.audit.record(AuditTag.SET, op_id, path.stem)
        return True

    def rewrite(self, path: Path, group: str, key: str, value: Any) -> bool:
        """Swaps the value of the record for ``group``/``key``, keeping its expiry.

        A record at ``path`` that belongs to another pair is left untouched.
        """
        entry = self.read(path)
        if entry is None:
            return False
        if entry.group != group or entry.key != key:
            logger.debug(f"Not rewriting {path.name}: it holds {entry.group}:{entry.key}, not {group}:{key}")
            return False
        entry.value = value
        try:
            text = self.codec.dumps(entry)
        except RecordCodecError as e:
            logger.error(f"Cannot serialize cache entry {entry.group}:{entry.key}: {e}")
            self.audit.record(AuditTag.ERROR, "rewrite", f"{entry.group}:{entry.key}: {e}")
            return False
        return self._put(path, text)

    def remove(self, path: Path) -> bool:
        if not path.is_file() or not os.access(path, os.W_OK):
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to remove cache file {path}: {e}")
            self.audit.record(AuditTag.ERROR, "remove", f"Failed to remove file: {path}")
            return False
        return True

    # --- Reporting ---

    def usage(self) -> Tuple[int, int]:
        files = 0
        total = 0
        if not self._root.is_dir():
            return files, total
        for dirpath, _dirnames, filenames in os.walk(self._root):
            for name in filenames:
                file_path = Path(dirpath) / name
                if file_path == self.sentinel_path:
                    continue
                try:
                    total += file_path.stat().st_size
                except OSError:
                    continue  # removed while walking
                files += 1
        return files, total
