"""Interface for the persistent entry store.

The store reads, writes and removes individual entry records addressed by
path. Paths come from the key resolver; the store never derives them from
the stored value.
"""

import abc
from pathlib import Path
from typing import Any, Optional, Tuple

from objcache.domain.models.common import CacheEntry


class EntryStore(abc.ABC):
    """Abstract Base Class for a per-entry persistent store."""

    @property
    @abc.abstractmethod
    def root(self) -> Path:
        """The store root directory."""
        pass

    @property
    @abc.abstractmethod
    def sentinel_path(self) -> Path:
        """The placeholder file marking the root as an initialized store."""
        pass

    @property
    def available(self) -> bool:
        """False once the store has given up on its root for this process."""
        return True

    @abc.abstractmethod
    def ensure_root(self) -> bool:
        """Creates the store root and its sentinel marker if needed.

        Returns:
            True if the root is usable for writes.
        """
        pass

    @abc.abstractmethod
    def read(self, path: Path) -> Optional[CacheEntry]:
        """Loads the record at ``path``.

        Returns None if the file is absent, malformed, or expired. Expired
        records are removed as a side effect.
        """
        pass

    @abc.abstractmethod
    def write(self, path: Path, entry: CacheEntry) -> bool:
        """Serializes ``entry`` and atomically replaces the file at ``path``."""
        pass

    @abc.abstractmethod
    def remove(self, path: Path) -> bool:
        """Deletes the file at ``path``. A missing file is not an error."""
        pass

    @abc.abstractmethod
    def rewrite(self, path: Path, group: str, key: str, value: Any) -> bool:
        """Replaces only the value of the record for ``group``/``key``, keeping its expiry.

        Returns False if the record is absent or belongs to another pair.
        """
        pass

    @abc.abstractmethod
    def usage(self) -> Tuple[int, int]:
        """Returns ``(entry_files, total_bytes)`` under the root, sentinel excluded."""
        pass
