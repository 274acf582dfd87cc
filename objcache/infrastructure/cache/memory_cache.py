"""In-process front cache: group -> key -> value.

Consulted before the disk store and updated on every write. Mutable values
are deep-copied on the way in and on the way out, so a caller mutating its
own object (or the object it got back) never changes the cached copy.

Each value carries the same absolute expiry as its disk record (0 for
none); an expired value is dropped the next time it is looked at.
"""

import copy
import logging
import time
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)

_IMMUTABLE_TYPES = (type(None), bool, int, float, complex, str, bytes, frozenset, range)


def detach(value: Any) -> Any:
    """Returns ``value`` itself if immutable, otherwise an independent deep copy."""
    if isinstance(value, _IMMUTABLE_TYPES):
        return value
    return copy.deepcopy(value)


class MemoryCache:
    """Group-scoped in-memory mapping with hit/miss counters."""

    def __init__(self, clock: Callable[[], float] = time.time):
        # group -> key -> (value, expires_at)
        self._groups: Dict[str, Dict[str, Tuple[Any, int]]] = {}
        self.clock = clock
        self.hits = 0
        self.misses = 0

    def _live(self, group: str, key: str) -> bool:
        bucket = self._groups.get(group)
        if bucket is None or key not in bucket:
            return False
        expires_at = bucket[key][1]
        if expires_at and self.clock() >= expires_at:
            logger.debug(f"In-memory entry expired: {group}:{key}")
            self.remove(group, key)
            return False
        return True

    def get(self, group: str, key: str) -> Tuple[Any, bool]:
        """Returns ``(value, found)`` and counts the lookup as a hit or miss."""
        if self._live(group, key):
            self.hits += 1
            return detach(self._groups[group][key][0]), True
        self.misses += 1
        return None, False

    def peek(self, group: str, key: str) -> Tuple[Any, bool]:
        """Like ``get`` but leaves the counters alone."""
        if self._live(group, key):
            return detach(self._groups[group][key][0]), True
        return None, False

    def contains(self, group: str, key: str) -> bool:
        return self._live(group, key)

    def expires_at(self, group: str, key: str) -> int:
        """Absolute expiry of a stored value; 0 if none or absent."""
        bucket = self._groups.get(group)
        if bucket is None or key not in bucket:
            return 0
        return bucket[key][1]

    def put(self, group: str, key: str, value: Any, expires_at: int = 0) -> None:
        self._groups.setdefault(group, {})[key] = (detach(value), int(expires_at or 0))

    def remove(self, group: str, key: str) -> bool:
        bucket = self._groups.get(group)
        if bucket is None or key not in bucket:
            return False
        del bucket[key]
        if not bucket:
            del self._groups[group]
        return True

    def clear(self) -> None:
        self._groups.clear()
        logger.debug("Cleared in-memory cache.")

    def group_items(self) -> Dict[str, Dict[str, Any]]:
        """Returns every group's values without copying (for reporting only)."""
        return {
            group: {key: stored[0] for key, stored in bucket.items()}
            for group, bucket in self._groups.items()
        }

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._groups.values())
