"""Defines common Value Objects used across the cache.

These objects represent the persisted unit of data (CacheEntry), the
shape tag stored beside each value (ValueKind) and the small result
records returned by maintenance and reporting operations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
GroupName = NewType("GroupName", str)    # Namespace partitioning keys
CacheKey = NewType("CacheKey", str)      # Key, unique within a group
ItemId = NewType("ItemId", str)          # "<group digest>-<key digest>", the file stem

DEFAULT_GROUP = GroupName("default")


def normalize_group(group: Any) -> GroupName:
    """Returns the group name to use, mapping empty values to 'default'."""
    if not group:
        return DEFAULT_GROUP
    return GroupName(str(group))


class ValueKind(str, Enum):
    """Shape tag persisted next to every encoded value."""
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    BYTES = "bytes"
    LIST = "list"
    TUPLE = "tuple"
    SET = "set"
    DICT = "dict"
    OBJECT = "object"


@dataclass
class CacheEntry:
    """The persisted unit: one value in one group, with its absolute expiry.

    ``expires_at`` is a Unix timestamp in whole seconds; 0 means the entry
    never expires. ``value_kind`` is decided by the record codec when the
    entry is written and filled in again when it is read back.
    """
    group: GroupName
    key: CacheKey
    value: Any
    expires_at: int = 0
    value_kind: ValueKind = ValueKind.NULL

    def is_expired(self, now: float) -> bool:
        return self.expires_at != 0 and now >= self.expires_at


@dataclass(frozen=True)
class FlushResult:
    """Outcome of a flush: whether the store root survived, and how many files went."""
    success: bool
    removed: int


@dataclass
class GroupStats:
    entries: int = 0
    size_bytes: int = 0


@dataclass
class CacheStats:
    """Snapshot of cache counters and usage (numbers only, no rendering)."""
    hits: int = 0
    misses: int = 0
    groups: Dict[str, GroupStats] = field(default_factory=dict)
    disk_entries: int = 0
    disk_bytes: int = 0
    persistent: bool = True
