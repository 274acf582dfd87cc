"""Interface for the object cache.

Defines the contract callers program against: group-scoped get/set/add/
replace/delete, numeric increment/decrement, flush and statistics. The
concrete implementation layers an in-memory front cache over a disk store.
"""

import abc
from typing import Any, Iterable, Tuple, Union

from objcache.domain.models.common import CacheStats, FlushResult


class ObjectCache(abc.ABC):
    """Abstract Base Class for group-scoped object caching."""

    @abc.abstractmethod
    def lookup(self, key: str, group: str = "default", force: bool = False) -> Tuple[Any, bool]:
        """Retrieves an item and reports whether it was found.

        Args:
            key: The cache key.
            group: The group the key lives in.
            force: Re-read the persistent copy before answering.

        Returns:
            A ``(value, found)`` tuple; value is None when not found.
        """
        pass

    @abc.abstractmethod
    def get(self, key: str, group: str = "default", force: bool = False, default: Any = None) -> Any:
        """Retrieves an item, returning ``default`` when it is absent."""
        pass

    @abc.abstractmethod
    def set(self, key: str, value: Any, group: str = "default", ttl: int = 0) -> bool:
        """Stores an item.

        Args:
            key: The cache key.
            value: The value to store.
            group: The group to store it in.
            ttl: Seconds until expiry; 0 means no expiry unless a maximum
                TTL is configured.

        Returns:
            True. The in-memory layer always accepts the write.
        """
        pass

    @abc.abstractmethod
    def add(self, key: str, value: Any, group: str = "default", ttl: int = 0) -> bool:
        """Stores an item only if the key is not already present in the group."""
        pass

    @abc.abstractmethod
    def replace(self, key: str, value: Any, group: str = "default", ttl: int = 0) -> bool:
        """Stores an item only if the key is already present in the group."""
        pass

    @abc.abstractmethod
    def delete(self, key: str, group: str = "default") -> bool:
        """Removes an item. Returns False if it was not present."""
        pass

    @abc.abstractmethod
    def incr(self, key: str, offset: int = 1, group: str = "default") -> Union[int, float, bool]:
        """Increments a numeric item. Returns the new value, or False if absent."""
        pass

    @abc.abstractmethod
    def decr(self, key: str, offset: int = 1, group: str = "default") -> Union[int, float, bool]:
        """Decrements a numeric item, never below zero. Returns False if absent."""
        pass

    @abc.abstractmethod
    def flush(self) -> FlushResult:
        """Clears every item from memory and from the store directory."""
        pass

    @abc.abstractmethod
    def stats(self) -> CacheStats:
        """Returns hit/miss counters and per-group usage."""
        pass

    @abc.abstractmethod
    def add_global_groups(self, groups: Union[str, Iterable[str]]) -> None:
        pass

    @abc.abstractmethod
    def add_non_persistent_groups(self, groups: Union[str, Iterable[str]]) -> None:
        pass

    @abc.abstractmethod
    def add_non_persistent_keys(self, keys: Union[str, Iterable[str]]) -> None:
        pass
