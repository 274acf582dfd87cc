"""Domain Events consumed by the cache's invalidation hooks.

The host application raises these when external state changes (an option
was updated, a plugin was activated) and routes them to the
InvalidationRegistry, which maps them to cache entries to delete.
"""

from dataclasses import dataclass, field
import time
from typing import Any, NamedTuple


class InvalidationTarget(NamedTuple):
    """A (key, group) pair to delete in response to an event."""
    key: str
    group: str = "default"


@dataclass
class ExternalEvent:
    """A host lifecycle event, e.g. 'updated_option' with the option name as payload."""
    name: str
    payload: Any = None
    timestamp: float = field(default_factory=time.time)
