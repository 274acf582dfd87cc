"""Host-side registry mapping lifecycle events to cache invalidations.

Handlers are registered per event name and return the (key, group) pairs
to delete for a given payload. The host calls ``notify`` when its events
fire; the cache itself never calls into the registry.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from objcache.domain.events.cache_events import ExternalEvent, InvalidationTarget
from objcache.domain.interfaces.cache import ObjectCache

logger = logging.getLogger(__name__)

TargetLike = Union[InvalidationTarget, Tuple[str, str], str]
InvalidationHandler = Callable[[Any], Optional[Iterable[TargetLike]]]


def _as_target(target: TargetLike) -> InvalidationTarget:
    if isinstance(target, InvalidationTarget):
        return target
    if isinstance(target, str):
        return InvalidationTarget(key=target)
    key, group = target
    return InvalidationTarget(key=str(key), group=str(group or "default"))


class InvalidationRegistry:
    """Routes named events to the cache entries they invalidate."""

    def __init__(self, cache: ObjectCache):
        self.cache = cache
        self._handlers: Dict[str, List[InvalidationHandler]] = {}

    def register(self, event_name: str, handler: InvalidationHandler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug(f"Registered invalidation handler for '{event_name}': {getattr(handler, '__name__', handler)}")

    def register_static(self, event_name: str, *targets: TargetLike) -> None:
        """Registers a handler that always invalidates the same entries."""
        fixed = [_as_target(t) for t in targets]
        self.register(event_name, lambda _payload: fixed)

    def handlers_for(self, event_name: str) -> List[InvalidationHandler]:
        return list(self._handlers.get(event_name, []))

    def notify(self, event: Union[ExternalEvent, str], payload: Any = None) -> int:
        """Runs every handler for the event and deletes what they return.

        Args:
            event: An ExternalEvent, or an event name with ``payload``.
            payload: Event payload when ``event`` is a name.

        Returns:
            The number of cache entries actually deleted.
        """
        if isinstance(event, str):
            event = ExternalEvent(name=event, payload=payload)

        deleted = 0
        for handler in self.handlers_for(event.name):
            try:
                targets = handler(event.payload) or []
                resolved = [_as_target(t) for t in targets]
            except Exception as e:
                logger.error(f"Invalidation handler for '{event.name}' failed: {e}", exc_info=True)
                continue
            for target in resolved:
                if self.cache.delete(target.key, target.group):
                    deleted += 1
                    logger.debug(f"Invalidated {target.group}:{target.key} on '{event.name}'")
        return deleted
