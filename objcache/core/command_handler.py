"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), calls the object
cache and reports results through the UserInterface. Every handler
returns True on success so the CLI can map it to an exit status.
"""

import json
import logging
from typing import Any

from objcache.domain.interfaces.user_interface import UserInterface
from objcache.infrastructure.cache.caching_service import CachingServiceImpl

logger = logging.getLogger(__name__)


def parse_value(raw: str, as_json: bool) -> Any:
    """Returns the value to store: the raw string, or its JSON decoding."""
    if not as_json:
        return raw
    return json.loads(raw)


class CommandHandler:
    """Handles incoming commands and delegates to the cache service."""

    def __init__(self, cache_service: CachingServiceImpl, ui: UserInterface):
        """Initializes the CommandHandler with the cache and display."""
        self.cache_service = cache_service
        self.ui = ui

    def handle_get(self, key: str, group: str, force: bool = False) -> bool:
        value, found = self.cache_service.lookup(key, group, force=force)
        if not found:
            self.ui.display_error(f"Not found: {group}:{key}")
            return False
        self.ui.display_value(value)
        return True

    def handle_store(self, mode: str, key: str, raw_value: str, group: str, ttl: int, as_json: bool) -> bool:
        """Handles 'set', 'add' and 'replace'."""
        try:
            value = parse_value(raw_value, as_json)
        except ValueError as e:
            self.ui.display_error(f"Invalid JSON value: {e}")
            return False

        operation = {
            "set": self.cache_service.set,
            "add": self.cache_service.add,
            "replace": self.cache_service.replace,
        }[mode]
        logger.info(f"Handling '{mode}' for {group}:{key} (ttl={ttl})")
        if operation(key, value, group, ttl):
            return True
        if mode == "add":
            self.ui.display_error(f"Already exists: {group}:{key}")
        else:
            self.ui.display_error(f"Not found: {group}:{key}")
        return False

    def handle_delete(self, key: str, group: str) -> bool:
        if self.cache_service.delete(key, group):
            return True
        self.ui.display_error(f"Not found: {group}:{key}")
        return False

    def handle_adjust(self, key: str, offset: int, group: str, decrement: bool = False) -> bool:
        """Handles 'incr' and 'decr'."""
        if decrement:
            result = self.cache_service.decr(key, offset, group)
        else:
            result = self.cache_service.incr(key, offset, group)
        if result is False:
            self.ui.display_error(f"Not found: {group}:{key}")
            return False
        self.ui.display_value(result)
        return True

    def handle_flush(self) -> bool:
        result = self.cache_service.flush()
        if not result.success:
            self.ui.display_error("Object cache could not be flushed.")
            return False
        self.ui.display_info(f"Flushed {result.removed} cache file(s).")
        return True

    def handle_stats(self) -> bool:
        try:
            stats = self.cache_service.stats()
        except OSError as e:
            logger.error(f"Failed to collect cache statistics: {e}", exc_info=True)
            self.ui.display_error(f"Failed to collect statistics: {e}")
            return False
        self.ui.display_stats(stats)
        return True

    def handle_path(self, key: str, group: str) -> bool:
        self.ui.display_value(self.cache_service.path_for(key, group))
        return True
