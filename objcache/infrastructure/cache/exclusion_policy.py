"""Group and key classification: which writes may reach the disk store.

Three sets are kept: global groups (keys in them are not namespace-prefixed
by the host; tracked here because it is also a per-group classification),
non-persistent groups and non-persistent keys. The sets only ever grow at
runtime and are consulted at write time; entries already on disk are not
revisited when they change.
"""

import logging
from typing import Iterable, Set, Union

logger = logging.getLogger(__name__)


def _as_names(names: Union[str, Iterable[str], None]) -> Set[str]:
    if names is None:
        return set()
    if isinstance(names, str):
        return {names}
    return {str(name) for name in names}


class ExclusionPolicy:
    """Decides whether a (group, key) write is persisted to disk."""

    def __init__(
        self,
        global_groups: Union[str, Iterable[str], None] = None,
        non_persistent_groups: Union[str, Iterable[str], None] = None,
        non_persistent_keys: Union[str, Iterable[str], None] = None,
        namespace_prefix: str = "",
    ):
        self.global_groups = _as_names(global_groups)
        self.non_persistent_groups = _as_names(non_persistent_groups)
        self.non_persistent_keys = _as_names(non_persistent_keys)
        self.namespace_prefix = namespace_prefix or ""

    # --- Runtime additions (union only) ---

    def add_global_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self.global_groups |= _as_names(groups)

    def add_non_persistent_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self.non_persistent_groups |= _as_names(groups)
        logger.debug(f"Non-persistent groups now: {sorted(self.non_persistent_groups)}")

    def add_non_persistent_keys(self, keys: Union[str, Iterable[str]]) -> None:
        self.non_persistent_keys |= _as_names(keys)
        logger.debug(f"Non-persistent keys now: {sorted(self.non_persistent_keys)}")

    # --- Queries ---

    def is_global_group(self, group: str) -> bool:
        return group in self.global_groups

    def is_non_persistent_group(self, group: str) -> bool:
        return group in self.non_persistent_groups

    def strip_prefix(self, key: str) -> str:
        """Removes the host's namespace prefix from a key, if present."""
        if self.namespace_prefix and key.startswith(self.namespace_prefix):
            return key[len(self.namespace_prefix):]
        return key

    def is_non_persistent_key(self, key: str) -> bool:
        return self.strip_prefix(key) in self.non_persistent_keys

    def persistable(self, group: str, key: str) -> bool:
        """True if a write of ``key`` in ``group`` may be written to disk."""
        return not self.is_non_persistent_group(group) and not self.is_non_persistent_key(key)
