"""Maps a (group, key) pair to a stable file path inside the store root.

Each half of the pair is hashed independently and truncated, so the file
name is ``<group digest>-<key digest><extension>``. Truncation trades a
small collision probability for short names; a collision only ever causes
a spurious miss or a stale value, never corruption of a system of record.
"""

import hashlib
import logging
from pathlib import Path
from typing import Union

from objcache.domain.models.common import ItemId

logger = logging.getLogger(__name__)

DEFAULT_DIGEST_LENGTH = 12
DEFAULT_EXTENSION = ".json"


class KeyResolver:
    """Deterministic (group, key) -> path resolver."""

    def __init__(
        self,
        root: Union[str, Path],
        digest_length: int = DEFAULT_DIGEST_LENGTH,
        extension: str = DEFAULT_EXTENSION,
    ):
        if not 4 <= digest_length <= 64:
            raise ValueError(f"digest_length must be between 4 and 64, got {digest_length}")
        self.root = Path(root)
        self.digest_length = digest_length
        self.extension = extension

    def _digest(self, text: str) -> str:
        # surrogatepass: every str hashes, including ones with lone surrogates
        return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()[: self.digest_length]

    def item_id(self, group: str, key: str) -> ItemId:
        """Returns the file stem for the pair, also used as the audit payload."""
        return ItemId(f"{self._digest(group)}-{self._digest(key)}")

    def resolve(self, group: str, key: str) -> Path:
        """Returns the storage path for the pair. Pure function of its inputs."""
        return self.root / f"{self.item_id(group, key)}{self.extension}"
