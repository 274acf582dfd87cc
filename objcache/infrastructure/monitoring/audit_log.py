"""Append-only diagnostic trail of cache operations.

Lines look like::

    [2026-10-19 08:15:02 UTC] set: "options:siteurl" "3f1c0a9e77b2-a4d2c1e9b0f3" "cli set"

The trail is written through a dedicated logging file handler, separate
from the root logger. The handler suppresses lines it has already written
during this process, and truncates the file instead of appending once it
grows past a size threshold or on a flush event when truncate-on-flush is
configured.
Nothing is opened or written while the trail is disabled.
"""

import logging
import os
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Set, Union

logger = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "objcache.audit"
AUDIT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
DEFAULT_MAX_BYTES = 10_000_000


class AuditTag(str, Enum):
    HIT = "hit"
    SET = "set"
    DELETE = "delete"
    EXPIRE = "expire"
    FLUSH = "flush"
    ERROR = "error"


class AuditFormatter(logging.Formatter):
    """Renders an audit record as a single bracketed-timestamp line."""

    converter = time.gmtime

    def __init__(self):
        super().__init__(datefmt=AUDIT_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"[{self.formatTime(record, self.datefmt)}] {record.audit_tag}: "
            f"\"{record.audit_id}\" \"{str(record.audit_payload).strip()}\""
        )
        context = getattr(record, "audit_context", None)
        if context:
            line += f" \"{context}\""
        return line


class AuditFileHandler(logging.FileHandler):
    """File handler with duplicate suppression and size/flush truncation."""

    def __init__(self, filename: Union[str, Path], max_bytes: int = DEFAULT_MAX_BYTES, truncate_on_flush: bool = True):
        # delay=True: the file is not touched until the first record arrives
        super().__init__(filename, mode="a", encoding="utf-8", delay=True)
        self.max_bytes = max_bytes
        self.truncate_on_flush = truncate_on_flush
        self._written: Set[str] = set()

    def _should_truncate(self, record: logging.LogRecord) -> bool:
        try:
            size = os.path.getsize(self.baseFilename)
        except OSError:
            return False  # nothing to truncate yet
        if self.truncate_on_flush and record.audit_tag == AuditTag.FLUSH.value:
            return True
        return size >= self.max_bytes

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            if line in self._written:
                return
            if self.stream is None:
                os.makedirs(os.path.dirname(self.baseFilename), exist_ok=True)
            if self._should_truncate(record):
                if self.stream is not None:
                    self.stream.close()
                self.stream = open(self.baseFilename, "w", encoding=self.encoding)
            elif self.stream is None:
                self.stream = self._open()
            self.stream.write(line + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)
            return
        self._written.add(line)


class AuditLog:
    """Records cache operations to the audit file when enabled."""

    def __init__(
        self,
        enabled: bool = False,
        log_file: Optional[Union[str, Path]] = None,
        max_bytes: int = DEFAULT_MAX_BYTES,
        truncate_on_flush: bool = True,
        context_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.enabled = bool(enabled and log_file)
        self.log_file = Path(log_file) if log_file else None
        self._context_provider = context_provider
        self._context: Optional[str] = None
        self._handler: Optional[AuditFileHandler] = None

        if self.enabled:
            self._handler = AuditFileHandler(self.log_file, max_bytes=max_bytes, truncate_on_flush=truncate_on_flush)
            self._handler.setFormatter(AuditFormatter())
            logger.debug(f"Audit log enabled: {self.log_file} (max {max_bytes} bytes)")

    def bind_context(self, context: Optional[str]) -> None:
        """Sets a short request-context string appended to every line."""
        self._context = context

    def _current_context(self) -> Optional[str]:
        if self._context_provider is not None:
            try:
                return self._context_provider()
            except Exception as e:
                logger.warning(f"Audit context provider failed: {e}")
        return self._context

    def record(self, tag: Union[AuditTag, str], operation_id: str, payload: object = "") -> None:
        """Appends one line to the audit file. A no-op while disabled."""
        if not self.enabled or self._handler is None:
            return
        tag_value = AuditTag(tag).value
        record = logging.makeLogRecord({
            "name": AUDIT_LOGGER_NAME,
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": f"{tag_value} {operation_id}",
            "audit_tag": tag_value,
            "audit_id": operation_id,
            "audit_payload": payload,
            "audit_context": self._current_context(),
        })
        self._handler.handle(record)

    def close(self) -> None:
        if self._handler is not None:
            self._handler.close()
            self._handler = None
            self.enabled = False
