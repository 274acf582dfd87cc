"""Application logging for objcache.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records go. Diagnostics are written to stderr so that
values printed by the CLI on stdout can be piped, and optionally mirrored
to a log file. The audit trail (``audit_log``) has its own handler and is
not routed through here.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_LOG_LEVEL = logging.WARNING
APP_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Marks handlers installed by setup_logging so a second call replaces only those
_OWNED_ATTR = "_objcache_owned"


def resolve_log_level(level: Union[int, str, None]) -> int:
    """Maps a level name ('debug', 'INFO') or number to a logging level.

    Unknown names fall back to the default level instead of raising, since
    the value usually comes from a config file or environment variable.
    """
    if isinstance(level, int):
        return level
    if not level:
        return DEFAULT_LOG_LEVEL
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL


def _owned(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    setattr(handler, _OWNED_ATTR, True)
    return handler


def _detach_owned(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        if getattr(handler, _OWNED_ATTR, False):
            root.removeHandler(handler)
            handler.close()


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = APP_LOG_FORMAT,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Points the root logger at stderr and, optionally, a UTF-8 log file.

    Calling it again swaps the handlers it installed earlier; handlers
    attached by anything else are left in place.

    Args:
        log_level: Minimum level, as a number or a name such as 'debug'.
        log_format: ``logging.Formatter`` format string.
        log_file: File to mirror log records to. Its directory must exist.
    """
    level = resolve_log_level(log_level)
    formatter = logging.Formatter(log_format)
    root = logging.getLogger()
    root.setLevel(level)
    _detach_owned(root)

    handlers: List[logging.Handler] = [_owned(logging.StreamHandler(sys.stderr), level, formatter)]
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(_owned(logging.FileHandler(log_file, encoding='utf-8'), level, formatter))
        except OSError as e:
            file_error = e

    for handler in handlers:
        root.addHandler(handler)

    logger = logging.getLogger(__name__)
    if file_error is not None:
        logger.error(f"Cannot write log file {log_file}: {file_error}. Logging to stderr only.")
    targets = "stderr" if len(handlers) == 1 else f"stderr and {log_file}"
    logger.debug(f"Logging at {logging.getLevelName(level)} to {targets}")
