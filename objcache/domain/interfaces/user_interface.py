"""Interface for presenting command results to the user.

Defines the contract for displaying values, statistics, information,
warnings and errors, allowing different UI implementations (e.g., console).
"""

import abc
from typing import Any

from objcache.domain.models.common import CacheStats


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_value(self, value: Any, **kwargs: Any) -> None:
        """Displays a cached value.

        Args:
            value: The value to render. JSON-compatible values are shown as
                JSON, anything else by its repr.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_stats(self, stats: CacheStats, **kwargs: Any) -> None:
        """Displays cache statistics as a table."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass
