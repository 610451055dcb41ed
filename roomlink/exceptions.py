"""
Exception hierarchy for roomlink.

Only local failures are exceptions. Rejections from the backend (joining a
closed or full room, unauthorized metadata changes) arrive as ERROR events,
and transport failures surface as a DISCONNECTED event; neither is raised.
"""

from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class RoomLinkError(Exception):
    """
    Base exception for all roomlink errors.

    Carries structured details so callers can log or report them without
    parsing the message.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """
        Initialize roomlink error.

        Args:
            message: Technical error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(UTC)

        self._log_error()

    def _log_error(self) -> None:
        logger.warning(
            "roomlink error raised",
            error_type=self.__class__.__name__,
            message=self.message,
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class BinaryCodecError(RoomLinkError, ValueError):
    """Raised when an outbound binary payload cannot be encoded in the active mode."""

    def __init__(self, message: str, mode: str, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.mode = mode
        self.details["mode"] = mode


class TransportError(RoomLinkError):
    """Raised when a transport is used in a way its lifecycle does not allow."""

    def __init__(self, message: str, url: str | None = None, error: Exception | None = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url
        self.original_error = error
