"""
Transport abstraction for roomlink.

The session never talks to a socket directly. It drives a Transport and
receives its callbacks through a TransportListener, so the WebSocket client
can be swapped for an in-memory one in tests.

Callbacks are delivered on the thread/loop that owns the transport, one at a
time, in arrival order.
"""

from collections.abc import Callable
from typing import Protocol


class TransportListener(Protocol):
    """Receives transport lifecycle and frame callbacks."""

    def on_open(self) -> None:
        """The connection is established and frames may be sent."""
        ...

    def on_text(self, text: str) -> None:
        """A control (text) frame arrived."""
        ...

    def on_binary(self, data: bytes) -> None:
        """A binary frame arrived."""
        ...

    def on_error(self, error: Exception) -> None:
        """
        A transport error occurred.

        Informational only; a failed or broken connection always ends with on_close().
        """
        ...

    def on_close(self) -> None:
        """The connection is gone (refused, dropped, or closed on purpose)."""
        ...


class Transport(Protocol):
    """
    Protocol defining a single bidirectional frame connection.

    Implementations must provide:
    - Lifecycle (open, close, is_open)
    - Fire-and-forget submission of text and binary frames
    """

    def bind(self, listener: TransportListener) -> None:
        """Attach the listener that receives this transport's callbacks."""
        ...

    def open(self) -> None:
        """Start connecting. Returns immediately; success is reported through on_open()."""
        ...

    def close(self) -> None:
        """Start closing. on_close() follows unless the transport was never opened."""
        ...

    @property
    def is_open(self) -> bool:
        """True between on_open() and on_close()."""
        ...

    def send_text(self, text: str) -> bool:
        """
        Submit a text frame.

        Returns:
            bool: False if the transport refused the frame because it is not open
        """
        ...

    def send_bytes(self, data: bytes) -> bool:
        """
        Submit a binary frame.

        Returns:
            bool: False if the transport refused the frame because it is not open
        """
        ...


TransportFactory = Callable[[str], Transport]
