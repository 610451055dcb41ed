"""
WebSocket implementation of the Transport protocol.

Uses the asyncio client from the `websockets` library. All callbacks run on
the event loop that called open(). Outbound frames go through a single writer
task so they leave in submission order even though submission never waits.
"""

import asyncio
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ..exceptions import TransportError
from ..structured_logging.enhanced_logging_config import get_logger
from .base import TransportListener

logger = get_logger(__name__)


class WebSocketTransport:
    """
    One WebSocket connection, driven by callbacks.

    A transport instance is single-use: once closed it cannot be reopened.
    NetClient creates a fresh one for every connect().
    """

    def __init__(self, url: str, *, open_timeout: float = 10.0):
        """
        Initialize the transport.

        Args:
            url: ws:// or wss:// URL of the relay backend
            open_timeout: Seconds to wait for the opening handshake
        """
        self.url = url
        self._open_timeout = open_timeout
        self._listener: TransportListener | None = None
        self._connection: ClientConnection | None = None
        self._outbox: asyncio.Queue[str | bytes] | None = None
        self._run_task: asyncio.Task | None = None
        self._writer_task: asyncio.Task | None = None
        self._close_task: asyncio.Task | None = None
        self._closing = False

    def bind(self, listener: TransportListener) -> None:
        self._listener = listener

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._closing

    def open(self) -> None:
        """
        Schedule the connection on the running event loop.

        Raises:
            TransportError: If called twice or outside a running event loop
        """
        if self._run_task is not None:
            raise TransportError("Transport can only be opened once", url=self.url)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise TransportError("WebSocketTransport.open() requires a running event loop", url=self.url, error=e) from e

        self._run_task = loop.create_task(self._run(), name=f"roomlink-transport:{self.url}")

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True

        if self._connection is not None and self._run_task is not None:
            self._close_task = self._run_task.get_loop().create_task(self._connection.close())
        elif self._run_task is not None and not self._run_task.done():
            # Still handshaking; abandon the attempt.
            self._run_task.cancel()

    def send_text(self, text: str) -> bool:
        return self._submit(text)

    def send_bytes(self, data: bytes) -> bool:
        return self._submit(bytes(data))

    async def wait_closed(self) -> None:
        """Wait until the connection task has finished and on_close() has run."""
        if self._run_task is not None:
            await asyncio.gather(self._run_task, return_exceptions=True)

    def _submit(self, frame: str | bytes) -> bool:
        if not self.is_open or self._outbox is None:
            return False
        self._outbox.put_nowait(frame)
        return True

    async def _run(self) -> None:
        try:
            async with connect(self.url, open_timeout=self._open_timeout) as connection:
                self._connection = connection
                self._outbox = asyncio.Queue()
                self._writer_task = asyncio.create_task(self._write_loop(connection, self._outbox))
                logger.info("WebSocket connected", url=self.url)
                self._notify("on_open")

                async for message in connection:
                    if isinstance(message, bytes):
                        self._notify("on_binary", message)
                    else:
                        self._notify("on_text", message)
        except ConnectionClosed as e:
            logger.info(
                "WebSocket connection closed",
                url=self.url,
                close_code=e.rcvd.code if e.rcvd else None,
            )
        except (OSError, TimeoutError, InvalidURI, InvalidHandshake) as e:
            logger.warning("WebSocket connection failed", url=self.url, error=str(e), error_type=type(e).__name__)
            self._notify("on_error", e)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: Nothing awaits the connection task, so any failure must reach the listener
            logger.error(
                "Unexpected WebSocket transport failure",
                url=self.url,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            self._notify("on_error", e)
        finally:
            self._connection = None
            self._closing = True
            if self._writer_task is not None:
                self._writer_task.cancel()
            self._notify("on_close")

    async def _write_loop(self, connection: ClientConnection, outbox: asyncio.Queue[str | bytes]) -> None:
        while True:
            frame = await outbox.get()
            try:
                await connection.send(frame)
            except ConnectionClosed:
                logger.debug("Outbound frame dropped; connection already closed", url=self.url)
                return

    def _notify(self, callback_name: str, *args: Any) -> None:
        if self._listener is None:
            return
        try:
            getattr(self._listener, callback_name)(*args)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: A listener failure must not kill the receive loop
            logger.error(
                "Transport listener raised",
                url=self.url,
                callback=callback_name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
