"""Transports carrying control and binary frames."""

from .base import Transport, TransportFactory, TransportListener
from .websocket_transport import WebSocketTransport

__all__ = ["Transport", "TransportFactory", "TransportListener", "WebSocketTransport"]
