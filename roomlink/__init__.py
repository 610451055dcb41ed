"""
roomlink: client-side session protocol for a real-time multiplayer relay backend.

Usage:
    from roomlink import EventKind, NetClient

    client = NetClient.from_config()
    client.on(EventKind.ROOM_JOINED, lambda event: print(event.room_id))
    client.connect()
"""

from .client.net_client import NetClient
from .codec.binary_codec import BinaryEnvelope, BinaryMode
from .events.event_types import EventKind

__all__ = ["BinaryEnvelope", "BinaryMode", "EventKind", "NetClient"]

__version__ = "0.1.0"
