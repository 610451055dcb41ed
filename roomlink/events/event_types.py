"""
Event types raised by a roomlink client.

Every event a subscriber can observe has one EventKind member and one
dataclass carrying that event's arguments. The EventKind values are the
camelCase names used by browser clients of the same backend, so string
lookups ("roomJoined") keep working alongside the enum.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar


class EventKind(Enum):
    """Every event a NetClient can raise."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ASSIGNED_ID = "assignedId"
    ROOM_CREATED = "roomCreated"
    ROOM_JOINED = "roomJoined"
    LEFT_ROOM = "leftRoom"
    MAKE_HOST = "makeHost"
    REASSIGNED_HOST = "reassignedHost"
    PLAYER_JOINED = "playerJoined"
    PLAYER_LEFT = "playerLeft"
    RELAY = "relay"
    TELL_OWNER = "tellOwner"
    TELL_PLAYER = "tellPlayer"
    ROOM_LIST = "roomList"
    ROOM_UPDATED = "roomUpdated"
    ROOM_TAG_ADDED = "roomTagAdded"
    ROOM_TAG_REMOVED = "roomTagRemoved"
    BINARY = "binary"
    ERROR = "error"


class ErrorSource(Enum):
    """Where an ERROR event originated."""

    SERVER = "server"
    CLIENT = "client"


def _default_timestamp() -> datetime:
    """Factory function for default timestamp."""
    return datetime.now(UTC)


@dataclass
class BaseEvent:
    """
    Base class for all client events.

    Subclasses set the `kind` class variable; the dispatcher routes on it.
    """

    kind: ClassVar[EventKind]

    timestamp: datetime = field(default_factory=_default_timestamp, init=False, compare=False)


@dataclass
class Connected(BaseEvent):
    """The transport opened. No identity has been assigned yet."""

    kind: ClassVar[EventKind] = EventKind.CONNECTED


@dataclass
class Disconnected(BaseEvent):
    """The transport closed, for any reason. All session fields are cleared."""

    kind: ClassVar[EventKind] = EventKind.DISCONNECTED


@dataclass
class AssignedId(BaseEvent):
    """The backend assigned this session its player identity."""

    kind: ClassVar[EventKind] = EventKind.ASSIGNED_ID

    player_id: str


@dataclass
class RoomCreated(BaseEvent):
    """A room requested by this client was created; this client owns it."""

    kind: ClassVar[EventKind] = EventKind.ROOM_CREATED

    room_id: str
    player_id: str


@dataclass
class RoomJoined(BaseEvent):
    """This client joined an existing room."""

    kind: ClassVar[EventKind] = EventKind.ROOM_JOINED

    room_id: str
    player_id: str
    owner_id: str
    max_clients: int | None = None


@dataclass
class LeftRoom(BaseEvent):
    """The backend confirmed that this client left a room."""

    kind: ClassVar[EventKind] = EventKind.LEFT_ROOM

    room_id: str | None = None


@dataclass
class MakeHost(BaseEvent):
    """This client was promoted to host of its current room."""

    kind: ClassVar[EventKind] = EventKind.MAKE_HOST

    old_host_id: str | None = None


@dataclass
class ReassignedHost(BaseEvent):
    """Room ownership moved; broadcast to every member."""

    kind: ClassVar[EventKind] = EventKind.REASSIGNED_HOST

    new_host_id: str
    old_host_id: str | None = None


@dataclass
class PlayerJoined(BaseEvent):
    """Another player entered the current room."""

    kind: ClassVar[EventKind] = EventKind.PLAYER_JOINED

    player_id: str


@dataclass
class PlayerLeft(BaseEvent):
    """Another player left the current room."""

    kind: ClassVar[EventKind] = EventKind.PLAYER_LEFT

    player_id: str


@dataclass
class Relay(BaseEvent):
    """A payload broadcast by another room member."""

    kind: ClassVar[EventKind] = EventKind.RELAY

    sender_id: str
    payload: Any = None


@dataclass
class TellOwner(BaseEvent):
    """A payload a member addressed to this client as room owner."""

    kind: ClassVar[EventKind] = EventKind.TELL_OWNER

    sender_id: str
    payload: Any = None


@dataclass
class TellPlayer(BaseEvent):
    """A payload another member addressed to this client directly."""

    kind: ClassVar[EventKind] = EventKind.TELL_PLAYER

    sender_id: str
    payload: Any = None


@dataclass
class RoomSummaryView:
    """One entry of a room listing."""

    room_id: str
    owner_id: str | None = None
    player_count: int = 0
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class RoomList(BaseEvent):
    """Public rooms matching a list_rooms() request."""

    kind: ClassVar[EventKind] = EventKind.ROOM_LIST

    rooms: list[RoomSummaryView] = field(default_factory=list)


@dataclass
class RoomUpdated(BaseEvent):
    """The host changed the room metadata; carries the changed keys."""

    kind: ClassVar[EventKind] = EventKind.ROOM_UPDATED

    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class RoomTagAdded(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.ROOM_TAG_ADDED

    tag: str


@dataclass
class RoomTagRemoved(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.ROOM_TAG_REMOVED

    tag: str


@dataclass
class BinaryReceived(BaseEvent):
    """
    A binary frame from another room member.

    `data` is a '0'/'1' string in bit-string mode and a list of ints in
    byte-array mode. `sender_id` is None when frames carry no envelope.
    """

    kind: ClassVar[EventKind] = EventKind.BINARY

    data: str | list[int]
    sender_id: str | None = None


@dataclass
class Error(BaseEvent):
    """
    An informational error. The session stays connected.

    Server errors carry the backend's message verbatim (closed room, full
    room, unknown room, ...). Client errors come from local policy checks.
    """

    kind: ClassVar[EventKind] = EventKind.ERROR

    message: str
    source: ErrorSource = ErrorSource.SERVER


EVENT_CLASSES: dict[EventKind, type[BaseEvent]] = {
    event_class.kind: event_class
    for event_class in (
        Connected,
        Disconnected,
        AssignedId,
        RoomCreated,
        RoomJoined,
        LeftRoom,
        MakeHost,
        ReassignedHost,
        PlayerJoined,
        PlayerLeft,
        Relay,
        TellOwner,
        TellPlayer,
        RoomList,
        RoomUpdated,
        RoomTagAdded,
        RoomTagRemoved,
        BinaryReceived,
        Error,
    )
}
