"""
Control-channel message models.

Every control frame is one JSON object with a `type` discriminator and
camelCase keys. Requests are what the client sends; notifications are what
the backend sends. Identities are opaque strings; numeric identities from
the backend are coerced to strings so comparisons stay consistent.
"""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

# Keys that are sent even when their value is None.
_ALWAYS_SENT = frozenset({"type", "payload"})


class OutboundRequest(BaseModel):
    """Base class for client-to-server requests."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: str

    def to_wire(self) -> str:
        """Serialize to a compact JSON text frame, leaving out unset optional keys."""
        data = self.model_dump(mode="json", by_alias=True)
        frame = {key: value for key, value in data.items() if value is not None or key in _ALWAYS_SENT}
        return json.dumps(frame, separators=(",", ":"))


class CreateRoomRequest(OutboundRequest):
    type: Literal["createRoom"] = "createRoom"
    tags: list[str]
    max_clients: int
    metadata: dict[str, Any] | None = None


class JoinRoomRequest(OutboundRequest):
    type: Literal["joinRoom"] = "joinRoom"
    room_id: str


class LeaveRoomRequest(OutboundRequest):
    type: Literal["leaveRoom"] = "leaveRoom"


class ListRoomsRequest(OutboundRequest):
    type: Literal["listRooms"] = "listRooms"
    tags: list[str]


class RelayRequest(OutboundRequest):
    type: Literal["relay"] = "relay"
    payload: Any = None


class TellOwnerRequest(OutboundRequest):
    type: Literal["tellOwner"] = "tellOwner"
    payload: Any = None


class TellPlayerRequest(OutboundRequest):
    type: Literal["tellPlayer"] = "tellPlayer"
    player_id: str
    payload: Any = None


class UpdateMetaRequest(OutboundRequest):
    type: Literal["updateMeta"] = "updateMeta"
    metadata: dict[str, Any]


class AddTagRequest(OutboundRequest):
    type: Literal["addTag"] = "addTag"
    tag: str


class RemoveTagRequest(OutboundRequest):
    type: Literal["removeTag"] = "removeTag"
    tag: str


class InboundMessage(BaseModel):
    """Base class for server-to-client notifications."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    type: str


class AssignIdMessage(InboundMessage):
    type: Literal["assignId"]
    player_id: str


class RoomCreatedMessage(InboundMessage):
    type: Literal["roomCreated"]
    room_id: str
    player_id: str | None = None


class RoomJoinedMessage(InboundMessage):
    type: Literal["roomJoined"]
    room_id: str
    player_id: str | None = None
    owner_id: str
    max_clients: int | None = None


class LeftRoomMessage(InboundMessage):
    type: Literal["leftRoom"]
    room_id: str | None = None


class MakeHostMessage(InboundMessage):
    type: Literal["makeHost"]
    old_host_id: str | None = None


class ReassignedHostMessage(InboundMessage):
    type: Literal["reassignedHost"]
    new_host_id: str
    old_host_id: str | None = None


class PlayerJoinedMessage(InboundMessage):
    type: Literal["playerJoined"]
    player_id: str


class PlayerLeftMessage(InboundMessage):
    type: Literal["playerLeft"]
    player_id: str


class RelayMessage(InboundMessage):
    type: Literal["relay"]
    sender_id: str = Field(alias="from")
    payload: Any = None


class TellOwnerMessage(InboundMessage):
    type: Literal["tellOwner"]
    sender_id: str = Field(alias="from")
    payload: Any = None


class TellPlayerMessage(InboundMessage):
    type: Literal["tellPlayer"]
    sender_id: str = Field(alias="from")
    payload: Any = None


class RoomSummary(BaseModel):
    """One room in a roomList notification; unknown keys are kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
        frozen=True,
    )

    room_id: str
    owner_id: str | None = None
    player_count: int = 0


class RoomListMessage(InboundMessage):
    type: Literal["roomList"]
    rooms: list[RoomSummary] = Field(default_factory=list)


class RoomUpdatedMessage(InboundMessage):
    """
    Metadata change broadcast.

    The backend sends the changed keys either nested under `metadata` or
    spread at the top level next to `type`; both forms are accepted. A
    metadata key that is itself named "metadata" is only read as the nested
    form when it holds an object and has no sibling keys.
    """

    model_config = ConfigDict(extra="allow")

    type: Literal["roomUpdated"]
    metadata: Any = None

    @property
    def changes(self) -> dict[str, Any]:
        extra = dict(self.model_extra or {})
        if isinstance(self.metadata, dict) and not extra:
            return dict(self.metadata)
        if "metadata" in self.model_fields_set:
            return {"metadata": self.metadata, **extra}
        return extra


class RoomTagAddedMessage(InboundMessage):
    type: Literal["roomTagAdded"]
    tag: str


class RoomTagRemovedMessage(InboundMessage):
    type: Literal["roomTagRemoved"]
    tag: str


class ErrorMessage(InboundMessage):
    type: Literal["error"]
    message: str = "Unknown server error"


ServerMessage = Annotated[
    AssignIdMessage
    | RoomCreatedMessage
    | RoomJoinedMessage
    | LeftRoomMessage
    | MakeHostMessage
    | ReassignedHostMessage
    | PlayerJoinedMessage
    | PlayerLeftMessage
    | RelayMessage
    | TellOwnerMessage
    | TellPlayerMessage
    | RoomListMessage
    | RoomUpdatedMessage
    | RoomTagAddedMessage
    | RoomTagRemovedMessage
    | ErrorMessage,
    Field(discriminator="type"),
]

server_message_adapter: TypeAdapter[Any] = TypeAdapter(ServerMessage)
