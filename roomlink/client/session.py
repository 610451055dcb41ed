"""
Session state for one roomlink connection.

Session owns the identity/room/owner fields and applies every inbound
notification to them, in the order: check the transition is legal, mutate
state, notify subscribers. Subscribers therefore always observe the state
that results from the message that raised their event.
"""

from collections.abc import Callable
from typing import Any

from statemachine.exceptions import TransitionNotAllowed

from ..codec.binary_codec import BinaryMode, DecodedFrame
from ..events import event_types as ev
from ..events.dispatcher import EventDispatcher
from ..protocol import messages as msg
from ..structured_logging.enhanced_logging_config import get_logger
from .session_state_machine import ConnectionStatus, SessionStateMachine

logger = get_logger(__name__)

IN_ROOM_PHASES = ("member", "host")
SUBMIT_PHASES = ("assigned", "member", "host")


class Session:
    """
    Connection status, identity, current room and owner of one client.

    The object survives any number of connect/disconnect cycles; every
    disconnect resets identity, room and owner to None.
    """

    def __init__(self, dispatcher: EventDispatcher, binary_mode: BinaryMode, name: str = "session"):
        """
        Initialize the session.

        Args:
            dispatcher: Where events are delivered
            binary_mode: Binary payload form; fixed for the lifetime of the session
            name: Label used in log lines
        """
        self.name = name
        self._dispatcher = dispatcher
        self._binary_mode = BinaryMode(binary_mode)
        self._machine = SessionStateMachine(name)

        self._player_id: str | None = None
        self._room_id: str | None = None
        self._owner_id: str | None = None

        self._handlers: dict[type[msg.InboundMessage], Callable[[Any], None]] = {
            msg.AssignIdMessage: self._on_assign_id,
            msg.RoomCreatedMessage: self._on_room_created,
            msg.RoomJoinedMessage: self._on_room_joined,
            msg.LeftRoomMessage: self._on_left_room,
            msg.MakeHostMessage: self._on_make_host,
            msg.ReassignedHostMessage: self._on_reassigned_host,
            msg.PlayerJoinedMessage: lambda m: self._emit(ev.PlayerJoined(player_id=m.player_id)),
            msg.PlayerLeftMessage: lambda m: self._emit(ev.PlayerLeft(player_id=m.player_id)),
            msg.RelayMessage: lambda m: self._emit(ev.Relay(sender_id=m.sender_id, payload=m.payload)),
            msg.TellOwnerMessage: lambda m: self._emit(ev.TellOwner(sender_id=m.sender_id, payload=m.payload)),
            msg.TellPlayerMessage: lambda m: self._emit(ev.TellPlayer(sender_id=m.sender_id, payload=m.payload)),
            msg.RoomListMessage: self._on_room_list,
            msg.RoomUpdatedMessage: lambda m: self._emit(ev.RoomUpdated(metadata=m.changes)),
            msg.RoomTagAddedMessage: lambda m: self._emit(ev.RoomTagAdded(tag=m.tag)),
            msg.RoomTagRemovedMessage: lambda m: self._emit(ev.RoomTagRemoved(tag=m.tag)),
            msg.ErrorMessage: lambda m: self._emit(ev.Error(message=m.message)),
        }

    @property
    def player_id(self) -> str | None:
        return self._player_id

    @property
    def room_id(self) -> str | None:
        return self._room_id

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    @property
    def is_host(self) -> bool:
        """True iff this session owns its current room; derived, never stored."""
        return self._player_id is not None and self._owner_id == self._player_id

    @property
    def binary_mode(self) -> BinaryMode:
        return self._binary_mode

    @property
    def status(self) -> ConnectionStatus:
        return self._machine.status

    @property
    def phase(self) -> str:
        return self._machine.phase

    @property
    def in_room(self) -> bool:
        return self._machine.is_in(*IN_ROOM_PHASES)

    @property
    def can_submit(self) -> bool:
        """Requests are only sent once the backend has assigned an identity."""
        return self._machine.is_in(*SUBMIT_PHASES)

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._machine.get_stats(),
            "player_id": self._player_id,
            "room_id": self._room_id,
            "owner_id": self._owner_id,
            "is_host": self.is_host,
        }

    # Transport lifecycle

    def begin_connect(self) -> bool:
        """Move to connecting. Returns False if the session is not disconnected."""
        try:
            self._machine.send("begin_connect")
        except TransitionNotAllowed:
            return False
        return True

    def handle_transport_opened(self) -> None:
        if self._transition("transport_opened", "open"):
            logger.info("Session connected", session=self.name)
            self._emit(ev.Connected())

    def handle_transport_closed(self) -> bool:
        """
        Reset to disconnected and raise DISCONNECTED.

        Returns:
            False if the session was already disconnected (nothing happens)
        """
        if self._machine.is_in("disconnected"):
            return False
        self._machine.send("transport_closed")
        self._player_id = None
        self._room_id = None
        self._owner_id = None
        logger.info("Session disconnected", session=self.name)
        self._emit(ev.Disconnected())
        return True

    # Local actions

    def leave_locally(self) -> bool:
        """
        Clear room membership without waiting for the backend.

        Returns:
            True if the session was in a room
        """
        was_in_room = self.in_room
        if was_in_room:
            self._machine.send("leave")
            logger.info("Left room", session=self.name, room_id=self._room_id)
        self._room_id = None
        self._owner_id = None
        return was_in_room

    def reject_locally(self, message: str) -> None:
        """Raise an ERROR event for a request refused by client-side policy."""
        logger.info("Request rejected locally", session=self.name, reason=message)
        self._emit(ev.Error(message=message, source=ev.ErrorSource.CLIENT))

    # Inbound frames

    def apply(self, message: msg.InboundMessage) -> None:
        """Apply one inbound notification and raise its event."""
        handler = self._handlers.get(type(message))
        if handler is None:
            logger.debug("No handler for notification", session=self.name, message_type=message.type)
            return
        handler(message)

    def handle_binary(self, frame: DecodedFrame) -> None:
        self._emit(ev.BinaryReceived(data=frame.data, sender_id=frame.sender_id))

    def _on_assign_id(self, message: msg.AssignIdMessage) -> None:
        if not self._transition("identity_assigned", message.type):
            return
        self._player_id = message.player_id
        logger.info("Identity assigned", session=self.name, player_id=message.player_id)
        self._emit(ev.AssignedId(player_id=message.player_id))

    def _on_room_created(self, message: msg.RoomCreatedMessage) -> None:
        owner_id = message.player_id or self._player_id
        if not self._transition(self._role_event(owner_id, "enter_room"), message.type):
            return
        self._room_id = message.room_id
        self._owner_id = owner_id
        logger.info("Room created", session=self.name, room_id=message.room_id, owner_id=owner_id)
        self._emit(ev.RoomCreated(room_id=message.room_id, player_id=owner_id or ""))

    def _on_room_joined(self, message: msg.RoomJoinedMessage) -> None:
        if not self._transition(self._role_event(message.owner_id, "enter_room"), message.type):
            return
        self._room_id = message.room_id
        self._owner_id = message.owner_id
        logger.info("Room joined", session=self.name, room_id=message.room_id, owner_id=message.owner_id)
        self._emit(
            ev.RoomJoined(
                room_id=message.room_id,
                player_id=message.player_id or self._player_id or "",
                owner_id=message.owner_id,
                max_clients=message.max_clients,
            )
        )

    def _on_left_room(self, message: msg.LeftRoomMessage) -> None:
        # An acknowledgement for a room already replaced by a newer one must not clear it.
        stale = message.room_id is not None and self._room_id is not None and message.room_id != self._room_id
        if not stale:
            if not self._transition("leave", message.type):
                return
            self._room_id = None
            self._owner_id = None
        self._emit(ev.LeftRoom(room_id=message.room_id))

    def _on_make_host(self, message: msg.MakeHostMessage) -> None:
        if not self._transition("promote", message.type):
            return
        self._owner_id = self._player_id
        logger.info("Promoted to host", session=self.name, room_id=self._room_id, old_host_id=message.old_host_id)
        self._emit(ev.MakeHost(old_host_id=message.old_host_id))

    def _on_reassigned_host(self, message: msg.ReassignedHostMessage) -> None:
        event_name = "promote" if message.new_host_id == self._player_id else "demote"
        if not self._transition(event_name, message.type):
            return
        self._owner_id = message.new_host_id
        logger.info(
            "Host reassigned",
            session=self.name,
            room_id=self._room_id,
            new_host_id=message.new_host_id,
            old_host_id=message.old_host_id,
        )
        self._emit(ev.ReassignedHost(new_host_id=message.new_host_id, old_host_id=message.old_host_id))

    def _on_room_list(self, message: msg.RoomListMessage) -> None:
        rooms = [
            ev.RoomSummaryView(
                room_id=room.room_id,
                owner_id=room.owner_id,
                player_count=room.player_count,
                extra=dict(room.model_extra or {}),
            )
            for room in message.rooms
        ]
        self._emit(ev.RoomList(rooms=rooms))

    def _role_event(self, owner_id: str | None, prefix: str) -> str:
        if self._player_id is not None and owner_id == self._player_id:
            return f"{prefix}_as_host"
        return f"{prefix}_as_member"

    def _transition(self, event_name: str, trigger: str) -> bool:
        try:
            self._machine.send(event_name)
        except TransitionNotAllowed:
            logger.warning(
                "Dropping out-of-phase notification",
                session=self.name,
                trigger=trigger,
                transition=event_name,
                phase=self._machine.phase,
            )
            return False
        return True

    def _emit(self, event: ev.BaseEvent) -> None:
        self._dispatcher.dispatch(event)
