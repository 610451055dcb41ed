"""
NetClient: the room command API of roomlink.

A NetClient owns one Session and, while connected, one Transport. Commands
are fire-and-forget: they serialize a request and hand it to the transport
without waiting for anything. Results come back later as events.

Control flow:
    command -> MessageFramer.encode -> Transport.send_text
    Transport.on_text -> MessageFramer.decode -> Session.apply -> EventDispatcher
    Transport.on_binary -> BinaryCodec.decode -> Session.handle_binary -> EventDispatcher

Everything runs on the transport's event loop; no locking is needed as long
as commands are issued from that same loop.
"""

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

from ..codec.binary_codec import BinaryCodec, BinaryMode, BinaryPayload
from ..config import get_config
from ..config.models import ClientConfig
from ..events.dispatcher import EventDispatcher, EventHandler, resolve_event_kind
from ..events.event_types import BaseEvent, EventKind
from ..exceptions import TransportError
from ..protocol import messages as msg
from ..protocol.framer import MessageFramer
from ..structured_logging.enhanced_logging_config import get_logger
from ..transport.base import Transport, TransportFactory
from ..transport.websocket_transport import WebSocketTransport
from .session import Session
from .session_state_machine import ConnectionStatus

logger = get_logger(__name__)

PRIVATE_TAG = "private"
CLOSED_TAG = "closed"
ALREADY_IN_ROOM = "Already in a room; leave it before creating or joining another"


class _TransportBinding:
    """
    Routes one transport's callbacks to its client.

    Callbacks from a transport the client has already abandoned (after
    disconnect() or a reconnect) are ignored.
    """

    def __init__(self, client: "NetClient", transport: Transport):
        self._client = client
        self._transport = transport

    def _is_current(self) -> bool:
        return self._client._transport is self._transport  # noqa: SLF001

    def on_open(self) -> None:
        if self._is_current():
            self._client._handle_open()  # noqa: SLF001

    def on_text(self, text: str) -> None:
        if self._is_current():
            self._client._handle_text(text)  # noqa: SLF001

    def on_binary(self, data: bytes) -> None:
        if self._is_current():
            self._client._handle_binary(data)  # noqa: SLF001

    def on_error(self, error: Exception) -> None:
        if self._is_current():
            logger.warning("Transport error", session=self._client.name, error=str(error))

    def on_close(self) -> None:
        if self._is_current():
            self._client._handle_close()  # noqa: SLF001


class NetClient:
    """
    Client-side session for a real-time multiplayer relay backend.

    Example:
        client = NetClient.for_url("wss://relay.example", game_name="demoGame")
        client.on(EventKind.ASSIGNED_ID, lambda event: client.create_room(["region:NA"], 4))
        client.connect()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        name: str = "client",
    ):
        """
        Initialize the client. Nothing is opened until connect().

        Args:
            config: Client settings; loaded from the environment if omitted
            transport_factory: Builds a Transport for a URL; WebSocketTransport by default
            name: Label used in log lines
        """
        self.config = config or get_config().client
        self.name = name
        self._transport_factory = transport_factory or self._default_transport_factory
        self._transport: Transport | None = None

        self._dispatcher = EventDispatcher()
        self._framer = MessageFramer()
        self._codec = BinaryCodec(self.config.binary_mode, self.config.binary_envelope)
        self._session = Session(self._dispatcher, self.config.binary_mode, name=name)

    @classmethod
    def for_url(cls, url: str, game_name: str = "defaultGame", **settings: Any) -> "NetClient":
        """Build a client for a URL, with any other ClientConfig field given as keyword."""
        transport_factory = settings.pop("transport_factory", None)
        name = settings.pop("name", "client")
        config = ClientConfig(url=url, game_name=game_name, **settings)
        return cls(config, transport_factory=transport_factory, name=name)

    @classmethod
    def from_config(cls, **kwargs: Any) -> "NetClient":
        return cls(get_config().client, **kwargs)

    def _default_transport_factory(self, url: str) -> Transport:
        return WebSocketTransport(url, open_timeout=self.config.open_timeout)

    # Session state

    @property
    def player_id(self) -> str | None:
        return self._session.player_id

    @property
    def room_id(self) -> str | None:
        return self._session.room_id

    @property
    def owner_id(self) -> str | None:
        return self._session.owner_id

    @property
    def is_host(self) -> bool:
        return self._session.is_host

    @property
    def status(self) -> ConnectionStatus:
        return self._session.status

    @property
    def phase(self) -> str:
        return self._session.phase

    @property
    def binary_mode(self) -> BinaryMode:
        return self._session.binary_mode

    @property
    def game_tag(self) -> str:
        return f"game:{self.config.game_name}"

    def get_stats(self) -> dict[str, Any]:
        return self._session.get_stats()

    # Events

    def on(self, kind: EventKind | str, handler: EventHandler) -> None:
        """Subscribe to an event. Handlers receive the event dataclass."""
        self._dispatcher.subscribe(kind, handler)

    def off(self, kind: EventKind | str, handler: EventHandler) -> bool:
        return self._dispatcher.unsubscribe(kind, handler)

    async def wait_for(self, kind: EventKind | str, timeout: float | None = None) -> BaseEvent:
        """
        Wait for the next event of a kind.

        Raises:
            TimeoutError: If no such event arrives in time
        """
        event_kind = resolve_event_kind(kind)
        future: asyncio.Future[BaseEvent] = asyncio.get_running_loop().create_future()

        def _resolve(event: BaseEvent) -> None:
            if not future.done():
                future.set_result(event)

        self._dispatcher.subscribe(event_kind, _resolve)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self._dispatcher.unsubscribe(event_kind, _resolve)

    # Connection

    def connect(self) -> None:
        """
        Open a new transport. A reconnect is a brand-new session.

        Raises:
            TransportError: If the transport cannot even start (e.g. no running event loop)
        """
        if not self._session.begin_connect():
            logger.warning("connect() ignored; session is not disconnected", session=self.name, phase=self.phase)
            return

        transport = self._transport_factory(self.config.url)
        self._transport = transport
        transport.bind(_TransportBinding(self, transport))
        logger.info("Connecting", session=self.name, url=self.config.url)
        try:
            transport.open()
        except TransportError:
            self._transport = None
            self._session.handle_transport_closed()
            raise

    def disconnect(self) -> None:
        """
        Close the transport and reset the session immediately.

        In-flight outbound requests may or may not be delivered.
        """
        transport = self._transport
        self._transport = None
        if transport is not None:
            transport.close()
        self._session.handle_transport_closed()

    # Rooms

    def create_room(
        self,
        tags: Iterable[str] = (),
        max_clients: int | None = None,
        is_private: bool = False,
        metadata: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Ask the backend for a new room owned by this client.

        The game tag is appended automatically, and "private" when is_private.
        Success arrives as ROOM_CREATED. Before an identity is assigned the
        call is dropped without looking at its arguments.

        Returns:
            True if the request was submitted

        Raises:
            ValueError: If max_clients is below 1 while the client can submit
        """
        if not self._session.can_submit:
            logger.debug("Request dropped; not ready to submit", session=self.name, request_type="createRoom", phase=self.phase)
            return False
        capacity = self.config.default_max_clients if max_clients is None else max_clients
        if capacity < 1:
            raise ValueError("max_clients must be a positive integer")
        if self._reject_if_in_room():
            return False

        room_tags = [*tags, self.game_tag]
        if is_private:
            room_tags.append(PRIVATE_TAG)
        return self._submit(
            msg.CreateRoomRequest(
                tags=room_tags,
                max_clients=capacity,
                metadata=dict(metadata) if metadata is not None else None,
            )
        )

    def join_room(self, room_id: str) -> bool:
        """Ask to join a room by id. Failure (unknown, full, closed) arrives as ERROR."""
        if self._reject_if_in_room():
            return False
        return self._submit(msg.JoinRoomRequest(room_id=str(room_id)))

    def leave_room(self) -> bool:
        """
        Leave the current room without waiting for the backend.

        Outside a room nothing is sent, but local room fields are still cleared.
        """
        if not self._session.in_room:
            self._session.leave_locally()
            return False
        submitted = self._submit(msg.LeaveRoomRequest())
        self._session.leave_locally()
        return submitted

    def list_rooms(self, tags: Iterable[str] = ()) -> bool:
        """List public rooms carrying all the given tags plus the game tag. Result arrives as ROOM_LIST."""
        return self._submit(msg.ListRoomsRequest(tags=[*tags, self.game_tag]))

    def update_meta(self, metadata: Mapping[str, Any]) -> bool:
        """Merge keys into the room metadata. The backend decides whether this client may."""
        return self._submit(msg.UpdateMetaRequest(metadata=dict(metadata)))

    def add_tag(self, tag: str) -> bool:
        return self._submit(msg.AddTagRequest(tag=tag))

    def remove_tag(self, tag: str) -> bool:
        return self._submit(msg.RemoveTagRequest(tag=tag))

    def close_room(self) -> bool:
        """Block new joins by adding the reserved "closed" tag."""
        return self.add_tag(CLOSED_TAG)

    def open_room(self) -> bool:
        """Allow joins again by removing the reserved "closed" tag."""
        return self.remove_tag(CLOSED_TAG)

    # Messaging

    def send_relay(self, payload: Any) -> bool:
        """Broadcast a payload to every other member of the room."""
        return self._submit(msg.RelayRequest(payload=payload))

    def tell_owner(self, payload: Any) -> bool:
        return self._submit(msg.TellOwnerRequest(payload=payload))

    def tell_player(self, player_id: str, payload: Any) -> bool:
        return self._submit(msg.TellPlayerRequest(player_id=str(player_id), payload=payload))

    def send_binary(self, data: BinaryPayload | bytes | bytearray) -> bool:
        """
        Send a binary frame to every other member of the room.

        Before an identity is assigned the frame is dropped unencoded.

        Raises:
            BinaryCodecError: If data does not fit the client's binary mode while the client can submit
        """
        transport = self._transport
        if transport is None or not self._session.can_submit:
            logger.debug("Binary frame dropped; not ready to submit", session=self.name, phase=self.phase)
            return False
        return transport.send_bytes(self._codec.encode(data))

    # Internals

    def _reject_if_in_room(self) -> bool:
        if self._session.can_submit and self._session.in_room:
            self._session.reject_locally(ALREADY_IN_ROOM)
            return True
        return False

    def _submit(self, request: msg.OutboundRequest) -> bool:
        transport = self._transport
        if transport is None or not self._session.can_submit:
            logger.debug("Request dropped; not ready to submit", session=self.name, request_type=request.type, phase=self.phase)
            return False
        return transport.send_text(self._framer.encode(request))

    def _handle_open(self) -> None:
        self._session.handle_transport_opened()

    def _handle_text(self, text: str) -> None:
        message = self._framer.decode(text)
        if message is not None:
            self._session.apply(message)

    def _handle_binary(self, data: bytes) -> None:
        frame = self._codec.decode(data)
        if frame is not None:
            self._session.handle_binary(frame)

    def _handle_close(self) -> None:
        self._transport = None
        self._session.handle_transport_closed()
