"""
Tests for NetClient commands and transport wiring.

These use a FakeTransport with no backend behind it: tests inspect what the
client submits and inject inbound frames by hand.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from roomlink.client.net_client import ALREADY_IN_ROOM, NetClient
from roomlink.client.session_state_machine import ConnectionStatus
from roomlink.codec.binary_codec import BinaryEnvelope, BinaryMode, prefix_sender
from roomlink.config.models import ClientConfig
from roomlink.events import event_types as ev
from roomlink.events.event_types import EventKind
from roomlink.exceptions import BinaryCodecError, TransportError
from roomlink.tests.fixtures.relay_backend import FakeTransport


def join_as_member(client: NetClient, transport: FakeTransport, room_id: str = "r1") -> None:
    transport.simulate_message({"type": "roomJoined", "roomId": room_id, "playerId": 7, "ownerId": 1})


class TestConnection:
    def test_connect_opens_one_transport(self, isolated_client, transports):
        isolated_client.connect()

        assert len(transports) == 1
        assert transports[0].opened
        assert transports[0].url == "ws://relay.test:8080"
        assert isolated_client.status is ConnectionStatus.CONNECTING

    def test_connect_while_connected_is_ignored(self, assigned_client, transports):
        assigned_client.connect()

        assert len(transports) == 1
        assert assigned_client.player_id == "7"

    def test_connected_and_assigned_events(self, isolated_client, transports):
        handler = MagicMock()
        isolated_client.on(EventKind.CONNECTED, handler)
        isolated_client.on("assignedId", handler)

        isolated_client.connect()
        transports[0].simulate_open()
        transports[0].simulate_message({"type": "assignId", "playerId": 7})

        assert [type(call.args[0]) for call in handler.call_args_list] == [ev.Connected, ev.AssignedId]

    def test_failed_open_resets_and_reraises(self, client_config):
        class BrokenTransport(FakeTransport):
            def open(self):
                raise TransportError("no loop", url=self.url)

        client = NetClient(client_config, transport_factory=BrokenTransport)

        with pytest.raises(TransportError):
            client.connect()
        assert client.status is ConnectionStatus.DISCONNECTED

    def test_server_close_raises_disconnected(self, assigned_client, transports):
        handler = MagicMock()
        assigned_client.on(EventKind.DISCONNECTED, handler)

        transports[0].simulate_close()

        handler.assert_called_once()
        assert assigned_client.player_id is None
        assert assigned_client.status is ConnectionStatus.DISCONNECTED

    def test_transport_error_alone_does_not_disconnect(self, assigned_client, transports):
        transports[0].simulate_error(OSError("reset"))

        assert assigned_client.status is ConnectionStatus.CONNECTED

    def test_disconnect_resets_synchronously(self, assigned_client, transports):
        join_as_member(assigned_client, transports[0])
        handler = MagicMock()
        assigned_client.on(EventKind.DISCONNECTED, handler)

        assigned_client.disconnect()

        assert transports[0].closed
        assert (assigned_client.player_id, assigned_client.room_id, assigned_client.owner_id) == (None, None, None)
        assert assigned_client.is_host is False
        handler.assert_called_once()

    def test_frames_from_abandoned_transport_are_ignored(self, assigned_client, transports):
        old = transports[0]
        assigned_client.disconnect()
        assigned_client.connect()

        old.simulate_message({"type": "assignId", "playerId": 99})

        assert assigned_client.player_id is None
        assert assigned_client.status is ConnectionStatus.CONNECTING

    def test_reconnect_is_a_fresh_session(self, assigned_client, transports):
        assigned_client.disconnect()
        assigned_client.connect()
        transports[1].simulate_open()
        transports[1].simulate_message({"type": "assignId", "playerId": 8})

        assert len(transports) == 2
        assert assigned_client.player_id == "8"
        assert assigned_client.get_stats()["total_connections"] == 2

    def test_for_url_rejects_non_websocket_urls(self):
        with pytest.raises(ValidationError):
            NetClient.for_url("http://relay.test")

    def test_for_url_accepts_config_fields(self):
        client = NetClient.for_url("wss://relay.test", game_name="chess", binary_mode=BinaryMode.BITS, name="x")

        assert client.game_tag == "game:chess"
        assert client.binary_mode is BinaryMode.BITS
        assert client.name == "x"


class TestSubmissionGate:
    def test_commands_before_identity_are_dropped(self, isolated_client, transports):
        isolated_client.connect()
        transports[0].simulate_open()

        assert isolated_client.create_room(["a"], 4) is False
        assert isolated_client.send_relay("hi") is False
        assert isolated_client.send_binary([1]) is False
        assert transports[0].sent_text == []
        assert transports[0].sent_bytes == []

    def test_commands_while_disconnected_are_dropped(self, isolated_client):
        assert isolated_client.list_rooms() is False
        assert isolated_client.join_room("r1") is False

    def test_invalid_arguments_are_dropped_before_identity(self, isolated_client, transports):
        assert isolated_client.send_binary([256]) is False
        assert isolated_client.create_room([], 0) is False

        isolated_client.connect()
        transports[0].simulate_open()

        assert isolated_client.send_binary("12") is False
        assert isolated_client.create_room([], -1) is False
        assert transports[0].sent_text == []
        assert transports[0].sent_bytes == []

    def test_binary_is_validated_once_assigned(self, assigned_client, transports):
        with pytest.raises(BinaryCodecError):
            assigned_client.send_binary([256])

        assert transports[0].sent_bytes == []


class TestRoomCommands:
    def test_create_room_appends_game_tag(self, assigned_client, transports):
        assert assigned_client.create_room(["region:NA"], 4) is True

        assert transports[0].sent_messages[-1] == {
            "type": "createRoom",
            "tags": ["region:NA", "game:testGame"],
            "maxClients": 4,
        }

    def test_create_private_room_with_metadata(self, assigned_client, transports):
        assigned_client.create_room(["mode:dm"], 2, True, {"map": "Arena-01"})

        sent = transports[0].sent_messages[-1]
        assert sent["tags"] == ["mode:dm", "game:testGame", "private"]
        assert sent["metadata"] == {"map": "Arena-01"}

    def test_create_room_uses_default_capacity(self, assigned_client, transports):
        assigned_client.create_room()

        assert transports[0].sent_messages[-1]["maxClients"] == 8

    def test_create_room_rejects_non_positive_capacity(self, assigned_client):
        with pytest.raises(ValueError):
            assigned_client.create_room([], 0)

    def test_create_or_join_while_in_room_is_rejected_locally(self, assigned_client, transports):
        join_as_member(assigned_client, transports[0])
        errors = []
        assigned_client.on(EventKind.ERROR, errors.append)
        sent_before = len(transports[0].sent_text)

        assert assigned_client.create_room(["x"], 2) is False
        assert assigned_client.join_room("r2") is False

        assert len(transports[0].sent_text) == sent_before
        assert [(e.message, e.source) for e in errors] == [(ALREADY_IN_ROOM, ev.ErrorSource.CLIENT)] * 2
        assert assigned_client.room_id == "r1"

    def test_join_room(self, assigned_client, transports):
        assigned_client.join_room("r1")

        assert transports[0].sent_messages[-1] == {"type": "joinRoom", "roomId": "r1"}

    def test_leave_room_is_optimistic(self, assigned_client, transports):
        join_as_member(assigned_client, transports[0])

        assert assigned_client.leave_room() is True

        assert transports[0].sent_messages[-1] == {"type": "leaveRoom"}
        assert assigned_client.room_id is None
        assert assigned_client.owner_id is None
        assert assigned_client.phase == "assigned"

    def test_leave_room_outside_a_room_sends_nothing(self, assigned_client, transports):
        assert assigned_client.leave_room() is False
        assert transports[0].sent_text == []

    def test_list_rooms_appends_game_tag(self, assigned_client, transports):
        assigned_client.list_rooms(["region:NA"])

        assert transports[0].sent_messages[-1] == {"type": "listRooms", "tags": ["region:NA", "game:testGame"]}

    def test_room_management_commands(self, assigned_client, transports):
        assigned_client.update_meta({"map": "Arena-02"})
        assigned_client.close_room()
        assigned_client.open_room()
        assigned_client.add_tag("ranked")
        assigned_client.remove_tag("ranked")

        assert transports[0].sent_messages == [
            {"type": "updateMeta", "metadata": {"map": "Arena-02"}},
            {"type": "addTag", "tag": "closed"},
            {"type": "removeTag", "tag": "closed"},
            {"type": "addTag", "tag": "ranked"},
            {"type": "removeTag", "tag": "ranked"},
        ]


class TestMessaging:
    def test_relay_and_addressed_messages(self, assigned_client, transports):
        assigned_client.send_relay({"msg": "hi"})
        assigned_client.tell_owner("ready")
        assigned_client.tell_player(3, {"hp": 1})  # type: ignore[arg-type]

        assert transports[0].sent_messages == [
            {"type": "relay", "payload": {"msg": "hi"}},
            {"type": "tellOwner", "payload": "ready"},
            {"type": "tellPlayer", "playerId": "3", "payload": {"hp": 1}},
        ]

    def test_send_binary_bytes_mode(self, assigned_client, transports):
        assert assigned_client.send_binary([1, 2, 3, 4, 5]) is True

        assert transports[0].sent_bytes == [b"\x01\x02\x03\x04\x05"]
        assert transports[0].sent_text == []

    def test_send_binary_bits_mode(self, transports):
        config = ClientConfig(url="ws://relay.test", binary_mode=BinaryMode.BITS)

        def _factory(url):
            transport = FakeTransport(url)
            transports.append(transport)
            return transport

        client = NetClient(config, transport_factory=_factory)
        client.connect()
        transports[0].simulate_open()
        transports[0].simulate_message({"type": "assignId", "playerId": 1})

        client.send_binary("101")

        assert transports[0].sent_bytes == [bytes([0b10100000])]

    def test_inbound_binary_event(self, assigned_client, transports):
        received = []
        assigned_client.on(EventKind.BINARY, received.append)

        transports[0].simulate_binary(prefix_sender(3, b"\x01\x02"))
        transports[0].simulate_binary(b"\x00")

        assert received == [ev.BinaryReceived(data=[1, 2], sender_id="3")]

    def test_raw_envelope_binary_event(self, transports):
        config = ClientConfig(url="ws://relay.test", binary_envelope=BinaryEnvelope.RAW)
        transport = FakeTransport("ws://relay.test")
        client = NetClient(config, transport_factory=lambda _url: transport)
        received = []
        client.on(EventKind.BINARY, received.append)
        client.connect()
        transport.simulate_open()

        transport.simulate_binary(b"\x09")

        assert received == [ev.BinaryReceived(data=[9], sender_id=None)]

    def test_malformed_text_frames_are_ignored(self, assigned_client, transports):
        handler = MagicMock()
        assigned_client.on(EventKind.ERROR, handler)

        transports[0].simulate_text("{not json")
        transports[0].simulate_message({"type": "mystery"})

        handler.assert_not_called()
        assert assigned_client.player_id == "7"


class TestEventSubscriptions:
    def test_off_removes_handler(self, assigned_client, transports):
        handler = MagicMock()
        assigned_client.on(EventKind.RELAY, handler)

        assert assigned_client.off(EventKind.RELAY, handler) is True
        transports[0].simulate_message({"type": "relay", "from": 1, "payload": None})

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_wait_for_resolves_on_next_event(self, assigned_client, transports):
        loop = asyncio.get_running_loop()
        loop.call_soon(transports[0].simulate_message, {"type": "roomTagAdded", "tag": "closed"})

        event = await assigned_client.wait_for(EventKind.ROOM_TAG_ADDED, timeout=1.0)

        assert event == ev.RoomTagAdded(tag="closed")

    @pytest.mark.asyncio
    async def test_wait_for_times_out(self, assigned_client):
        with pytest.raises(TimeoutError):
            await assigned_client.wait_for("roomList", timeout=0.01)
