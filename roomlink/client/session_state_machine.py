"""
Session state machine for a roomlink client.

Tracks which phase of its lifecycle a session is in. The data that goes with
each phase (identity, room, owner) lives on Session; this machine only
decides which transitions are legal, so an out-of-phase notification (say, a
makeHost that arrives after an optimistic leave) can be recognized and dropped.
"""

from enum import Enum
from typing import Any

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ConnectionStatus(Enum):
    """Coarse connection status exposed to callers."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SessionStateMachine(StateMachine):
    """
    State machine for one session's lifecycle.

    States:
    - disconnected: No transport
    - connecting: Transport opening
    - unassigned: Connected, waiting for the backend to assign an identity
    - assigned: Connected with an identity, not in a room
    - member: In a room owned by someone else
    - host: In a room owned by this session

    Transitions:
    - disconnected → connecting: begin_connect
    - connecting → unassigned: transport_opened
    - unassigned → assigned: identity_assigned
    - assigned/member/host → host: enter_room_as_host (room created, or joined as owner)
    - assigned/member/host → member: enter_room_as_member
    - member/host → host: promote (makeHost, or reassignedHost naming this session)
    - member/host → member: demote (reassignedHost naming someone else)
    - member/host/assigned → assigned: leave
    - any connected state → disconnected: transport_closed
    """

    disconnected = State("Disconnected", initial=True)
    connecting = State("Connecting")
    unassigned = State("Unassigned")
    assigned = State("Assigned")
    member = State("Member")
    host = State("Host")

    begin_connect = disconnected.to(connecting)
    transport_opened = connecting.to(unassigned)
    identity_assigned = unassigned.to(assigned)
    enter_room_as_host = assigned.to(host) | member.to(host) | host.to.itself()
    enter_room_as_member = assigned.to(member) | member.to.itself() | host.to(member)
    promote = member.to(host) | host.to.itself()
    demote = host.to(member) | member.to.itself()
    leave = member.to(assigned) | host.to(assigned) | assigned.to.itself()
    transport_closed = (
        connecting.to(disconnected)
        | unassigned.to(disconnected)
        | assigned.to(disconnected)
        | member.to(disconnected)
        | host.to(disconnected)
    )

    def __init__(self, session_name: str = "session"):
        """
        Initialize the session state machine.

        Args:
            session_name: Label used in log lines to tell sessions apart
        """
        # Set attributes BEFORE super().__init__() because on_enter_state is called during init
        self.session_name = session_name
        self.total_connections = 0
        self.total_disconnections = 0

        super().__init__()

    def on_enter_state(self, state: State, event: Any = None, **kwargs: Any) -> None:
        logger.debug(
            "Session state transition",
            session=self.session_name,
            trigger_event=str(event) if event else "unknown",
            to_state=state.id,
        )

    def on_transport_opened(self) -> None:
        self.total_connections += 1

    def on_transport_closed(self) -> None:
        self.total_disconnections += 1

    @property
    def status(self) -> ConnectionStatus:
        phase = self.phase
        if phase == "disconnected":
            return ConnectionStatus.DISCONNECTED
        if phase == "connecting":
            return ConnectionStatus.CONNECTING
        return ConnectionStatus.CONNECTED

    @property
    def phase(self) -> str:
        return self.current_state.id

    def is_in(self, *state_ids: str) -> bool:
        return self.phase in state_ids

    def get_stats(self) -> dict[str, Any]:
        """Connection statistics for monitoring and debugging."""
        return {
            "session": self.session_name,
            "current_state": self.current_state.id,
            "total_connections": self.total_connections,
            "total_disconnections": self.total_disconnections,
        }
