"""The session state machine and the room command API."""

from .net_client import NetClient
from .session import Session
from .session_state_machine import ConnectionStatus, SessionStateMachine

__all__ = ["ConnectionStatus", "NetClient", "Session", "SessionStateMachine"]
