"""Control-channel message models and framing."""

from .framer import MessageFramer
from .messages import InboundMessage, OutboundRequest

__all__ = ["InboundMessage", "MessageFramer", "OutboundRequest"]
