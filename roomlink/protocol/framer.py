"""
Control-channel framing.

Serializes outbound requests to JSON text frames and classifies inbound text
frames into typed notifications. Anything that cannot be classified (bad
JSON, a non-object, an unknown `type`, missing fields) is dropped here and
never reaches the session.
"""

import json
from typing import Any

from pydantic import ValidationError

from ..structured_logging.enhanced_logging_config import get_logger
from .messages import InboundMessage, OutboundRequest, server_message_adapter

logger = get_logger(__name__)


class MessageFramer:
    """Converts between request/notification models and control-channel frames."""

    def encode(self, request: OutboundRequest) -> str:
        """
        Serialize an outbound request.

        Args:
            request: The request model

        Returns:
            A compact JSON text frame
        """
        return request.to_wire()

    def decode(self, raw: str | bytes) -> InboundMessage | None:
        """
        Classify an inbound control frame.

        Args:
            raw: Text frame as received from the transport

        Returns:
            The typed notification, or None if the frame is not a valid one
        """
        try:
            data: Any = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug("Dropping unparseable control frame", error=str(e), frame=raw)
            return None

        if not isinstance(data, dict):
            logger.debug("Dropping control frame that is not an object", frame_type=type(data).__name__)
            return None

        try:
            return server_message_adapter.validate_python(data)
        except ValidationError as e:
            logger.debug(
                "Dropping unrecognized control frame",
                message_type=data.get("type"),
                error_count=e.error_count(),
            )
            return None
