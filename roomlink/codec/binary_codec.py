"""
Binary frame codec for roomlink.

Binary application data bypasses the JSON control channel entirely. The codec
runs in one of two modes, fixed for the lifetime of a client:

- BinaryMode.BITS: the application speaks strings of '0'/'1' characters.
  Outbound strings are cut into 8-character groups, most significant bit
  first; a short final group is right-padded with '0' ("101" -> 0b10100000).
  Inbound bytes come back as 8-character zero-padded groups, concatenated.
- BinaryMode.BYTES: the application speaks sequences of ints in [0, 255].

Inbound frames may carry a sender envelope (BinaryEnvelope.SENDER_PREFIXED):
a 4-byte big-endian unsigned sender id added by the backend, followed by the
payload. Outbound frames are never prefixed; the backend adds the envelope.
"""

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from ..exceptions import BinaryCodecError
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

SENDER_PREFIX = struct.Struct("!I")
BITS_PER_BYTE = 8


class BinaryMode(Enum):
    """Application-side representation of binary payloads."""

    BITS = "bits"
    BYTES = "bytes"


class BinaryEnvelope(Enum):
    """Layout of inbound binary frames."""

    RAW = "raw"
    SENDER_PREFIXED = "sender_prefixed"


BinaryPayload = str | list[int]


@dataclass(frozen=True)
class DecodedFrame:
    """An inbound binary frame in application form."""

    sender_id: str | None
    data: BinaryPayload


def bits_to_bytes(bits: str) -> bytes:
    """
    Pack a '0'/'1' string into bytes, zero-padding the last group on the right.

    Args:
        bits: String made only of '0' and '1' characters

    Returns:
        Packed bytes, one per started group of 8 characters

    Raises:
        BinaryCodecError: If the string holds any other character
    """
    if not isinstance(bits, str):
        raise BinaryCodecError(
            f"Bit-string mode expects str, got {type(bits).__name__}",
            mode=BinaryMode.BITS.value,
        )
    invalid = set(bits) - {"0", "1"}
    if invalid:
        raise BinaryCodecError(
            "Bit-string may only contain '0' and '1'",
            mode=BinaryMode.BITS.value,
            details={"invalid_characters": sorted(invalid)},
        )

    groups = [bits[i : i + BITS_PER_BYTE] for i in range(0, len(bits), BITS_PER_BYTE)]
    return bytes(int(group.ljust(BITS_PER_BYTE, "0"), 2) for group in groups)


def bytes_to_bits(data: bytes) -> str:
    """Render each byte as an 8-character zero-padded binary string, in order."""
    return "".join(format(byte, "08b") for byte in data)


def ints_to_bytes(values: Sequence[int] | bytes | bytearray | memoryview) -> bytes:
    """
    Pack a sequence of ints in [0, 255] into bytes.

    Raises:
        BinaryCodecError: If the input is not a sequence of in-range ints
    """
    if isinstance(values, bytes | bytearray | memoryview):
        return bytes(values)
    if isinstance(values, str) or not isinstance(values, Sequence):
        raise BinaryCodecError(
            f"Byte-array mode expects a sequence of ints, got {type(values).__name__}",
            mode=BinaryMode.BYTES.value,
        )

    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
            raise BinaryCodecError(
                "Byte-array values must be ints in [0, 255]",
                mode=BinaryMode.BYTES.value,
                details={"index": index, "value": repr(value)},
            )
    return bytes(values)


class BinaryCodec:
    """
    Converts binary payloads between application form and wire frames.

    The mode and envelope are chosen once, at construction, and cannot change.
    """

    def __init__(self, mode: BinaryMode, envelope: BinaryEnvelope = BinaryEnvelope.SENDER_PREFIXED):
        self._mode = BinaryMode(mode)
        self._envelope = BinaryEnvelope(envelope)

    @property
    def mode(self) -> BinaryMode:
        return self._mode

    @property
    def envelope(self) -> BinaryEnvelope:
        return self._envelope

    def encode(self, payload: BinaryPayload | bytes | bytearray | memoryview) -> bytes:
        """
        Encode an outbound payload into a wire frame.

        Args:
            payload: '0'/'1' string in BITS mode; ints or bytes-like in BYTES mode

        Returns:
            The frame to submit to the transport

        Raises:
            BinaryCodecError: If the payload does not fit the active mode
        """
        if self._mode is BinaryMode.BITS:
            return bits_to_bytes(payload)  # type: ignore[arg-type]  # Reason: validated inside bits_to_bytes
        return ints_to_bytes(payload)  # type: ignore[arg-type]  # Reason: validated inside ints_to_bytes

    def decode(self, frame: bytes) -> DecodedFrame | None:
        """
        Decode an inbound wire frame.

        Args:
            frame: Raw bytes as delivered by the transport

        Returns:
            The decoded frame, or None if the frame is too short for its envelope
        """
        sender_id: str | None = None
        body = bytes(frame)

        if self._envelope is BinaryEnvelope.SENDER_PREFIXED:
            if len(body) < SENDER_PREFIX.size:
                logger.debug(
                    "Dropping binary frame shorter than sender prefix",
                    frame_length=len(body),
                    prefix_length=SENDER_PREFIX.size,
                )
                return None
            (sender,) = SENDER_PREFIX.unpack_from(body)
            sender_id = str(sender)
            body = body[SENDER_PREFIX.size :]

        if self._mode is BinaryMode.BITS:
            return DecodedFrame(sender_id=sender_id, data=bytes_to_bits(body))
        return DecodedFrame(sender_id=sender_id, data=list(body))


def prefix_sender(sender_id: int, payload: bytes) -> bytes:
    """Build a sender-prefixed frame the way the relay backend does."""
    return SENDER_PREFIX.pack(sender_id) + payload
