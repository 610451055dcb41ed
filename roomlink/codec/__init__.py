"""Binary frame codec."""

from .binary_codec import BinaryCodec, BinaryEnvelope, BinaryMode, DecodedFrame

__all__ = ["BinaryCodec", "BinaryEnvelope", "BinaryMode", "DecodedFrame"]
