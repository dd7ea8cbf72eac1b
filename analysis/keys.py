"""Partition key codecs for the supported table key types."""
import struct
import uuid
from typing import Any

KEY_TYPES = ("blob", "text", "bigint", "uuid")

_BIGINT = struct.Struct(">q")


def encode_key(value: Any, key_type: str = "blob") -> bytes:
    """
    Encode a partition key value to its stored byte form.

    bytes are passed through unchanged whatever the key type.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if key_type == "text":
        return str(value).encode("utf-8")
    if key_type == "bigint":
        return _BIGINT.pack(int(value))
    if key_type == "uuid":
        return (value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))).bytes
    if key_type == "blob":
        raise TypeError(f"blob keys must be bytes, got {type(value).__name__}")
    raise ValueError(f"Unknown key type: {key_type}")


def format_key(key: bytes, key_type: str = "blob") -> str:
    """
    Render a stored partition key for display.

    Keys that do not decode under their declared type fall back to hex.
    """
    if key_type == "text":
        try:
            return key.decode("utf-8")
        except UnicodeDecodeError:
            return key.hex()
    if key_type == "bigint" and len(key) == _BIGINT.size:
        return str(_BIGINT.unpack(key)[0])
    if key_type == "uuid" and len(key) == 16:
        return str(uuid.UUID(bytes=key))
    return key.hex()
