"""Small helpers shared across the storage engine, plus common type aliases."""

from __future__ import annotations

import secrets
import string
import struct
from datetime import datetime, timedelta, timezone

Key = bytes
Value = bytes
ValOffset = int
CreatedAt = datetime
IsTombStone = bool
ByteSerializedEntry = bytes

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ALPHANUMERIC = string.ascii_letters + string.digits
_FLOAT_LE = struct.Struct("<d")


def generate_random_id(length: int) -> str:
    """Return a random alphanumeric string of ``length`` characters."""
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def milliseconds_to_datetime(milliseconds: int) -> datetime:
    """Convert milliseconds since the Unix epoch to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=milliseconds)


def datetime_to_milliseconds(moment: datetime) -> int:
    """Return whole milliseconds since the Unix epoch, rounding towards minus infinity."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)


def default_datetime() -> datetime:
    """Return the lowest datetime used by the engine: the Unix epoch."""
    return EPOCH


def float_to_le_bytes(value: float) -> bytes:
    """Encode a float as 8 little-endian IEEE-754 bytes."""
    return _FLOAT_LE.pack(value)


def float_from_le_bytes(data: bytes) -> float | None:
    """Decode 8 little-endian bytes into a float, or return None for a wrong length."""
    if len(data) != _FLOAT_LE.size:
        return None
    return _FLOAT_LE.unpack(bytes(data))[0]