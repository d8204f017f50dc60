"""
Byte payload helpers.

Backends hand back binary output in several forms (bytes, bytearray,
memoryview, array.array, objects with tobytes()). Everything is normalized to
plain `bytes` before it leaves the engine adapter.
"""

from array import array
from typing import Any, Optional, Union

SOURCE_ENCODING = "utf-8"


def to_bytes(payload: Any) -> Optional[bytes]:
    """
    Normalize a binary payload to bytes.

    Text is not binary: str returns None, as does anything unrecognized.

    Example:
        >>> to_bytes(bytearray(b"%PDF"))
        b'%PDF'
        >>> to_bytes(memoryview(b"%PDF"))
        b'%PDF'
        >>> to_bytes("%PDF") is None
        True
    """
    if payload is None or isinstance(payload, str):
        return None
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, (bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, array):
        return payload.tobytes()
    tobytes = getattr(payload, "tobytes", None)
    if callable(tobytes):
        data = tobytes()
        if isinstance(data, bytes):
            return data
    return None


def encode_source(content: Union[str, bytes, bytearray, memoryview]) -> bytes:
    """
    Encode source content for a byte-oriented backend filesystem.

    Raises:
        TypeError: If content is neither text nor a binary payload
    """
    if isinstance(content, str):
        return content.encode(SOURCE_ENCODING)
    data = to_bytes(content)
    if data is None:
        raise TypeError(f"Cannot encode source of type {type(content).__name__}")
    return data


def decode_text(payload: Any) -> Optional[str]:
    """Best-effort text from a captured backend output field."""
    if payload is None:
        return None
    if isinstance(payload, str):
        return payload
    data = to_bytes(payload)
    if data is not None:
        return data.decode(SOURCE_ENCODING, errors="replace")
    if isinstance(payload, (list, tuple)):
        lines = [decode_text(item) for item in payload]
        return "\n".join(line for line in lines if line)
    return str(payload)
