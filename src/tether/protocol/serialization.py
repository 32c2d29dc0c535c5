"""Encoding of application values and error descriptions carried in frames."""

import pickle
from typing import Any

from ..errors import ProtocolError


def encode_value(value: Any) -> bytes:
    """Serialize an application value for one frame."""
    try:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise ProtocolError(f"Cannot serialize value of type {type(value).__name__}: {e}") from e


def decode_value(payload: bytes) -> Any:
    """Rebuild an application value from a frame payload."""
    try:
        return pickle.loads(payload)
    except Exception as e:
        raise ProtocolError(f"Cannot decode frame payload: {e}") from e


def encode_error(description: str) -> bytes:
    return description.encode("utf-8")


def decode_error(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


def describe_exception(exc: BaseException) -> str:
    """Text sent to the controller when a remote task fails."""
    return str(exc) or type(exc).__name__
