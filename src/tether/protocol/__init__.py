"""Framed messaging and the call/spawn task protocol."""

from .framing import (
    FrameFlag,
    read_frame,
    read_tagged_frame,
    write_frame,
    write_tagged_frame,
)
from .local import LocalSession
from .remote import RemoteContext, serve_bootstrap, stdio_transport
from .serialization import decode_value, encode_value
from .tasks import TaskDescriptor, TaskPair, TaskRegistry

__all__ = [
    "FrameFlag",
    "read_frame",
    "write_frame",
    "read_tagged_frame",
    "write_tagged_frame",
    "encode_value",
    "decode_value",
    "TaskDescriptor",
    "TaskPair",
    "TaskRegistry",
    "LocalSession",
    "RemoteContext",
    "serve_bootstrap",
    "stdio_transport",
]
