"""Length-prefixed framing over a raw byte channel.

Wire format:

    local -> remote:   [u32-be length][payload]
    remote -> local:   [u32-be flag][u32-be length][payload]

The flag is ``0`` for a normal value and ``1`` for an error description.
Readers only need ``async read(n)``; writers need ``write(data)`` and
``async drain()``. That covers asyncssh process streams, asyncio streams and
the in-memory pipes used in tests.
"""

from enum import IntEnum
import logging
import struct
from typing import Any, Tuple

from ..errors import EndOfStream, ProtocolError

logger = logging.getLogger(__name__)

# Header fields are always 4 bytes, big-endian
HEADER_FORMAT = ">I"
HEADER_SIZE = 4
MAX_PAYLOAD = 0xFFFFFFFF

# Upper bound for a single read on the channel
READ_CHUNK = 0x400


class FrameFlag(IntEnum):
    """Flag word preceding remote -> local frames."""

    NORMAL = 0
    ERROR = 1


def encode_int(value: int) -> bytes:
    """Encode a header field."""
    if value < 0 or value > MAX_PAYLOAD:
        raise ProtocolError(f"Header value out of range: {value}")
    return struct.pack(HEADER_FORMAT, value)


def decode_int(data: bytes) -> int:
    """Decode a header field."""
    if len(data) != HEADER_SIZE:
        raise ProtocolError(f"Header too short: expected {HEADER_SIZE}, got {len(data)}")
    return struct.unpack(HEADER_FORMAT, data)[0]


async def read_exact(reader: Any, size: int) -> bytes:
    """Read exactly ``size`` bytes, in chunks of at most ``READ_CHUNK``.

    Raises:
        ProtocolError: If the channel ends before ``size`` bytes arrived
    """
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = await reader.read(min(READ_CHUNK, remaining))
        if not chunk:
            raise ProtocolError(
                f"Channel closed mid-frame: expected {size} bytes, got {size - remaining}"
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


async def _read_header(reader: Any) -> int:
    """Read one header field, telling a clean end of stream from a broken one."""
    first = await reader.read(HEADER_SIZE)
    if not first:
        raise EndOfStream("Channel closed before the next frame")
    if len(first) < HEADER_SIZE:
        first += await read_exact(reader, HEADER_SIZE - len(first))
    return decode_int(first)


async def write_frame(writer: Any, payload: bytes) -> None:
    """Write one untagged frame: length prefix, then payload."""
    writer.write(encode_int(len(payload)) + payload)
    await writer.drain()


async def read_frame(reader: Any) -> bytes:
    """Read one untagged frame and return its payload.

    Raises:
        EndOfStream: If the channel ended cleanly before the frame started
        ProtocolError: If the channel ended part way through the frame
    """
    length = await _read_header(reader)
    return await read_exact(reader, length)


async def write_tagged_frame(writer: Any, flag: FrameFlag, payload: bytes) -> None:
    """Write one tagged frame: flag, length prefix, then payload."""
    writer.write(encode_int(int(flag)) + encode_int(len(payload)) + payload)
    await writer.drain()


async def read_tagged_frame(reader: Any) -> Tuple[FrameFlag, bytes]:
    """Read one tagged frame.

    Returns:
        Tuple of (flag, payload)

    Raises:
        EndOfStream: If the channel ended cleanly before the frame started
        ProtocolError: On an unknown flag or a frame cut short
    """
    raw_flag = await _read_header(reader)
    try:
        flag = FrameFlag(raw_flag)
    except ValueError:
        raise ProtocolError(f"Unknown frame flag: {raw_flag}") from None
    length = decode_int(await read_exact(reader, HEADER_SIZE))
    payload = await read_exact(reader, length)
    logger.debug(f"Read tagged frame: flag={flag.name} length={length}")
    return flag, payload
