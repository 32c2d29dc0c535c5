"""Unit tests for frame encoding over byte channels."""

import asyncio

import pytest

from tether.errors import EndOfStream, ProtocolError
from tether.protocol.framing import (
    READ_CHUNK,
    FrameFlag,
    decode_int,
    encode_int,
    read_exact,
    read_frame,
    read_tagged_frame,
    write_frame,
    write_tagged_frame,
)

pytestmark = pytest.mark.unit


class BufferWriter:
    """Collects everything written to it."""

    def __init__(self):
        self.data = bytearray()
        self.drains = 0

    def write(self, data):
        self.data += data

    async def drain(self):
        self.drains += 1


class TrickleReader:
    """Hands out at most ``step`` bytes per read and records the sizes asked for."""

    def __init__(self, data: bytes, step: int = 1):
        self._data = data
        self._step = step
        self.requests = []

    async def read(self, size):
        self.requests.append(size)
        chunk = self._data[: min(size, self._step)]
        self._data = self._data[len(chunk) :]
        return chunk


def reader_for(data: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


class TestHeaderFields:
    """Test cases for the 4-byte header fields."""

    def test_big_endian(self):
        assert encode_int(1) == b"\x00\x00\x00\x01"
        assert encode_int(0x01020304) == b"\x01\x02\x03\x04"
        assert decode_int(b"\x00\x00\x01\x00") == 256

    def test_out_of_range(self):
        with pytest.raises(ProtocolError):
            encode_int(-1)
        with pytest.raises(ProtocolError):
            encode_int(2**32)

    def test_short_header(self):
        with pytest.raises(ProtocolError):
            decode_int(b"\x00\x01")


class TestUntaggedFrames:
    """Test cases for local -> remote frames."""

    @pytest.mark.asyncio
    async def test_write_layout(self):
        writer = BufferWriter()
        await write_frame(writer, b"abc")
        assert bytes(writer.data) == b"\x00\x00\x00\x03abc"
        assert writer.drains == 1

    @pytest.mark.asyncio
    async def test_empty_payload(self):
        writer = BufferWriter()
        await write_frame(writer, b"")
        assert bytes(writer.data) == b"\x00\x00\x00\x00"

        assert await read_frame(reader_for(bytes(writer.data))) == b""

    @pytest.mark.asyncio
    async def test_large_payload_read_in_chunks(self):
        """Payloads bigger than one read chunk are reassembled in order."""
        payload = bytes(range(256)) * 20
        writer = BufferWriter()
        await write_frame(writer, payload)

        reader = TrickleReader(bytes(writer.data), step=READ_CHUNK)
        assert await read_frame(reader) == payload
        assert max(reader.requests) <= READ_CHUNK

    @pytest.mark.asyncio
    async def test_one_byte_at_a_time(self):
        """Short reads, including a split header, still yield whole frames."""
        writer = BufferWriter()
        await write_frame(writer, b"first")
        await write_frame(writer, b"second")

        reader = TrickleReader(bytes(writer.data), step=1)
        assert await read_frame(reader) == b"first"
        assert await read_frame(reader) == b"second"

    @pytest.mark.asyncio
    async def test_clean_end_of_stream(self):
        with pytest.raises(EndOfStream):
            await read_frame(reader_for(b""))

    @pytest.mark.asyncio
    async def test_truncated_payload(self):
        """A frame cut short is a protocol error, not a clean end."""
        reader = reader_for(b"\x00\x00\x00\x0ashort")
        with pytest.raises(ProtocolError) as exc_info:
            await read_frame(reader)
        assert not isinstance(exc_info.value, EndOfStream)
        assert "mid-frame" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_truncated_header(self):
        with pytest.raises(ProtocolError) as exc_info:
            await read_frame(reader_for(b"\x00\x00"))
        assert not isinstance(exc_info.value, EndOfStream)

    @pytest.mark.asyncio
    async def test_read_exact_zero(self):
        assert await read_exact(reader_for(b""), 0) == b""


class TestTaggedFrames:
    """Test cases for remote -> local frames."""

    @pytest.mark.asyncio
    async def test_write_layout(self):
        writer = BufferWriter()
        await write_tagged_frame(writer, FrameFlag.ERROR, b"boom")
        assert bytes(writer.data) == b"\x00\x00\x00\x01\x00\x00\x00\x04boom"

    @pytest.mark.asyncio
    async def test_flags_preserved(self):
        writer = BufferWriter()
        await write_tagged_frame(writer, FrameFlag.NORMAL, b"value")
        await write_tagged_frame(writer, FrameFlag.ERROR, b"oops")

        reader = reader_for(bytes(writer.data))
        assert await read_tagged_frame(reader) == (FrameFlag.NORMAL, b"value")
        assert await read_tagged_frame(reader) == (FrameFlag.ERROR, b"oops")
        with pytest.raises(EndOfStream):
            await read_tagged_frame(reader)

    @pytest.mark.asyncio
    async def test_unknown_flag(self):
        reader = reader_for(b"\x00\x00\x00\x07\x00\x00\x00\x00")
        with pytest.raises(ProtocolError, match="Unknown frame flag"):
            await read_tagged_frame(reader)

    @pytest.mark.asyncio
    async def test_truncated_after_flag(self):
        with pytest.raises(ProtocolError):
            await read_tagged_frame(reader_for(b"\x00\x00\x00\x00\x00\x00"))
