"""Controller side of a call: the local computation's view of the channel."""

import logging
from typing import Any, Optional, Type, TypeVar

from ..errors import ProtocolError, RemoteError
from .framing import FrameFlag, read_tagged_frame, write_frame
from .serialization import decode_error, decode_value, encode_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalSession:
    """Message transport handed to the local half of a task pair.

    Sends go out as untagged frames, replies come back as tagged frames.
    Calls are strictly sequential; one session must not be driven by two
    coroutines at once.
    """

    def __init__(self, channel: Any, host_name: Optional[str] = None):
        self._channel = channel
        self.host_name = host_name
        self.sent = 0
        self.received = 0

    async def send(self, value: Any) -> None:
        """Send one value to the remote task."""
        await write_frame(self._channel, encode_value(value))
        self.sent += 1

    async def receive(self) -> Any:
        """Wait for the next value from the remote task.

        Raises:
            RemoteError: If the remote task sent an error frame
            ProtocolError: If the frame is malformed or the channel broke
        """
        flag, payload = await read_tagged_frame(self._channel)
        self.received += 1
        if flag is FrameFlag.ERROR:
            description = decode_error(payload)
            logger.debug(f"Remote error from {self.host_name}: {description}")
            raise RemoteError(description)
        return decode_value(payload)

    async def expect(self, type_: Type[T]) -> T:
        """Like ``receive`` but fail unless the value is a ``type_``."""
        value = await self.receive()
        if not isinstance(value, type_):
            raise ProtocolError(
                f"Expected {type_.__name__} from {self.host_name}, got {type(value).__name__}"
            )
        return value
