"""Remote task descriptors and the registry that resolves them.

Code is never shipped over the wire. A remote task is identified by a stable
string key and a pickled static argument; the remote side looks the key up
in a registry built the same way at its own startup.
"""

import base64
from dataclasses import dataclass
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from ..errors import ProtocolError, UnknownTask
from .serialization import decode_value, encode_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (RemoteContext, argument) -> awaitable
RemoteTask = Callable[[Any, Any], Awaitable[Any]]


@dataclass(frozen=True)
class TaskDescriptor:
    """Serialized handle to a remote task and its static argument."""

    key: str
    argument: bytes = b""

    @classmethod
    def build(cls, key: str, argument: Any = None) -> "TaskDescriptor":
        """Create a descriptor, serializing the static argument."""
        return cls(key=key, argument=encode_value(argument))

    def decoded_argument(self) -> Any:
        return decode_value(self.argument)

    def encode(self) -> bytes:
        """Encode as the first bootstrap frame payload."""
        data = {"key": self.key, "argument": base64.b64encode(self.argument).decode("ascii")}
        return json.dumps(data, separators=(",", ":")).encode("utf-8")

    @classmethod
    def decode(cls, payload: bytes) -> "TaskDescriptor":
        """Decode the first bootstrap frame payload.

        Raises:
            ProtocolError: If the payload is not a valid descriptor
        """
        try:
            data = json.loads(payload.decode("utf-8"))
            return cls(key=data["key"], argument=base64.b64decode(data["argument"]))
        except (ValueError, KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed task descriptor: {e}") from e


@dataclass(frozen=True)
class TaskPair(Generic[T]):
    """A remote task and the local computation that talks to it.

    The local computation receives a LocalSession and its return value becomes
    the result of the call.
    """

    remote: TaskDescriptor
    local: Callable[[Any], Awaitable[T]]


class TaskRegistry:
    """Mapping from stable keys to remote task functions."""

    def __init__(self):
        self._tasks: Dict[str, RemoteTask] = {}

    def register(self, key: Optional[str] = None) -> Callable[[RemoteTask], RemoteTask]:
        """Decorator registering a task under ``key`` (default: function name)."""

        def decorator(fn: RemoteTask) -> RemoteTask:
            name = key or fn.__name__
            if name in self._tasks and self._tasks[name] is not fn:
                raise ValueError(f"Remote task {name!r} is already registered")
            self._tasks[name] = fn
            logger.debug(f"Registered remote task {name}")
            return fn

        return decorator

    def remotable(self, fn: RemoteTask) -> RemoteTask:
        """Register ``fn`` under its own name."""
        return self.register()(fn)

    def lookup(self, key: str) -> RemoteTask:
        """Return the task registered under ``key``.

        Raises:
            UnknownTask: If no task carries that key
        """
        try:
            return self._tasks[key]
        except KeyError:
            raise UnknownTask(key) from None

    def descriptor(self, key: str, argument: Any = None) -> TaskDescriptor:
        """Build a descriptor for a registered task."""
        self.lookup(key)
        return TaskDescriptor.build(key, argument)

    def keys(self) -> List[str]:
        return sorted(self._tasks)

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
