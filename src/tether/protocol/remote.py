"""Worker side of the protocol: the bootstrap run by the deployed executable.

The controller starts ``<executable> onvm run --host H --port P --group G``
and writes two frames on its standard input before anything else: the task
descriptor, then the connection parameters. The bootstrap reads both in
that order, rebuilds the backend and runs the task. Replies travel back as
tagged frames on standard output. The byte streams are passed in explicitly,
so tests can drive the bootstrap over in-memory pipes.
"""

import asyncio
import logging
import os
from pathlib import Path
import subprocess
import sys
from typing import Any, BinaryIO, Callable, List, Optional, Tuple

from ..config.params import ConnectionParameters
from ..errors import EndOfStream, ProtocolError, TetherError
from .framing import FrameFlag, encode_int, read_frame, write_tagged_frame
from .serialization import decode_value, describe_exception, encode_error, encode_value
from .tasks import TaskDescriptor, TaskRegistry

logger = logging.getLogger(__name__)

# Called with the raw descriptor and parameters payloads in background mode
Detacher = Callable[[bytes, bytes], None]


class RemoteContext:
    """What a remote task gets to work with.

    ``send`` and ``throw`` talk back to the controller, ``receive`` reads
    values the controller sent. ``host`` and ``port`` are where this worker
    should listen for other workers.
    """

    def __init__(self, reader: Any, writer: Any, backend: Any, host: str, port: int, group: str):
        self._reader = reader
        self._writer = writer
        self.backend = backend
        self.host = host
        self.port = port
        self.group = group
        self.surfaced: Optional[BaseException] = None

    async def send(self, value: Any) -> None:
        """Send a value to the controller."""
        await write_tagged_frame(self._writer, FrameFlag.NORMAL, encode_value(value))

    async def send_error(self, exc: BaseException) -> None:
        """Send an error frame describing ``exc``."""
        await write_tagged_frame(self._writer, FrameFlag.ERROR, encode_error(describe_exception(exc)))
        self.surfaced = exc

    async def throw(self, exc: BaseException) -> None:
        """Report ``exc`` to the controller, then raise it here as well."""
        await self.send_error(exc)
        raise exc

    async def receive(self) -> Any:
        """Wait for the next value from the controller.

        Raises:
            EndOfStream: If the controller closed its side of the channel
        """
        return decode_value(await read_frame(self._reader))


class PipeWriter:
    """Frame writer over a binary file such as ``sys.stdout.buffer``."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


async def stdio_transport(
    stdin: Optional[BinaryIO] = None, stdout: Optional[BinaryIO] = None
) -> Tuple[asyncio.StreamReader, PipeWriter]:
    """Build a (reader, writer) pair over this process's binary stdin/stdout."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(reader), stdin or sys.stdin.buffer
    )
    return reader, PipeWriter(stdout or sys.stdout.buffer)


def self_command() -> List[str]:
    """Command line that starts this same program again."""
    if getattr(sys, "frozen", False):
        return [sys.executable]
    return [sys.executable, os.path.abspath(sys.argv[0])]


def bootstrap_arguments(host: str, port: int, group: str, background: bool = False) -> List[str]:
    """Arguments of the ``onvm run`` bootstrap subcommand."""
    args = ["onvm", "run", "--host", host, "--port", str(port), "--group", group]
    if background:
        args.append("--background")
    return args


def launch_detached(
    command: List[str], descriptor_payload: bytes, params_payload: bytes, log_path: Optional[Path] = None
) -> int:
    """Start ``command`` in its own session and hand it the bootstrap frames.

    Returns:
        Process ID of the detached worker
    """
    stderr = open(log_path, "ab") if log_path else subprocess.DEVNULL
    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=stderr,
            start_new_session=True,
        )
    finally:
        if log_path:
            stderr.close()

    process.stdin.write(encode_int(len(descriptor_payload)) + descriptor_payload)
    process.stdin.write(encode_int(len(params_payload)) + params_payload)
    process.stdin.close()
    logger.info(f"Detached worker started with PID {process.pid}")
    return process.pid


def _default_detacher(host: str, port: int, group: str) -> Detacher:
    def detach(descriptor_payload: bytes, params_payload: bytes) -> None:
        command = self_command() + bootstrap_arguments(host, port, group)
        launch_detached(command, descriptor_payload, params_payload, Path(f"tether-worker-{port}.log"))

    return detach


async def _surface(context: RemoteContext, exc: BaseException) -> None:
    """Send an error frame for ``exc`` unless the controller is gone."""
    try:
        await context.send_error(exc)
    except (OSError, ProtocolError) as e:
        logger.warning(f"Could not report failure to the controller: {e}")


async def serve_bootstrap(
    reader: Any,
    writer: Any,
    registry: TaskRegistry,
    host: str,
    port: int,
    group: str,
    background: bool = False,
    detach: Optional[Detacher] = None,
    directory: Any = None,
) -> int:
    """Run the worker side of a call or spawn.

    Args:
        reader: Source of the controller's frames (our standard input)
        writer: Sink for tagged frames to the controller (our standard output)
        registry: Registry the descriptor's key is resolved in
        host: Address this worker listens on for other workers
        port: Port this worker listens on for other workers
        group: Name of the host group
        background: Hand the task to a detached process and return at once
        detach: Replacement for the detached launch, used in tests
        directory: Host directory for the rebuilt backend

    Returns:
        Exit status for the bootstrap process
    """
    from ..core.backend import initialize_backend

    try:
        descriptor_payload = await read_frame(reader)
        params_payload = await read_frame(reader)
    except ProtocolError as e:
        logger.error(f"Bootstrap frames missing or truncated: {e}")
        return 1

    context = RemoteContext(reader, writer, None, host, port, group)
    try:
        descriptor = TaskDescriptor.decode(descriptor_payload)
        params = ConnectionParameters.decode(params_payload)
        task = registry.lookup(descriptor.key)
    except TetherError as e:
        logger.error(f"Invalid bootstrap: {e}")
        if not background:
            await _surface(context, e)
        return 1

    if background:
        (detach or _default_detacher(host, port, group))(descriptor_payload, params_payload)
        logger.info(f"Task {descriptor.key} handed to a background worker")
        return 0

    context.backend = initialize_backend(params, group, directory)
    logger.info(f"Running remote task {descriptor.key} on {host}:{port}")
    try:
        await task(context, descriptor.decoded_argument())
    except EndOfStream:
        logger.info("Controller closed the channel")
        return 0
    except Exception as e:
        logger.error(f"Remote task {descriptor.key} failed: {describe_exception(e)}")
        if context.surfaced is not e:
            await _surface(context, e)
        return 1

    logger.debug(f"Remote task {descriptor.key} finished")
    return 0
