"""SSH sessions and command channels.

One session per operation, one command channel per remote command. Both are
async context managers: the underlying connection or channel is closed on
every exit path, including exceptions raised by the body.
"""

import asyncio
from contextlib import asynccontextmanager, contextmanager
import logging
from typing import AsyncIterator, Iterator, Optional, Tuple

import asyncssh

from ..config.params import ConnectionParameters
from ..errors import AuthFailure, ConnectFailure, TransportError
from ..hosts.models import Host

logger = logging.getLogger(__name__)


class Session:
    """An authenticated SSH connection to one host."""

    def __init__(self, connection: "asyncssh.SSHClientConnection", host: Host):
        self.connection = connection
        self.host = host
        self.last_error: Optional[str] = None

    @contextmanager
    def translate_errors(self) -> Iterator[None]:
        """Turn SSH library faults into TransportError.

        The error carries the library's diagnostic, which is also kept in
        ``last_error``.
        """
        try:
            yield
        except asyncssh.Error as e:
            self.last_error = e.reason or str(e)
            raise TransportError(f"{self.host.name}: {self.last_error}") from e
        except (BrokenPipeError, ConnectionResetError) as e:
            self.last_error = str(e) or type(e).__name__
            raise TransportError(f"{self.host.name}: {self.last_error}") from e

    def __repr__(self) -> str:
        return f"Session(host={self.host.name!r})"


@asynccontextmanager
async def open_session(host: Host, params: ConnectionParameters) -> AsyncIterator[Session]:
    """Open an authenticated SSH session to ``host``.

    Raises:
        NoSshEndpoint: If the host has no single SSH endpoint (nothing is attempted)
        AuthFailure: If authentication is rejected
        ConnectFailure: On any other connection error
    """
    address, port = host.ssh_endpoint()

    options = {
        "port": port,
        "username": params.username or None,
        "known_hosts": params.known_hosts or None,  # None skips host key checking
    }
    if params.private_key:
        options["client_keys"] = [params.private_key]
    if params.passphrase:
        options["passphrase"] = params.passphrase

    logger.debug(f"Connecting to {host.name} at {address}:{port}")
    try:
        connection = await asyncssh.connect(address, **options)
    except asyncssh.PermissionDenied as e:
        raise AuthFailure(f"SSH authentication to {host.name} failed: {e.reason}") from e
    except (asyncssh.Error, OSError) as e:
        raise ConnectFailure(f"Failed to connect to {host.name} ({address}:{port}): {e}") from e

    logger.debug(f"SSH session established to {host.name}")
    try:
        yield Session(connection, host)
    finally:
        connection.close()
        await connection.wait_closed()
        logger.debug(f"SSH session to {host.name} closed")


class CommandChannel:
    """A remote command running on its own channel.

    Standard output carries the framed protocol and is read by the caller.
    Standard error is collected in the background for diagnostics.
    """

    def __init__(self, process: "asyncssh.SSHClientProcess", command: str, session: Session):
        self.command = command
        self.session = session
        self._process = process
        self._stderr = bytearray()
        self._eof_sent = False
        self._stderr_task = asyncio.ensure_future(self._collect_stderr())

    async def _collect_stderr(self) -> None:
        while True:
            chunk = await self._process.stderr.read(4096)
            if not chunk:
                return
            self._stderr += chunk
            logger.debug(f"[{self.session.host.name}] {chunk.decode('utf-8', errors='replace').rstrip()}")

    @property
    def stderr_output(self) -> bytes:
        return bytes(self._stderr)

    async def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes of standard output; b"" at end of stream."""
        with self.session.translate_errors():
            return await self._process.stdout.read(size)

    def write(self, data: bytes) -> None:
        with self.session.translate_errors():
            self._process.stdin.write(data)

    async def drain(self) -> None:
        with self.session.translate_errors():
            await self._process.stdin.drain()

    async def send_eof(self) -> None:
        if self._eof_sent:
            return
        with self.session.translate_errors():
            self._process.stdin.write_eof()
        self._eof_sent = True

    async def read_all(self) -> bytes:
        """Read standard output until the remote side closes it."""
        with self.session.translate_errors():
            return await self._process.stdout.read()

    async def finish(self) -> Tuple[int, bytes]:
        """Send EOF, drain the remaining output and wait for the exit status.

        Returns:
            Tuple of (exit status, output left on standard output)
        """
        await self.send_eof()
        remaining = await self.read_all()
        with self.session.translate_errors():
            result = await self._process.wait()
            await self._stderr_task
        status = result.returncode
        if status is None:
            status = -1
        logger.debug(f"Remote command on {self.session.host.name} exited with status {status}")
        return status, remaining

    async def close(self) -> None:
        self._process.close()
        try:
            await self._process.wait_closed()
        finally:
            if not self._stderr_task.done():
                self._stderr_task.cancel()
            try:
                await self._stderr_task
            except (asyncio.CancelledError, asyncssh.Error):
                pass


@asynccontextmanager
async def open_command_channel(session: Session, command: str) -> AsyncIterator[CommandChannel]:
    """Open a channel on ``session`` running ``command``.

    Raises:
        TransportError: If the channel cannot be opened
    """
    logger.debug(f"Opening channel on {session.host.name}: {command}")
    with session.translate_errors():
        process = await session.connection.create_process(command, encoding=None)

    channel = CommandChannel(process, command, session)
    try:
        yield channel
    finally:
        await channel.close()
