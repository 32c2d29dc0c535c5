"""Backend facade: find hosts, deploy, verify, call and spawn.

Each operation opens its own SSH session and command channel, so a Backend
can be shared between concurrent coroutines. Its only state is the
read-only connection parameters and the group name.

Call mode runs a task pair: the remote half is started through the
bootstrap command, the local half talks to it over the same channel, and
the call is over when the local half returns. Spawn mode starts the remote
half in the background and returns once the bootstrap frames are delivered.
"""

import logging
import shlex
from typing import Any, List, Optional, TypeVar

from ..config.params import ConnectionParameters
from ..errors import EndOfStream, NonZeroExit, ProtocolError
from ..hosts.directory import HostDirectory, directory_from_credentials
from ..hosts.models import Host
from ..protocol.framing import write_frame
from ..protocol.local import LocalSession
from ..protocol.remote import bootstrap_arguments
from ..protocol.tasks import TaskDescriptor, TaskPair
from ..ssh.deploy import copy_executable, verify_remote_hash
from ..ssh.session import open_command_channel, open_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


def bootstrap_command(
    params: ConnectionParameters, host: Host, port: int, group: str, background: bool = False
) -> str:
    """Shell command line that starts the deployed executable's bootstrap."""
    args = [params.remote_path] + bootstrap_arguments(host.address, port, group, background)
    return "PATH=. " + " ".join(shlex.quote(arg) for arg in args)


async def push_bootstrap(
    channel: Any, descriptor: TaskDescriptor, params: ConnectionParameters
) -> None:
    """Write the two bootstrap frames: descriptor first, then parameters."""
    await write_frame(channel, descriptor.encode())
    await write_frame(channel, params.encode())


class Backend:
    """Entry point for everything that touches remote hosts."""

    def __init__(
        self,
        params: ConnectionParameters,
        group: str,
        directory: Optional[HostDirectory] = None,
    ):
        """Initialize the Backend.

        Args:
            params: Connection parameters, shipped unchanged to every worker
            group: Name of the host group this backend works with
            directory: Host directory; built from ``params.credentials`` if omitted
        """
        self.params = params
        self.group = group
        self._directory = directory

    @property
    def directory(self) -> HostDirectory:
        if self._directory is None:
            self._directory = directory_from_credentials(self.params.credentials)
        return self._directory

    async def find_hosts(self) -> List[Host]:
        """Return the hosts of this backend's group."""
        hosts = await self.directory.list_hosts(self.group)
        logger.debug(f"Found {len(hosts)} hosts in group {self.group}")
        return hosts

    async def copy_to_host(self, host: Host) -> None:
        """Copy the local executable to ``host``."""
        async with open_session(host, self.params) as session:
            await copy_executable(session, self.params.local_path, self.params.remote_path)

    async def check_hash(self, host: Host) -> bool:
        """Check whether ``host`` runs the same executable as we do."""
        async with open_session(host, self.params) as session:
            return await verify_remote_hash(
                session, self.params.local_path, self.params.remote_path
            )

    async def call_on_host(self, host: Host, port: int, pair: TaskPair[T]) -> T:
        """Run ``pair`` with its remote half on ``host``.

        Args:
            host: Host to run the remote task on
            port: Port the remote worker listens on for other workers
            pair: Remote task descriptor and local computation

        Returns:
            Whatever the local computation returned

        Raises:
            NonZeroExit: If the remote command exits with a non-zero status, including
                when it exits before the local side got the reply it was waiting for
            RemoteError: If the remote task reported an error the local side did not handle
            ProtocolError: If the remote side sent frames after the local side returned
        """
        command = bootstrap_command(self.params, host, port, self.group)
        async with open_session(host, self.params) as session:
            async with open_command_channel(session, command) as channel:
                await push_bootstrap(channel, pair.remote, self.params)
                logger.debug(f"Bootstrap for {pair.remote.key} sent to {host.name}")

                local = LocalSession(channel, host.name)
                try:
                    result = await pair.local(local)
                except EndOfStream as e:
                    status, remaining = await channel.finish()
                    if status != 0:
                        raise NonZeroExit(status, remaining + channel.stderr_output) from e
                    raise

                logger.debug(
                    f"Local side of {pair.remote.key} on {host.name} returned after "
                    f"{local.sent} frames sent, {local.received} received"
                )
                status, remaining = await channel.finish()
                if status != 0:
                    raise NonZeroExit(status, remaining + channel.stderr_output)
                if remaining:
                    raise ProtocolError(
                        f"{host.name} sent {len(remaining)} bytes after the local process "
                        f"returned ({local.received} frames read)"
                    )
        return result

    async def spawn_on_host(self, host: Host, port: int, descriptor: TaskDescriptor) -> None:
        """Start ``descriptor`` on ``host`` in the background.

        Returns once the bootstrap frames are delivered and the channel is
        closed; the remote task keeps running on its own.

        Raises:
            NonZeroExit: If the bootstrap exits with a non-zero status
        """
        command = bootstrap_command(self.params, host, port, self.group, background=True)
        async with open_session(host, self.params) as session:
            async with open_command_channel(session, command) as channel:
                await push_bootstrap(channel, descriptor, self.params)
                status, remaining = await channel.finish()
                output = remaining + channel.stderr_output
        if status != 0:
            raise NonZeroExit(status, output)
        logger.info(f"Spawned {descriptor.key} on {host.name}:{port}")


def initialize_backend(
    params: ConnectionParameters, group: str, directory: Optional[HostDirectory] = None
) -> Backend:
    """Create a backend for ``group``."""
    return Backend(params, group, directory)
