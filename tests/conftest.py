"""
Pytest configuration and shared fixtures for the tether test suite.

The SSH layer is replaced by an in-memory connection: every command channel
it opens runs a Python coroutine in place of the remote process, wired to
the channel through asyncio stream readers. Backend tests plug the real
worker bootstrap into it, so both halves of the protocol run in one loop.
"""

import asyncio
from pathlib import Path
import shlex
import shutil
import tempfile
from types import SimpleNamespace
from unittest.mock import AsyncMock

from click.testing import CliRunner
import pytest
import yaml

from tether.config.params import ConnectionParameters
from tether.hosts.models import Endpoint, Host
from tether.protocol.remote import serve_bootstrap
from tether.protocol.tasks import TaskRegistry


class StreamFeed:
    """Writer side of an in-memory pipe feeding an asyncio.StreamReader."""

    def __init__(self, reader: asyncio.StreamReader):
        self.reader = reader
        self.data = bytearray()
        self.eof = False

    def write(self, data: bytes) -> None:
        self.data += data
        self.reader.feed_data(data)

    async def drain(self) -> None:
        pass

    def write_eof(self) -> None:
        self.eof = True
        self.reader.feed_eof()


class FakeProcess:
    """Stands in for asyncssh.SSHClientProcess.

    ``remote`` is a coroutine function ``(reader, writer, process) -> int``
    playing the remote command; its return value is the exit status.
    """

    def __init__(self, command: str, remote):
        self.command = command
        self.remote_stdin = asyncio.StreamReader()
        self.stdin = StreamFeed(self.remote_stdin)
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.remote_stdout = StreamFeed(self.stdout)
        self.returncode = None
        self.closed = False
        self._task = asyncio.ensure_future(self._run(remote))

    async def _run(self, remote) -> None:
        try:
            self.returncode = await remote(self.remote_stdin, self.remote_stdout, self)
        finally:
            self.stdout.feed_eof()
            self.stderr.feed_eof()

    async def wait(self):
        await self._task
        return SimpleNamespace(returncode=self.returncode, exit_status=self.returncode)

    def close(self) -> None:
        self.closed = True
        if not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class FakeSFTP:
    """Stands in for asyncssh.SFTPClient."""

    def __init__(self):
        self.chmod = AsyncMock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeConnection:
    """Stands in for asyncssh.SSHClientConnection."""

    def __init__(self, remote):
        self.remote = remote
        self.processes = []
        self.sftp = FakeSFTP()
        self.closed = False

    async def create_process(self, command, encoding="utf-8"):
        assert encoding is None, "channels must be opened in binary mode"
        process = FakeProcess(command, self.remote)
        self.processes.append(process)
        return process

    def start_sftp_client(self):
        return self.sftp

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


def parse_bootstrap(command: str) -> dict:
    """Pull the bootstrap options out of a remote command line."""
    words = shlex.split(command)
    assert words[0] == "PATH=."
    assert words[2:4] == ["onvm", "run"]
    options = {"executable": words[1], "background": "--background" in words}
    for flag in ("--host", "--port", "--group"):
        options[flag[2:]] = words[words.index(flag) + 1]
    options["port"] = int(options["port"])
    return options


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after the test."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def cli_runner():
    """Provide a Click CLI runner for testing CLI commands."""
    from rich.console import Console

    class TestCliRunner(CliRunner):
        def invoke(self, cli, args=None, **kwargs):
            # Provide a console object in the context if not already provided
            obj = kwargs.setdefault("obj", {})
            obj.setdefault("console", Console(file=None, force_terminal=False, width=200))
            return super().invoke(cli, args, **kwargs)

    return TestCliRunner()


@pytest.fixture
def ssh_host():
    """A host with a single SSH endpoint."""
    return Host(
        name="node1",
        address="10.0.0.4",
        endpoints=(Endpoint(name="SSH", port=50136, vip="168.63.31.38"),),
    )


@pytest.fixture
def params(temp_dir):
    """Connection parameters pointing at a small local executable."""
    executable = temp_dir / "worker-app"
    executable.write_bytes(b"#!/bin/sh\necho worker\n")
    return ConnectionParameters(
        credentials={"groups": {}},
        username="alice",
        public_key="/home/alice/.ssh/id_rsa.pub",
        private_key="/home/alice/.ssh/id_rsa",
        passphrase="",
        known_hosts="",
        remote_path="worker-app",
        local_path=str(executable),
    )


@pytest.fixture
def sample_hosts():
    """Hosts file content for one group of two hosts."""
    return {
        "groups": {
            "demo": [
                {
                    "name": "node1",
                    "address": "10.0.0.4",
                    "endpoints": [{"name": "SSH", "port": 50136, "vip": "168.63.31.38"}],
                },
                {
                    "name": "node2",
                    "address": "10.0.0.5",
                    "endpoints": [
                        {"name": "SSH", "port": 63365, "vip": "168.63.31.38"},
                        {"name": "HTTP", "port": 80, "vip": "168.63.31.38"},
                    ],
                },
            ]
        }
    }


@pytest.fixture
def hosts_file(temp_dir, sample_hosts):
    """Write the sample hosts to a YAML file."""
    path = temp_dir / "hosts.yaml"
    with open(path, "w") as f:
        yaml.dump(sample_hosts, f)
    return path


@pytest.fixture
def registry():
    """Task registry shared by the controller and the fake workers."""
    registry = TaskRegistry()

    @registry.register("echo")
    async def echo(ctx, _argument):
        while True:
            await ctx.send(await ctx.receive())

    @registry.register("greet")
    async def greet(ctx, name):
        await ctx.send(f"hello {name} from {ctx.host}:{ctx.port}")

    @registry.register("fail")
    async def fail(ctx, message):
        raise RuntimeError(message)

    @registry.register("throw")
    async def throw(ctx, message):
        await ctx.throw(ValueError(message))

    @registry.register("chatty")
    async def chatty(ctx, _argument):
        await ctx.send(1)
        await ctx.send(2)

    @registry.register("listener")
    async def listener(ctx, _argument):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        async with server:
            await server.serve_forever()

    return registry


@pytest.fixture
def fake_ssh(monkeypatch):
    """Patch asyncssh.connect so sessions use FakeConnection.

    Call the returned function with the coroutine playing the remote
    command; it returns the AsyncMock standing in for ``asyncssh.connect``.
    """
    state = SimpleNamespace(connections=[])

    def install(remote):
        async def connect(host, **options):
            connection = FakeConnection(remote)
            state.connections.append(connection)
            return connection

        mock = AsyncMock(side_effect=connect)
        monkeypatch.setattr("tether.ssh.session.asyncssh.connect", mock)
        mock.connections = state.connections
        return mock

    return install


@pytest.fixture
def worker(registry):
    """Remote command that runs the real bootstrap against ``registry``.

    Background launches are recorded in ``worker.detached`` instead of
    starting a process.
    """
    detached = []

    async def remote(reader, writer, process):
        options = parse_bootstrap(process.command)
        process.options = options
        return await serve_bootstrap(
            reader,
            writer,
            registry,
            options["host"],
            options["port"],
            options["group"],
            background=options["background"],
            detach=lambda descriptor, params: detached.append((descriptor, params)),
        )

    remote.detached = detached
    return remote
