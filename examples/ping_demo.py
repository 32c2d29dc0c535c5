#!/usr/bin/env python3
"""Ping demo: a background ping server on every host, and a client that
checks it from the controller.

    python ping_demo.py --hosts-file hosts.yaml --group demo install
    python ping_demo.py --hosts-file hosts.yaml --group demo run -p 8080 --closure ping-server --background
    python ping_demo.py --hosts-file hosts.yaml --group demo run -p 8080 --closure ping-client

The server writes its address to ``ping_server.addr`` in the working
directory, which is where the client looks for it.
"""

import asyncio
from pathlib import Path

from tether import TaskPair, TaskRegistry
from tether.cli.main import generic_main

ADDRESS_FILE = Path("ping_server.addr")

registry = TaskRegistry()


@registry.register("ping_server")
async def ping_server(ctx, _argument):
    async def handle(reader, writer):
        request = await reader.readline()
        if request.strip() == b"ping":
            writer.write(b"pong\n")
            await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, ctx.host, ctx.port)
    ADDRESS_FILE.write_text(f"{ctx.host}:{ctx.port}\n")
    async with server:
        await server.serve_forever()


@registry.register("ping_client")
async def ping_client(ctx, _argument):
    try:
        host, port = ADDRESS_FILE.read_text().strip().rsplit(":", 1)
    except OSError as e:
        await ctx.send(f"Ping server not found: {e}")
        return

    reader, writer = await asyncio.open_connection(host, int(port))
    writer.write(b"ping\n")
    await writer.drain()
    reply = await reader.readline()
    writer.close()
    await writer.wait_closed()

    status = "ok" if reply.strip() == b"pong" else f"unexpected reply {reply!r}"
    await ctx.send(f"Ping server at {host}:{port} {status}")


async def ping_local(session):
    return await session.expect(str)


def main():
    generic_main(
        registry,
        callables={
            "ping-client": lambda: TaskPair(remote=registry.descriptor("ping_client"), local=ping_local)
        },
        spawnables={"ping-server": lambda: registry.descriptor("ping_server")},
    )


if __name__ == "__main__":
    main()
