#!/usr/bin/env python3
"""Echo demo: every line typed locally is sent to each host and echoed back.

    python echo_demo.py --hosts-file hosts.yaml --group demo install
    python echo_demo.py --hosts-file hosts.yaml --group demo run --port 8080 --closure echo

An empty line ends the session.
"""

import asyncio

from tether import TaskPair, TaskRegistry
from tether.cli.main import generic_main

registry = TaskRegistry()


@registry.remotable
async def echo_remote(ctx, _argument):
    while True:
        await ctx.send(await ctx.receive())


async def echo_local(session):
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, input, f"{session.host_name}: ")
        if not line:
            return None
        await session.send(line)
        print(f"Echo: {await session.expect(str)}")


def main():
    generic_main(
        registry,
        callables={"echo": lambda: TaskPair(remote=registry.descriptor("echo_remote"), local=echo_local)},
    )


if __name__ == "__main__":
    main()
