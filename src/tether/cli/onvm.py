"""Commands run on the remote host by the controller, never by hand."""

import asyncio

import click

from ..protocol.remote import serve_bootstrap, stdio_transport
from ..protocol.tasks import TaskRegistry


@click.group("onvm", hidden=True)
def onvm_cmd():
    """Worker-side commands started over SSH."""
    pass


@onvm_cmd.command("run")
@click.option("--host", required=True, help="Address to listen on for other workers")
@click.option("--port", type=int, required=True, help="Port to listen on for other workers")
@click.option("--group", required=True, help="Host group this worker belongs to")
@click.option("--background", is_flag=True, help="Detach the task and exit at once")
@click.pass_context
def onvm_run_cmd(ctx, host: str, port: int, group: str, background: bool):
    """Read the task from standard input and run it."""
    registry = ctx.obj.get("registry") or TaskRegistry()

    async def serve() -> int:
        reader, writer = await stdio_transport()
        return await serve_bootstrap(
            reader, writer, registry, host, port, group, background=background
        )

    ctx.exit(asyncio.run(serve()))
