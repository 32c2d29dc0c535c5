"""Run CLI command: call or spawn a named closure on the group's hosts."""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from .utils import build_backend, run_on_hosts, select_hosts


@click.command("run")
@click.option("--port", "-p", type=int, required=True, help="Port the workers listen on")
@click.option("--closure", required=True, help="Name of the closure to run")
@click.option("--host", "host_name", help="Run on this host only")
@click.option("--background", is_flag=True, help="Spawn the closure and return at once")
@click.pass_context
def run_cmd(ctx, port: int, closure: str, host_name: Optional[str], background: bool):
    """Run a closure on every host of the group."""
    console: Console = ctx.obj["console"]
    callables = ctx.obj.get("callables") or {}
    spawnables = ctx.obj.get("spawnables") or {}

    table = spawnables if background else callables
    if closure not in table:
        kind = "spawnable" if background else "callable"
        known = ", ".join(sorted(table)) or "none"
        raise click.UsageError(f"Unknown {kind} closure {closure!r} (available: {known})")

    backend = build_backend(ctx)

    async def run():
        hosts = await select_hosts(backend, host_name)
        if background:
            return await run_on_hosts(
                hosts, lambda host: backend.spawn_on_host(host, port, table[closure]())
            )
        return await run_on_hosts(
            hosts, lambda host: backend.call_on_host(host, port, table[closure]())
        )

    failed = False
    for host, result, error in asyncio.run(run()):
        if error is not None:
            failed = True
            console.print(f"{host.name}: [red]{escape(str(error))}[/red]")
        elif background:
            console.print(f"{host.name}: [green]OK[/green]")
        elif result is not None:
            console.print(f"{host.name}: {result}", markup=False)
    if failed:
        ctx.exit(1)
