"""Host CLI commands: list, install, verify."""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .utils import build_backend, run_on_hosts, select_hosts


@click.command("list")
@click.pass_context
def list_cmd(ctx):
    """List the hosts of the group and their endpoints."""
    console: Console = ctx.obj["console"]
    backend = build_backend(ctx)
    hosts = asyncio.run(backend.find_hosts())

    if not hosts:
        console.print(f"[yellow]No hosts found in group {backend.group}[/yellow]")
        return

    table = Table(title=f"Host group {backend.group}")
    table.add_column("Host", style="cyan")
    table.add_column("Address")
    table.add_column("Endpoints")
    for host in hosts:
        endpoints = ", ".join(f"{ep.name} {ep.vip}:{ep.port}" for ep in host.endpoints)
        table.add_row(host.name, host.address, endpoints or "-")
    console.print(table)


@click.command("install")
@click.option("--host", "host_name", help="Install on this host only")
@click.pass_context
def install_cmd(ctx, host_name: Optional[str]):
    """Copy the executable to the hosts of the group."""
    console: Console = ctx.obj["console"]
    backend = build_backend(ctx)

    async def install():
        hosts = await select_hosts(backend, host_name)
        return await run_on_hosts(hosts, backend.copy_to_host)

    failed = False
    for host, _, error in asyncio.run(install()):
        if error is None:
            console.print(f"{host.name}: [green]OK[/green]")
        else:
            failed = True
            console.print(f"{host.name}: [red]{escape(str(error))}[/red]")
    if failed:
        ctx.exit(1)


@click.command("verify")
@click.option("--host", "host_name", help="Verify this host only")
@click.pass_context
def verify_cmd(ctx, host_name: Optional[str]):
    """Check that the hosts run the same executable as this machine."""
    console: Console = ctx.obj["console"]
    backend = build_backend(ctx)

    async def verify():
        hosts = await select_hosts(backend, host_name)
        return await run_on_hosts(hosts, backend.check_hash)

    failed = False
    for host, matches, error in asyncio.run(verify()):
        if error is not None:
            failed = True
            console.print(f"{host.name}: [red]{escape(str(error))}[/red]")
        elif matches:
            console.print(f"{host.name}: [green]up to date[/green]")
        else:
            failed = True
            console.print(f"{host.name}: [yellow]out of date[/yellow]")
    if failed:
        ctx.exit(1)
