"""CLI utility functions."""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import click

from ..config.settings import TetherConfig
from ..core.backend import Backend
from ..hosts.directory import StaticHostDirectory
from ..hosts.models import Host


def build_backend(ctx: click.Context) -> Backend:
    """Create the backend described by the global CLI options.

    Raises:
        click.UsageError: If no host group is configured
    """
    config: TetherConfig = ctx.obj["config"]
    group = config.directory.group
    if not group:
        raise click.UsageError("No host group given; use --group or set directory.group")

    params = config.connection_parameters()
    directory = None
    if config.directory.hosts_file:
        directory = StaticHostDirectory.from_file(config.directory.hosts_file)
    return Backend(params, group, directory)


async def select_hosts(backend: Backend, host_name: Optional[str] = None) -> List[Host]:
    """Hosts of the backend's group, optionally narrowed to one name.

    Raises:
        click.ClickException: If nothing matches
    """
    hosts = await backend.find_hosts()
    if host_name:
        hosts = [h for h in hosts if h.name == host_name]
        if not hosts:
            raise click.ClickException(f"No host {host_name!r} in group {backend.group!r}")
    elif not hosts:
        raise click.ClickException(f"No hosts found in group {backend.group!r}")
    return hosts


async def run_on_hosts(
    hosts: List[Host], operation: Callable[[Host], Awaitable[Any]]
) -> List[Tuple[Host, Any, Optional[BaseException]]]:
    """Run ``operation`` on every host concurrently.

    Returns:
        One (host, result, error) tuple per host, in host order
    """
    results = await asyncio.gather(*(operation(h) for h in hosts), return_exceptions=True)
    outcome = []
    for host, result in zip(hosts, results):
        if isinstance(result, Exception):
            outcome.append((host, None, result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcome.append((host, result, None))
    return outcome
