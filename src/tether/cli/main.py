"""Main CLI entry point for tether.

Programs built on tether call ``generic_main`` with their task registry and
the closures they offer; the same program then serves as controller on the
local machine and as worker on the remote hosts.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional

import click
from rich.console import Console

from .. import __version__
from ..config.settings import TetherConfig
from ..protocol.tasks import TaskDescriptor, TaskPair, TaskRegistry
from ..utils.logging import setup_logging
from .hosts import install_cmd, list_cmd, verify_cmd
from .onvm import onvm_cmd
from .run import run_cmd

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="tether")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to tether.yaml (default: search standard locations)",
)
@click.option("--hosts-file", type=click.Path(path_type=Path), help="YAML file listing host groups")
@click.option("--group", "-g", help="Host group to work with")
@click.option("--user", "-u", help="Remote user name")
@click.option("--identity", "-i", type=click.Path(path_type=Path), help="SSH private key")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    hosts_file: Optional[Path],
    group: Optional[str],
    user: Optional[str],
    identity: Optional[Path],
    verbose: bool,
    quiet: bool,
):
    """tether - run paired local/remote processes over SSH."""
    ctx.ensure_object(dict)

    config = TetherConfig.load(config_path)
    if hosts_file:
        config.directory.hosts_file = str(hosts_file)
    if group:
        config.directory.group = group
    if user:
        config.ssh.username = user
    if identity:
        config.ssh.private_key = str(identity)
        config.ssh.public_key = f"{identity}.pub"

    if quiet:
        log_level = "ERROR"
    elif verbose:
        log_level = "DEBUG"
    else:
        log_level = config.logging.level

    log_file = Path(config.logging.file) if config.logging.file else None
    ctx.obj["logger"] = setup_logging(log_level, log_file)
    ctx.obj["config"] = config
    ctx.obj.setdefault("console", console)


cli.add_command(list_cmd)  # tether list
cli.add_command(install_cmd)  # tether install [--host NAME]
cli.add_command(verify_cmd)  # tether verify [--host NAME]
cli.add_command(run_cmd)  # tether run --port P --closure NAME [--background]
cli.add_command(onvm_cmd)  # tether onvm run ... (worker side)


def generic_main(
    registry: TaskRegistry,
    callables: Optional[Dict[str, Callable[[], TaskPair]]] = None,
    spawnables: Optional[Dict[str, Callable[[], TaskDescriptor]]] = None,
    args: Optional[List[str]] = None,
) -> None:
    """Run the tether command line for a program's own closures.

    Args:
        registry: Remote tasks the worker side can resolve
        callables: Closure name -> factory of the task pair to call
        spawnables: Closure name -> factory of the descriptor to spawn
        args: Command line arguments (default: sys.argv[1:])
    """
    cli.main(
        args=args,
        obj={
            "registry": registry,
            "callables": callables or {},
            "spawnables": spawnables or {},
        },
    )


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
