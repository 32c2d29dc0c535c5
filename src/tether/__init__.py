"""tether - paired local/remote processes over SSH.

A local controller cannot join the workers' own network, so everything
between the controller and a worker goes through an SSH command channel:

- Deploy the executable to remote hosts and check which ones are up to date
- Call: run a remote task and a local computation that exchange framed
  messages over the channel; the call ends when the local side returns
- Spawn: start a remote task in the background and return at once
"""

__version__ = "0.3.0"
__author__ = "tether developers"

# Backend
from .core.backend import Backend, initialize_backend  # noqa: I001

# Configuration
from .config.params import ConnectionParameters
from .config.settings import TetherConfig

# Hosts
from .hosts.directory import HostDirectory, StaticHostDirectory
from .hosts.models import Endpoint, Host, HostGroup

# Protocol
from .protocol.local import LocalSession
from .protocol.remote import RemoteContext
from .protocol.tasks import TaskDescriptor, TaskPair, TaskRegistry

# Errors
from .errors import (
    AuthFailure,
    ConnectFailure,
    NoSshEndpoint,
    NonZeroExit,
    ProtocolError,
    RemoteError,
    TetherError,
    TransferFailure,
    TransportError,
)

# Utilities
from .utils.logging import setup_logging

__all__ = [
    # Backend
    "Backend",
    "initialize_backend",
    # Configuration
    "ConnectionParameters",
    "TetherConfig",
    # Hosts
    "Endpoint",
    "Host",
    "HostGroup",
    "HostDirectory",
    "StaticHostDirectory",
    # Protocol
    "LocalSession",
    "RemoteContext",
    "TaskDescriptor",
    "TaskPair",
    "TaskRegistry",
    # Errors
    "TetherError",
    "NoSshEndpoint",
    "ConnectFailure",
    "AuthFailure",
    "TransportError",
    "TransferFailure",
    "NonZeroExit",
    "ProtocolError",
    "RemoteError",
    # Utilities
    "setup_logging",
]
