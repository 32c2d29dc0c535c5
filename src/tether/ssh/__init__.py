"""SSH transport: sessions, command channels and deployment."""

from .deploy import HASH_CHECK_COMMAND, copy_executable, local_hash, verify_remote_hash
from .session import CommandChannel, Session, open_command_channel, open_session

__all__ = [
    "Session",
    "CommandChannel",
    "open_session",
    "open_command_channel",
    "copy_executable",
    "verify_remote_hash",
    "local_hash",
    "HASH_CHECK_COMMAND",
]
