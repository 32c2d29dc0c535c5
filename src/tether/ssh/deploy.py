"""Deploying the executable to remote hosts and checking what is deployed."""

import hashlib
import logging
from pathlib import Path
from typing import Union

import asyncssh

from ..errors import TransferFailure
from .session import Session, open_command_channel

logger = logging.getLogger(__name__)

# Reads "<hex>  <path>" lines on stdin, exits 0 iff every file matches
HASH_CHECK_COMMAND = "md5sum -c --status"

DEFAULT_MODE = 0o700


def local_hash(path: Union[str, Path]) -> str:
    """Calculate the MD5 hex digest of a local file."""
    md5_hash = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            md5_hash.update(chunk)
    return md5_hash.hexdigest()


async def copy_executable(
    session: Session,
    local_path: Union[str, Path],
    remote_path: str,
    mode: int = DEFAULT_MODE,
) -> None:
    """Copy the local executable to ``remote_path`` and set its mode.

    Raises:
        TransferFailure: On any I/O or protocol error during the transfer
    """
    host_name = session.host.name
    logger.debug(f"Copying {local_path} to {host_name}:{remote_path} (mode {mode:o})")
    try:
        await asyncssh.scp(str(local_path), (session.connection, remote_path))
        async with session.connection.start_sftp_client() as sftp:
            await sftp.chmod(remote_path, mode)
    except (asyncssh.Error, OSError) as e:
        reason = getattr(e, "reason", None) or str(e)
        session.last_error = reason
        raise TransferFailure(f"Copy to {host_name}:{remote_path} failed: {reason}") from e
    logger.info(f"Copied executable to {host_name}:{remote_path}")


async def verify_remote_hash(session: Session, local_path: Union[str, Path], remote_path: str) -> bool:
    """Check whether the remote file has the same content as the local one.

    Returns:
        True if the remote hash check command exits with status 0
    """
    digest = local_hash(local_path)
    async with open_command_channel(session, HASH_CHECK_COMMAND) as channel:
        channel.write(f"{digest}  {remote_path}\n".encode("utf-8"))
        await channel.drain()
        status, _ = await channel.finish()

    matches = status == 0
    logger.debug(f"Hash check on {session.host.name} for {remote_path}: {'match' if matches else 'mismatch'}")
    return matches
