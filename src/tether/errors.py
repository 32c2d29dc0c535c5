"""Error taxonomy for tether.

Every failure is raised at the point where it happens and propagates to the
immediate caller. Nothing in this package retries an operation.
"""

from typing import Optional


class TetherError(Exception):
    """Base class for all tether errors."""

    pass


class NoSshEndpoint(TetherError):
    """Raised when a host exposes no usable SSH endpoint."""

    def __init__(self, host_name: str, message: Optional[str] = None):
        self.host_name = host_name
        super().__init__(message or f"No SSH endpoint for host {host_name}")


class AmbiguousSshEndpoint(NoSshEndpoint):
    """Raised when a host exposes more than one endpoint named for SSH."""

    def __init__(self, host_name: str, count: int):
        self.count = count
        super().__init__(host_name, f"Host {host_name} has {count} SSH endpoints, expected one")


class ConnectFailure(TetherError):
    """Raised when an SSH session cannot be established."""

    pass


class AuthFailure(ConnectFailure):
    """Raised when the SSH server rejects our credentials."""

    pass


class TransportError(TetherError):
    """Raised for session or channel faults reported by the SSH library."""

    pass


class TransferFailure(TransportError):
    """Raised when copying the executable to a remote host fails."""

    pass


class NonZeroExit(TetherError):
    """Raised when a remote command finishes with a non-zero exit status."""

    def __init__(self, status: int, output: bytes = b""):
        self.status = status
        self.output = output
        text = output.decode("utf-8", errors="replace").strip()
        message = f"Remote command exited with status {status}"
        if text:
            message = f"{message}: {text}"
        super().__init__(message)


class ProtocolError(TetherError):
    """Raised when a frame cannot be decoded or the channel breaks mid-frame."""

    pass


class EndOfStream(ProtocolError):
    """Raised when the channel ends cleanly before the first byte of a frame."""

    pass


class UnknownTask(ProtocolError):
    """Raised when a task descriptor names a key missing from the registry."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown remote task: {key!r}")


class RemoteError(TetherError):
    """Raised locally when the remote side sends an error frame."""

    def __init__(self, description: str):
        self.description = description
        super().__init__(description)
