"""Connection parameters shared by the controller and its workers."""

from dataclasses import asdict, dataclass, field, replace
import json
import logging
import os
from pathlib import Path
import sys
from typing import Any, Dict, Optional

from ..errors import ProtocolError

logger = logging.getLogger(__name__)


def _running_program() -> str:
    """Path of the program currently running."""
    if getattr(sys, "frozen", False):
        return sys.executable
    return os.path.abspath(sys.argv[0]) if sys.argv and sys.argv[0] else sys.executable


@dataclass(frozen=True)
class ConnectionParameters:
    """Everything needed to reach remote hosts and the executable deployed there.

    Instances are immutable. The whole bundle is shipped to the remote side
    as one blob so a worker can rebuild the same backend.
    """

    credentials: Dict[str, Any] = field(default_factory=dict)  # Opaque directory handle
    username: str = ""
    public_key: str = ""
    private_key: str = ""
    passphrase: str = ""
    known_hosts: str = ""
    remote_path: str = ""
    local_path: str = ""

    @classmethod
    def default(cls, credentials: Optional[Dict[str, Any]] = None) -> "ConnectionParameters":
        """Create parameters from the environment.

        Args:
            credentials: Opaque handle passed through to the host directory

        Returns:
            Parameters using ~/.ssh/id_rsa, the current user and this program
        """
        ssh_dir = Path.home() / ".ssh"
        local_path = _running_program()
        return cls(
            credentials=dict(credentials or {}),
            username=os.getenv("USER") or os.getenv("USERNAME") or "",
            public_key=str(ssh_dir / "id_rsa.pub"),
            private_key=str(ssh_dir / "id_rsa"),
            passphrase="",
            known_hosts=str(ssh_dir / "known_hosts"),
            remote_path=os.path.basename(local_path),
            local_path=local_path,
        )

    def replace(self, **changes: Any) -> "ConnectionParameters":
        """Return a copy with some fields changed."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionParameters":
        """Create from dictionary."""
        return cls(
            credentials=dict(data.get("credentials") or {}),
            username=data.get("username", ""),
            public_key=data.get("public_key", ""),
            private_key=data.get("private_key", ""),
            passphrase=data.get("passphrase", ""),
            known_hosts=data.get("known_hosts", ""),
            remote_path=data.get("remote_path", ""),
            local_path=data.get("local_path", ""),
        )

    def encode(self) -> bytes:
        """Encode as the second bootstrap frame payload."""
        return json.dumps(self.to_dict(), separators=(",", ":"), sort_keys=True).encode("utf-8")

    @classmethod
    def decode(cls, payload: bytes) -> "ConnectionParameters":
        """Decode the second bootstrap frame payload.

        Raises:
            ProtocolError: If the payload is not a valid parameters blob
        """
        try:
            data = json.loads(payload.decode("utf-8"))
        except ValueError as e:
            raise ProtocolError(f"Malformed connection parameters: {e}") from e
        if not isinstance(data, dict):
            raise ProtocolError("Malformed connection parameters: expected an object")
        return cls.from_dict(data)

    def __repr__(self) -> str:
        # Keep the passphrase out of logs
        return (
            f"ConnectionParameters(username={self.username!r}, private_key={self.private_key!r}, "
            f"remote_path={self.remote_path!r}, local_path={self.local_path!r})"
        )
