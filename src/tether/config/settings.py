"""tether settings file management.

Settings live in a YAML file with three sections: ``ssh`` (identity and
executable paths), ``directory`` (where the host list comes from) and
``logging``.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .params import ConnectionParameters

logger = logging.getLogger(__name__)


@dataclass
class SSHSettings:
    """SSH identity and deployment paths. Unset fields fall back to defaults."""

    username: Optional[str] = None
    public_key: Optional[str] = None
    private_key: Optional[str] = None
    passphrase: Optional[str] = None
    known_hosts: Optional[str] = None
    remote_path: Optional[str] = None
    local_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "username": self.username,
            "public_key": self.public_key,
            "private_key": self.private_key,
            "passphrase": self.passphrase,
            "known_hosts": self.known_hosts,
            "remote_path": self.remote_path,
            "local_path": self.local_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SSHSettings":
        """Create from dictionary."""
        return cls(
            username=data.get("username"),
            public_key=data.get("public_key"),
            private_key=data.get("private_key"),
            passphrase=data.get("passphrase"),
            known_hosts=data.get("known_hosts"),
            remote_path=data.get("remote_path"),
            local_path=data.get("local_path"),
        )


@dataclass
class DirectorySettings:
    """Where hosts are looked up."""

    hosts_file: Optional[str] = None
    group: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"hosts_file": self.hosts_file, "group": self.group}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectorySettings":
        """Create from dictionary."""
        return cls(hosts_file=data.get("hosts_file"), group=data.get("group"))


@dataclass
class LoggingSettings:
    """Logging configuration settings."""

    level: str = "INFO"
    file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"level": self.level, "file": self.file}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSettings":
        """Create from dictionary."""
        return cls(level=data.get("level", "INFO"), file=data.get("file"))


@dataclass
class TetherConfig:
    """Main tether configuration."""

    ssh: SSHSettings = field(default_factory=SSHSettings)
    directory: DirectorySettings = field(default_factory=DirectorySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "TetherConfig":
        """Load configuration from file.

        Args:
            config_path: Path to a tether.yaml file. If None, searches standard locations.

        Returns:
            TetherConfig instance; defaults when no file is found
        """
        if config_path is None:
            search_paths = [
                Path.cwd() / "tether.yaml",
                Path.cwd() / "config" / "tether.yaml",
                Path.home() / ".tether" / "config.yaml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = path
                    break

        if config_path is None:
            logger.debug("No tether.yaml found in standard locations")
            return cls()

        config_path = Path(config_path)
        with open(config_path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError(f"Invalid tether config in {config_path}: expected a mapping")

        logger.debug(f"Loaded tether config from {config_path}")
        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TetherConfig":
        """Create TetherConfig from dictionary."""
        return cls(
            ssh=SSHSettings.from_dict(data.get("ssh") or {}),
            directory=DirectorySettings.from_dict(data.get("directory") or {}),
            logging=LoggingSettings.from_dict(data.get("logging") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "ssh": self.ssh.to_dict(),
            "directory": self.directory.to_dict(),
            "logging": self.logging.to_dict(),
        }

    def save(self, output_path: Union[str, Path]) -> None:
        """Save config to a YAML file."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)

        logger.debug(f"Saved tether config to {output_path}")

    def connection_parameters(self) -> ConnectionParameters:
        """Build connection parameters, file settings over environment defaults."""
        credentials = {}
        if self.directory.hosts_file:
            credentials["hosts_file"] = str(Path(self.directory.hosts_file).expanduser())

        params = ConnectionParameters.default(credentials)
        overrides = {
            name: str(Path(value).expanduser()) if name.endswith(("_key", "_hosts")) else value
            for name, value in self.ssh.to_dict().items()
            if value is not None
        }
        if "local_path" in overrides and "remote_path" not in overrides:
            overrides["remote_path"] = Path(overrides["local_path"]).name
        return params.replace(**overrides)
