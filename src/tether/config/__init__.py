"""Configuration for tether."""

from .params import ConnectionParameters
from .settings import DirectorySettings, LoggingSettings, SSHSettings, TetherConfig

__all__ = [
    "ConnectionParameters",
    "TetherConfig",
    "SSHSettings",
    "DirectorySettings",
    "LoggingSettings",
]
