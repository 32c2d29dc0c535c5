"""Host model and host directory."""

from .directory import HostDirectory, StaticHostDirectory, directory_from_credentials
from .models import SSH_ENDPOINT_NAME, Endpoint, Host, HostGroup

__all__ = [
    "Endpoint",
    "Host",
    "HostGroup",
    "SSH_ENDPOINT_NAME",
    "HostDirectory",
    "StaticHostDirectory",
    "directory_from_credentials",
]
