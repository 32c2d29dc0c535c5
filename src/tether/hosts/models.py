"""Hosts, their named endpoints and host groups."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import AmbiguousSshEndpoint, NoSshEndpoint

SSH_ENDPOINT_NAME = "SSH"


@dataclass(frozen=True)
class Endpoint:
    """A named public endpoint of a host."""

    name: str
    port: int
    vip: str  # Public (virtual) IP the endpoint is reachable on

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "port": self.port, "vip": self.vip}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Endpoint":
        return cls(name=str(data["name"]), port=int(data["port"]), vip=str(data["vip"]))


@dataclass(frozen=True)
class Host:
    """A machine in a host group.

    ``address`` is the internal address other workers use to reach it; the
    controller reaches it through its SSH endpoint.
    """

    name: str
    address: str
    endpoints: Tuple[Endpoint, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Store endpoints as a tuple so hosts stay immutable."""
        if not isinstance(self.endpoints, tuple):
            object.__setattr__(self, "endpoints", tuple(self.endpoints))

    def named_endpoints(self, name: str) -> List[Endpoint]:
        return [ep for ep in self.endpoints if ep.name == name]

    def endpoint(self, name: str) -> Optional[Tuple[str, int]]:
        """Return (vip, port) of the endpoint called ``name``.

        Returns None unless exactly one endpoint carries that name.
        """
        matches = self.named_endpoints(name)
        if len(matches) != 1:
            return None
        return matches[0].vip, matches[0].port

    def ssh_endpoint(self) -> Tuple[str, int]:
        """Resolve the (address, port) pair used for SSH.

        Raises:
            NoSshEndpoint: If the host has no SSH endpoint
            AmbiguousSshEndpoint: If the host has more than one
        """
        matches = self.named_endpoints(SSH_ENDPOINT_NAME)
        if not matches:
            raise NoSshEndpoint(self.name)
        if len(matches) > 1:
            raise AmbiguousSshEndpoint(self.name, len(matches))
        return matches[0].vip, matches[0].port

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "endpoints": [ep.to_dict() for ep in self.endpoints],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Host":
        return cls(
            name=str(data["name"]),
            address=str(data["address"]),
            endpoints=tuple(Endpoint.from_dict(ep) for ep in data.get("endpoints") or []),
        )


@dataclass(frozen=True)
class HostGroup:
    """Hosts that reach each other over their own network."""

    name: str
    hosts: Tuple[Host, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.hosts, tuple):
            object.__setattr__(self, "hosts", tuple(self.hosts))

    def host(self, name: str) -> Optional[Host]:
        for host in self.hosts:
            if host.name == name:
                return host
        return None
