"""Host directory: which hosts belong to a named group.

The directory is an external collaborator. ``HostDirectory`` is the
interface the backend consumes; ``StaticHostDirectory`` serves a fixed set
of groups, typically read from a YAML hosts file:

    groups:
      demo:
        - name: node1
          address: 10.0.0.4
          endpoints:
            - {name: SSH, port: 50136, vip: 168.63.31.38}
"""

from abc import ABC, abstractmethod
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import yaml

from .models import Host, HostGroup

logger = logging.getLogger(__name__)


class HostDirectory(ABC):
    """Lookup of host groups."""

    @abstractmethod
    async def list_groups(self) -> List[HostGroup]:
        """Return every group visible with the configured credentials."""
        pass

    async def list_hosts(self, group_name: str) -> List[Host]:
        """Return the hosts of ``group_name``.

        An empty list is returned unless exactly one group has that name.
        """
        groups = [g for g in await self.list_groups() if g.name == group_name]
        if len(groups) != 1:
            logger.debug(f"Group {group_name!r} matched {len(groups)} groups")
            return []
        return list(groups[0].hosts)


class StaticHostDirectory(HostDirectory):
    """Directory over a fixed collection of groups."""

    def __init__(self, groups: Iterable[HostGroup] = ()):
        self._groups = list(groups)

    async def list_groups(self) -> List[HostGroup]:
        return list(self._groups)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaticHostDirectory":
        """Create from the ``groups`` mapping of a hosts file."""
        groups = []
        for name, hosts in (data.get("groups") or {}).items():
            groups.append(HostGroup(name=name, hosts=tuple(Host.from_dict(h) for h in hosts or [])))
        return cls(groups)

    @classmethod
    def from_file(cls, hosts_file: Union[str, Path]) -> "StaticHostDirectory":
        """Load groups from a YAML hosts file."""
        hosts_file = Path(hosts_file).expanduser()
        with open(hosts_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid hosts file {hosts_file}: expected a mapping")
        directory = cls.from_dict(data)
        logger.debug(f"Loaded {len(directory._groups)} host groups from {hosts_file}")
        return directory


def directory_from_credentials(credentials: Optional[Dict[str, Any]]) -> HostDirectory:
    """Build a directory from the opaque credentials carried in the parameters.

    ``hosts_file`` points at a YAML hosts file, ``groups`` holds the groups
    inline. Without either the directory is empty.
    """
    credentials = credentials or {}
    if credentials.get("hosts_file"):
        return StaticHostDirectory.from_file(credentials["hosts_file"])
    if credentials.get("groups"):
        return StaticHostDirectory.from_dict(credentials)
    return StaticHostDirectory()
