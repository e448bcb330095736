from __future__ import annotations

import logging
import threading
from typing import Iterable

from shipforge.errors import ConfigError, UnknownHostError

from .types import LOCAL, LOCAL_ENDPOINT, Endpoint, HostGroup

logger = logging.getLogger(__name__)


class HostResolver:
    """
    Maps target names to host groups.

    `local` is always present and cannot be redefined. Registering any other
    name twice replaces the earlier group.
    """

    def __init__(self) -> None:
        self._groups: dict[str, HostGroup] = {
            LOCAL: HostGroup(LOCAL, (LOCAL_ENDPOINT,)),
        }
        self._lock = threading.Lock()

    def register(self, name: str, endpoints: Iterable[Endpoint | str]) -> HostGroup:
        name = name.strip()
        if len(name) < 1:
            raise ConfigError("A host group name can't be empty")
        if name == LOCAL:
            raise ConfigError(f"'{LOCAL}' is a reserved host group")

        built: list[Endpoint] = []
        for item in endpoints:
            endpoint = Endpoint.parse(item) if isinstance(item, str) else item
            if endpoint.is_local:
                raise ConfigError(f"{name}: '{LOCAL}' can't be used as a remote host")
            # Registration order is execution order; duplicates run once.
            if endpoint not in built:
                built.append(endpoint)

        if len(built) < 1:
            raise ConfigError(f"{name}: a host group needs at least one endpoint")

        group = HostGroup(name, tuple(built))
        with self._lock:
            if name in self._groups:
                logger.debug("Replacing host group %s", name)
            self._groups = {**self._groups, name: group}
        return group

    def resolve(self, name: str) -> HostGroup:
        group = self._groups.get(name)
        if group is None:
            raise UnknownHostError(name)
        return group

    def has(self, name: str) -> bool:
        return name in self._groups

    def names(self) -> list[str]:
        return sorted(self._groups)
