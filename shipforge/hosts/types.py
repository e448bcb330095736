from __future__ import annotations

from dataclasses import dataclass, field

LOCAL = "local"


@dataclass(frozen=True)
class Endpoint:
    host: str
    user: str | None = None
    port: int | None = None
    key_filename: str | None = None
    forward_agent: bool = False

    @property
    def is_local(self) -> bool:
        return self.host == LOCAL

    @property
    def label(self) -> str:
        if self.is_local:
            return LOCAL
        label = self.host if self.user is None else f"{self.user}@{self.host}"
        return label if self.port is None else f"{label}:{self.port}"

    @classmethod
    def parse(cls, spec: str) -> Endpoint:
        """Parse `user@host:port`; user and port are optional."""
        user = None
        port = None
        rest = spec.strip()

        if "@" in rest:
            user, rest = rest.rsplit("@", 1)
            if not user:
                raise ValueError(f"empty user in endpoint '{spec}'")

        if rest.count(":") == 1:
            rest, raw_port = rest.split(":")
            if not raw_port.isdigit():
                raise ValueError(f"invalid port in endpoint '{spec}'")
            port = int(raw_port)

        if not rest:
            raise ValueError(f"empty host in endpoint '{spec}'")

        return cls(host=rest, user=user, port=port)


LOCAL_ENDPOINT = Endpoint(host=LOCAL)


@dataclass(frozen=True)
class HostGroup:
    name: str
    endpoints: tuple[Endpoint, ...] = field(default_factory=tuple)

    @property
    def is_local(self) -> bool:
        return self.name == LOCAL

    def __iter__(self):
        return iter(self.endpoints)

    def __len__(self):
        return len(self.endpoints)
