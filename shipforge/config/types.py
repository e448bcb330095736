from dataclasses import dataclass, field

from shipforge.errors import ConfigError, UnsupportedConfigFormatError
from shipforge.hosts import Endpoint


@dataclass
class TaskConfig:
    id: str
    target: str
    script: str
    message: str | None = None
    continue_on_failure: bool = False


@dataclass
class ProjectConfig:
    tasks: dict[str, TaskConfig]
    macros: dict[str, list[str]] = field(default_factory=dict)
    hosts: dict[str, list[Endpoint]] = field(default_factory=dict)
    vars: dict[str, str] = field(default_factory=dict)


__all__ = [
    "TaskConfig",
    "ProjectConfig",
    "ConfigError",
    "UnsupportedConfigFormatError",
]
