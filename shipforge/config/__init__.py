from .loader import load_project
from .types import ConfigError, ProjectConfig, TaskConfig, UnsupportedConfigFormatError

__all__ = [
    "load_project",
    "ProjectConfig",
    "TaskConfig",
    "ConfigError",
    "UnsupportedConfigFormatError",
]
