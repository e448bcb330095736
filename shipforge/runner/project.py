from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

from shipforge.config import ProjectConfig
from shipforge.hosts import HostResolver
from shipforge.registry import MacroComposer, Task, TaskRegistry
from shipforge.template import make_bindings


@dataclass
class Project:
    """Populated registries plus the default variables of one config file."""

    tasks: TaskRegistry
    macros: MacroComposer
    hosts: HostResolver
    vars: dict[str, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> Project:
        tasks = TaskRegistry()
        hosts = HostResolver()
        return cls(tasks, MacroComposer(tasks, hosts), hosts)

    @classmethod
    def from_config(cls, config: ProjectConfig) -> Project:
        project = cls.empty()
        project.vars = dict(config.vars)

        for name, endpoints in config.hosts.items():
            project.hosts.register(name, endpoints)

        for task in config.tasks.values():
            project.tasks.register(
                task.id,
                task.target,
                task.script,
                message=task.message,
                continue_on_failure=task.continue_on_failure,
            )

        for macro_id, task_ids in config.macros.items():
            project.macros.define_macro(macro_id, task_ids)

        return project

    def bindings(
        self, overrides: Mapping[str, str] | None = None, *, now: datetime | None = None
    ) -> Mapping[str, str]:
        return make_bindings(self.vars, overrides, now=now)

    def plan(self, name: str) -> list[Task]:
        """Expand a macro, or a single task when no macro has that name."""
        if self.macros.has(name) or not self.tasks.has(name):
            return self.macros.expand(name)
        return self.macros.expand_task(name)
