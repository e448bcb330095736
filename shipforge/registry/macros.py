from __future__ import annotations

import logging
import threading
from typing import Iterable

from shipforge.errors import ConfigError, UnknownHostError, UnknownMacroError, UnknownTaskError
from shipforge.hosts import HostResolver

from .tasks import TaskRegistry
from .types import Macro, Task

logger = logging.getLogger(__name__)


class MacroComposer:
    """
    Named, ordered lists of task ids.

    Ids are looked up in the task registry when a macro is expanded, not
    when it is defined, so tasks may be (re)defined after their macro.
    Macros are flat: an entry always names a task, never another macro.
    """

    def __init__(self, tasks: TaskRegistry, hosts: HostResolver | None = None) -> None:
        self.tasks = tasks
        self.hosts = hosts
        self._macros: dict[str, Macro] = {}
        self._lock = threading.Lock()

    def define_macro(self, id: str, task_ids: Iterable[str]) -> Macro:
        macro_id = id.strip()
        if len(macro_id) < 1:
            raise ConfigError("A macro id can't be empty")

        ordered = tuple(tid.strip() for tid in task_ids)
        if len(ordered) < 1:
            raise ConfigError(f"{macro_id}: a macro needs at least one task")
        if any(len(tid) < 1 for tid in ordered):
            raise ConfigError(f"{macro_id}: a task id is empty")

        macro = Macro(macro_id, ordered)
        with self._lock:
            if macro_id in self._macros:
                logger.debug("Replacing macro %s", macro_id)
            self._macros = {**self._macros, macro_id: macro}
        return macro

    def get(self, id: str) -> Macro:
        macro = self._macros.get(id)
        if macro is None:
            raise UnknownMacroError(id)
        return macro

    def has(self, id: str) -> bool:
        return id in self._macros

    def ids(self) -> list[str]:
        return sorted(self._macros)

    def expand(self, id: str) -> list[Task]:
        """
        Resolve a macro into its task sequence, in definition order.

        Every task id and every task target is checked before returning, so a
        configuration mistake surfaces before anything runs.
        """
        macro = self.get(id)

        sequence: list[Task] = []
        for tid in macro.task_ids:
            if not self.tasks.has(tid):
                raise UnknownTaskError(tid, macro_id=macro.id)
            sequence.append(self.tasks.get(tid))

        self._check_targets(sequence)
        return sequence

    def expand_task(self, id: str) -> list[Task]:
        """Single-task sequence, for running a task directly."""
        sequence = [self.tasks.get(id)]
        self._check_targets(sequence)
        return sequence

    def _check_targets(self, sequence: list[Task]) -> None:
        if self.hosts is None:
            return
        for task in sequence:
            if not self.hosts.has(task.target):
                raise UnknownHostError(task.target, task_id=task.id)
