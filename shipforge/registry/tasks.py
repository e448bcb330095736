from __future__ import annotations

import logging
import threading

from shipforge.errors import ConfigError, UnknownTaskError

from .types import Task

logger = logging.getLogger(__name__)


class TaskRegistry:
    """
    Named tasks, each bound to a target host group.

    Re-registering an id replaces the previous task (last write wins), so a
    task can be reconfigured between runs.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._lock = threading.Lock()

    def register(
        self,
        id: str,
        target: str,
        body: str,
        *,
        message: str | None = None,
        continue_on_failure: bool = False,
    ) -> Task:
        task_id = id.strip()
        if len(task_id) < 1:
            raise ConfigError("A task id can't be empty")
        if len(target.strip()) < 1:
            raise ConfigError(f"{task_id}: target can't be empty")

        task = Task(task_id, target.strip(), body, message, continue_on_failure)
        with self._lock:
            if task_id in self._tasks:
                logger.debug("Replacing task %s", task_id)
            self._tasks = {**self._tasks, task_id: task}
        return task

    def get(self, id: str) -> Task:
        task = self._tasks.get(id)
        if task is None:
            raise UnknownTaskError(id)
        return task

    def has(self, id: str) -> bool:
        return id in self._tasks

    def ids(self) -> list[str]:
        return sorted(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)
