from __future__ import annotations

import logging
import time
from typing import Iterator, Mapping

from shipforge.hosts import HostResolver
from shipforge.registry import Task
from shipforge.template import render

from .sessions import SessionPool
from .types import ConnectionError, TaskResult

logger = logging.getLogger(__name__)

ERREXIT_PREAMBLE = "set -e\n"


class Executor:
    """
    Runs rendered task scripts on the endpoints of their target group.

    An executor owns the sessions it opens and is meant to live for exactly
    one run: use it as a context manager, or call `close`.
    """

    def __init__(
        self,
        hosts: HostResolver,
        *,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        errexit: bool = True,
    ) -> None:
        self.hosts = hosts
        self.timeout = timeout
        self.errexit = errexit
        self.pool = SessionPool(connect_timeout=connect_timeout)

    def __enter__(self) -> Executor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.pool.close()

    def script_for(self, task: Task, bindings: Mapping[str, str]) -> str:
        rendered = render(task.body, bindings, task_id=task.id)
        return ERREXIT_PREAMBLE + rendered if self.errexit else rendered

    def iter_task(self, task: Task, bindings: Mapping[str, str]) -> Iterator[TaskResult]:
        """
        Yield one result per endpoint, in endpoint registration order.

        Stops after the first endpoint that exits non-zero unless the task
        may continue on failure. Raises BindingError before touching any
        endpoint, and ConnectionError when an endpoint can't be reached.
        """
        script = self.script_for(task, bindings)
        group = self.hosts.resolve(task.target)

        for endpoint in group:
            logger.info("Running %s on %s", task.id, endpoint.label)
            logger.debug("Script for %s:\n%s", task.id, script)

            session = self.pool.get(endpoint)
            start = time.monotonic()
            try:
                completed = session.run(script, timeout=self.timeout)
            except ConnectionError as exc:
                raise ConnectionError(exc.endpoint, exc.reason, task_id=task.id) from exc
            duration = time.monotonic() - start

            result = TaskResult(
                task.id,
                endpoint.label,
                script,
                completed.returncode,
                completed.stdout,
                completed.stderr,
                duration,
                completed.timed_out,
            )
            yield result

            if not result.ok and not task.continue_on_failure:
                return

    def run_task(self, task: Task, bindings: Mapping[str, str]) -> list[TaskResult]:
        return list(self.iter_task(task, bindings))
