from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping

from shipforge.executor import ConnectionError, Executor, TaskResult
from shipforge.registry import Task
from shipforge.template import BindingError

from .project import Project
from .types import Failure, FailureKind, RunReport

logger = logging.getLogger(__name__)


class RunController:
    """
    Drives one macro through the executor, strictly in order, stopping at
    the first failure.
    """

    def __init__(
        self,
        project: Project,
        *,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        errexit: bool = True,
    ) -> None:
        self.project = project
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.errexit = errexit

    def new_executor(self) -> Executor:
        return Executor(
            self.project.hosts,
            timeout=self.timeout,
            connect_timeout=self.connect_timeout,
            errexit=self.errexit,
        )

    def run(
        self,
        name: str,
        bindings: Mapping[str, str],
        *,
        cancel: threading.Event | None = None,
        on_result: Callable[[TaskResult], None] | None = None,
    ) -> RunReport:
        # Configuration errors propagate from here, before anything runs.
        sequence = self.project.plan(name)
        order = [task.id for task in sequence]

        results: list[TaskResult] = []
        failure: Failure | None = None
        done = 0

        with self.new_executor() as executor:
            for task in sequence:
                if cancel is not None and cancel.is_set():
                    failure = Failure(task.id, FailureKind.CANCELLED, "run cancelled")
                    break

                logger.info("[%s] %s", task.id, task.message or f"running on {task.target}")
                try:
                    failure = self._run_one(executor, task, bindings, results, on_result)
                except KeyboardInterrupt:
                    failure = Failure(task.id, FailureKind.CANCELLED, "interrupted")
                done += 1
                if failure is not None:
                    logger.warning("Stopping %s: %s failed (%s)", name, task.id, failure.kind.value)
                    break

        return RunReport(name, order, results, failure, order[done:])

    def _run_one(
        self,
        executor: Executor,
        task: Task,
        bindings: Mapping[str, str],
        results: list[TaskResult],
        on_result: Callable[[TaskResult], None] | None,
    ) -> Failure | None:
        try:
            for result in executor.iter_task(task, bindings):
                results.append(result)
                if on_result is not None:
                    on_result(result)

                if result.ok:
                    continue

                if task.continue_on_failure:
                    logger.warning(
                        "%s exited %d on %s, continuing", task.id, result.returncode, result.endpoint
                    )
                    continue

                reason = "timed out" if result.timed_out else f"exited with status {result.returncode}"
                return Failure(
                    task.id,
                    FailureKind.EXECUTION,
                    reason,
                    exit_status=result.returncode,
                    endpoint=result.endpoint,
                )

        except BindingError as exc:
            return Failure(task.id, FailureKind.BINDING, str(exc))

        except ConnectionError as exc:
            return Failure(task.id, FailureKind.CONNECTION, exc.reason, endpoint=exc.endpoint)

        return None

    def pretend(self, name: str, bindings: Mapping[str, str]) -> list[tuple[Task, list[str], str]]:
        """
        Render every step without running anything.

        Returns (task, endpoint labels, script) per task. A missing variable
        raises BindingError.
        """
        sequence = self.project.plan(name)
        executor = self.new_executor()
        try:
            plan = []
            for task in sequence:
                group = self.project.hosts.resolve(task.target)
                plan.append((task, [e.label for e in group], executor.script_for(task, bindings)))
            return plan
        finally:
            executor.close()
