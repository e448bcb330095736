from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from shipforge.executor import TaskResult


class FailureKind(str, Enum):
    EXECUTION = "execution"
    CONNECTION = "connection"
    BINDING = "binding"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Failure:
    task_id: str
    kind: FailureKind
    message: str
    exit_status: int | None = None
    endpoint: str | None = None


@dataclass(frozen=True)
class RunReport:
    name: str
    order: list[str]
    results: list[TaskResult] = field(default_factory=list)
    failure: Failure | None = None
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        # Tolerated failures (continue_on_failure) still make the run unsuccessful.
        return self.failure is None and all(r.ok for r in self.results)

    @property
    def failed(self) -> list[str]:
        out: list[str] = []
        for r in self.results:
            if not r.ok and r.task_id not in out:
                out.append(r.task_id)
        return out
