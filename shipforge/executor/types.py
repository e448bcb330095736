from dataclasses import dataclass

TIMEOUT_EXIT_STATUS = 124


@dataclass(frozen=True)
class TaskResult:
    task_id: str
    endpoint: str
    script: str
    returncode: int
    stdout: str
    stderr: str
    duration_s: float
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ExecutorError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


# Shadows the builtin inside this package, like requests.ConnectionError.
class ConnectionError(ExecutorError):
    def __init__(self, endpoint: str, reason: str, *, task_id: str | None = None):
        prefix = f"{task_id}: " if task_id else ""
        super().__init__(f"{prefix}cannot run on {endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason
        self.task_id = task_id
