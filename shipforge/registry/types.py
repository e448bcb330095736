from dataclasses import dataclass


@dataclass(frozen=True)
class Task:
    id: str
    target: str
    body: str
    message: str | None = None
    continue_on_failure: bool = False


@dataclass(frozen=True)
class Macro:
    id: str
    task_ids: tuple[str, ...]
