from .executor import Executor
from .sessions import LocalSession, SessionPool, SshSession
from .types import ConnectionError, ExecutorError, TaskResult

__all__ = [
    "Executor",
    "TaskResult",
    "ExecutorError",
    "ConnectionError",
    "SessionPool",
    "LocalSession",
    "SshSession",
]
