from .controller import RunController
from .project import Project
from .types import Failure, FailureKind, RunReport

__all__ = ["RunController", "Project", "RunReport", "Failure", "FailureKind"]
