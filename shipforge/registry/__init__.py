from .macros import MacroComposer
from .tasks import TaskRegistry
from .types import Macro, Task

__all__ = ["TaskRegistry", "MacroComposer", "Task", "Macro"]
