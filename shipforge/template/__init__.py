from .renderer import make_bindings, placeholders, render
from .types import BindingError

__all__ = ["render", "placeholders", "make_bindings", "BindingError"]
