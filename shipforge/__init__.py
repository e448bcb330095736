"""shipforge: run templated shell tasks on local and remote hosts."""

__version__ = "0.1.0"
