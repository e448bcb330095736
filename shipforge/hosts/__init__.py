from .resolver import HostResolver
from .types import LOCAL, LOCAL_ENDPOINT, Endpoint, HostGroup

__all__ = ["HostResolver", "Endpoint", "HostGroup", "LOCAL", "LOCAL_ENDPOINT"]
