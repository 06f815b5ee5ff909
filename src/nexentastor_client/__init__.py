"""High-level NexentaStor client entrypoints."""
from .cluster import NexentaStorCluster
from .config import ClientConfig, DriverConfig, Endpoint
from .exceptions import NexentaStorError
from .models import ACLRuleSet, Filesystem, Pool
from .provider import NexentaStorProvider

__version__ = "0.1.0"

__all__ = [
    "ACLRuleSet",
    "ClientConfig",
    "DriverConfig",
    "Endpoint",
    "Filesystem",
    "NexentaStorCluster",
    "NexentaStorError",
    "NexentaStorProvider",
    "Pool",
]
