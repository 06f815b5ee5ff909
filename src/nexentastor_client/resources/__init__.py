"""Resource-specific convenience wrappers."""
from .filesystems import FilesystemsResource
from .jobs import JobsResource
from .nfs import NfsSharesResource
from .pools import PoolsResource

__all__ = [
    "PoolsResource",
    "FilesystemsResource",
    "NfsSharesResource",
    "JobsResource",
]
