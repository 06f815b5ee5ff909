"""Authentication strategies for NexentaStor."""
from .base import AuthStrategy
from .bearer import BearerTokenAuth

__all__ = ["AuthStrategy", "BearerTokenAuth"]
