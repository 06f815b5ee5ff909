"""Base abstractions for auth strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import MutableMapping


class AuthStrategy(ABC):
    """Interface each authentication mechanism must implement."""

    @abstractmethod
    def apply(self, headers: MutableMapping[str, str]) -> None:
        """Mutate headers in-place with the necessary credentials."""

    @property
    @abstractmethod
    def has_credentials(self) -> bool:
        """Whether ``apply`` currently has anything to add."""
