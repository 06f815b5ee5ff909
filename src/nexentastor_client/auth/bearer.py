"""Bearer token authentication backed by the appliance login endpoint."""

from __future__ import annotations

import threading
from collections.abc import MutableMapping

from .base import AuthStrategy


class BearerTokenAuth(AuthStrategy):
    """Apply the token issued by ``auth/login``.

    The token is shared by every request issued through one provider, so reads
    and replacements go through a lock.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token or ""
        self._lock = threading.Lock()

    @property
    def token(self) -> str:
        with self._lock:
            return self._token

    @property
    def has_credentials(self) -> bool:
        return bool(self.token)

    def apply(self, headers: MutableMapping[str, str]) -> None:
        token = self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

    def update_token(self, token: str) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        self.update_token("")
