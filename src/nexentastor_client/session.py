"""Login session management for one appliance endpoint."""

from __future__ import annotations

import logging
import threading

from .auth.bearer import BearerTokenAuth
from .config import Endpoint
from .exceptions import AuthenticationError, ProtocolError, classify_error
from .http import HttpResponse, RestClient, raise_if_unavailable

logger = logging.getLogger(__name__)

LOGIN_PATH = "auth/login"


def is_auth_failure(response: HttpResponse) -> bool:
    """Whether the appliance rejected the request's token."""

    if response.status_code == 401:
        return True
    if response.ok:
        return False
    error = classify_error(response.data, "auth check", status_code=response.status_code)
    return isinstance(error, AuthenticationError)


class LoginSession:
    """Own the token of one endpoint and serialize logins against it.

    Each successful login bumps ``generation``. A caller that saw its token
    rejected passes the generation it observed to ``refresh``; if another
    caller already logged in since then, the fresh token is reused instead of
    logging in again.
    """

    def __init__(self, rest: RestClient, endpoint: Endpoint, auth: BearerTokenAuth) -> None:
        self._rest = rest
        self._endpoint = endpoint
        self._auth = auth
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_token(self) -> bool:
        return self._auth.has_credentials

    def log_in(self, *, timeout: float | None = None) -> None:
        with self._lock:
            self._log_in(timeout)

    def ensure_token(self, *, timeout: float | None = None) -> int:
        """Log in if no token is held yet; return the current generation."""

        if self._auth.has_credentials:
            return self._generation
        with self._lock:
            if not self._auth.has_credentials:
                self._log_in(timeout)
            return self._generation

    def refresh(self, stale_generation: int, *, timeout: float | None = None) -> None:
        with self._lock:
            if self._generation != stale_generation and self._auth.has_credentials:
                logger.debug("login token was already renewed by a concurrent request")
                return
            self._log_in(timeout)

    def _log_in(self, timeout: float | None) -> None:
        response = self._rest.send(
            "POST",
            LOGIN_PATH,
            {"username": self._endpoint.username, "password": self._endpoint.password},
            timeout=timeout,
            authenticated=False,
        )
        payload = response.data
        if response.ok and isinstance(payload, dict) and payload.get("token"):
            self._auth.update_token(str(payload["token"]))
            self._generation += 1
            logger.debug("login token has been updated (address=%s)", self._endpoint.address)
            return

        error = classify_error(payload, "Login request", status_code=response.status_code)
        if isinstance(error, AuthenticationError):
            logger.error(
                "login to NexentaStor %s failed (username: '%s'), "
                "please make sure to use correct address and password",
                self._endpoint.address,
                self._endpoint.username,
            )
            raise AuthenticationError(
                f"Login to NexentaStor {self._endpoint.address} failed "
                f"(username: '{self._endpoint.username}'): {error}",
                code=error.code,
                name=error.name,
                source=error.source,
                status_code=error.status_code,
                details=error.details,
            )
        if error is not None:
            raise error
        raise_if_unavailable(response, f"Login request to {self._endpoint.address}")
        raise ProtocolError(
            f"Login request to {self._endpoint.address}: no token found in response: {payload!r}",
            status_code=response.status_code,
            details=payload,
        )
