"""NexentaStor storage provider: the operation set used by volume lifecycle requests."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

import requests

from .auth.bearer import BearerTokenAuth
from .config import ClientConfig, Endpoint
from .exceptions import AuthenticationError, ProtocolError, classify_error
from .http import HttpResponse, RestClient, raise_if_unavailable
from .models import ACLRuleSet, Filesystem, Pool
from .resources import FilesystemsResource, JobsResource, NfsSharesResource, PoolsResource
from .session import LoginSession, is_auth_failure

logger = logging.getLogger(__name__)


class NexentaStorProvider:
    """Wrap one NexentaStor management endpoint.

    The provider logs in lazily on the first request and logs in again once
    when the appliance rejects its token. It may be shared between threads.
    """

    def __init__(
        self,
        *,
        address: str,
        username: str,
        password: str,
        verify_ssl: bool | str = True,
        timeout: float = 30.0,
        default_headers: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = Endpoint(address.rstrip("/"), username, password)
        self.config = ClientConfig(
            base_url=self.endpoint.address,
            verify_ssl=verify_ssl,
            timeout=timeout,
            default_headers=default_headers,
        )
        self._auth = BearerTokenAuth()
        self.rest = RestClient(self.config, self._auth, session=session)
        self._login = LoginSession(self.rest, self.endpoint, self._auth)
        self.pools = PoolsResource(self)
        self.filesystems = FilesystemsResource(self)
        self.nfs = NfsSharesResource(self)
        self.jobs = JobsResource(self)

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint, **kwargs: Any) -> NexentaStorProvider:
        return cls(
            address=endpoint.address,
            username=endpoint.username,
            password=endpoint.password,
            **kwargs,
        )

    @property
    def address(self) -> str:
        return self.endpoint.address

    def __repr__(self) -> str:
        return f"NexentaStorProvider(address={self.address!r}, username={self.endpoint.username!r})"

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> NexentaStorProvider:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - passthrough
        self.close()

    # Storage operations ------------------------------------------------------
    def log_in(self, *, timeout: float | None = None) -> None:
        self._login.log_in(timeout=timeout)

    def get_pools(self, *, timeout: float | None = None) -> list[str]:
        return self.pools.names(timeout=timeout)

    def get_pool_statuses(self, *, timeout: float | None = None) -> list[Pool]:
        return self.pools.list(timeout=timeout)

    def get_filesystem(self, path: str, *, timeout: float | None = None) -> Filesystem | None:
        return self.filesystems.get(path, timeout=timeout)

    def get_filesystems(self, parent: str, *, timeout: float | None = None) -> list[Filesystem]:
        return self.filesystems.list(parent, timeout=timeout)

    def create_filesystem(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str | None:
        return self.filesystems.create(path, params, timeout=timeout)

    def destroy_filesystem(self, path: str, *, timeout: float | None = None) -> str | None:
        return self.filesystems.destroy(path, timeout=timeout)

    def create_nfs_share(self, path: str, *, timeout: float | None = None) -> str | None:
        return self.nfs.create(path, timeout=timeout)

    def delete_nfs_share(self, path: str, *, timeout: float | None = None) -> str | None:
        return self.nfs.delete(path, timeout=timeout)

    def set_filesystem_acl(
        self,
        path: str,
        rule_set: ACLRuleSet,
        *,
        timeout: float | None = None,
    ) -> str | None:
        return self.filesystems.set_acl(path, rule_set, timeout=timeout)

    def is_job_done(self, job_id: str, *, timeout: float | None = None) -> bool:
        return self.jobs.is_done(job_id, timeout=timeout)

    def wait_for_job(
        self,
        job_id: str,
        *,
        interval: float = 1.0,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.jobs.wait(job_id, interval=interval, timeout=timeout, cancel_event=cancel_event)

    # Public API --------------------------------------------------------------
    def request(
        self,
        method: str,
        path: str,
        *,
        json_payload: Mapping[str, Any] | None = None,
        timeout: float | None = None,
        check_status: bool = True,
    ) -> HttpResponse:
        """Send an authenticated request, logging in again once if the token is rejected."""

        generation = self._login.ensure_token(timeout=timeout)
        response = self.rest.send(method, path, json_payload, timeout=timeout)
        if is_auth_failure(response):
            logger.info(
                "NexentaStor %s rejected the token for %s %s, logging in again",
                self.address,
                method.upper(),
                path,
            )
            self._login.refresh(generation, timeout=timeout)
            response = self.rest.send(method, path, json_payload, timeout=timeout)
            if is_auth_failure(response):
                raise self._auth_error(response, method, path)
        if check_status:
            self._raise_for_status(response, method, path)
        return response

    def close(self) -> None:
        self.rest.close()

    # Internal helpers -------------------------------------------------------
    def _auth_error(self, response: HttpResponse, method: str, path: str) -> AuthenticationError:
        context = f"{method.upper()} {path} on {self.address}"
        error = classify_error(response.data, context, status_code=response.status_code)
        if isinstance(error, AuthenticationError):
            return error
        return AuthenticationError(
            f"{context}: authentication failed after logging in again "
            f"(username: '{self.endpoint.username}')",
            status_code=response.status_code,
            details=response.data,
        )

    def _raise_for_status(self, response: HttpResponse, method: str, path: str) -> None:
        if response.ok:
            return
        context = f"{method.upper()} {path} on {self.address}"
        error = classify_error(response.data, context, status_code=response.status_code)
        if error is not None:
            raise error
        raise_if_unavailable(response, context)
        raise ProtocolError(
            f"{context}: unexpected status {response.status_code}: {response.data!r}",
            status_code=response.status_code,
            details=response.data,
        )
