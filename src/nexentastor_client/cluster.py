"""Failover across redundant NexentaStor management endpoints."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from .exceptions import (
    ClusterUnavailableError,
    ConfigurationError,
    EndpointUnhealthyError,
    NexentaStorError,
    TransportError,
)
from .models import ACLRuleSet, Filesystem, Pool
from .provider import NexentaStorProvider
from .resources.jobs import poll_job

logger = logging.getLogger(__name__)

HealthCheck = Callable[[Sequence[Pool]], bool]

# Errors that say something about the endpoint rather than about the request.
ENDPOINT_FAILURES: tuple[type[Exception], ...] = (TransportError, EndpointUnhealthyError)


def default_health_check(pools: Sequence[Pool]) -> bool:
    """Healthy when at least one pool reports ONLINE health."""

    return any((pool.health or "").upper() == "ONLINE" for pool in pools)


class NexentaStorCluster:
    """Present the provider operations over an ordered list of endpoints.

    Calls go to the active endpoint first, then to the others in order,
    wrapping around. A standby is health-checked before it is used. Only
    endpoint failures move on to the next endpoint; appliance answers such as
    a missing filesystem or a validation error are raised as they are.
    """

    def __init__(
        self,
        providers: Sequence[NexentaStorProvider],
        *,
        health_check: HealthCheck = default_health_check,
    ) -> None:
        if not providers:
            raise ConfigurationError("A NexentaStor cluster needs at least one endpoint")
        self._providers = list(providers)
        self._health_check = health_check
        self._lock = threading.Lock()
        self._active = 0
        self._unhealthy: dict[str, Exception] = {}

    def __repr__(self) -> str:
        addresses = ", ".join(provider.address for provider in self._providers)
        return f"NexentaStorCluster([{addresses}], active={self.active.address!r})"

    def __enter__(self) -> NexentaStorCluster:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - passthrough
        self.close()

    @property
    def providers(self) -> list[NexentaStorProvider]:
        return list(self._providers)

    @property
    def active(self) -> NexentaStorProvider:
        with self._lock:
            return self._providers[self._active]

    @property
    def unhealthy_endpoints(self) -> dict[str, Exception]:
        """Endpoints whose last use failed, with that failure."""

        with self._lock:
            return dict(self._unhealthy)

    def is_healthy(self, address: str) -> bool:
        with self._lock:
            return address.rstrip("/") not in self._unhealthy

    # Storage operations ------------------------------------------------------
    def log_in(self, *, timeout: float | None = None) -> None:
        self._dispatch("log_in", timeout=timeout)

    def get_pools(self, *, timeout: float | None = None) -> list[str]:
        return self._dispatch("get_pools", timeout=timeout)

    def get_pool_statuses(self, *, timeout: float | None = None) -> list[Pool]:
        return self._dispatch("get_pool_statuses", timeout=timeout)

    def get_filesystem(self, path: str, *, timeout: float | None = None) -> Filesystem | None:
        return self._dispatch("get_filesystem", path, timeout=timeout)

    def get_filesystems(self, parent: str, *, timeout: float | None = None) -> list[Filesystem]:
        return self._dispatch("get_filesystems", parent, timeout=timeout)

    def create_filesystem(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str | None:
        return self._dispatch("create_filesystem", path, params, timeout=timeout)

    def destroy_filesystem(self, path: str, *, timeout: float | None = None) -> str | None:
        return self._dispatch("destroy_filesystem", path, timeout=timeout)

    def create_nfs_share(self, path: str, *, timeout: float | None = None) -> str | None:
        return self._dispatch("create_nfs_share", path, timeout=timeout)

    def delete_nfs_share(self, path: str, *, timeout: float | None = None) -> str | None:
        return self._dispatch("delete_nfs_share", path, timeout=timeout)

    def set_filesystem_acl(
        self,
        path: str,
        rule_set: ACLRuleSet,
        *,
        timeout: float | None = None,
    ) -> str | None:
        return self._dispatch("set_filesystem_acl", path, rule_set, timeout=timeout)

    def is_job_done(self, job_id: str, *, timeout: float | None = None) -> bool:
        return self._dispatch("is_job_done", job_id, timeout=timeout)

    def wait_for_job(
        self,
        job_id: str,
        *,
        interval: float = 1.0,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Poll ``is_job_done`` with one deadline for the whole wait.

        Each check fails over on its own, so an endpoint going away mid-wait
        does not restart the wait. Job ids are local to the endpoint that
        accepted the job: after a failover the new endpoint usually answers
        ``ENOENT``, which surfaces as `JobFailedError`.
        """

        poll_job(
            self.is_job_done,
            job_id,
            interval=interval,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def close(self) -> None:
        for provider in self._providers:
            provider.close()

    # Internal helpers -------------------------------------------------------
    def _dispatch(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            start = self._active
        count = len(self._providers)
        failures: dict[str, Exception] = {}
        for offset in range(count):
            index = (start + offset) % count
            provider = self._providers[index]
            try:
                if offset:
                    self._check_health(provider, kwargs.get("timeout"))
                result = getattr(provider, operation)(*args, **kwargs)
            except ENDPOINT_FAILURES as exc:
                failures[provider.address] = exc
                self._mark_unhealthy(provider, exc)
                logger.warning(
                    "NexentaStor %s failed %s: %s; trying the next endpoint",
                    provider.address,
                    operation,
                    exc,
                )
                continue
            self._mark_active(index)
            return result

        summary = "; ".join(f"{address}: {exc}" for address, exc in failures.items())
        raise ClusterUnavailableError(
            f"{operation}: all {count} NexentaStor endpoints failed: {summary}",
            failures=failures,
        )

    def _check_health(self, provider: NexentaStorProvider, timeout: float | None) -> None:
        try:
            pools = provider.get_pool_statuses(timeout=timeout)
        except NexentaStorError as exc:
            raise EndpointUnhealthyError(
                f"{provider.address} failed its health check: {exc}", details=exc
            ) from exc
        if not self._health_check(pools):
            states = ", ".join(f"{pool.name}={pool.health}/{pool.status}" for pool in pools)
            raise EndpointUnhealthyError(
                f"{provider.address} reports unhealthy pools: {states or 'no pools'}",
                details=[pool.as_dict() for pool in pools],
            )

    def _mark_unhealthy(self, provider: NexentaStorProvider, exc: Exception) -> None:
        with self._lock:
            self._unhealthy[provider.address] = exc

    def _mark_active(self, index: int) -> None:
        with self._lock:
            previous = self._active
            self._active = index
            self._unhealthy.pop(self._providers[index].address, None)
        if previous != index:
            logger.warning(
                "NexentaStor cluster switched active endpoint from %s to %s",
                self._providers[previous].address,
                self._providers[index].address,
            )
