"""Storage pool helpers."""

from __future__ import annotations

from ..http import build_uri
from ..models import POOL_FIELDS, Pool, data_list
from .base import ResourceBase


class PoolsResource(ResourceBase):
    """Work with NexentaStor storage pools."""

    def list(self, *, timeout: float | None = None) -> list[Pool]:
        """Return every pool with its health and status.

        Name, health and status come from one request so the failover health
        check and ``names`` share it.
        """

        uri = build_uri("/storage/pools", {"fields": ",".join(POOL_FIELDS)})
        context = "/storage/pools response"
        payload = self._get(uri, timeout=timeout)
        return [Pool.from_payload(entry, context) for entry in data_list(payload, context)]

    def names(self, *, timeout: float | None = None) -> list[str]:
        return [pool.name for pool in self.list(timeout=timeout)]
