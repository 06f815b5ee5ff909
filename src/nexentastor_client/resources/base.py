"""Common helpers for resource wrappers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ..exceptions import ValidationError
from ..http import HttpResponse
from ..models import monitor_job_id

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from ..provider import NexentaStorProvider


class ResourceBase:
    """Provide shared helpers for resource modules."""

    def __init__(self, client: NexentaStorProvider) -> None:
        self._client = client

    def _get(self, path: str, *, timeout: float | None = None) -> Any:
        return self._client.request("GET", path, timeout=timeout).data

    def _post(
        self,
        path: str,
        payload: Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> str | None:
        response = self._client.request("POST", path, json_payload=payload, timeout=timeout)
        return self._accepted_job(response)

    def _delete(self, path: str, *, timeout: float | None = None) -> str | None:
        response = self._client.request("DELETE", path, timeout=timeout)
        return self._accepted_job(response)

    @staticmethod
    def _accepted_job(response: HttpResponse) -> str | None:
        if response.status_code != 202:
            return None
        return monitor_job_id(response.data)

    @staticmethod
    def _escape(value: str) -> str:
        """Escape a value for use as a single URL path segment, slashes included."""

        return quote(value, safe="")

    @staticmethod
    def _require_path(path: str, what: str = "Filesystem path") -> str:
        if not path:
            raise ValidationError(f"{what} is empty")
        return path
