"""HTTP utilities for NexentaStor API access."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode, urljoin, urlparse

import requests
import urllib3
from requests import Response, Session
from urllib3.exceptions import InsecureRequestWarning

from .auth.base import AuthStrategy
from .config import ClientConfig
from .exceptions import (
    EndpointUnavailableError,
    ProtocolError,
    RequestTimeoutError,
    TransportError,
)

logger = logging.getLogger(__name__)

UNAVAILABLE_STATUSES = (502, 503, 504)


@dataclass(slots=True)
class HttpResponse:
    """Typed response wrapper with helper accessors."""

    status_code: int
    data: Any
    headers: Mapping[str, str]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def parse_json(response: Response) -> Any:
    """Parse JSON with helpful error context."""

    try:
        return response.json()
    except ValueError as exc:
        raise ProtocolError(
            f"Response from {response.url} did not contain valid JSON",
            status_code=response.status_code,
            details=response.text[:200],
        ) from exc


def error_body(response: Response) -> Any:
    """Decode a non-2xx body, keeping the raw text when it is not JSON.

    Proxies in front of the appliance answer with HTML or plain text pages;
    those must still reach status classification.
    """

    try:
        return response.json()
    except ValueError:
        return response.text[:200]


def raise_if_unavailable(response: HttpResponse, context: str) -> None:
    """Raise `EndpointUnavailableError` for a 502/503/504 answer."""

    if response.status_code in UNAVAILABLE_STATUSES:
        raise EndpointUnavailableError(
            f"{context}: appliance unavailable (status {response.status_code})",
            status_code=response.status_code,
            details=response.data,
        )


def build_uri(path: str, params: Mapping[str, str] | None = None) -> str:
    """Append ``params`` to ``path`` as a query string with keys in sorted order."""

    if not params:
        return path
    query = urlencode(sorted(params.items()), safe=",")
    return f"{path}?{query}"


def request(
    session: Session,
    method: str,
    url: str,
    *,
    headers: MutableMapping[str, str] | None = None,
    json_payload: Mapping[str, Any] | None = None,
    timeout: float | tuple[float, float] | None = None,
    verify: bool | str = True,
) -> HttpResponse:
    """Make a request and return a parsed response envelope.

    Status codes are left to the caller. Only a successful response must carry
    JSON; an error body that is not JSON is kept as text.
    """

    response = session.request(
        method=method,
        url=url,
        headers=headers,
        json=json_payload,
        timeout=timeout,
        verify=verify,
    )

    data: Any = None
    if response.content:
        if 200 <= response.status_code < 300:
            data = parse_json(response)
        else:
            data = error_body(response)

    return HttpResponse(status_code=response.status_code, data=data, headers=response.headers)


class RestClient:
    """Send single requests to one appliance management address."""

    def __init__(
        self,
        config: ClientConfig,
        auth_strategy: AuthStrategy,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.auth = auth_strategy
        self._session = session or requests.Session()
        self._suppress_insecure_warning_if_needed()

    @property
    def address(self) -> str:
        return self.config.base_url

    def send(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
        authenticated: bool = True,
    ) -> HttpResponse:
        url = self.resolve_url(path)
        headers = self.config.resolved_headers()
        if authenticated:
            self.auth.apply(headers)
        logger.info(
            "NexentaStor request %s %s (address=%s)",
            method.upper(),
            url,
            self.address,
        )
        try:
            return request(
                self._session,
                method,
                url,
                headers=headers,
                json_payload=payload,
                timeout=self.config.timeout if timeout is None else timeout,
                verify=self.config.verify_ssl,
            )
        except requests.Timeout as exc:
            raise RequestTimeoutError(
                f"{method.upper()} {url} timed out: {exc}", details=str(exc)
            ) from exc
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            raise TransportError(
                f"Failed to communicate with NexentaStor at {self.address}: {reason}",
                details=reason,
            ) from exc

    def resolve_url(self, path: str) -> str:
        parsed = urlparse(path)
        if parsed.scheme and parsed.netloc:
            return path
        return urljoin(f"{self.config.base_url}/", path.lstrip("/"))

    def close(self) -> None:
        self._session.close()

    def _suppress_insecure_warning_if_needed(self) -> None:
        if isinstance(self.config.verify_ssl, bool) and not self.config.verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)
