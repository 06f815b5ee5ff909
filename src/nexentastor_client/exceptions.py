"""Custom exception hierarchy for the NexentaStor client."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class NexentaStorError(RuntimeError):
    """Base error for NexentaStor failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ConfigurationError(NexentaStorError):
    """Raised when driver configuration is missing or malformed."""


class TransportError(NexentaStorError):
    """Raised when the appliance cannot be reached."""


class RequestTimeoutError(TransportError):
    """Raised when a request exceeds its timeout."""


class EndpointUnavailableError(TransportError):
    """Raised when the appliance answers but is not serving requests (502/503/504)."""


class ProtocolError(NexentaStorError):
    """Raised when the API returns an unexpected payload structure."""


class NefError(NexentaStorError):
    """Error reported by the appliance in its JSON error envelope."""

    default_code = "EBADMSG"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        name: str | None = None,
        source: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, details=details)
        self.code = code or self.default_code
        self.name = name
        self.source = source


class AuthenticationError(NefError):
    """Raised when credentials are rejected or the token cannot be renewed."""

    default_code = "EAUTH"


class ResourceNotFoundError(NefError):
    """Raised when the appliance reports a missing resource."""

    default_code = "ENOENT"


class ResourceExistsError(NefError):
    """Raised when the appliance reports that a resource already exists."""

    default_code = "EEXIST"


class ValidationError(NefError):
    """Raised for invalid arguments, either locally or by the appliance."""

    default_code = "EINVAL"


class JobFailedError(NexentaStorError):
    """Raised when an asynchronous appliance job finished unsuccessfully."""

    def __init__(self, message: str, *, error: NefError, job_id: str) -> None:
        super().__init__(message, status_code=error.status_code, details=error.details)
        self.error = error
        self.code = error.code
        self.job_id = job_id


class OperationTimeoutError(NexentaStorError):
    """Raised when waiting for a job exceeds the caller's deadline."""


class OperationCancelledError(NexentaStorError):
    """Raised when the caller cancels a wait."""


class EndpointUnhealthyError(NexentaStorError):
    """Raised when a standby endpoint fails its health check."""


class ClusterUnavailableError(NexentaStorError):
    """Raised when every configured endpoint failed the same operation."""

    def __init__(self, message: str, *, failures: Mapping[str, Exception]) -> None:
        super().__init__(message, details=dict(failures))
        self.failures = dict(failures)


_ERRORS_BY_CODE: dict[str, type[NefError]] = {
    "EAUTH": AuthenticationError,
    "ENOENT": ResourceNotFoundError,
    "EEXIST": ResourceExistsError,
    "EINVAL": ValidationError,
    "EBADARG": ValidationError,
}


def classify_error(
    payload: Any,
    context: str,
    *,
    status_code: int | None = None,
) -> NefError | None:
    """Turn an appliance error envelope into a typed error.

    Returns ``None`` when ``payload`` is not an error envelope, that is anything
    other than a mapping carrying a string ``code``.
    """

    if not isinstance(payload, Mapping):
        return None
    code = payload.get("code")
    if not isinstance(code, str) or not code:
        return None
    name = payload.get("name")
    source = payload.get("source")
    message = payload.get("message") or name or "Unknown error"
    error_cls = _ERRORS_BY_CODE.get(code, NefError)
    return error_cls(
        f"{context}: {message} (code: {code})",
        code=code,
        name=name if isinstance(name, str) else None,
        source=source if isinstance(source, str) else None,
        status_code=status_code,
        details=dict(payload),
    )


__all__ = [
    "AuthenticationError",
    "ClusterUnavailableError",
    "ConfigurationError",
    "EndpointUnavailableError",
    "EndpointUnhealthyError",
    "JobFailedError",
    "NefError",
    "NexentaStorError",
    "OperationCancelledError",
    "OperationTimeoutError",
    "ProtocolError",
    "RequestTimeoutError",
    "ResourceExistsError",
    "ResourceNotFoundError",
    "TransportError",
    "ValidationError",
    "classify_error",
]
