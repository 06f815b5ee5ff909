"""Asynchronous job status helpers."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ..exceptions import (
    JobFailedError,
    OperationCancelledError,
    OperationTimeoutError,
    ProtocolError,
    classify_error,
)
from ..http import raise_if_unavailable
from .base import ResourceBase

logger = logging.getLogger(__name__)

JobCheck = Callable[..., bool]


def poll_job(
    is_done: JobCheck,
    job_id: str,
    *,
    interval: float = 1.0,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
    request_timeout: float | None = None,
) -> None:
    """Call ``is_done(job_id, timeout=...)`` until it returns ``True``.

    ``timeout`` bounds the whole wait, each check included. ``request_timeout``
    caps a single check when it is shorter than what is left.
    """

    deadline = None if timeout is None else time.monotonic() + timeout
    attempt = 0
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(f"Waiting for job {job_id} was cancelled")
        attempt += 1
        check_timeout = request_timeout
        if deadline is not None:
            remaining = max(deadline - time.monotonic(), 0.001)
            check_timeout = remaining if check_timeout is None else min(remaining, check_timeout)
        if is_done(job_id, timeout=check_timeout):
            logger.debug("job %s is done after %d checks", job_id, attempt)
            return

        pause = interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OperationTimeoutError(
                    f"Job {job_id} is still running after {timeout} seconds"
                )
            pause = min(interval, remaining)
        if cancel_event is not None:
            if cancel_event.wait(pause):
                raise OperationCancelledError(f"Waiting for job {job_id} was cancelled")
        else:
            time.sleep(pause)


class JobsResource(ResourceBase):
    """Check appliance jobs started by ``202 Accepted`` responses."""

    def is_done(self, job_id: str, *, timeout: float | None = None) -> bool:
        """Check a job once.

        Returns ``True`` when the job completed and ``False`` while it is still
        running. A failed job raises `JobFailedError` carrying the appliance
        error, or `ProtocolError` when the failure body cannot be decoded. A
        502/503/504 without an error envelope is the endpoint being down, not
        the job failing, and raises `EndpointUnavailableError`.
        """

        self._require_path(job_id, "Job id")
        path = f"/jobStatus/{self._escape(job_id)}"
        response = self._client.request("GET", path, timeout=timeout, check_status=False)
        if response.status_code in (200, 201):
            return True
        if response.status_code == 202:
            return False

        error = classify_error(
            response.data, "Job was finished with error", status_code=response.status_code
        )
        if error is not None:
            raise JobFailedError(f"Job {job_id}: {error}", error=error, job_id=job_id)
        raise_if_unavailable(response, f"GET {path} on {self._client.address}")
        raise ProtocolError(
            f"Job request returned {response.status_code} code, "
            f"but response body doesn't contain explanation: {response.data!r}",
            status_code=response.status_code,
            details=response.data,
        )

    def wait(
        self,
        job_id: str,
        *,
        interval: float = 1.0,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Poll ``is_done`` until the job completes, the deadline passes or the caller cancels."""

        poll_job(
            self.is_done,
            job_id,
            interval=interval,
            timeout=timeout,
            cancel_event=cancel_event,
            request_timeout=self._client.config.timeout,
        )
