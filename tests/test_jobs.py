import threading

import pytest

from nexentastor_client import NexentaStorProvider
from nexentastor_client.exceptions import (
    EndpointUnavailableError,
    JobFailedError,
    OperationCancelledError,
    OperationTimeoutError,
    ProtocolError,
    ValidationError,
)

ADDRESS = "https://ns1:8443"
JOB_URL = f"{ADDRESS}/jobStatus/job-1"


def build_provider() -> NexentaStorProvider:
    return NexentaStorProvider(address=ADDRESS, username="admin", password="secret")


@pytest.fixture(autouse=True)
def logged_in(requests_mock):
    return requests_mock.post(f"{ADDRESS}/auth/login", json={"token": "t0k3n"})


@pytest.mark.parametrize("status_code", [200, 201])
def test_is_job_done_when_completed(requests_mock, status_code):
    requests_mock.get(JOB_URL, status_code=status_code, json={})
    provider = build_provider()

    assert provider.is_job_done("job-1") is True


def test_is_job_done_false_while_running(requests_mock):
    matcher = requests_mock.get(JOB_URL, status_code=202, json={"progress": 40})
    provider = build_provider()

    assert provider.is_job_done("job-1") is False
    assert matcher.call_count == 1


def test_failed_job_carries_appliance_error_code(requests_mock):
    requests_mock.get(
        JOB_URL,
        status_code=500,
        json={"name": "ZfsError", "code": "EBUSY", "message": "dataset is busy"},
    )
    provider = build_provider()

    with pytest.raises(JobFailedError) as excinfo:
        provider.is_job_done("job-1")

    assert excinfo.value.code == "EBUSY"
    assert excinfo.value.error.code == "EBUSY"
    assert excinfo.value.job_id == "job-1"
    assert "dataset is busy" in str(excinfo.value)


def test_failed_job_without_envelope_is_protocol_error(requests_mock):
    requests_mock.get(JOB_URL, status_code=500, json={"what": "happened"})
    provider = build_provider()

    with pytest.raises(ProtocolError) as excinfo:
        provider.is_job_done("job-1")

    assert "500" in str(excinfo.value)
    assert "happened" in str(excinfo.value)


def test_empty_job_id_is_rejected(requests_mock):
    provider = build_provider()

    with pytest.raises(ValidationError):
        provider.is_job_done("")

    assert requests_mock.call_count == 0


def test_wait_for_job_polls_until_done(requests_mock):
    matcher = requests_mock.get(
        JOB_URL,
        [
            {"status_code": 202, "json": {}},
            {"status_code": 202, "json": {}},
            {"status_code": 200, "json": {}},
        ],
    )
    provider = build_provider()

    provider.wait_for_job("job-1", interval=0)

    assert matcher.call_count == 3


def test_wait_for_job_gives_up_at_deadline(requests_mock):
    matcher = requests_mock.get(JOB_URL, status_code=202, json={})
    provider = build_provider()

    with pytest.raises(OperationTimeoutError, match="job-1"):
        provider.wait_for_job("job-1", interval=0, timeout=0)

    assert matcher.call_count == 1


def test_wait_for_job_stops_when_cancelled(requests_mock):
    cancel = threading.Event()

    def running(request, context):
        cancel.set()
        context.status_code = 202
        return {}

    matcher = requests_mock.get(JOB_URL, json=running)
    provider = build_provider()

    with pytest.raises(OperationCancelledError):
        provider.wait_for_job("job-1", interval=30, cancel_event=cancel)

    assert matcher.call_count == 1


def test_wait_for_job_raises_job_failure(requests_mock):
    requests_mock.get(
        JOB_URL,
        [
            {"status_code": 202, "json": {}},
            {"status_code": 400, "json": {"code": "EINVAL", "message": "bad quota"}},
        ],
    )
    provider = build_provider()

    with pytest.raises(JobFailedError) as excinfo:
        provider.wait_for_job("job-1", interval=0)

    assert excinfo.value.code == "EINVAL"


@pytest.mark.parametrize("status_code", [502, 503, 504])
def test_unavailable_job_status_is_endpoint_error(requests_mock, status_code):
    requests_mock.get(
        JOB_URL,
        status_code=status_code,
        text="<html>upstream down</html>",
        headers={"Content-Type": "text/html"},
    )
    provider = build_provider()

    with pytest.raises(EndpointUnavailableError) as excinfo:
        provider.is_job_done("job-1")

    assert excinfo.value.status_code == status_code
