import pytest

from nexentastor_client import NexentaStorProvider, Pool
from nexentastor_client.exceptions import ProtocolError

ADDRESS = "https://ns1:8443"


def build_provider() -> NexentaStorProvider:
    return NexentaStorProvider(address=ADDRESS, username="admin", password="secret")


def test_get_pools_requests_health_fields_and_returns_names(requests_mock):
    requests_mock.post(f"{ADDRESS}/auth/login", json={"token": "t0k3n"})
    matcher = requests_mock.get(
        f"{ADDRESS}/storage/pools",
        json={
            "data": [
                {"poolName": "pool1", "health": "ONLINE", "status": "ok"},
                {"poolName": "pool2", "health": "DEGRADED", "status": "ok"},
            ]
        },
    )
    provider = build_provider()

    assert provider.get_pools() == ["pool1", "pool2"]
    assert matcher.last_request.qs == {"fields": ["poolName,health,status"]}


def test_pool_statuses_share_the_pools_call(requests_mock):
    requests_mock.post(f"{ADDRESS}/auth/login", json={"token": "t0k3n"})
    matcher = requests_mock.get(
        f"{ADDRESS}/storage/pools",
        json={"data": [{"poolName": "pool1", "health": "ONLINE", "status": "ok"}]},
    )
    provider = build_provider()

    statuses = provider.get_pool_statuses()

    assert statuses == [Pool(name="pool1", health="ONLINE", status="ok")]
    assert matcher.call_count == 1


def test_get_pools_without_data_is_protocol_error(requests_mock):
    requests_mock.post(f"{ADDRESS}/auth/login", json={"token": "t0k3n"})
    requests_mock.get(f"{ADDRESS}/storage/pools", json={"pools": []})
    provider = build_provider()

    with pytest.raises(ProtocolError, match="/storage/pools"):
        provider.get_pools()
