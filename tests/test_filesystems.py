from urllib.parse import unquote, urlsplit

import pytest

from nexentastor_client import ACLRuleSet, Filesystem, NexentaStorProvider
from nexentastor_client.exceptions import (
    ProtocolError,
    ResourceExistsError,
    ResourceNotFoundError,
    ValidationError,
)

ADDRESS = "https://ns1:8443"
FIELDS = "path,quotaSize,mountPoint,sharedOverNfs"


def build_provider() -> NexentaStorProvider:
    return NexentaStorProvider(address=ADDRESS, username="admin", password="secret")


@pytest.fixture
def logged_in(requests_mock):
    return requests_mock.post(f"{ADDRESS}/auth/login", json={"token": "t0k3n"})


def fs_entry(path, /, **overrides):
    entry = {
        "path": path,
        "mountPoint": f"/{path}",
        "sharedOverNfs": False,
        "quotaSize": 0.0,
    }
    entry.update(overrides)
    return entry


def last_segment(matcher, suffix: str = "") -> str:
    path = urlsplit(matcher.last_request.url).path
    if suffix:
        path = path[: -len(suffix)]
    return path.rsplit("/", 1)[-1]


def test_get_filesystem_returns_none_when_absent(requests_mock, logged_in):
    matcher = requests_mock.get(f"{ADDRESS}/storage/filesystems", json={"data": []})
    provider = build_provider()

    assert provider.get_filesystem("pool1/missing") is None
    assert matcher.last_request.qs == {"path": ["pool1/missing"], "fields": [FIELDS]}


def test_get_filesystem_decodes_quota_as_integer(requests_mock, logged_in):
    requests_mock.get(
        f"{ADDRESS}/storage/filesystems",
        json={
            "data": [
                fs_entry(
                    "pool1/fs",
                    mountPoint="/pool1/fs",
                    sharedOverNfs=True,
                    quotaSize=10737418240.0,
                )
            ]
        },
    )
    provider = build_provider()

    filesystem = provider.get_filesystem("pool1/fs")

    assert filesystem == Filesystem(
        path="pool1/fs",
        mount_point="/pool1/fs",
        shared_over_nfs=True,
        quota_size=10737418240,
    )
    assert isinstance(filesystem.quota_size, int)


def test_get_filesystem_missing_field_is_protocol_error(requests_mock, logged_in):
    requests_mock.get(
        f"{ADDRESS}/storage/filesystems",
        json={"data": [{"path": "pool1/fs", "mountPoint": "/pool1/fs"}]},
    )
    provider = build_provider()

    with pytest.raises(ProtocolError) as excinfo:
        provider.get_filesystem("pool1/fs")

    assert "quotaSize" in str(excinfo.value)
    assert "sharedOverNfs" in str(excinfo.value)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("path", None),
        ("mountPoint", None),
        ("mountPoint", 42),
        ("sharedOverNfs", "yes"),
        ("sharedOverNfs", 1),
        ("sharedOverNfs", None),
    ],
)
def test_get_filesystem_wrong_field_type_is_protocol_error(
    requests_mock, logged_in, field, value
):
    entry = fs_entry("pool1/fs", **{field: value})
    requests_mock.get(f"{ADDRESS}/storage/filesystems", json={"data": [entry]})
    provider = build_provider()

    with pytest.raises(ProtocolError, match=field):
        provider.get_filesystem("pool1/fs")


def test_get_filesystem_without_data_is_protocol_error(requests_mock, logged_in):
    requests_mock.get(f"{ADDRESS}/storage/filesystems", json={"links": []})
    provider = build_provider()

    with pytest.raises(ProtocolError, match="data"):
        provider.get_filesystem("pool1/fs")


def test_get_filesystems_excludes_parent(requests_mock, logged_in):
    matcher = requests_mock.get(
        f"{ADDRESS}/storage/filesystems",
        json={"data": [fs_entry("p"), fs_entry("p/a"), fs_entry("p/b")]},
    )
    provider = build_provider()

    filesystems = provider.get_filesystems("p")

    assert {filesystem.path for filesystem in filesystems} == {"p/a", "p/b"}
    assert matcher.last_request.qs == {"parent": ["p"], "fields": [FIELDS]}


def test_create_filesystem_merges_extra_params(requests_mock, logged_in):
    matcher = requests_mock.post(f"{ADDRESS}/storage/filesystems", status_code=201, json={})
    provider = build_provider()

    job_id = provider.create_filesystem("pool1/fs", {"quotaSize": 1024, "compressionMode": "lz4"})

    assert job_id is None
    assert matcher.last_request.json() == {
        "path": "pool1/fs",
        "quotaSize": 1024,
        "compressionMode": "lz4",
    }


def test_create_filesystem_rejects_path_override(requests_mock):
    provider = build_provider()

    with pytest.raises(ValidationError):
        provider.create_filesystem("pool1/fs", {"path": "pool1/other"})

    assert requests_mock.call_count == 0


def test_create_existing_filesystem_fails(requests_mock, logged_in):
    requests_mock.post(
        f"{ADDRESS}/storage/filesystems",
        status_code=409,
        json={"code": "EEXIST", "message": "Filesystem already exists"},
    )
    provider = build_provider()

    with pytest.raises(ResourceExistsError) as excinfo:
        provider.create_filesystem("pool1/fs")

    assert excinfo.value.status_code == 409


def test_create_filesystem_returns_job_id_when_accepted(requests_mock, logged_in):
    requests_mock.post(
        f"{ADDRESS}/storage/filesystems",
        status_code=202,
        json={"links": [{"rel": "monitor", "href": "/jobStatus/job-42"}]},
    )
    provider = build_provider()

    assert provider.create_filesystem("pool1/fs") == "job-42"


def test_destroy_filesystem_escapes_slashes(requests_mock, logged_in):
    matcher = requests_mock.delete(f"{ADDRESS}/storage/filesystems/pool1%2Fds1", status_code=200)
    provider = build_provider()

    provider.destroy_filesystem("pool1/ds1")

    assert matcher.call_count == 1
    assert unquote(last_segment(matcher)) == "pool1/ds1"


def test_destroy_missing_filesystem_is_not_found(requests_mock, logged_in):
    requests_mock.delete(
        f"{ADDRESS}/storage/filesystems/pool1%2Fgone",
        status_code=404,
        json={"code": "ENOENT", "message": "Filesystem does not exist"},
    )
    provider = build_provider()

    with pytest.raises(ResourceNotFoundError, match="DELETE"):
        provider.destroy_filesystem("pool1/gone")


@pytest.mark.parametrize(
    "operation",
    [
        lambda provider: provider.destroy_filesystem(""),
        lambda provider: provider.delete_nfs_share(""),
        lambda provider: provider.create_nfs_share(""),
        lambda provider: provider.set_filesystem_acl("", ACLRuleSet.READ_ONLY),
        lambda provider: provider.set_filesystem_acl("", ACLRuleSet.READ_WRITE),
    ],
)
def test_empty_path_is_rejected_before_any_request(requests_mock, operation):
    provider = build_provider()

    with pytest.raises(ValidationError, match="empty"):
        operation(provider)

    assert requests_mock.call_count == 0


@pytest.mark.parametrize(
    ("rule_set", "permissions"),
    [(ACLRuleSet.READ_ONLY, ["read_set"]), (ACLRuleSet.READ_WRITE, ["full_set"])],
)
def test_set_filesystem_acl_body(requests_mock, logged_in, rule_set, permissions):
    matcher = requests_mock.post(
        f"{ADDRESS}/storage/filesystems/pool1%2Fds1/acl", status_code=201, json={}
    )
    provider = build_provider()

    provider.set_filesystem_acl("pool1/ds1", rule_set)

    assert matcher.last_request.json() == {
        "type": "allow",
        "principal": "everyone@",
        "flags": ["file_inherit", "dir_inherit"],
        "permissions": permissions,
    }
    assert unquote(last_segment(matcher, "/acl")) == "pool1/ds1"


def test_create_nfs_share_body(requests_mock, logged_in):
    matcher = requests_mock.post(f"{ADDRESS}/nas/nfs", status_code=201, json={})
    provider = build_provider()

    provider.create_nfs_share("pool1/fs")

    assert matcher.last_request.json() == {
        "filesystem": "pool1/fs",
        "anon": "root",
        "securityContexts": [{"securityModes": ["sys"]}],
    }


def test_delete_nfs_share_escapes_path(requests_mock, logged_in):
    matcher = requests_mock.delete(f"{ADDRESS}/nas/nfs/pool1%2Ffs", status_code=200)
    provider = build_provider()

    provider.delete_nfs_share("pool1/fs")

    assert unquote(last_segment(matcher)) == "pool1/fs"
