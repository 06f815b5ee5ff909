"""Typed views of NexentaStor responses."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import ProtocolError

FILESYSTEM_FIELDS: tuple[str, ...] = ("path", "quotaSize", "mountPoint", "sharedOverNfs")
POOL_FIELDS: tuple[str, ...] = ("poolName", "health", "status")


class ACLRuleSet(Enum):
    """Access granted to ``everyone@`` on a filesystem."""

    READ_ONLY = "read_only"
    READ_WRITE = "read_write"

    @property
    def permissions(self) -> list[str]:
        if self is ACLRuleSet.READ_ONLY:
            return ["read_set"]
        return ["full_set"]


@dataclass(frozen=True, slots=True)
class Filesystem:
    """NexentaStor filesystem as reported at the time of the request."""

    path: str
    mount_point: str
    shared_over_nfs: bool
    quota_size: int

    @classmethod
    def from_payload(cls, payload: Any, context: str) -> Filesystem:
        entry = require_fields(payload, FILESYSTEM_FIELDS, context)
        quota = entry["quotaSize"]
        if isinstance(quota, bool) or not isinstance(quota, (int, float)):
            raise ProtocolError(f"{context}: 'quotaSize' is not a number: {quota!r}", details=entry)
        for name in ("path", "mountPoint"):
            if not isinstance(entry[name], str):
                raise ProtocolError(
                    f"{context}: '{name}' is not a string: {entry[name]!r}", details=entry
                )
        shared = entry["sharedOverNfs"]
        if not isinstance(shared, bool):
            raise ProtocolError(
                f"{context}: 'sharedOverNfs' is not a boolean: {shared!r}", details=entry
            )
        return cls(
            path=entry["path"],
            mount_point=entry["mountPoint"],
            shared_over_nfs=shared,
            quota_size=int(quota),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "mountPoint": self.mount_point,
            "sharedOverNfs": self.shared_over_nfs,
            "quotaSize": self.quota_size,
        }


@dataclass(frozen=True, slots=True)
class Pool:
    """Storage pool name with the health fields used for failover decisions."""

    name: str
    health: str | None = None
    status: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, context: str) -> Pool:
        entry = require_fields(payload, ("poolName",), context)
        health = entry.get("health")
        status = entry.get("status")
        return cls(
            name=str(entry["poolName"]),
            health=str(health) if health is not None else None,
            status=str(status) if status is not None else None,
        )

    def as_dict(self) -> dict[str, Any]:
        return {"poolName": self.name, "health": self.health, "status": self.status}


def require_fields(payload: Any, fields: Iterable[str], context: str) -> Mapping[str, Any]:
    """Return ``payload`` if it is a mapping holding every key in ``fields``."""

    if not isinstance(payload, Mapping):
        raise ProtocolError(f"{context}: expected an object, got {payload!r}", details=payload)
    missing = [name for name in fields if name not in payload]
    if missing:
        raise ProtocolError(
            f"{context}: properties missing: {', '.join(missing)}",
            details=dict(payload),
        )
    return payload


def data_list(payload: Any, context: str) -> list[Any]:
    """Extract the ``data`` list from a collection response."""

    envelope = require_fields(payload, ("data",), context)
    data = envelope["data"]
    if not isinstance(data, list):
        raise ProtocolError(f"{context}: 'data' is not a list: {data!r}", details=dict(envelope))
    return data


def monitor_job_id(payload: Any) -> str | None:
    """Return the job id from the ``monitor`` link of a 202 response, if any."""

    if not isinstance(payload, Mapping):
        return None
    links = payload.get("links")
    if not isinstance(links, list):
        return None
    for link in links:
        if not isinstance(link, Mapping) or link.get("rel") != "monitor":
            continue
        href = link.get("href")
        if isinstance(href, str) and href.strip("/"):
            return href.rstrip("/").rsplit("/", 1)[-1]
    return None
