"""Filesystem operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..exceptions import ValidationError
from ..http import build_uri
from ..models import FILESYSTEM_FIELDS, ACLRuleSet, Filesystem, data_list
from .base import ResourceBase

_CONTEXT = "/storage/filesystems response"


class FilesystemsResource(ResourceBase):
    """Interact with NexentaStor filesystems."""

    def get(self, path: str, *, timeout: float | None = None) -> Filesystem | None:
        """Return the filesystem at ``path`` or ``None`` when it does not exist."""

        uri = build_uri(
            "/storage/filesystems",
            {"path": path, "fields": ",".join(FILESYSTEM_FIELDS)},
        )
        entries = data_list(self._get(uri, timeout=timeout), _CONTEXT)
        if not entries:
            return None
        return Filesystem.from_payload(entries[0], _CONTEXT)

    def list(self, parent: str, *, timeout: float | None = None) -> list[Filesystem]:
        """Return the filesystems below ``parent``, without ``parent`` itself."""

        uri = build_uri(
            "/storage/filesystems",
            {"parent": parent, "fields": ",".join(FILESYSTEM_FIELDS)},
        )
        entries = data_list(self._get(uri, timeout=timeout), _CONTEXT)
        filesystems = [Filesystem.from_payload(entry, _CONTEXT) for entry in entries]
        return [filesystem for filesystem in filesystems if filesystem.path != parent]

    def create(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str | None:
        self._require_path(path)
        if params and "path" in params:
            raise ValidationError("Filesystem parameters must not override 'path'")
        payload: dict[str, Any] = {"path": path}
        payload.update(params or {})
        return self._post("/storage/filesystems", payload, timeout=timeout)

    def destroy(self, path: str, *, timeout: float | None = None) -> str | None:
        self._require_path(path)
        return self._delete(f"/storage/filesystems/{self._escape(path)}", timeout=timeout)

    def set_acl(
        self,
        path: str,
        rule_set: ACLRuleSet,
        *,
        timeout: float | None = None,
    ) -> str | None:
        """Grant ``everyone@`` read or full access, inherited by files and directories.

        NFS clients often present squashed or arbitrary UIDs, so access is
        controlled for everyone rather than per UNIX user.
        """

        self._require_path(path)
        payload = {
            "type": "allow",
            "principal": "everyone@",
            "flags": ["file_inherit", "dir_inherit"],
            "permissions": rule_set.permissions,
        }
        return self._post(
            f"/storage/filesystems/{self._escape(path)}/acl", payload, timeout=timeout
        )
