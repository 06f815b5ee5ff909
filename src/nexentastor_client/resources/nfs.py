"""NFS share helpers."""

from __future__ import annotations

from .base import ResourceBase


class NfsSharesResource(ResourceBase):
    """Export filesystems over NFS."""

    def create(self, path: str, *, timeout: float | None = None) -> str | None:
        """Share ``path`` over NFS with root access for anonymous users and AUTH_SYS only."""

        self._require_path(path)
        payload = {
            "filesystem": path,
            "anon": "root",
            "securityContexts": [{"securityModes": ["sys"]}],
        }
        return self._post("nas/nfs", payload, timeout=timeout)

    def delete(self, path: str, *, timeout: float | None = None) -> str | None:
        self._require_path(path)
        return self._delete(f"/nas/nfs/{self._escape(path)}", timeout=timeout)
