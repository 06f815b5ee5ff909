"""Configuration helpers for the NexentaStor client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .exceptions import ConfigurationError

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from .cluster import NexentaStorCluster
    from .provider import NexentaStorProvider


@dataclass(slots=True)
class ClientConfig:
    """Typed transport configuration for `NexentaStorProvider`."""

    base_url: str
    verify_ssl: bool | str = True
    timeout: float = 30.0
    default_headers: Mapping[str, str] | None = None

    def resolved_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.default_headers:
            headers.update(self.default_headers)
        return headers


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Management address of one appliance plus the credentials used against it."""

    address: str
    username: str
    password: str = field(repr=False)


_REQUIRED_KEYS = ("address", "username", "password")


@dataclass(slots=True)
class DriverConfig:
    """Settings shared by the storage plugin and the CLI.

    ``address`` may list several management endpoints separated by commas;
    the first one is the primary.
    """

    address: str
    username: str
    password: str = field(repr=False)
    default_dataset: str | None = None
    default_data_ip: str | None = None
    verify_ssl: bool | str = True
    timeout: float = 30.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DriverConfig:
        missing = [key for key in _REQUIRED_KEYS if not data.get(key)]
        if missing:
            raise ConfigurationError(f"Configuration is missing required keys: {', '.join(missing)}")
        return cls(
            address=str(data["address"]),
            username=str(data["username"]),
            password=str(data["password"]),
            default_dataset=data.get("defaultDataset") or None,
            default_data_ip=data.get("defaultDataIp") or None,
            verify_ssl=data.get("verifySsl", True),
            timeout=float(data.get("timeout", 30.0)),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> DriverConfig:
        config_path = Path(path).expanduser()
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse configuration file {config_path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
        return cls.from_mapping(data)

    def endpoints(self) -> list[Endpoint]:
        addresses = [part.strip().rstrip("/") for part in self.address.split(",") if part.strip()]
        if not addresses:
            raise ConfigurationError("At least one NexentaStor address is required")
        return [Endpoint(address, self.username, self.password) for address in addresses]

    def build_provider(self) -> NexentaStorProvider | NexentaStorCluster:
        """Return a provider for a single address, or a cluster for several."""

        from .cluster import NexentaStorCluster
        from .provider import NexentaStorProvider

        providers = [
            NexentaStorProvider.from_endpoint(
                endpoint, verify_ssl=self.verify_ssl, timeout=self.timeout
            )
            for endpoint in self.endpoints()
        ]
        if len(providers) == 1:
            return providers[0]
        return NexentaStorCluster(providers)
