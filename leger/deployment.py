"""Records of deployed services, volumes and deployment history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    text = value.isoformat()
    if value.tzinfo is not None and value.utcoffset() == timezone.utc.utcoffset(None):
        text = text.replace("+00:00", "Z")
    return text


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class DeployedService:
    """A service that belongs to a deployment."""

    name: str
    type: str = ""
    quadlet_path: str = ""
    service_name: str = ""
    status: str = ""
    ports: list[str] = field(default_factory=list)
    enabled: bool = False
    started_at: datetime | None = None


@dataclass
class DeployedVolume:
    """A volume that belongs to a deployment."""

    name: str
    mount_path: str = ""
    driver: str = ""
    created_at: datetime | None = None
    size: int = 0


@dataclass
class DeploymentHistory:
    """One entry in the history of a deployment."""

    timestamp: datetime
    action: str
    version: str = ""
    source: str = ""
    success: bool = False
    message: str = ""
    changes: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


def _service_to_dict(svc: DeployedService) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": svc.name,
        "type": svc.type,
        "quadlet_path": svc.quadlet_path,
        "service_name": svc.service_name,
        "status": svc.status,
    }
    if svc.ports:
        out["ports"] = list(svc.ports)
    out["enabled"] = svc.enabled
    if svc.started_at is not None:
        out["started_at"] = _format_time(svc.started_at)
    return out


def _service_from_dict(data: dict[str, Any]) -> DeployedService:
    return DeployedService(
        name=data.get("name", ""),
        type=data.get("type", ""),
        quadlet_path=data.get("quadlet_path", ""),
        service_name=data.get("service_name", ""),
        status=data.get("status", ""),
        ports=list(data.get("ports") or []),
        enabled=bool(data.get("enabled", False)),
        started_at=_parse_time(data.get("started_at")),
    )


def _volume_to_dict(vol: DeployedVolume) -> dict[str, Any]:
    out: dict[str, Any] = {"name": vol.name}
    if vol.mount_path:
        out["mount_path"] = vol.mount_path
    if vol.driver:
        out["driver"] = vol.driver
    out["created_at"] = _format_time(vol.created_at)
    if vol.size:
        out["size"] = vol.size
    return out


def _volume_from_dict(data: dict[str, Any]) -> DeployedVolume:
    return DeployedVolume(
        name=data.get("name", ""),
        mount_path=data.get("mount_path", ""),
        driver=data.get("driver", ""),
        created_at=_parse_time(data.get("created_at")),
        size=int(data.get("size", 0)),
    )


@dataclass
class DeploymentState:
    """The recorded state of one deployment."""

    name: str
    source: str = ""
    version: str = ""
    scope: str = ""
    installed_at: datetime | None = None
    updated_at: datetime | None = None
    services: list[DeployedService] = field(default_factory=list)
    volumes: list[DeployedVolume] = field(default_factory=list)
    secrets: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping; empty optional fields are left out."""
        out: dict[str, Any] = {
            "name": self.name,
            "source": self.source,
            "version": self.version,
            "scope": self.scope,
            "installed_at": _format_time(self.installed_at),
        }
        if self.updated_at is not None:
            out["updated_at"] = _format_time(self.updated_at)
        out["services"] = [_service_to_dict(s) for s in self.services]
        if self.volumes:
            out["volumes"] = [_volume_to_dict(v) for v in self.volumes]
        if self.secrets:
            out["secrets"] = list(self.secrets)
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeploymentState:
        """Build a state from a mapping as produced by to_dict."""
        return cls(
            name=data.get("name", ""),
            source=data.get("source", ""),
            version=data.get("version", ""),
            scope=data.get("scope", ""),
            installed_at=_parse_time(data.get("installed_at")),
            updated_at=_parse_time(data.get("updated_at")),
            services=[_service_from_dict(s) for s in data.get("services") or []],
            volumes=[_volume_from_dict(v) for v in data.get("volumes") or []],
            secrets=list(data.get("secrets") or []),
            metadata=dict(data.get("metadata") or {}),
        )