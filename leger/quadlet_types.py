"""Data types describing quadlet files, their ports and detected problems."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class QuadletType(str, Enum):
    """The kind of a quadlet file, named after its file extension."""

    CONTAINER = "container"
    VOLUME = "volume"
    NETWORK = "network"
    POD = "pod"
    KUBE = "kube"
    IMAGE = "image"


@dataclass
class PortInfo:
    """A port mapping between host and container."""

    host: str = ""
    container: str = ""
    protocol: str = ""


@dataclass
class QuadletInfo:
    """Information about an installed quadlet."""

    name: str
    type: QuadletType
    path: str = ""
    service_name: str = ""
    status: str = ""
    enabled: bool = False
    source: str = ""
    ports: list[PortInfo] = field(default_factory=list)
    volumes: list[str] = field(default_factory=list)
    secrets: list[str] = field(default_factory=list)


@dataclass
class QuadletMetadata:
    """Metadata about a quadlet deployment."""

    name: str
    version: str = ""
    source: str = ""
    install_path: str = ""
    installed_at: datetime | None = None
    updated_at: datetime | None = None
    description: str = ""


@dataclass
class ServiceStatus:
    """The status of a systemd service."""

    name: str
    load_state: str = ""
    active_state: str = ""
    sub_state: str = ""
    description: str = ""
    main_pid: int = 0


@dataclass
class PortConflict:
    """A host port used by more than one quadlet."""

    port: str
    protocol: str
    quadlets: list[str] = field(default_factory=list)
    conflicts_with: str = ""


@dataclass
class VolumeConflict:
    """A volume path used by more than one quadlet."""

    path: str
    quadlets: list[str] = field(default_factory=list)
    conflicts_with: str = ""


@dataclass
class CircularDependency:
    """Services that form a dependency cycle."""

    services: list[str] = field(default_factory=list)


@dataclass
class MissingDependency:
    """A service that depends on a service that does not exist."""

    service: str
    missing_dependency: str