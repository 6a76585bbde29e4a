"""Detection of ports and volumes shared between quadlets."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from .quadlet_types import PortConflict, PortInfo, VolumeConflict
from .syntax import _extension, _walk_files


def _directives(path: str) -> Iterator[tuple[str | None, str]]:
    """Yield (section header, line) for each directive line of a unit file."""
    section: str | None = None
    text = Path(path).read_bytes().decode("utf-8", errors="replace")
    for raw in text.split("\n"):
        line = raw.strip()
        if line.startswith("[") and line.endswith("]"):
            section = line
            continue
        if not line or line.startswith(("#", ";")):
            continue
        yield section, line


def parse_port(port_str: str) -> PortInfo | None:
    """Parse a PublishPort value such as 8080:80, 8080:80/udp or 127.0.0.1:8080:80.

    Returns None when the value has no host:container separator.
    """
    port_str = port_str.strip()
    protocol = "tcp"
    if "/" in port_str:
        port_str, protocol = port_str.split("/", 1)

    parts = port_str.split(":")
    if len(parts) < 2:
        return None

    port = PortInfo(protocol=protocol)
    if len(parts) == 2:
        port.host, port.container = parts
    elif len(parts) == 3:
        port.host, port.container = parts[1], parts[2]
    return port


def extract_ports(path: str | os.PathLike[str]) -> list[PortInfo]:
    """Return the ports published in the [Container] section of a quadlet."""
    ports: list[PortInfo] = []
    for section, line in _directives(os.fspath(path)):
        if section == "[Container]" and line.startswith("PublishPort="):
            port = parse_port(line[len("PublishPort="):])
            if port is not None:
                ports.append(port)
    return ports


def extract_volumes(path: str | os.PathLike[str]) -> list[str]:
    """Return the volume sources named in the [Container] or [Pod] section."""
    return [
        line[len("Volume="):].split(":", 1)[0]
        for section, line in _directives(os.fspath(path))
        if section in ("[Container]", "[Pod]") and line.startswith("Volume=")
    ]


def check_port_conflicts(quadlet_dir: str | os.PathLike[str]) -> list[PortConflict]:
    """Find host ports, per protocol, published by more than one .container file."""
    usage: dict[tuple[str, str], list[str]] = {}
    for path in _walk_files(os.fspath(quadlet_dir)):
        if _extension(path) != ".container":
            continue
        name = os.path.basename(path)
        for port in extract_ports(path):
            usage.setdefault((port.host, port.protocol), []).append(name)

    return [
        PortConflict(port=host, protocol=protocol, quadlets=quadlets)
        for (host, protocol), quadlets in usage.items()
        if len(quadlets) > 1
    ]


def check_volume_conflicts(quadlet_dir: str | os.PathLike[str]) -> list[VolumeConflict]:
    """Read the volumes of every .container and .pod file.

    Sharing a volume is allowed, so no conflicts are reported; unreadable
    files and directories still raise.
    """
    for path in _walk_files(os.fspath(quadlet_dir)):
        if _extension(path) in (".container", ".pod"):
            extract_volumes(path)
    return []