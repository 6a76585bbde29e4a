"""Deployment manifests: loading from JSON or YAML and generating from quadlets."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml


class ManifestError(Exception):
    """A manifest could not be read, parsed or generated."""


@dataclass
class ServiceDefinition:
    """A service in a manifest."""

    name: str = ""
    type: str = ""
    files: list[str] = field(default_factory=list)
    description: str = ""
    depends_on: list[str] = field(default_factory=list)
    ports: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)


@dataclass
class VolumeDefinition:
    """A volume in a manifest."""

    name: str = ""
    driver: str = ""
    options: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    description: str = ""


@dataclass
class NetworkDefinition:
    """A network in a manifest."""

    name: str = ""
    driver: str = ""
    subnet: str = ""
    gateway: str = ""
    options: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    description: str = ""


@dataclass
class SecretDefinition:
    """A secret that a deployment requires."""

    name: str = ""
    type: str = ""
    target: str = ""
    description: str = ""
    required: bool = False


@dataclass
class Manifest:
    """A deployment manifest."""

    version: int = 0
    created_at: datetime | None = None
    user_uuid: str = ""
    name: str = ""
    description: str = ""
    services: list[ServiceDefinition] = field(default_factory=list)
    volumes: list[VolumeDefinition] = field(default_factory=list)
    networks: list[NetworkDefinition] = field(default_factory=list)
    secrets: list[SecretDefinition] = field(default_factory=list)


class _TextLoader(yaml.SafeLoader):
    """A YAML loader that keeps every scalar as text, except null."""


_TextLoader.yaml_implicit_resolvers = {}
_TextLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null",
    re.compile(r"^(?:~|null|Null|NULL|)$"),
    ["~", "n", "N", ""],
)

_YAML_TRUE = {"true", "True", "TRUE", "yes", "Yes", "YES", "on", "On", "ON", "y", "Y"}
_YAML_FALSE = {"false", "False", "FALSE", "no", "No", "NO", "off", "Off", "OFF", "n", "N"}

_TIME_FRACTION = re.compile(r"(?<=\d{2}:\d{2}:\d{2})\.(\d+)")


def _parse_time(text: str) -> datetime:
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _TIME_FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    return datetime.fromisoformat(text)


class _Reader:
    """Typed access to the fields of one decoded object."""

    def __init__(self, data: Any, where: str, text: bool) -> None:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TypeError(f"{where}: expected an object")
        self._data = data
        self._where = where
        self._text = text

    def _fail(self, key: str, kind: str) -> TypeError:
        return TypeError(f"{self._where}: field {key!r} must be {kind}")

    def string(self, key: str) -> str:
        value = self._data.get(key)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise self._fail(key, "a string")
        return value

    def integer(self, key: str) -> int:
        value = self._data.get(key)
        if value is None:
            return 0
        if self._text and isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                try:
                    return int(value, 0)
                except ValueError:
                    raise self._fail(key, "an integer") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._fail(key, "an integer")
        return value

    def boolean(self, key: str) -> bool:
        value = self._data.get(key)
        if value is None:
            return False
        if self._text and isinstance(value, str):
            if value in _YAML_TRUE:
                return True
            if value in _YAML_FALSE:
                return False
            raise self._fail(key, "a boolean")
        if not isinstance(value, bool):
            raise self._fail(key, "a boolean")
        return value

    def time(self, key: str) -> datetime | None:
        value = self._data.get(key)
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise self._fail(key, "a timestamp")
        try:
            return _parse_time(value)
        except ValueError:
            raise self._fail(key, "a timestamp") from None

    def _item(self, key: str, value: Any) -> str:
        if value is None and self._text:
            return ""
        if not isinstance(value, str):
            raise self._fail(key, "a list of strings")
        return value

    def strings(self, key: str) -> list[str]:
        value = self._data.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self._fail(key, "a list of strings")
        return [self._item(key, item) for item in value]

    def string_map(self, key: str) -> dict[str, str]:
        value = self._data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise self._fail(key, "a mapping of strings")
        return {str(k): self._item(key, v) for k, v in value.items()}

    def records(self, key: str) -> list[_Reader]:
        value = self._data.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self._fail(key, "a list of objects")
        return [
            _Reader(item, f"{self._where}.{key}[{i}]", self._text)
            for i, item in enumerate(value)
        ]


def _manifest_from(data: Any, text: bool) -> Manifest:
    top = _Reader(data, "manifest", text)
    # Service keys without an explicit YAML name are spelled in lower case there.
    depends_key = "dependson" if text else "depends_on"
    return Manifest(
        version=top.integer("version"),
        created_at=top.time("created_at"),
        user_uuid=top.string("user_uuid"),
        name=top.string("name"),
        description=top.string("description"),
        services=[
            ServiceDefinition(
                name=r.string("name"),
                type=r.string("type"),
                files=r.strings("files"),
                description=r.string("description"),
                depends_on=r.strings(depends_key),
                ports=r.strings("ports"),
                environment=r.string_map("environment"),
            )
            for r in top.records("services")
        ],
        volumes=[
            VolumeDefinition(
                name=r.string("name"),
                driver=r.string("driver"),
                options=r.string_map("options"),
                labels=r.string_map("labels"),
                description=r.string("description"),
            )
            for r in top.records("volumes")
        ],
        networks=[
            NetworkDefinition(
                name=r.string("name"),
                driver=r.string("driver"),
                subnet=r.string("subnet"),
                gateway=r.string("gateway"),
                options=r.string_map("options"),
                labels=r.string_map("labels"),
                description=r.string("description"),
            )
            for r in top.records("networks")
        ],
        secrets=[
            SecretDefinition(
                name=r.string("name"),
                type=r.string("type"),
                target=r.string("target"),
                description=r.string("description"),
                required=r.boolean("required"),
            )
            for r in top.records("secrets")
        ],
    )


def load_manifest_from_json(data: bytes | str) -> Manifest:
    """Parse a manifest from JSON text."""
    try:
        return _manifest_from(json.loads(data), text=False)
    except (ValueError, TypeError) as exc:
        raise ManifestError(f"parsing JSON manifest: {exc}") from exc


def load_manifest_from_yaml(data: bytes | str) -> Manifest:
    """Parse a manifest from YAML text."""
    try:
        return _manifest_from(yaml.load(data, Loader=_TextLoader), text=True)
    except (yaml.YAMLError, ValueError, TypeError) as exc:
        raise ManifestError(f"parsing YAML manifest: {exc}") from exc


def _extension(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def load_manifest_from_file(path: str | os.PathLike[str]) -> Manifest:
    """Load a manifest, choosing the format by extension; unknown ones try JSON, then YAML."""
    path = os.fspath(path)
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ManifestError(f"reading manifest file: {exc}") from exc

    ext = _extension(path).lower()
    if ext == ".json":
        return load_manifest_from_json(data)
    if ext in (".yaml", ".yml"):
        return load_manifest_from_yaml(data)
    try:
        return load_manifest_from_json(data)
    except ManifestError:
        return load_manifest_from_yaml(data)


def _matching(directory: str, suffix: str) -> list[str]:
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    return [os.path.join(directory, n) for n in sorted(names) if n.endswith(suffix)]


def _describe_container(path: str) -> ServiceDefinition:
    base = os.path.basename(path)
    service = ServiceDefinition(
        name=base[: -len(".container")], type="container", files=[base]
    )
    try:
        content = Path(path).read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return service

    idx = content.find("Image=")
    if idx != -1:
        rest = content[idx:]
        end = rest.find("\n")
        if end != -1:
            service.environment = {"Image": rest[len("Image="):end].strip()}

    for line in content.split("\n"):
        line = line.strip()
        if line.startswith("PublishPort="):
            service.ports.append(line[len("PublishPort="):])
    return service


def generate_manifest_from_quadlets(quadlet_dir: str | os.PathLike[str]) -> Manifest:
    """Build a manifest from the .container and .volume files in a directory."""
    quadlet_dir = os.fspath(quadlet_dir)
    containers = _matching(quadlet_dir, ".container")
    if not containers:
        raise ManifestError(f"no quadlet files found in {quadlet_dir}")

    manifest = Manifest(
        version=1,
        created_at=datetime.now().astimezone(),
        name=os.path.basename(os.path.normpath(quadlet_dir)),
        services=[_describe_container(path) for path in containers],
    )
    manifest.volumes = [
        VolumeDefinition(name=os.path.basename(path)[: -len(".volume")])
        for path in _matching(quadlet_dir, ".volume")
    ]
    return manifest