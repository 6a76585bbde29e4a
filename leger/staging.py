"""Staging area where quadlet updates wait for review before they go live."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from .manifest import _parse_time

METADATA_FILE = ".staging-metadata.json"

_ZERO_TIME = "0001-01-01T00:00:00Z"


class StagingError(Exception):
    """A staging operation failed."""


@dataclass
class StagingMetadata:
    """Information about an update that has been staged."""

    deployment_name: str
    source_url: str = ""
    staged_version: str = ""
    current_version: str = ""
    staged_at: datetime | None = None
    checksum: str = ""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _missing(path: str) -> bool:
    """Report whether path does not exist; other stat failures count as present."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return True
    except OSError:
        return False
    return False


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


def _has_entries(path: str) -> bool:
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is not None
    except OSError:
        return False


def _subdirectories(path: str) -> list[str]:
    with os.scandir(path) as entries:
        return sorted(e.name for e in entries if e.is_dir(follow_symlinks=False))


def _format_time(value: datetime | None) -> str:
    if value is None:
        return _ZERO_TIME
    if value.tzinfo is None:
        value = value.astimezone()
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


def _metadata_to_dict(meta: StagingMetadata) -> dict[str, Any]:
    return {
        "deployment_name": meta.deployment_name,
        "source_url": meta.source_url,
        "staged_version": meta.staged_version,
        "current_version": meta.current_version,
        "staged_at": _format_time(meta.staged_at),
        "checksum": meta.checksum,
    }


def _metadata_from(data: Any) -> StagingMetadata:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise TypeError("expected an object")

    def text(key: str) -> str:
        value = data.get(key)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise TypeError(f"field {key!r} must be a string")
        return value

    staged = data.get("staged_at")
    if staged is None or staged == _ZERO_TIME:
        staged_at = None
    elif isinstance(staged, str):
        staged_at = _parse_time(staged)
    else:
        raise TypeError("field 'staged_at' must be a timestamp")

    return StagingMetadata(
        deployment_name=text("deployment_name"),
        source_url=text("source_url"),
        staged_version=text("staged_version"),
        current_version=text("current_version"),
        staged_at=staged_at,
        checksum=text("checksum"),
    )


@dataclass
class Manager:
    """Directories holding staged, active and backed-up quadlet deployments."""

    staging_dir: str
    active_dir: str
    backup_dir: str

    def staging_path(self, deployment_name: str) -> str:
        """Return the staging directory of a deployment."""
        return os.path.join(self.staging_dir, deployment_name)

    def active_path(self, deployment_name: str) -> str:
        """Return the active directory of a deployment."""
        return os.path.join(self.active_dir, deployment_name)

    def init_staging(self, deployment_name: str) -> None:
        """Create the staging directory of a deployment."""
        try:
            os.makedirs(self.staging_path(deployment_name), mode=0o755, exist_ok=True)
        except OSError as exc:
            raise StagingError(f"failed to create staging directory: {exc}") from exc

    def clean_staging(self) -> None:
        """Remove everything that is staged."""
        if _missing(self.staging_dir):
            return
        try:
            _remove_all(self.staging_dir)
        except OSError as exc:
            raise StagingError(f"failed to clean staging directory: {exc}") from exc

    def has_staged_updates(self) -> bool:
        """Report whether any deployment directory in staging has content."""
        if _missing(self.staging_dir):
            return False
        try:
            names = _subdirectories(self.staging_dir)
        except OSError as exc:
            raise StagingError(f"failed to read staging directory: {exc}") from exc
        return any(_has_entries(os.path.join(self.staging_dir, n)) for n in names)

    def save_metadata(self, meta: StagingMetadata) -> None:
        """Write the metadata file into the deployment's staging directory."""
        staging = self.staging_path(meta.deployment_name)
        try:
            os.makedirs(staging, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise StagingError(f"failed to create staging directory: {exc}") from exc

        data = json.dumps(_metadata_to_dict(meta), indent=2, ensure_ascii=False)
        path = os.path.join(staging, METADATA_FILE)
        try:
            Path(path).write_text(data, encoding="utf-8")
            os.chmod(path, 0o644)
        except OSError as exc:
            raise StagingError(f"failed to write metadata: {exc}") from exc

    def load_metadata(self, deployment_name: str) -> StagingMetadata:
        """Read the staging metadata of a deployment."""
        path = os.path.join(self.staging_path(deployment_name), METADATA_FILE)
        try:
            data = Path(path).read_bytes()
        except FileNotFoundError as exc:
            raise StagingError(
                f"no staged updates for deployment {_quote(deployment_name)}"
            ) from exc
        except OSError as exc:
            raise StagingError(f"failed to read metadata: {exc}") from exc

        try:
            return _metadata_from(json.loads(data))
        except (ValueError, TypeError) as exc:
            raise StagingError(f"failed to parse metadata: {exc}") from exc

    def list_staged_deployments(self) -> list[str]:
        """Return the names of staged deployments that have content, sorted."""
        if _missing(self.staging_dir):
            return []
        try:
            names = _subdirectories(self.staging_dir)
        except OSError as exc:
            raise StagingError(f"failed to read staging directory: {exc}") from exc
        return [n for n in names if _has_entries(os.path.join(self.staging_dir, n))]

    def discard_staged(self, deployment_name: str) -> None:
        """Remove the staged update of a deployment."""
        staging = self.staging_path(deployment_name)
        if _missing(staging):
            raise StagingError(
                f"no staged updates for deployment {_quote(deployment_name)}"
            )
        try:
            _remove_all(staging)
        except OSError as exc:
            raise StagingError(f"failed to discard staged updates: {exc}") from exc


def new_manager() -> Manager:
    """Return a manager rooted in the user's data directory."""
    try:
        home = str(Path.home())
    except (RuntimeError, KeyError, OSError) as exc:
        raise StagingError(f"failed to get user home directory: {exc}") from exc
    base = os.path.join(home, ".local", "share", "bluebuild-quadlets")
    return Manager(
        staging_dir=os.path.join(base, "staged"),
        active_dir=os.path.join(base, "active"),
        backup_dir=os.path.join(base, "backups"),
    )