"""Comparison of a staged deployment against the active one."""

from __future__ import annotations

import difflib
import os
from dataclasses import dataclass, field
from pathlib import Path

from .staging import METADATA_FILE, Manager, StagingError, _missing, _quote
from .syntax import _walk_files


@dataclass
class FileDiff:
    """A unified diff of one file present in both deployments."""

    path: str
    old_path: str = ""
    new_path: str = ""
    diff_lines: list[str] = field(default_factory=list)


@dataclass
class DiffPortConflict:
    """A port used by more than one quadlet."""

    port: str
    used_by: list[str] = field(default_factory=list)


@dataclass
class DiffVolumeConflict:
    """A volume used by more than one quadlet."""

    volume: str
    used_by: list[str] = field(default_factory=list)


@dataclass
class DiffSummary:
    """Counts and affected services of a diff."""

    files_modified: int = 0
    files_added: int = 0
    files_removed: int = 0
    services_affected: list[str] = field(default_factory=list)
    port_conflicts: list[DiffPortConflict] = field(default_factory=list)
    volume_conflicts: list[DiffVolumeConflict] = field(default_factory=list)


@dataclass
class DiffResult:
    """Files modified, added and removed by a staged update."""

    modified: list[FileDiff] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)

    def display(self) -> None:
        """Print the diff to standard output."""
        print()
        print(f"Files modified: {self.summary.files_modified}")
        print(f"Files added: {self.summary.files_added}")
        print(f"Files removed: {self.summary.files_removed}")
        print()

        if self.removed:
            print("=== Removed Files ===")
            for name in self.removed:
                print(f"  - {name}")
            print()

        if self.added:
            print("=== Added Files ===")
            for name in self.added:
                print(f"  + {name}")
            print()

        if self.modified:
            print("=== Modified Files ===")
            for mod in self.modified:
                print(f"\n--- {mod.path}")
                print(f"+++ {mod.path}")
                for line in mod.diff_lines:
                    if line.startswith(("---", "+++")):
                        continue
                    print(line)
            print()

        if self.summary.services_affected:
            print("=== Summary ===")
            print(f"Services affected: {', '.join(self.summary.services_affected)}")

        if self.summary.port_conflicts:
            print("\n⚠️  Port conflicts detected:")
            for c in self.summary.port_conflicts:
                print(f"  Port {c.port} used by: {', '.join(c.used_by)}")

        if self.summary.volume_conflicts:
            print("\n⚠️  Volume conflicts detected:")
            for c in self.summary.volume_conflicts:
                print(f"  Volume {c.volume} used by: {', '.join(c.used_by)}")


def list_files(directory: str | os.PathLike[str]) -> list[str]:
    """Return every file under directory as a relative path, skipping staging metadata."""
    directory = os.fspath(directory)
    return [
        os.path.relpath(path, directory)
        for path in _walk_files(directory)
        if os.path.basename(path) != METADATA_FILE
    ]


def _file_diff(old_path: str, new_path: str, relative_path: str) -> FileDiff | None:
    old = Path(old_path).read_bytes()
    new = Path(new_path).read_bytes()
    if old == new:
        return None
    lines = difflib.unified_diff(
        old.decode("utf-8", errors="replace").splitlines(),
        new.decode("utf-8", errors="replace").splitlines(),
        fromfile=old_path,
        tofile=new_path,
        lineterm="",
    )
    return FileDiff(
        path=relative_path, old_path=old_path, new_path=new_path, diff_lines=list(lines)
    )


def _service_name(path: str) -> str | None:
    if not path.endswith(".container"):
        return None
    return os.path.basename(path)[: -len(".container")]


def extract_service_names(result: DiffResult) -> list[str]:
    """Return the services of modified and added .container files, first seen first."""
    names: dict[str, None] = {}
    for path in [m.path for m in result.modified] + result.added:
        name = _service_name(path)
        if name is not None:
            names[name] = None
    return list(names)


def generate_diff(manager: Manager, deployment_name: str) -> DiffResult:
    """Compare the staged update of a deployment with its active files."""
    active = manager.active_path(deployment_name)
    staged = manager.staging_path(deployment_name)

    if _missing(staged):
        raise StagingError(f"no staged updates for deployment {_quote(deployment_name)}")

    result = DiffResult()

    if _missing(active):
        files = list_files(staged)
        result.added = files
        result.summary.files_added = len(files)
        return result

    try:
        active_files = list_files(active)
    except OSError as exc:
        raise StagingError(f"failed to list active files: {exc}") from exc
    try:
        staged_files = list_files(staged)
    except OSError as exc:
        raise StagingError(f"failed to list staged files: {exc}") from exc

    active_set = set(active_files)
    staged_set = set(staged_files)

    result.added = [f for f in staged_files if f not in active_set]
    result.removed = [f for f in active_files if f not in staged_set]

    for name in active_files:
        if name not in staged_set:
            continue
        try:
            diff = _file_diff(os.path.join(active, name), os.path.join(staged, name), name)
        except OSError as exc:
            raise StagingError(f"failed to diff {name}: {exc}") from exc
        if diff is not None:
            result.modified.append(diff)

    result.summary.files_modified = len(result.modified)
    result.summary.files_added = len(result.added)
    result.summary.files_removed = len(result.removed)
    result.summary.services_affected = extract_service_names(result)
    return result