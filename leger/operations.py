"""Staging, applying and rolling back quadlet updates."""

from __future__ import annotations

import os
import shutil
import stat
import subprocess
from collections.abc import Iterator
from datetime import datetime

from .staging import METADATA_FILE, Manager, StagingError, StagingMetadata, _missing, _quote, _remove_all
from .syntax import _walk_files


def _walk(root: str) -> Iterator[tuple[str, os.stat_result]]:
    """Yield every path under root, root first, directories before their contents."""
    info = os.lstat(root)
    yield root, info
    if stat.S_ISDIR(info.st_mode):
        for name in sorted(os.listdir(root)):
            yield from _walk(os.path.join(root, name))


def copy_dir(src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> None:
    """Copy a directory tree with file modes, leaving out staging metadata files."""
    src = os.fspath(src)
    dst = os.fspath(dst)
    for path, info in _walk(src):
        if os.path.basename(path) == METADATA_FILE:
            continue
        target = os.path.normpath(os.path.join(dst, os.path.relpath(path, src)))
        mode = stat.S_IMODE(info.st_mode)
        if stat.S_ISDIR(info.st_mode):
            os.makedirs(target, mode=mode, exist_ok=True)
        else:
            shutil.copyfile(path, target)
            os.chmod(target, mode)


def stage_update(manager: Manager, source: str, deployment_name: str) -> None:
    """Prepare the staging area of a deployment and record where its update comes from."""
    manager.init_staging(deployment_name)
    manager.save_metadata(
        StagingMetadata(
            deployment_name=deployment_name,
            source_url=source,
            staged_version="latest",
            current_version="unknown",
            staged_at=datetime.now().astimezone(),
            checksum="",
        )
    )


def _create_backup(manager: Manager, deployment_name: str) -> None:
    active = manager.active_path(deployment_name)
    if _missing(active):
        return
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup = os.path.join(manager.backup_dir, deployment_name, timestamp)
    try:
        os.makedirs(backup, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise StagingError(f"failed to create backup directory: {exc}") from exc
    try:
        copy_dir(active, backup)
    except OSError as exc:
        raise StagingError(f"failed to copy to backup: {exc}") from exc


def _latest_backup_path(manager: Manager, deployment_name: str) -> str | None:
    base = os.path.join(manager.backup_dir, deployment_name)
    try:
        with os.scandir(base) as entries:
            names = sorted(e.name for e in entries if e.is_dir())
    except OSError:
        return None
    return os.path.join(base, names[-1]) if names else None


def _affected_services(manager: Manager, deployment_name: str) -> list[str]:
    return [
        os.path.basename(path)[: -len(".container")] + ".service"
        for path in _walk_files(manager.staging_path(deployment_name))
        if path.endswith(".container")
    ]


def _systemctl(action: str, service: str) -> None:
    try:
        result = subprocess.run(
            ["systemctl", "--user", action, service],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise StagingError(str(exc)) from exc
    if result.returncode != 0:
        raise StagingError(f"exit status {result.returncode}")


def _install_quadlets(quadlet_dir: str) -> None:
    try:
        result = subprocess.run(
            ["podman", "quadlet", "install", "--user", quadlet_dir],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise StagingError(f"podman quadlet install failed: {exc}\nStderr: ") from exc
    if result.returncode != 0:
        raise StagingError(
            f"podman quadlet install failed: exit status {result.returncode}\n"
            f"Stderr: {result.stderr or ''}"
        )


def _start_all(services: list[str]) -> None:
    for service in services:
        try:
            _systemctl("start", service)
        except StagingError as exc:
            print(f"⚠️  Warning: failed to start {service}: {exc}")


def rollback(manager: Manager, deployment_name: str) -> None:
    """Restore the active deployment from its most recent backup."""
    backup = _latest_backup_path(manager, deployment_name)
    if backup is None:
        raise StagingError(f"no backup found for deployment {_quote(deployment_name)}")

    active = manager.active_path(deployment_name)
    try:
        _remove_all(active)
    except OSError as exc:
        raise StagingError(f"failed to remove failed deployment: {exc}") from exc

    try:
        copy_dir(backup, active)
    except OSError as exc:
        raise StagingError(f"failed to restore from backup: {exc}") from exc

    try:
        _install_quadlets(active)
    except StagingError as exc:
        raise StagingError(f"failed to reinstall quadlets: {exc}") from exc

    try:
        services = _affected_services(manager, deployment_name)
    except OSError as exc:
        raise StagingError(f"failed to identify services: {exc}") from exc

    _start_all(services)


def _rollback_on_error(
    manager: Manager, deployment_name: str, original: Exception
) -> StagingError:
    print("\n⚠️  Apply failed, rolling back...")
    try:
        rollback(manager, deployment_name)
    except StagingError as rollback_error:
        error = StagingError(
            f"Apply failed and rollback failed: {rollback_error}\n\n"
            f"Original error: {original}\n\n"
            "Manual recovery required:\n"
            "  1. Check service status: leger status\n"
            "  2. Restore from backup: leger restore <backup-id>\n"
            f"  3. Check logs: journalctl --user -u {deployment_name}.service"
        )
        error.__cause__ = rollback_error
        return error
    error = StagingError(f"apply failed, rolled back successfully: {original}")
    error.__cause__ = original
    return error


def apply_staged(manager: Manager, deployment_name: str) -> None:
    """Replace the active deployment with its staged update, rolling back on failure."""
    staging = manager.staging_path(deployment_name)
    active = manager.active_path(deployment_name)

    if _missing(staging):
        raise StagingError(
            f"No staged updates found for {_quote(deployment_name)}\n\n"
            "Stage updates first:\n"
            "  leger stage [source]\n\n"
            "Or update directly:\n"
            "  leger deploy update"
        )

    print("Creating backup...")
    try:
        _create_backup(manager, deployment_name)
    except StagingError as exc:
        raise StagingError(f"failed to create backup: {exc}") from exc

    try:
        services = _affected_services(manager, deployment_name)
    except OSError as exc:
        raise StagingError(f"failed to identify affected services: {exc}") from exc

    if services:
        print("Stopping affected services...")
        for service in services:
            try:
                _systemctl("stop", service)
            except StagingError as exc:
                print(f"⚠️  Warning: failed to stop {service}: {exc}")

    if not _missing(active) and os.path.lexists(active):
        print("Removing old quadlets...")
        try:
            _remove_all(active)
        except OSError as exc:
            raise _rollback_on_error(
                manager, deployment_name, StagingError(f"failed to remove old quadlets: {exc}")
            ) from exc

    try:
        os.makedirs(active, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise _rollback_on_error(
            manager, deployment_name, StagingError(f"failed to create active directory: {exc}")
        ) from exc

    print("Installing updated quadlets...")
    try:
        copy_dir(staging, active)
    except OSError as exc:
        raise _rollback_on_error(
            manager, deployment_name, StagingError(f"failed to copy staged files: {exc}")
        ) from exc

    try:
        _install_quadlets(active)
    except StagingError as exc:
        raise _rollback_on_error(
            manager, deployment_name, StagingError(f"failed to install quadlets: {exc}")
        ) from exc

    if services:
        print("Starting services...")
        _start_all(services)

    try:
        manager.discard_staged(deployment_name)
    except StagingError as exc:
        print(f"⚠️  Warning: failed to clean staging: {exc}")