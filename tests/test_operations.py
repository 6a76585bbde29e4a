import os
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from leger.operations import apply_staged, copy_dir, rollback, stage_update
from leger.staging import METADATA_FILE, Manager, StagingError

NAME = "test-deployment"


class Recorder:
    """Stands in for subprocess.run, recording every command."""

    def __init__(self, podman_failures=0, systemctl_fails=False):
        self.calls = []
        self.podman_failures = podman_failures
        self.systemctl_fails = systemctl_fails

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        code = 0
        if cmd[0] == "podman" and self.podman_failures > 0:
            self.podman_failures -= 1
            code = 1
        if cmd[0] == "systemctl" and self.systemctl_fails:
            code = 1
        return subprocess.CompletedProcess(cmd, code, "", "boom" if code else "")


@pytest.fixture
def manager(tmp_path):
    return Manager(
        staging_dir=str(tmp_path / "staged"),
        active_dir=str(tmp_path / "active"),
        backup_dir=str(tmp_path / "backups"),
    )


def _write(path, text):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def test_stage_update_writes_metadata(manager):
    stage_update(manager, "https://example.com/repo", NAME)
    meta = manager.load_metadata(NAME)
    assert meta.deployment_name == NAME
    assert meta.source_url == "https://example.com/repo"
    assert meta.staged_version == "latest"
    assert meta.current_version == "unknown"
    assert meta.checksum == ""
    assert meta.staged_at is not None


def test_copy_dir_copies_tree_and_skips_metadata(tmp_path):
    src = tmp_path / "src"
    _write(src / "app.container", "[Container]\nImage=nginx\n")
    _write(src / "sub" / "db.container", "db")
    _write(src / METADATA_FILE, "{}")
    os.chmod(src / "app.container", 0o600)

    dst = tmp_path / "dst"
    copy_dir(src, dst)

    assert (dst / "app.container").read_text() == "[Container]\nImage=nginx\n"
    assert (dst / "sub" / "db.container").read_text() == "db"
    assert not (dst / METADATA_FILE).exists()
    assert (os.stat(dst / "app.container").st_mode & 0o777) == 0o600


def test_copy_dir_missing_source_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        copy_dir(tmp_path / "nope", tmp_path / "dst")


def test_apply_without_staging_raises(manager):
    with pytest.raises(StagingError, match="No staged updates found"):
        apply_staged(manager, NAME)


def test_apply_replaces_active_and_backs_up(manager):
    _write(Path(manager.active_path(NAME)) / "old.container", "old")
    _write(Path(manager.staging_path(NAME)) / "app.container", "new")
    recorder = Recorder()

    with mock.patch("subprocess.run", side_effect=recorder):
        apply_staged(manager, NAME)

    active = Path(manager.active_path(NAME))
    assert (active / "app.container").read_text() == "new"
    assert not (active / "old.container").exists()
    assert not Path(manager.staging_path(NAME)).exists()

    backups = list((Path(manager.backup_dir) / NAME).iterdir())
    assert len(backups) == 1
    assert (backups[0] / "old.container").read_text() == "old"

    assert recorder.calls == [
        ["systemctl", "--user", "stop", "app.service"],
        ["podman", "quadlet", "install", "--user", manager.active_path(NAME)],
        ["systemctl", "--user", "start", "app.service"],
    ]


def test_apply_service_failures_are_warnings(manager, capsys):
    _write(Path(manager.staging_path(NAME)) / "app.container", "new")
    recorder = Recorder(systemctl_fails=True)

    with mock.patch("subprocess.run", side_effect=recorder):
        apply_staged(manager, NAME)

    out = capsys.readouterr().out
    assert "Warning: failed to stop app.service" in out
    assert "Warning: failed to start app.service" in out
    assert (Path(manager.active_path(NAME)) / "app.container").read_text() == "new"


def test_apply_install_failure_rolls_back(manager):
    _write(Path(manager.active_path(NAME)) / "old.container", "old")
    _write(Path(manager.staging_path(NAME)) / "app.container", "new")
    recorder = Recorder(podman_failures=1)

    with mock.patch("subprocess.run", side_effect=recorder):
        with pytest.raises(StagingError, match="apply failed, rolled back successfully"):
            apply_staged(manager, NAME)

    active = Path(manager.active_path(NAME))
    assert (active / "old.container").read_text() == "old"
    assert not (active / "app.container").exists()
    assert Path(manager.staging_path(NAME)).exists()


def test_apply_rollback_failure_reports_both(manager):
    _write(Path(manager.active_path(NAME)) / "old.container", "old")
    _write(Path(manager.staging_path(NAME)) / "app.container", "new")
    recorder = Recorder(podman_failures=5)

    with mock.patch("subprocess.run", side_effect=recorder):
        with pytest.raises(StagingError) as info:
            apply_staged(manager, NAME)

    message = str(info.value)
    assert message.startswith("Apply failed and rollback failed")
    assert "Manual recovery required" in message
    assert f"journalctl --user -u {NAME}.service" in message


def test_rollback_without_backup_raises(manager):
    with pytest.raises(StagingError, match="no backup found"):
        rollback(manager, NAME)


def test_rollback_uses_latest_backup(manager):
    base = Path(manager.backup_dir) / NAME
    _write(base / "20240101-000000" / "app.container", "first")
    _write(base / "20240102-000000" / "app.container", "second")
    _write(Path(manager.active_path(NAME)) / "broken.container", "broken")
    _write(Path(manager.staging_path(NAME)) / "app.container", "staged")
    recorder = Recorder()

    with mock.patch("subprocess.run", side_effect=recorder):
        rollback(manager, NAME)

    active = Path(manager.active_path(NAME))
    assert (active / "app.container").read_text() == "second"
    assert not (active / "broken.container").exists()
    assert ["systemctl", "--user", "start", "app.service"] in recorder.calls


def test_rollback_without_staging_cannot_identify_services(manager):
    _write(Path(manager.backup_dir) / NAME / "20240101-000000" / "app.container", "x")

    with mock.patch("subprocess.run", side_effect=Recorder()):
        with pytest.raises(StagingError, match="failed to identify services"):
            rollback(manager, NAME)

    assert (Path(manager.active_path(NAME)) / "app.container").read_text() == "x"