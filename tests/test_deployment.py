import json
from datetime import datetime, timezone

from leger.deployment import (
    DeployedService,
    DeployedVolume,
    DeploymentHistory,
    DeploymentState,
)

WHEN = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def _full_state():
    return DeploymentState(
        name="web",
        source="git@example.com:repo.git",
        version="abc",
        scope="user",
        installed_at=WHEN,
        updated_at=WHEN,
        services=[
            DeployedService(
                name="nginx",
                type="container",
                quadlet_path="/q/nginx.container",
                service_name="nginx.service",
                status="running",
                ports=["8080:80"],
                enabled=True,
                started_at=WHEN,
            )
        ],
        volumes=[DeployedVolume(name="data", mount_path="/data", driver="local", created_at=WHEN, size=10)],
        secrets=["db-pass"],
        metadata={"k": "v"},
    )


def test_round_trip_through_json():
    state = _full_state()
    text = json.dumps(state.to_dict())
    assert DeploymentState.from_dict(json.loads(text)) == state


def test_utc_time_uses_z_suffix():
    d = _full_state().to_dict()
    assert d["installed_at"].endswith("Z")
    assert datetime.fromisoformat(d["installed_at"].replace("Z", "+00:00")) == WHEN


def test_empty_optional_fields_are_omitted():
    d = DeploymentState(name="x", installed_at=WHEN).to_dict()
    for key in ("updated_at", "volumes", "secrets", "metadata"):
        assert key not in d
    assert d["services"] == []
    assert d["name"] == "x"


def test_service_omits_empty_ports():
    state = DeploymentState(name="x", services=[DeployedService(name="s")])
    svc = state.to_dict()["services"][0]
    assert "ports" not in svc
    assert "started_at" not in svc
    assert svc["enabled"] is False


def test_from_dict_defaults():
    state = DeploymentState.from_dict({"name": "only"})
    assert state.name == "only"
    assert state.services == []
    assert state.installed_at is None
    assert state.metadata == {}


def test_history_defaults_independent():
    a = DeploymentHistory(timestamp=WHEN, action="install")
    b = DeploymentHistory(timestamp=WHEN, action="update")
    a.changes.append("x")
    assert b.changes == []