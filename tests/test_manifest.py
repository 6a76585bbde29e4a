import json
from datetime import datetime, timezone

import pytest

from leger.manifest import (
    Manifest,
    ManifestError,
    SecretDefinition,
    VolumeDefinition,
    generate_manifest_from_quadlets,
    load_manifest_from_file,
    load_manifest_from_json,
    load_manifest_from_yaml,
)

FULL_JSON = {
    "version": 2,
    "created_at": "2024-05-01T12:00:00Z",
    "user_uuid": "uuid-1",
    "name": "stack",
    "description": "demo stack",
    "services": [
        {
            "name": "web",
            "type": "container",
            "files": ["web.container"],
            "depends_on": ["db"],
            "ports": ["8080:80"],
            "environment": {"MODE": "prod"},
        }
    ],
    "volumes": [{"name": "data", "driver": "local"}],
    "networks": [{"name": "net", "subnet": "10.0.0.0/24", "gateway": "10.0.0.1"}],
    "secrets": [{"name": "db-pass", "type": "env", "target": "DB_PASS", "required": True}],
}

YAML_TEXT = """\
version: 1
created_at: 2024-05-01T12:00:00Z
name: stack
services:
  - name: web
    type: container
    files: [web.container]
    dependson: [db]
    ports:
      - 8080:80
    environment:
      MODE: prod
volumes:
  - name: data
secrets:
  - name: api
    type: mount
    target: /run/secrets/api
    required: true
"""


def test_load_json_full():
    m = load_manifest_from_json(json.dumps(FULL_JSON))
    assert m.version == 2
    assert m.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert m.user_uuid == "uuid-1"
    assert m.name == "stack"
    assert m.description == "demo stack"
    svc = m.services[0]
    assert svc.name == "web"
    assert svc.files == ["web.container"]
    assert svc.depends_on == ["db"]
    assert svc.ports == ["8080:80"]
    assert svc.environment == {"MODE": "prod"}
    assert m.volumes == [VolumeDefinition(name="data", driver="local")]
    assert m.networks[0].gateway == "10.0.0.1"
    assert m.secrets == [
        SecretDefinition(name="db-pass", type="env", target="DB_PASS", required=True)
    ]


def test_load_json_accepts_bytes():
    m = load_manifest_from_json(json.dumps({"name": "stack"}).encode())
    assert m.name == "stack"


def test_load_json_nanosecond_time():
    m = load_manifest_from_json('{"created_at": "2024-05-01T12:00:00.123456789Z"}')
    assert m.created_at.microsecond == 123456


def test_load_json_null_is_empty_manifest():
    assert load_manifest_from_json("null") == Manifest()


def test_load_json_invalid():
    with pytest.raises(ManifestError, match="^parsing JSON manifest"):
        load_manifest_from_json("{not json")


def test_load_json_wrong_type():
    with pytest.raises(ManifestError, match="parsing JSON manifest"):
        load_manifest_from_json('{"version": "1"}')


def test_load_json_array_rejected():
    with pytest.raises(ManifestError):
        load_manifest_from_json("[1, 2]")


def test_load_yaml_keeps_port_text():
    m = load_manifest_from_yaml(YAML_TEXT)
    assert m.version == 1
    assert m.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    svc = m.services[0]
    assert svc.ports == ["8080:80"]
    assert svc.depends_on == ["db"]
    assert svc.environment == {"MODE": "prod"}
    assert m.volumes[0].name == "data"
    assert m.secrets[0].required is True
    assert m.secrets[0].target == "/run/secrets/api"


def test_load_yaml_empty_document():
    assert load_manifest_from_yaml("") == Manifest()


def test_load_yaml_invalid():
    with pytest.raises(ManifestError, match="^parsing YAML manifest"):
        load_manifest_from_yaml("name: [unclosed")


def test_load_yaml_bad_version():
    with pytest.raises(ManifestError):
        load_manifest_from_yaml("version: many\n")


@pytest.mark.parametrize("filename", ["m.yaml", "m.yml", "m.YML"])
def test_load_file_yaml_extensions(tmp_path, filename):
    path = tmp_path / filename
    path.write_text(YAML_TEXT)
    assert load_manifest_from_file(path).services[0].ports == ["8080:80"]


def test_load_file_json(tmp_path):
    path = tmp_path / "m.json"
    path.write_text(json.dumps(FULL_JSON))
    assert load_manifest_from_file(path) == load_manifest_from_json(json.dumps(FULL_JSON))


def test_load_file_json_extension_does_not_fall_back(tmp_path):
    path = tmp_path / "m.json"
    path.write_text(YAML_TEXT)
    with pytest.raises(ManifestError, match="parsing JSON manifest"):
        load_manifest_from_file(path)


def test_load_file_unknown_extension_falls_back_to_yaml(tmp_path):
    path = tmp_path / "manifest"
    path.write_text(YAML_TEXT)
    assert load_manifest_from_file(path).name == "stack"


def test_load_file_missing(tmp_path):
    with pytest.raises(ManifestError, match="^reading manifest file"):
        load_manifest_from_file(tmp_path / "absent.json")


def test_generate_from_quadlets(tmp_path):
    qdir = tmp_path / "mystack"
    qdir.mkdir()
    (qdir / "web.container").write_text(
        "[Container]\nImage=nginx:latest\nPublishPort=8080:80\n  PublishPort=8443:443\n"
    )
    (qdir / "db.container").write_text("[Container]\nImage=postgres")
    (qdir / "data.volume").write_text("[Volume]\n")
    (qdir / "notes.txt").write_text("x")

    m = generate_manifest_from_quadlets(qdir)
    assert m.version == 1
    assert m.name == "mystack"
    assert m.created_at is not None
    assert [s.name for s in m.services] == ["db", "web"]
    assert all(s.type == "container" for s in m.services)
    db, web = m.services
    assert web.files == ["web.container"]
    assert web.environment == {"Image": "nginx:latest"}
    assert web.ports == ["8080:80", "8443:443"]
    assert db.environment == {}
    assert m.volumes == [VolumeDefinition(name="data")]


def test_generate_without_volumes(tmp_path):
    (tmp_path / "app.container").write_text("[Container]\nImage=app\n")
    m = generate_manifest_from_quadlets(tmp_path)
    assert m.volumes == []
    assert m.services[0].name == "app"


def test_generate_no_containers(tmp_path):
    (tmp_path / "data.volume").write_text("[Volume]\n")
    with pytest.raises(ManifestError, match="no quadlet files found in"):
        generate_manifest_from_quadlets(tmp_path)


def test_generate_missing_directory(tmp_path):
    with pytest.raises(ManifestError, match="no quadlet files found in"):
        generate_manifest_from_quadlets(tmp_path / "absent")