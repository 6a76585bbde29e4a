# leger

A library for working with Podman quadlet deployments. It checks quadlet files
for mistakes and conflicts, keeps an update staged next to the running
deployment, shows what the update would change, and applies it with a backup
and a rollback.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Validating a quadlet directory

```python
from leger.validator import Validator, format_result

result = Validator("/path/to/quadlets").validate_all()
print(format_result(result))
```

`Validator.validate_all` raises `FileNotFoundError` when the directory does not
exist. Otherwise it returns a `ValidationResult` whose `valid` flag is cleared
by any of these findings:

- syntax errors, from `leger.syntax.validate_quadlet_directory`: every
  `.container`, `.volume`, `.network`, `.pod`, `.kube` and `.image` file must
  have its section (`[Container]`, `[Volume]`, ...); containers and images also
  need `Image=`, kube files need `Yaml=` or `ConfigMap=`. A container without a
  `[Unit]` section only prints a warning.
- port conflicts, from `leger.conflicts.check_port_conflicts`: the same host
  port and protocol published by more than one `.container` file.
- dependency cycles and missing dependencies, from `leger.dependencies`, built
  from the `After=`, `Requires=` and `Wants=` lines of the `[Unit]` section of
  `.container` and `.pod` files.

`Validator.quick_conflict_check` runs only the conflict checks.
`leger.conflicts.check_volume_conflicts` reads every `Volume=` line but never
reports a conflict, since sharing a volume is allowed.

Single checks can be used on their own, for example
`leger.syntax.validate_quadlet_syntax(path)`, which raises
`QuadletSyntaxError`, or `leger.conflicts.parse_port("127.0.0.1:8080:80/udp")`.

## Manifests

`leger.manifest.load_manifest_from_file` reads a `Manifest` from a `.json`,
`.yaml` or `.yml` file; other extensions are tried as JSON, then as YAML.
`load_manifest_from_json` and `load_manifest_from_yaml` parse text directly.
`generate_manifest_from_quadlets(directory)` builds a manifest from the
`.container` files in a directory (name, image, published ports) and its
`.volume` files. Failures raise `ManifestError`.

## Staging updates

```python
from leger.staging import new_manager
from leger.diff import generate_diff
from leger.operations import apply_staged

manager = new_manager()          # ~/.local/share/bluebuild-quadlets
diff = generate_diff(manager, "my-app")
diff.display()
apply_staged(manager, "my-app")
```

A `Manager` holds three directories: staged files live under
`staged/<name>`, the running deployment under `active/<name>` and timestamped
copies under `backups/<name>`. It can list, discard and clean staged
deployments and save and load their `StagingMetadata`.

`generate_diff` lists files added, removed and modified, with a unified diff of
each modified file and the services of changed `.container` files.

`apply_staged` backs up the active deployment, stops the services of the staged
`.container` files with `systemctl --user stop`, replaces the active files with
the staged ones, runs `podman quadlet install --user`, starts the services
again and removes the staged copy. If replacing or installing fails, it restores
the latest backup with `rollback` and raises `StagingError`. Failures to stop or
start a service are printed as warnings. `systemctl` and `podman` must be on the
`PATH` for applying and rolling back.

## Other helpers

- `leger.table.format_table` and `print_table`: plain-text tables.
- `leger.colors`: coloured text (`success`, `error`, `warning`, `info`, `bold`)
  and coloured printing (`success_printf` and the like).
- `leger.confirm`: yes/no prompts on standard input.
- `leger.progress`: a spinner around a task, and step progress bars.
- `leger.quadlet_types` and `leger.deployment`: data classes for quadlets,
  conflicts, deployed services and deployment state
  (`DeploymentState.to_dict` / `from_dict`).
- `leger.api`: request, value and error types for a secrets service.
- `leger.version`: `version_string` and `long_version`.

## What it does not do

- There is no command-line program; everything is used from Python.
- `leger.operations.stage_update` only creates the staging directory and
  records the source in the metadata; it does not download or copy quadlets.
  Files must be placed in the staging directory by other means.
- `leger.api` defines only the message types of a secrets service; there is no
  secrets client, server or storage.