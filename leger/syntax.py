"""Basic syntax checks for quadlet files."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

QUADLET_EXTENSIONS = (".container", ".volume", ".network", ".pod", ".kube", ".image")


class QuadletSyntaxError(ValueError):
    """A quadlet file, or a directory of them, failed validation."""

    def __init__(self, message: str, errors: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


def _extension(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _walk_files(root: str) -> Iterator[str]:
    """Yield every non-directory path under root, in lexical order."""
    if not stat.S_ISDIR(os.lstat(root).st_mode):
        yield root
        return
    for name in sorted(os.listdir(root)):
        yield from _walk_files(os.path.join(root, name))


def _require(text: str, marker: str, path: str, message: str) -> None:
    if marker not in text:
        raise QuadletSyntaxError(f"{path}: {message}")


def _check_container(text: str, path: str) -> None:
    _require(text, "[Container]", path, "missing required [Container] section")
    _require(
        text, "Image=", path, "missing required Image= directive in [Container] section"
    )
    if "[Unit]" not in text:
        print(f"Warning: {path}: missing [Unit] section (recommended)")


def _check_volume(text: str, path: str) -> None:
    _require(text, "[Volume]", path, "missing required [Volume] section")


def _check_network(text: str, path: str) -> None:
    _require(text, "[Network]", path, "missing required [Network] section")


def _check_pod(text: str, path: str) -> None:
    _require(text, "[Pod]", path, "missing required [Pod] section")


def _check_kube(text: str, path: str) -> None:
    _require(text, "[Kube]", path, "missing required [Kube] section")
    if "Yaml=" not in text and "ConfigMap=" not in text:
        raise QuadletSyntaxError(
            f"{path}: missing required Yaml= or ConfigMap= directive in [Kube] section"
        )


def _check_image(text: str, path: str) -> None:
    _require(text, "[Image]", path, "missing required [Image] section")
    _require(text, "Image=", path, "missing required Image= directive in [Image] section")


_CHECKS: dict[str, Callable[[str, str], None]] = {
    ".container": _check_container,
    ".volume": _check_volume,
    ".network": _check_network,
    ".pod": _check_pod,
    ".kube": _check_kube,
    ".image": _check_image,
}


def validate_quadlet_syntax(path: str | os.PathLike[str]) -> None:
    """Check that a quadlet file has the sections and directives its type requires."""
    path = os.fspath(path)
    try:
        content = Path(path).read_bytes()
    except OSError as exc:
        raise QuadletSyntaxError(f"cannot read file: {exc}") from exc

    ext = _extension(path)
    check = _CHECKS.get(ext)
    if check is None:
        raise QuadletSyntaxError(f"unsupported quadlet file type: {ext}")
    check(content.decode("utf-8", errors="replace"), path)


def validate_quadlet_directory(directory: str | os.PathLike[str]) -> None:
    """Validate every quadlet file under a directory, reporting all failures at once."""
    errors: list[str] = []
    try:
        for path in _walk_files(os.fspath(directory)):
            if _extension(path) not in QUADLET_EXTENSIONS:
                continue
            try:
                validate_quadlet_syntax(path)
            except QuadletSyntaxError as exc:
                errors.append(str(exc))
    except OSError as exc:
        raise QuadletSyntaxError(f"failed to walk directory: {exc}") from exc

    if errors:
        raise QuadletSyntaxError(
            "validation errors:\n  - " + "\n  - ".join(errors), errors
        )