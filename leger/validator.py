"""Combined validation of a directory of quadlet files."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from .conflicts import check_port_conflicts, check_volume_conflicts
from .dependencies import (
    Dependency,
    analyze_dependencies,
    detect_circular_dependencies,
    validate_dependencies,
)
from .quadlet_types import (
    CircularDependency,
    MissingDependency,
    PortConflict,
    VolumeConflict,
)
from .syntax import QuadletSyntaxError, validate_quadlet_directory


@dataclass
class ValidationResult:
    """The findings of a validation run."""

    valid: bool = True
    syntax_errors: list[str] = field(default_factory=list)
    port_conflicts: list[PortConflict] = field(default_factory=list)
    volume_conflicts: list[VolumeConflict] = field(default_factory=list)
    circular_dependencies: list[CircularDependency] = field(default_factory=list)
    missing_dependencies: list[MissingDependency] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)


@dataclass
class Validator:
    """Validates the quadlets of one deployment directory."""

    quadlet_dir: str

    def _require_directory(self) -> None:
        if not os.path.exists(self.quadlet_dir):
            raise FileNotFoundError(f"quadlet directory does not exist: {self.quadlet_dir}")

    def _check_conflicts(self, result: ValidationResult) -> None:
        try:
            ports = check_port_conflicts(self.quadlet_dir)
        except OSError as exc:
            raise OSError(f"failed to check port conflicts: {exc}") from exc
        if ports:
            result.valid = False
            result.port_conflicts = ports

        try:
            volumes = check_volume_conflicts(self.quadlet_dir)
        except OSError as exc:
            raise OSError(f"failed to check volume conflicts: {exc}") from exc
        if volumes:
            result.valid = False
            result.volume_conflicts = volumes

    def validate_all(self) -> ValidationResult:
        """Check syntax, conflicts and dependencies."""
        self._require_directory()
        result = ValidationResult()

        try:
            validate_quadlet_directory(self.quadlet_dir)
        except QuadletSyntaxError as exc:
            result.valid = False
            result.syntax_errors = [str(exc)]

        self._check_conflicts(result)

        try:
            dependencies = analyze_dependencies(self.quadlet_dir)
        except OSError as exc:
            raise OSError(f"failed to analyze dependencies: {exc}") from exc
        result.dependencies = dependencies

        cycles = detect_circular_dependencies(dependencies)
        if cycles:
            result.valid = False
            result.circular_dependencies = cycles

        missing = validate_dependencies(dependencies)
        if missing:
            result.valid = False
            result.missing_dependencies = missing

        return result

    def quick_conflict_check(self) -> ValidationResult:
        """Check only for port and volume conflicts."""
        self._require_directory()
        result = ValidationResult()
        self._check_conflicts(result)
        return result


def _list(items: list[str]) -> str:
    return "[" + " ".join(items) + "]"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def format_result(result: ValidationResult) -> str:
    """Describe a validation result for display."""
    if result.valid:
        return "✓ Validation passed - no issues found"

    out = ["❌ Validation failed:\n\n"]

    if result.syntax_errors:
        out.append("Syntax Errors:\n")
        out.extend(f"  • {err}\n" for err in result.syntax_errors)
        out.append("\n")

    if result.port_conflicts:
        out.append("Port Conflicts:\n")
        out.extend(
            f"  • Port {c.port}/{c.protocol} used by: {_list(c.quadlets)}\n"
            for c in result.port_conflicts
        )
        out.append("\n")

    if result.volume_conflicts:
        out.append("Volume Conflicts:\n")
        out.extend(
            f"  • Volume {c.path} used by: {_list(c.quadlets)}\n"
            for c in result.volume_conflicts
        )
        out.append("\n")

    if result.circular_dependencies:
        out.append("Circular Dependencies:\n")
        out.extend(
            f"  • Cycle: {_list(c.services)}\n" for c in result.circular_dependencies
        )
        out.append("\n")

    if result.missing_dependencies:
        out.append("Missing Dependencies:\n")
        out.extend(
            f"  • Service {_quote(m.service)} requires "
            f"{_quote(m.missing_dependency)} (not found)\n"
            for m in result.missing_dependencies
        )
        out.append("\n")

    return "".join(out)