"""Dependency analysis between services defined in quadlet files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .conflicts import _directives
from .quadlet_types import CircularDependency, MissingDependency
from .syntax import _extension, _walk_files

_DEPENDENCY_KEYS = ("After=", "Requires=", "Wants=")


@dataclass
class Dependency:
    """A service with the services it depends on and those that depend on it."""

    service: str
    depends_on: list[str] = field(default_factory=list)
    required_by: list[str] = field(default_factory=list)


def parse_service_list(service_str: str) -> list[str]:
    """Split a whitespace-separated unit list, dropping any .service suffix."""
    services = []
    for part in service_str.split():
        name = part[: -len(".service")] if part.endswith(".service") else part
        if name:
            services.append(name)
    return services


def extract_dependencies(path: str | os.PathLike[str]) -> list[str]:
    """Return the units named by After=, Requires= and Wants= in the [Unit] section."""
    deps: list[str] = []
    for section, line in _directives(os.fspath(path)):
        if section != "[Unit]":
            continue
        for key in _DEPENDENCY_KEYS:
            if line.startswith(key):
                deps.extend(parse_service_list(line[len(key):]))
    return deps


def analyze_dependencies(quadlet_dir: str | os.PathLike[str]) -> list[Dependency]:
    """Collect the dependencies of every .container and .pod file under a directory."""
    by_name: dict[str, Dependency] = {}
    for path in _walk_files(os.fspath(quadlet_dir)):
        ext = _extension(path)
        if ext not in (".container", ".pod"):
            continue
        name = os.path.basename(path)[: -len(ext)]
        by_name[name] = Dependency(service=name, depends_on=extract_dependencies(path))

    for name, dep in by_name.items():
        for required in dep.depends_on:
            target = by_name.get(required)
            if target is not None:
                target.required_by.append(name)

    return list(by_name.values())


def detect_circular_dependencies(
    dependencies: list[Dependency],
) -> list[CircularDependency]:
    """Find dependency cycles; each search stops at the first cycle it meets."""
    graph = {dep.service: dep.depends_on for dep in dependencies}
    visited: set[str] = set()
    on_stack: set[str] = set()
    path: list[str] = []
    cycles: list[CircularDependency] = []

    def visit(service: str) -> bool:
        visited.add(service)
        on_stack.add(service)
        path.append(service)
        for dep in graph.get(service, ()):
            if dep not in visited:
                if visit(dep):
                    return True
            elif dep in on_stack:
                if dep in path:
                    cycles.append(CircularDependency(services=path[path.index(dep):]))
                return True
        on_stack.discard(service)
        path.pop()
        return False

    for service in graph:
        if service not in visited:
            visit(service)
    return cycles


def validate_dependencies(dependencies: list[Dependency]) -> list[MissingDependency]:
    """Report every dependency that names a service not among the given ones."""
    known = {dep.service for dep in dependencies}
    return [
        MissingDependency(service=dep.service, missing_dependency=required)
        for dep in dependencies
        for required in dep.depends_on
        if required not in known
    ]