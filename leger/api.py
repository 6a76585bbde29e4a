"""Types exchanged between a secrets client and server."""

from __future__ import annotations

from dataclasses import dataclass, field

SECRET_VERSION_DEFAULT = 0
"""A version that asks the server to pick the active version."""

_MAX_VERSION = 2**32 - 1


class ValueNotChangedError(Exception):
    """The secret value has not changed from the given version."""

    def __init__(self, message: str = "value not changed") -> None:
        super().__init__(message)


class NotFoundError(Exception):
    """The requested secret or version does not exist."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


class AccessDeniedError(Exception):
    """Access to the requested operation is denied."""

    def __init__(self, message: str = "access denied") -> None:
        super().__init__(message)


def format_version(version: int) -> str:
    """Return the decimal form of a secret version (an unsigned 32-bit number)."""
    if not 0 <= version <= _MAX_VERSION:
        raise ValueError(f"secret version out of range: {version}")
    return str(version)


@dataclass
class SecretValue:
    """A secret value and its version."""

    value: bytes
    version: int


@dataclass
class SecretInfo:
    """Information about a named secret and its versions."""

    name: str
    versions: list[int] = field(default_factory=list)
    active_version: int = SECRET_VERSION_DEFAULT


@dataclass
class ListRequest:
    """A request to list secrets."""


@dataclass
class GetRequest:
    """A request to get a secret value."""

    name: str
    version: int = SECRET_VERSION_DEFAULT
    update_if_changed: bool = False


@dataclass
class InfoRequest:
    """A request for secret metadata."""

    name: str


@dataclass
class PutRequest:
    """A request to write a secret value."""

    name: str
    value: bytes


@dataclass
class ActivateRequest:
    """A request to change the active version of a secret."""

    name: str
    version: int


@dataclass
class DeleteRequest:
    """A request to delete all versions of a secret."""

    name: str


@dataclass
class DeleteVersionRequest:
    """A request to delete one inactive version of a secret."""

    name: str
    version: int