"""Validation, manifests, staging, diffing and applying of Podman quadlet deployments."""

__version__ = "0.1.0"