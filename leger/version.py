"""Build version information."""

VERSION = "development"
COMMIT = "unknown"
BUILD_DATE = "unknown"


def version_string() -> str:
    """Return the short version."""
    return VERSION


def long_version() -> str:
    """Return the version with commit and build date."""
    return f"{VERSION} (commit {COMMIT}, built {BUILD_DATE})"