"""Report the version of the installed typsmith distribution."""

from __future__ import annotations

from functools import lru_cache
from importlib import metadata


DISTRIBUTION = "typsmith"
UNKNOWN_VERSION = "0.0.0"


@lru_cache(maxsize=1)
def get_version() -> str:
    """Return the distribution version, or ``0.0.0`` for an uninstalled checkout."""
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return UNKNOWN_VERSION


__all__ = ["DISTRIBUTION", "UNKNOWN_VERSION", "get_version"]
