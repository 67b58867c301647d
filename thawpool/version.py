from __future__ import annotations

"""
thawpool.version: the package version string.

THAWPOOL_VERSION in the environment wins; otherwise the installed
distribution's metadata is used, and a source tree without metadata falls
back to BASE_VERSION.
"""

import os
from importlib import metadata

BASE_VERSION = "0.1.0"
DIST_NAME = "thawpool"


def build_version() -> str:
    v = os.getenv("THAWPOOL_VERSION")
    if v:
        return v
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return BASE_VERSION


__version__ = build_version()


__all__ = ["__version__", "BASE_VERSION", "build_version"]
