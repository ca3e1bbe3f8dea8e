"""
Version handling for Go module versions.

Provides comparison and update classification following Go's semantic
versioning rules.
"""

from .exceptions import VersionFormatError, VersioningError
from .semver import (
    SemVer,
    canonical,
    classify_update,
    compare,
    is_valid,
    major,
    parse_version,
    strip_prefix,
)

__all__ = [
    "SemVer",
    "VersioningError",
    "VersionFormatError",
    "canonical",
    "classify_update",
    "compare",
    "is_valid",
    "major",
    "parse_version",
    "strip_prefix",
]
