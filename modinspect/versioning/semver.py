"""
Semantic versions as used by Go modules.

Go module versions always carry a leading ``v`` and accept the shorthands
``vMAJOR`` and ``vMAJOR.MINOR`` (meaning ``.0`` for the missing parts).
Prerelease suffixes follow semver 2.0 precedence and build metadata is
ignored when comparing. Unlike PEP 440 versions these cannot be handled by
packaging.version, pseudo-versions such as
``v0.0.0-20240101120000-abcdef123456`` being the common case.

Invalid version strings compare equal to each other and lower than any
valid version, which keeps sorting total.
"""

import re
from dataclasses import dataclass
from typing import Optional

from modinspect.constants import UpdateType
from .exceptions import VersionFormatError

_SEMVER_RE = re.compile(
    r"""
    ^v
    (?P<major>0|[1-9][0-9]*)
    (?:\.(?P<minor>0|[1-9][0-9]*)
        (?:\.(?P<patch>0|[1-9][0-9]*)
            (?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
            (?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
        )?
    )?$
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class SemVer:
    """A parsed Go module version."""

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    def __str__(self) -> str:
        text = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        return text


def _parse(version: str) -> Optional[SemVer]:
    match = _SEMVER_RE.match(version or "")
    if match is None:
        return None

    prerelease = match.group("prerelease") or ""
    # Numeric prerelease identifiers may not carry leading zeros
    for ident in prerelease.split(".") if prerelease else []:
        if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
            return None

    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor") or 0),
        patch=int(match.group("patch") or 0),
        prerelease=prerelease,
        build=match.group("build") or "",
    )


def parse_version(version: str) -> SemVer:
    """
    Parse a Go module version.

    Raises:
        VersionFormatError: If the string is not a valid version
    """
    parsed = _parse(version)
    if parsed is None:
        raise VersionFormatError(version)
    return parsed


def is_valid(version: str) -> bool:
    return _parse(version) is not None


def major(version: str) -> str:
    """Return the major version prefix (``v2`` for ``v2.1.0``), or "" if invalid."""
    parsed = _parse(version)
    if parsed is None:
        return ""
    return f"v{parsed.major}"


def canonical(version: str) -> str:
    """
    Return the canonical form of a version, or "" if invalid.

    Shorthands are expanded and build metadata is dropped:
    ``v1.2`` -> ``v1.2.0``, ``v1.2.3+meta`` -> ``v1.2.3``.
    """
    parsed = _parse(version)
    if parsed is None:
        return ""
    return str(parsed)


def _compare_prerelease(a: str, b: str) -> int:
    if a == b:
        return 0
    # A release has higher precedence than any of its prereleases
    if not a:
        return 1
    if not b:
        return -1

    a_parts = a.split(".")
    b_parts = b.split(".")
    for x, y in zip(a_parts, b_parts):
        if x == y:
            continue
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            return -1 if int(x) < int(y) else 1
        if x_num != y_num:
            return -1 if x_num else 1
        return -1 if x < y else 1

    if len(a_parts) == len(b_parts):
        return 0
    return -1 if len(a_parts) < len(b_parts) else 1


def compare(a: str, b: str) -> int:
    """
    Compare two versions.

    Returns:
        -1, 0 or 1 as ``a`` is lower than, equal to or higher than ``b``.
    """
    pa, pb = _parse(a), _parse(b)
    if pa is None and pb is None:
        return 0
    if pa is None:
        return -1
    if pb is None:
        return 1

    for x, y in ((pa.major, pb.major), (pa.minor, pb.minor), (pa.patch, pb.patch)):
        if x != y:
            return -1 if x < y else 1
    return _compare_prerelease(pa.prerelease, pb.prerelease)


def classify_update(current: str, latest: str) -> UpdateType:
    """
    Classify the step from ``current`` to ``latest``.

    Returns UpdateType.none when ``latest`` is not newer. A current version
    that cannot be parsed is treated as a major step.
    """
    if compare(current, latest) >= 0:
        return UpdateType.none

    pc, pl = _parse(current), _parse(latest)
    if pc is None or pl is None or pc.major != pl.major:
        return UpdateType.major
    if pc.minor != pl.minor:
        return UpdateType.minor
    return UpdateType.patch


def strip_prefix(version: str) -> str:
    """Drop the leading ``v`` for display."""
    return version[1:] if version.startswith("v") else version
