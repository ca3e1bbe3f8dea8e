"""
Outdated dependency detection.

One latest-version lookup per requirement runs on a thread pool; the registry
client bounds how many of them actually hit the network at once. Results
come back in requirement order regardless of completion order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from modinspect.constants import DEFAULT_MAX_CONCURRENT, UpdateType
from modinspect.modfile import Requirement
from modinspect.registry import CancelToken, RegistryClient, RegistryError
from modinspect.registry.models import VersionInfo
from modinspect.versioning import classify_update, compare, strip_prefix
from .style import UPDATE_SYMBOLS, OutputStyle, render_table, truncate

logger = logging.getLogger(__name__)

# Called with (done, total) after each lookup
ProgressCallback = Callable[[int, int], None]

UNKNOWN_VERSION = "unknown"


@dataclass
class Package:
    """A requirement with a newer version available."""

    name: str
    current: str
    latest: str
    update_type: UpdateType
    direct: bool


@dataclass
class Dependency:
    """A requirement and the version it would be updated to."""

    name: str
    current: str
    target: str
    latest: str
    latest_raw: str
    direct: bool
    up_to_date: bool
    update_type: UpdateType = UpdateType.none


class _Progress:
    def __init__(self, total: int, callback: Optional[ProgressCallback]):
        self.total = total
        self.done = 0
        self._callback = callback
        self._lock = threading.Lock()

    def step(self) -> None:
        with self._lock:
            self.done += 1
            done = self.done
        if self._callback is not None:
            self._callback(done, self.total)


def _lookup_all(
    client: RegistryClient,
    requirements: List[Requirement],
    max_workers: int,
    progress: Optional[ProgressCallback],
    cancel: Optional[CancelToken],
) -> List[Optional[VersionInfo]]:
    """Fetch the latest version of every requirement, None where the lookup failed."""
    tracker = _Progress(len(requirements), progress)

    def lookup(req: Requirement) -> Optional[VersionInfo]:
        try:
            return client.latest(req.path, cancel=cancel)
        except RegistryError as e:
            logger.debug(f"Could not fetch latest version of {req.path}: {e}")
            return None
        finally:
            tracker.step()

    if not requirements:
        return []

    workers = max(1, min(max_workers, len(requirements)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(lookup, requirements))


def check_outdated(
    client: RegistryClient,
    requirements: List[Requirement],
    major_only: bool = False,
    max_workers: int = DEFAULT_MAX_CONCURRENT,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
) -> List[Package]:
    """
    List the requirements that have a newer version in the registry.

    Requirements whose latest version cannot be fetched are left out.

    Args:
        client: Registry client
        requirements: Requirements to check
        major_only: Only report major version updates
        max_workers: Number of lookup threads
        progress: Optional callback receiving (done, total)
        cancel: Cancels the pending lookups when set

    Returns:
        Outdated packages in requirement order
    """
    latest = _lookup_all(client, requirements, max_workers, progress, cancel)

    packages: List[Package] = []
    for req, info in zip(requirements, latest):
        if info is None:
            continue
        update_type = classify_update(req.version, info.version)
        if update_type is UpdateType.none:
            continue
        if major_only and update_type is not UpdateType.major:
            continue
        packages.append(
            Package(
                name=req.path,
                current=strip_prefix(req.version),
                latest=strip_prefix(info.version),
                update_type=update_type,
                direct=not req.indirect,
            )
        )
    return packages


def load_dependencies(
    client: RegistryClient,
    requirements: List[Requirement],
    max_workers: int = DEFAULT_MAX_CONCURRENT,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
) -> List[Dependency]:
    """
    Pair every requirement with its latest version.

    A failed lookup gives a latest version of ``unknown`` and the dependency
    counts as up to date, so it is never selected for an update.
    """
    latest = _lookup_all(client, requirements, max_workers, progress, cancel)

    deps: List[Dependency] = []
    for req, info in zip(requirements, latest):
        latest_raw = info.version if info is not None else UNKNOWN_VERSION
        up_to_date = compare(req.version, latest_raw) >= 0
        target = req.version if up_to_date else latest_raw
        deps.append(
            Dependency(
                name=req.path,
                current=strip_prefix(req.version),
                target=strip_prefix(target),
                latest=strip_prefix(latest_raw),
                latest_raw=latest_raw,
                direct=not req.indirect,
                up_to_date=up_to_date,
                update_type=classify_update(req.version, latest_raw),
            )
        )
    return deps


def summarize(packages: List[Package]) -> Dict[UpdateType, int]:
    """Count packages per update type, major first."""
    counts = {t: 0 for t in (UpdateType.major, UpdateType.minor, UpdateType.patch)}
    for pkg in packages:
        if pkg.update_type in counts:
            counts[pkg.update_type] += 1
    return counts


def render_outdated(
    packages: List[Package], style: OutputStyle, name_width: int = 45
) -> str:
    """Render outdated packages as tables grouped into direct and indirect."""
    direct = [p for p in packages if p.direct]
    indirect = [p for p in packages if not p.direct]

    sections: List[str] = []
    for title, group in (
        ("Direct Dependencies", direct),
        ("Indirect Dependencies", indirect),
    ):
        if not group:
            continue
        rows = [
            [
                truncate(p.name, name_width),
                p.current,
                p.latest,
                UPDATE_SYMBOLS[p.update_type] + p.update_type.value,
            ]
            for p in group
        ]

        def cell_style(r: int, c: int, text: str, group=group) -> str:
            if c >= 2:
                return style.update(group[r].update_type, text)
            return text

        sections.append(style.paint(title, bold=True))
        sections.append(
            render_table(["Package", "Current", "Latest", "Update"], rows, style, cell_style)
        )
        sections.append("")

    counts = summarize(packages)
    summary = f"Summary: {len(packages)} package(s) can be updated"
    parts = [
        style.update(t, f"{n} {t.value}") for t, n in counts.items() if n > 0
    ]
    if parts:
        summary += f" ({', '.join(parts)})"
    sections.append(summary)

    return "\n".join(sections)
