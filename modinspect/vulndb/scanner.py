"""
Vulnerability scanning through govulncheck.

govulncheck does the analysis; this module runs it in JSON mode and turns its
newline-delimited message stream into a list of findings. An advisory
affecting several packages gives one finding per package, and repeated
messages for the same (advisory, package) pair are collapsed.
"""

import json
import logging
import shutil
import subprocess
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from modinspect.constants import SEVERITY_ORDER

logger = logging.getLogger(__name__)

GOVULNCHECK = "govulncheck"
VULN_URL = "https://pkg.go.dev/vuln/{id}"


class ScanError(Exception):
    """Raised when the scanner could not produce any result."""

    pass


class ScannerNotFound(ScanError):
    def __init__(self, binary: str = GOVULNCHECK):
        self.binary = binary
        super().__init__(
            f"{binary} not found. Install it with: "
            "go install golang.org/x/vuln/cmd/govulncheck@latest"
        )


@dataclass
class Vulnerability:
    id: str
    package: str
    severity: str = "UNKNOWN"
    description: str = ""
    fixed: str = "unknown"
    installed: str = ""
    url: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class ScanResult:
    vulnerabilities: List[Vulnerability] = field(default_factory=list)
    total_scanned: int = 0

    @property
    def total_vulns(self) -> int:
        return len(self.vulnerabilities)


def _severity(osv: Dict[str, Any]) -> str:
    specific = osv.get("database_specific") or {}
    severity = specific.get("severity") if isinstance(specific, dict) else None
    return severity.upper() if severity else "UNKNOWN"


def _fixed_version(affected: Dict[str, Any]) -> str:
    for r in affected.get("ranges") or []:
        for event in r.get("events") or []:
            if event.get("fixed"):
                return event["fixed"]
    return "unknown"


def parse_stream(lines: Iterable[Union[str, bytes]]) -> List[Vulnerability]:
    """
    Extract findings from govulncheck's JSON message stream.

    Blank lines, lines that are not JSON objects and messages other than
    ``osv`` entries are skipped. Findings keep the order in which their
    (advisory, package) pair first appeared; later duplicates replace the
    earlier entry.
    """
    found: Dict[str, Vulnerability] = {}

    for raw in lines:
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except ValueError:
            logger.debug(f"Skipping non-JSON scanner output: {line[:80]}")
            continue
        if not isinstance(message, dict):
            continue

        osv = message.get("osv")
        if not isinstance(osv, dict):
            continue

        advisory_id = osv.get("id", "")
        severity = _severity(osv)
        for affected in osv.get("affected") or []:
            package = (affected.get("package") or {}).get("name", "")
            found[(advisory_id, package)] = Vulnerability(
                id=advisory_id,
                package=package,
                severity=severity,
                description=osv.get("summary", ""),
                fixed=_fixed_version(affected),
                url=VULN_URL.format(id=advisory_id),
            )

    return list(found.values())


class Scanner:
    """Runs govulncheck against a module directory."""

    def __init__(self, binary: str = GOVULNCHECK):
        self.binary = binary

    @classmethod
    def create(cls, binary: str = GOVULNCHECK) -> "Scanner":
        """
        Raises:
            ScannerNotFound: If the binary is not on PATH
        """
        resolved = shutil.which(binary)
        if resolved is None:
            raise ScannerNotFound(binary)
        return cls(resolved)

    def scan_module(
        self, mod_dir: Union[str, Path] = ".", timeout: Optional[float] = None
    ) -> ScanResult:
        """
        Scan all packages of the module in ``mod_dir``.

        govulncheck exits non-zero when it finds vulnerabilities, so the exit
        status alone is not an error; only a failure without any output is.

        Raises:
            ScanError: If the scanner failed or timed out
        """
        cmd = [self.binary, "-json", "./..."]
        logger.debug(f"Running {' '.join(cmd)} in {mod_dir}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(mod_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ScanError(f"{self.binary} timed out after {timeout}s") from e
        except OSError as e:
            raise ScanError(f"{self.binary} failed: {e}") from e

        output = proc.stdout or b""
        if proc.returncode != 0 and not output:
            raise ScanError(f"{self.binary} failed: exit status {proc.returncode}")

        return ScanResult(
            vulnerabilities=parse_stream(output.splitlines()),
            total_scanned=1,
        )


def filter_by_severity(
    vulns: List[Vulnerability], severities: Optional[Iterable[str]]
) -> List[Vulnerability]:
    """Keep findings whose severity is listed. No severities keeps everything."""
    wanted = {s.upper() for s in severities or []}
    if not wanted:
        return list(vulns)
    return [v for v in vulns if v.severity in wanted]


def group_by_severity(vulns: List[Vulnerability]) -> Dict[str, List[Vulnerability]]:
    """Group findings by severity, most severe first, omitting empty groups."""
    groups: Dict[str, List[Vulnerability]] = {}
    for v in vulns:
        severity = (v.severity or "UNKNOWN").upper()
        if severity not in SEVERITY_ORDER:
            severity = "UNKNOWN"
        groups.setdefault(severity, []).append(v)
    return {s: groups[s] for s in SEVERITY_ORDER if s in groups}
