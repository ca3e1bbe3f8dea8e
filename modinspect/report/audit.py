"""Vulnerability report rendering."""

import json
from typing import Any, Dict, List, Optional

from modinspect.modfile import Requirement
from modinspect.versioning import strip_prefix
from modinspect.vulndb import ScanResult, Vulnerability, group_by_severity
from .style import OutputStyle

RULE_WIDTH = 80
STDLIB_PACKAGES = ("stdlib", "toolchain")


def annotate_installed(
    vulns: List[Vulnerability],
    requirements: List[Requirement],
    go_version: Optional[str] = None,
) -> List[Vulnerability]:
    """
    Fill in the installed version of every finding.

    A package belongs to the requirement whose module path is its longest
    prefix. ``stdlib`` and ``toolchain`` findings get the go directive
    version. Findings that match nothing keep an empty installed version.
    """
    by_path = sorted(requirements, key=lambda r: len(r.path), reverse=True)

    for v in vulns:
        if v.installed:
            continue
        if v.package in STDLIB_PACKAGES:
            v.installed = go_version or ""
            continue
        for req in by_path:
            if v.package == req.path or v.package.startswith(req.path + "/"):
                v.installed = strip_prefix(req.version)
                break
    return vulns


def audit_payload(vulns: List[Vulnerability], result: ScanResult) -> Dict[str, Any]:
    return {
        "total_scanned": result.total_scanned,
        "total_vulnerabilities": len(vulns),
        "vulnerabilities": [v.to_dict() for v in vulns],
    }


def render_json(vulns: List[Vulnerability], result: ScanResult) -> str:
    return json.dumps(audit_payload(vulns, result), indent=2)


def render_audit(
    vulns: List[Vulnerability], result: ScanResult, style: OutputStyle
) -> str:
    """Render findings grouped by severity, most severe first, with a summary."""
    lines: List[str] = [""]
    if result.total_scanned > 0:
        lines.append(f"Scanned {result.total_scanned} module(s)")
        lines.append("")

    if not vulns:
        lines.append(style.paint("✓ No vulnerabilities found!", fg="green"))
        return "\n".join(lines) + "\n"

    groups = group_by_severity(vulns)
    for severity, group in groups.items():
        lines.append("")
        lines.append(f"{style.severity(severity)} ({len(group)})")
        lines.append("─" * RULE_WIDTH)
        for v in group:
            lines.append("")
            lines.append(f"{style.severity(severity, v.id)} - {v.package}")
            if style.verbose or v.installed:
                lines.append(f"  Installed: {v.installed or 'unknown'}")
            if v.fixed != "unknown":
                lines.append(f"  Fixed:     {v.fixed}")
            if v.description:
                lines.append(f"  {v.description}")
            lines.append(f"  Details:   {v.url}")

    lines.append("")
    lines.append("─" * RULE_WIDTH)
    lines.append("")
    lines.append(f"Found {len(vulns)} vulnerabilities:")
    for severity, group in groups.items():
        lines.append(f"  {style.severity(severity)}: {len(group)}")

    if not style.quiet:
        lines.append("")
        lines.append("Run 'modinspect update' to update vulnerable packages")

    return "\n".join(lines) + "\n"
