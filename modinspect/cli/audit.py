"""CLI command scanning dependencies for known vulnerabilities."""

from pathlib import Path

import click

from modinspect.constants import SEVERITY_ORDER
from modinspect.report import annotate_installed, render_audit, render_json
from modinspect.vulndb import ScanError, Scanner, filter_by_severity
from .progress import ProgressDisplay
from .utils.logging import logger
from .utils.options import get_style, modfile_option, open_modfile, split_csv, verbosity_options


@click.command(name="audit")
@click.option(
    "--severity",
    "-s",
    multiple=True,
    help="Only report these severities (repeatable or comma-separated: critical,high,medium,low).",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Output results as JSON.",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Abort the scan after this many seconds.",
)
@modfile_option
@verbosity_options
@click.pass_context
def audit(ctx, severity, as_json: bool, timeout, modfile: str, quiet: bool, verbose: bool):
    """Scan dependencies for known vulnerabilities using govulncheck.

    Examples:

      modinspect audit

      modinspect audit --severity high,critical

      modinspect audit --json > report.json
    """
    style = get_style(ctx, quiet, verbose)
    parser = open_modfile(ctx, modfile)

    severities = [s.upper() for s in split_csv(severity)]
    unknown = [s for s in severities if s not in SEVERITY_ORDER]
    if unknown:
        logger.error(f"Error: Unknown severity: {', '.join(unknown)}")
        ctx.exit(1)

    try:
        scanner = Scanner.create()
        progress = ProgressDisplay(enabled=not style.quiet and not as_json)
        with progress.task("Scanning for vulnerabilities"):
            result = scanner.scan_module(Path(modfile).parent, timeout=timeout)
    except ScanError as e:
        logger.error(f"Error: {e}")
        ctx.exit(1)

    vulns = filter_by_severity(result.vulnerabilities, severities)
    annotate_installed(vulns, parser.all_requires(), parser.mod_file.go_version)

    if as_json:
        click.echo(render_json(vulns, result))
    else:
        click.echo(render_audit(vulns, result, style), nl=False)
