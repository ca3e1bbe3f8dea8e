"""CLI command updating go.mod requirements to their latest versions."""

import subprocess
from pathlib import Path
from typing import List

import click

from modinspect.constants import UpdateType
from modinspect.modfile import ModFileError, Writer
from modinspect.registry import RegistryClient
from modinspect.report import Dependency, load_dependencies
from .progress import ProgressDisplay
from .utils.logging import logger
from .utils.options import (
    get_config,
    get_style,
    interruptible,
    modfile_option,
    open_modfile,
    verbosity_options,
)


def select_updates(deps: List[Dependency], include_major: bool) -> List[Dependency]:
    """Dependencies behind their latest version, without major jumps unless requested."""
    selected = []
    for dep in deps:
        if dep.up_to_date:
            continue
        if not include_major and dep.update_type is UpdateType.major:
            logger.debug(f"Skipping major update of {dep.name} to {dep.latest}")
            continue
        selected.append(dep)
    return selected


def run_go(work_dir: Path, *args: str) -> None:
    """
    Run a go subcommand in ``work_dir``.

    Raises:
        RuntimeError: If go is missing or the command failed
    """
    cmd = ["go", *args]
    logger.debug(f"Running {' '.join(cmd)} in {work_dir}")
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(work_dir),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as e:
        raise RuntimeError(str(e)) from e

    if proc.returncode != 0:
        output = (proc.stdout or b"").decode("utf-8", errors="replace").strip()
        raise RuntimeError(f"exit status {proc.returncode}: {output}")


@click.command(name="update")
@click.option(
    "--all",
    "update_all",
    is_flag=True,
    default=False,
    help="Update all outdated dependencies.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Show what would be updated without making changes.",
)
@click.option(
    "--major",
    is_flag=True,
    default=False,
    help="Include major version updates.",
)
@click.option(
    "--vendor",
    is_flag=True,
    default=False,
    help="Run 'go mod vendor' after 'go mod tidy'.",
)
@modfile_option
@verbosity_options
@click.pass_context
def update(
    ctx,
    update_all: bool,
    dry_run: bool,
    major: bool,
    vendor: bool,
    modfile: str,
    quiet: bool,
    verbose: bool,
):
    """Update dependencies in go.mod to their latest versions.

    go.mod is backed up before writing and restored if the result does not
    parse. 'go mod tidy' then runs in the directory of the go.mod file.

    Examples:

      modinspect update --all --dry-run

      modinspect update --all --major --vendor
    """
    style = get_style(ctx, quiet, verbose)
    parser = open_modfile(ctx, modfile)
    config = get_config(ctx)

    if not update_all:
        logger.error("Error: Please specify --all to update every outdated dependency")
        ctx.exit(1)

    requires = parser.all_requires()
    if not requires:
        click.echo("No dependencies found in go.mod")
        return

    progress = ProgressDisplay(enabled=not style.quiet)
    with RegistryClient.from_config(config) as client, interruptible(ctx) as cancel:
        with progress.task("Loading dependencies", total=len(requires)):
            deps = load_dependencies(
                client,
                requires,
                max_workers=config.max_concurrent,
                progress=progress.advance,
                cancel=cancel,
            )

    if all(dep.up_to_date for dep in deps):
        click.echo("✨ All dependencies are up to date!")
        return

    to_update = select_updates(deps, include_major=major)
    if not to_update:
        click.echo("No packages selected for update (use --major to include major updates)")
        return

    if dry_run:
        click.echo("Would update:")
        for dep in to_update:
            click.echo(f"  • {dep.name}: {dep.current} → {dep.latest}")
        return

    writer = Writer(parser)
    try:
        for dep in to_update:
            if style.verbose:
                click.echo(f"  {dep.name}: {dep.current} → {dep.latest}")
            writer.update_require(dep.name, dep.latest_raw)
        writer.safe_write()
    except ModFileError as e:
        logger.error(f"Error: Updating {modfile} failed: {e}")
        ctx.exit(1)

    try:
        writer.cleanup_backup()
    except ModFileError as e:
        logger.warning(f"Could not remove backup: {e}")

    click.echo(f"✓ Successfully updated {len(to_update)} package(s)")

    work_dir = Path(modfile).resolve().parent
    steps = [(("mod", "tidy"), "go.mod and go.sum updated")]
    if vendor:
        steps.append((("mod", "vendor"), "vendor directory updated"))
    for args, done in steps:
        command = "go " + " ".join(args)
        if not style.quiet:
            click.echo(f"Running {command}...")
        try:
            run_go(work_dir, *args)
        except RuntimeError as e:
            logger.warning(f"Warning: {command} failed: {e}")
            logger.warning(f"You may need to run '{command}' manually")
            return
        if not style.quiet:
            click.echo(f"✓ {done}")
