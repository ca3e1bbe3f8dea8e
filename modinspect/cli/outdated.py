"""CLI command listing dependencies with newer versions."""

import click

from modinspect.registry import RegistryClient
from modinspect.report import check_outdated, render_outdated
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


@click.command(name="outdated")
@click.option(
    "--direct-only",
    is_flag=True,
    default=False,
    help="Show only direct dependencies.",
)
@click.option(
    "--major-only",
    is_flag=True,
    default=False,
    help="Show only major version updates.",
)
@modfile_option
@verbosity_options
@click.pass_context
def outdated(ctx, direct_only: bool, major_only: bool, modfile: str, quiet: bool, verbose: bool):
    """List dependencies that have newer versions available.

    Examples:

      modinspect outdated

      modinspect outdated --direct-only --major-only
    """
    style = get_style(ctx, quiet, verbose)
    parser = open_modfile(ctx, modfile)
    config = get_config(ctx)

    requires = parser.direct_requires() if direct_only else parser.all_requires()
    if not requires:
        click.echo("No dependencies found")
        return

    logger.debug(f"Checking {len(requires)} requirement(s) against {config.proxy_url}")

    progress = ProgressDisplay(enabled=not style.quiet)
    with RegistryClient.from_config(config) as client, interruptible(ctx) as cancel:
        with progress.task("Checking for updates", total=len(requires)):
            packages = check_outdated(
                client,
                requires,
                major_only=major_only,
                max_workers=config.max_concurrent,
                progress=progress.advance,
                cancel=cancel,
            )

    if not packages:
        click.echo("✨ All packages are up to date!")
        return

    click.echo(render_outdated(packages, style))
    if not style.quiet:
        click.echo("")
        click.echo(style.paint("Run `modinspect update --all` to update them", fg="blue"))
