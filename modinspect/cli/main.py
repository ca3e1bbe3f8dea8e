"""modinspect CLI"""

import click

from modinspect import __version__
from modinspect.cli.audit import audit
from modinspect.cli.graph import graph, why
from modinspect.cli.outdated import outdated
from modinspect.cli.update import update

from .debug import add_debug_option


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="modinspect")
@click.pass_context
def cli(ctx):
    """
    Inspect the dependencies of a Go module: outdated versions, known
    vulnerabilities and the requirement tree.
    """
    ctx.ensure_object(dict)


cli.add_command(add_debug_option(outdated))
cli.add_command(add_debug_option(audit))
cli.add_command(add_debug_option(update))
cli.add_command(add_debug_option(graph))
cli.add_command(add_debug_option(why))

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
