"""CLI commands showing the dependency tree."""

import click

from modinspect.constants import MAX_GRAPH_DEPTH
from modinspect.graph import Graph, build, build_with_registry
from modinspect.modfile import Parser
from modinspect.registry import RegistryClient
from modinspect.report import OutputStyle, TreeOptions, render_paths, render_tree
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


def _load_graph(
    ctx: click.Context, parser: Parser, style: OutputStyle, offline: bool, depth: int
) -> Graph:
    requires = parser.all_requires()
    if offline:
        return build(parser.module_path, requires)

    config = get_config(ctx)
    progress = ProgressDisplay(enabled=not style.quiet)
    with RegistryClient.from_config(config) as client, interruptible(ctx) as cancel:
        with progress.task("Resolving dependency tree"):
            graph = build_with_registry(
                parser.module_path, requires, client, max_depth=depth, cancel=cancel
            )
    return graph


@click.command(name="graph")
@click.option(
    "--depth",
    "-d",
    type=click.IntRange(min=0),
    default=0,
    help="Maximum depth to display, 0 for unlimited.",
)
@click.option(
    "--no-versions",
    is_flag=True,
    default=False,
    help="Hide module versions.",
)
@click.option(
    "--full",
    is_flag=True,
    default=False,
    help="Print repeated subtrees in full instead of pruning them.",
)
@click.option(
    "--pattern",
    "-p",
    default="",
    help="Only show modules whose path contains this text.",
)
@click.option(
    "--offline",
    is_flag=True,
    default=False,
    help="Show only go.mod requirements, without querying the proxy.",
)
@modfile_option
@verbosity_options
@click.pass_context
def graph(
    ctx,
    depth: int,
    no_versions: bool,
    full: bool,
    pattern: str,
    offline: bool,
    modfile: str,
    quiet: bool,
    verbose: bool,
):
    """Print the dependency tree of the main module.

    Each module version is expanded once; cycles and depth are bounded.
    """
    style = get_style(ctx, quiet, verbose)
    parser = open_modfile(ctx, modfile)

    expand_depth = min(depth, MAX_GRAPH_DEPTH) if depth else MAX_GRAPH_DEPTH
    g = _load_graph(ctx, parser, style, offline, expand_depth)

    options = TreeOptions(
        max_depth=depth,
        show_versions=not no_versions,
        prune=not full,
        pattern=pattern,
    )
    click.echo(render_tree(g.root, options, style), nl=False)

    if style.verbose:
        click.echo("")
        modules = {node.key for node in g.nodes.values()}
        click.echo(f"{len(modules)} module(s) in the graph")
    logger.debug(f"Graph for {parser.module_path} has {len(g.root.children)} direct requirement(s)")


@click.command(name="why")
@click.argument("module")
@click.option(
    "--offline",
    is_flag=True,
    default=False,
    help="Search only go.mod requirements, without querying the proxy.",
)
@modfile_option
@verbosity_options
@click.pass_context
def why(ctx, module: str, offline: bool, modfile: str, quiet: bool, verbose: bool):
    """Show every chain of requirements leading to MODULE."""
    style = get_style(ctx, quiet, verbose)
    parser = open_modfile(ctx, modfile)

    g = _load_graph(ctx, parser, style, offline, MAX_GRAPH_DEPTH)
    paths = g.find_paths(module)
    click.echo(render_paths(module, paths, style), nl=False)
    if not paths:
        ctx.exit(1)
