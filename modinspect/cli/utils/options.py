"""Options and setup shared by the commands."""

import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

import click

from modinspect.config import Config, ConfigError, load_config
from modinspect.modfile import ModFileError, ModFileParseError, Parser
from modinspect.report import OutputStyle
from modinspect.cli.error_formatting import pretty_print_parse_error
from .logging import logger


def modfile_option(cmd):
    return click.option(
        "--modfile",
        "-m",
        default="go.mod",
        show_default=True,
        type=click.Path(dir_okay=False),
        help="Path to the go.mod file.",
        envvar="MODINSPECT_MODFILE",
    )(cmd)


def verbosity_options(cmd):
    cmd = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Show more detail.",
    )(cmd)
    cmd = click.option(
        "--quiet",
        "-q",
        is_flag=True,
        default=False,
        help="Suppress non-essential output.",
    )(cmd)
    return cmd


def get_config(ctx: click.Context) -> Config:
    """Load the user configuration once per invocation."""
    root_ctx = ctx.find_root()
    root_ctx.ensure_object(dict)
    if "CONFIG" not in root_ctx.obj:
        try:
            root_ctx.obj["CONFIG"] = load_config()
        except ConfigError as e:
            logger.error(f"Error: {e}")
            ctx.exit(1)
    return root_ctx.obj["CONFIG"]


def get_style(ctx: click.Context, quiet: bool, verbose: bool) -> OutputStyle:
    """Build the output style from flags, falling back to the configured defaults."""
    if not quiet and not verbose:
        config = get_config(ctx)
        quiet = config.default_quiet
        verbose = config.default_verbose
    return OutputStyle.from_flags(quiet=quiet, verbose=verbose)


def open_modfile(ctx: click.Context, modfile: str) -> Parser:
    path = Path(modfile)
    if not path.exists():
        logger.error(f"Error: {modfile} not found")
        ctx.exit(1)

    try:
        return Parser.from_path(path)
    except ModFileParseError as e:
        logger.error(f"Error: Failed to parse {modfile}: {pretty_print_parse_error(e)}")
        ctx.exit(1)
    except ModFileError as e:
        logger.error(f"Error: {e}")
        ctx.exit(1)


def split_csv(values) -> List[str]:
    """Flatten repeated and comma-separated option values."""
    result: List[str] = []
    for value in values or ():
        result.extend(v.strip() for v in value.split(",") if v.strip())
    return result


@contextmanager
def interruptible(ctx: click.Context) -> Iterator[threading.Event]:
    """
    Yield a cancellation token that Ctrl-C sets.

    Pending registry requests then fail fast instead of the interrupt waiting
    for every worker thread. The command exits with status 130 afterwards.
    """
    cancel = threading.Event()
    previous = None
    if threading.current_thread() is threading.main_thread():
        previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        yield cancel
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if cancel.is_set():
        logger.error("Interrupted")
        ctx.exit(130)
