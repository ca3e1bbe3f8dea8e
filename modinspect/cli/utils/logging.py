import logging
import sys


logger = logging.getLogger("modinspect")

_HANDLER_NAME = "modinspect-cli"


def configure_logging(debug: bool):
    """
    Route modinspect log records to stderr, message only.

    Reports are written to stdout, so logging never mixes with ``--json``
    output. Repeated calls replace the handler so that it writes to the current
    ``sys.stderr``.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    if logger.hasHandlers():
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
