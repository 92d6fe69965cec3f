"""Logging setup for the command-line tool."""

import logging
import sys


def level_for_verbosity(verbose: int) -> int:
    # 0 -> warnings only, 1 -> info (audit events), 2+ -> debug
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(level: int = logging.WARNING) -> None:
    # Diagnostics go to stderr so command output on stdout stays pipeable.
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
