"""
Helmsman logging (package logger and verbosity switch).

Scope
- One package logger, "helmsman", with a NullHandler so that a host
  application decides where records go.
- Three verbosity levels, matching how chatty the build phases are:
  • 1 → INFO:  Config.command / Config.compose completion.
  • 2 → DEBUG: each compose phase (validate, select, materialize, parse, check).
  • 3 → TRACE: per-option steps.
- verbose(level) attaches a rich.logging.RichHandler on stderr the first time
  a non-zero level is requested; verbose(0) silences the package again.

Usage
    >>> from helmsman.logs import verbose
    >>> verbose(2)  # show phase-level progress while composing
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger("helmsman")
logger.addHandler(logging.NullHandler())

_levels = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
    3: TRACE,
}

_handler = None


def trace(message, /, *args):
    """
    Log at the TRACE level (verbosity 3) on the package logger.
    """
    logger.log(TRACE, message, *args)


def verbose(level, /):
    """
    Set the package verbosity.

    Parameters
    - level: int in 0..3; higher values are clamped to 3.

    Raises
    - TypeError when level is not an integer, ValueError when negative.
    """
    global _handler
    if not isinstance(level, int) or isinstance(level, bool):
        raise TypeError("verbose() argument must be an integer")
    if level < 0:
        raise ValueError("verbose() argument cannot be negative")

    logger.setLevel(_levels[min(level, 3)])
    if level and _handler is None:
        _handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
        logger.addHandler(_handler)
    return logger.level


__all__ = (
    "TRACE",
    "logger",
    "trace",
    "verbose",
)
