"""
dailywall console utilities

This module provides application-wide access to a Rich Console object for
handling writing to stdout and stderr, and hooks the standard logging module
up to the same themed stderr console.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

dailywall_theme = Theme(
    {"warning": "orange_red1", "fail": "bold red", "confirm": "green", "describe": ""}
)

console = Console(theme=dailywall_theme)
error_console = Console(theme=dailywall_theme, stderr=True)


"""
Formatting helpers
"""


def warn(msg: str):
    """
    Format msg and print to stderr.
    """

    error_console.print(
        f":exclamation_mark-emoji: [bold]warning: [/] {msg}", style="warning"
    )


def describe(msg: str, **kwargs):
    """
    Format descriptive msg and print to stdout.
    """

    console.print(f"{msg}", style="describe", **kwargs)


def confirm_success(msg: str, **kwargs):
    """
    Format confirmation msg and print to stdout. Accept any additional kwargs that console.print from
    rich module exposes.
    """

    console.print(f"{msg}", style="confirm", **kwargs)


def fail(msg: str):
    """
    Format failure msg and print to stderr.
    """

    error_console.print(f":x-emoji: failed. {msg}", style="fail")


def configure_logging(level=logging.WARNING):
    """
    Route records from the dailywall loggers to the stderr console. Library modules only
    ever call logging.getLogger(__name__); handlers are attached here, once, by the CLI.
    """

    logger = logging.getLogger("dailywall")
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=error_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
