"""
dailywall

A fresh AI generated desktop wallpaper every day, with a gradient fallback for the days the
image service won't cooperate.

This module defines the entry point to the dailywall CLI. It defines a 'cli' command group which
loads configuration and sets up console output. Subcommands live in dailywall/subcommands and are
attached to the group at startup by main().
"""

import logging
from io import StringIO

import click

from dailywall.config import init
from dailywall.cli_utils.console import console, configure_logging
from dailywall.cli_utils.decorators import catch_errors
from dailywall.cli_utils.utils import attach_commands, import_commands


@click.group()
@click.option(
    "--verbose",
    "verbosity",
    flag_value="verbose",
    default=True,
    help="Print all output to stdout or the terminal",
)
@click.option(
    "--quiet",
    "verbosity",
    flag_value="quiet",
    help="Silence all output printed to the stdout or the terminal.",
)
@click.option("--debug", is_flag=True, help="Log every step of the pipeline.")
@click.version_option(package_name="dailywall")
@click.pass_context
@catch_errors
def cli(ctx: click.Context, verbosity, debug):
    """
    dailywall

    a fresh AI generated desktop wallpaper, every day.


    ====================
    Quickstart
    ====================

    Store your OpenAI API key:

        $ dailywall key --set sk-...

    Generate and apply a wallpaper right now:

        $ dailywall generate

    Do it every day:

        $ dailywall schedule


    Without an API key, or when the image service is down, dailywall paints a
    random gradient instead so there is always a new wallpaper.
    """

    # if verbosity is set to quiet, capture all stdout to a junk stream.
    if verbosity == "quiet":
        console.file = StringIO()

    if debug:
        level = logging.DEBUG
    elif verbosity == "quiet":
        level = logging.WARNING
    else:
        level = logging.INFO

    configure_logging(level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = init()


def main():

    commands = import_commands()
    attach_commands(cli, commands)
    cli()


if __name__ == "__main__":
    main()
