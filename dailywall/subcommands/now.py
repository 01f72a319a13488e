"""
dailywall now

Start a single generation in the background through the job system and return immediately.
Independent of the daily schedule.
"""

import click

from dailywall.cli_utils.console import confirm_success, fail
from dailywall.cli_utils.decorators import catch_errors, pass_config
from dailywall.cli_utils.utils import make_scheduler


@click.command(name="now")
@catch_errors
@pass_config
def cli(config):
    """Generate a wallpaper in the background, right away."""

    if not make_scheduler(config).run_once():
        raise click.ClickException("could not start a background generation")

    confirm_success(":rocket-emoji: 'now' started a background generation")
