"""
dailywall cancel

Remove the daily generation job. A generation that is already running is allowed to finish.
"""

import click

from dailywall.cli_utils.console import confirm_success
from dailywall.cli_utils.decorators import catch_errors, pass_config
from dailywall.cli_utils.utils import make_scheduler


@click.command(name="cancel")
@catch_errors
@pass_config
def cli(config):
    """Stop generating a new wallpaper every day."""

    if not make_scheduler(config).cancel():
        raise click.ClickException(f"could not cancel {config.JOB_NAME}")

    confirm_success(f":stop_sign-emoji: 'cancel' removed {config.JOB_NAME}")
