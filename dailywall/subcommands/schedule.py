"""
dailywall schedule

Register the daily generation job with the job system. Running it again replaces the existing
registration instead of adding a second one.
"""

import click

from dailywall.cli_utils.console import confirm_success, warn
from dailywall.cli_utils.decorators import catch_errors, pass_config
from dailywall.cli_utils.utils import make_scheduler
from dailywall.config import ConfigStore


@click.command(name="schedule")
@catch_errors
@pass_config
def cli(config):
    """Generate a new wallpaper every day."""

    if not ConfigStore(config).is_credential_configured():
        warn("no API key configured, scheduled runs will use gradient wallpapers")

    if not make_scheduler(config).schedule_daily():
        raise click.ClickException("could not schedule the daily job")

    confirm_success(f":calendar-emoji: 'schedule' registered {config.JOB_NAME} to run daily")
