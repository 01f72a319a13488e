"""
dailywall status

Show whether the daily job is registered, whether an API key is configured, and where the
current wallpaper lives.
"""

import click

from dailywall.cli_utils.console import describe
from dailywall.cli_utils.decorators import catch_errors, pass_config
from dailywall.cli_utils.utils import make_scheduler
from dailywall.config import ConfigStore
from dailywall.image_store import ImageStore


@click.command(name="status")
@catch_errors
@pass_config
def cli(config):
    """Show schedule, API key and current wallpaper."""

    state = make_scheduler(config).state()
    current = ImageStore(config.DAILYWALL_WALLPAPER_DIR).read_current_location()
    key_configured = ConfigStore(config).is_credential_configured()

    describe(f"daily job ({state.job_name}): {'active' if state.active else 'not scheduled'}")
    describe(f"api key: {'configured' if key_configured else 'not configured'}")
    describe(f"current wallpaper: {current if current else 'none yet'}")
