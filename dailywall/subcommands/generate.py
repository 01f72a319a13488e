"""
dailywall generate

Run the generation pipeline in the foreground: generate (or synthesize) a wallpaper, store it,
and set it as the desktop background. This is also what the scheduled job runs.
"""

import sys

import click

from dailywall.pipeline import Delivered, Failed, RetryPolicy
from dailywall.cli_utils.console import confirm_success, describe, fail, warn
from dailywall.cli_utils.decorators import catch_errors, pass_config
from dailywall.cli_utils.utils import make_pipeline


@click.command(name="generate")
@click.option(
    "--attempts",
    type=click.IntRange(min=1),
    default=None,
    help="How many times to ask the image service before falling back (default from config).",
)
@click.option(
    "--delay",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds to wait between attempts (default from config).",
)
@catch_errors
@pass_config
def cli(config, attempts, delay):
    """Generate a new wallpaper now and apply it."""

    policy = RetryPolicy(
        max_attempts=attempts if attempts is not None else config.MAX_ATTEMPTS,
        delay_between_attempts=delay if delay is not None else config.RETRY_DELAY_SECONDS,
    )
    pipeline = make_pipeline(config, retry_policy=policy)

    describe(":art-emoji: 'generate' creating a new wallpaper...")
    outcome = pipeline.run()

    if isinstance(outcome, Failed):
        fail(outcome.reason)
        # non-zero exit so the job system records this run as failed
        sys.exit(1)

    if isinstance(outcome, Delivered):
        confirm_success(
            f":white_check_mark-emoji: 'generate' set a generated wallpaper from {outcome.stored.dated_path}"
        )
    else:
        warn("the image service was unavailable, a gradient wallpaper was used instead")
        confirm_success(
            f":white_check_mark-emoji: 'generate' set a gradient wallpaper from {outcome.stored.dated_path}"
        )
