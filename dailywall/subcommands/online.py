"""
dailywall online

Exit 0 when the image service is reachable and 1 otherwise. The daily systemd unit runs this as
its ExecCondition so that triggers without a network connection are skipped.
"""

import sys

import click

from dailywall.cli_utils.utils import network_available


@click.command(name="online", hidden=True)
def cli():
    """Check network connectivity to the image service."""

    sys.exit(0 if network_available() else 1)
