"""
dailywall CLI Utilities

This module contains utilities shared across Click subcommands: wiring the pipeline and the
scheduler from config, probing network connectivity, and importing subcommands from the
subcommands package.
"""

import sys
import importlib
import pkgutil

import click
import requests

import dailywall.subcommands

from dailywall.config import DailywallConfig
from dailywall.pipeline import GenerationPipeline
from dailywall.scheduler import JobScheduler, SystemdJobSystem
from dailywall.cli_utils.console import warn

PROBE_URL = "https://api.openai.com"


def self_command(*args: str) -> list[str]:
    """
    Command line that re-invokes this installation of dailywall. Uses the running interpreter
    so that units written by 'schedule' keep working inside virtualenvs.
    """

    return [sys.executable, "-m", "dailywall", *args]


def network_available(url: str = PROBE_URL, timeout: float = 5) -> bool:
    """
    True if url answers at all. Any HTTP status counts: we only care that the network path
    to the generation service exists.
    """

    try:
        requests.head(url, timeout=timeout)
    except requests.exceptions.RequestException:
        return False

    return True


def make_pipeline(config: DailywallConfig, **overrides) -> GenerationPipeline:
    return GenerationPipeline.from_config(config, **overrides)


def make_scheduler(config: DailywallConfig, job_system=None) -> JobScheduler:
    if job_system is None:
        job_system = SystemdJobSystem(network_probe=self_command("online"))

    return JobScheduler(
        job_system=job_system,
        command=self_command("--quiet", "generate"),
        job_name=config.JOB_NAME,
    )


def import_commands(package=dailywall.subcommands) -> list[click.Command]:
    """
    Retrieve a set of click Commands from the modules of package. Default is the built in
    subcommands package for commands that come pre-installed with dailywall.

    A valid dailywall command module defines a "cli" function that is wrapped as a click
    Command object. Set the 'name' keyword argument in the @click.command decorator to set
    the name of the command intended for the end user.
    """

    commands = []

    for module_info in pkgutil.iter_modules(package.__path__):
        module = importlib.import_module(f"{package.__name__}.{module_info.name}")

        cli = getattr(module, "cli", None)
        if isinstance(cli, click.Command):
            commands.append(cli)
        else:
            warn(f"Cannot add command {module_info.name}: no 'cli' command found.")

    return commands


def attach_commands(group: click.Group, commands: list[click.Command]):
    """
    Attach each command in a list of click Command objects to a provided group. Useful when
    retrieving a dynamic list of subcommands with import_commands().
    """

    for command in commands:
        group.add_command(command)

