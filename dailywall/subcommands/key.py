"""
dailywall key

Store or show the API key used for image generation. The key is saved to the .env file in the
config directory and is only ever printed masked.
"""

import click

from dailywall.cli_utils.console import confirm_success, describe
from dailywall.cli_utils.decorators import catch_errors, pass_config
from dailywall.config import ConfigStore


def mask(credential: str) -> str:
    if len(credential) <= 8:
        return "*" * len(credential)
    return f"{credential[:3]}...{credential[-4:]}"


@click.command(name="key")
@click.option("--set", "new_key", metavar="KEY", help="Save KEY as the API key.")
@catch_errors
@pass_config
def cli(config, new_key):
    """Set or show the OpenAI API key."""

    store = ConfigStore(config)

    if new_key is not None:
        if not new_key.strip():
            raise click.BadParameter("the API key can't be empty", param_hint="--set")
        if not new_key.strip().isascii():
            raise click.BadParameter(
                "the API key can only contain ASCII characters (check for pasted quotes)",
                param_hint="--set",
            )
        store.set_credential(new_key)
        confirm_success(f":key-emoji: 'key' saved to {config.credentials_file}")
        return

    credential = store.get_credential()
    describe(f"api key: {mask(credential) if credential else 'not configured'}")
