"""
dailywall Decorators

Decorators shared by the subcommands in dailywall/subcommands.
"""

import sys
from functools import wraps

import click

from dailywall.config import DailywallConfigError, get_config
from dailywall.cli_utils.console import fail


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except Exception as error:
            fail(str(error))
            sys.exit(1)

    return wrapper


def pass_config(func):
    """
    Inject the loaded DailywallConfig as the first argument. The group callback stores it on
    the click context; commands invoked on their own (e.g. in tests) load it on demand.
    """

    @click.pass_context
    @wraps(func)
    def wrapper(ctx: click.Context, *args, **kwargs):
        obj = ctx.find_object(dict) or {}
        config = obj.get("config")
        if config is None:
            try:
                config = get_config()
            except DailywallConfigError as error:
                fail(str(error))
                sys.exit(1)

        return func(config, *args, **kwargs)

    return wrapper
