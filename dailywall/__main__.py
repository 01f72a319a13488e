"""
__main__.py

This file adds support for running dailywall as a python module instead of invoking the "dailywall"
command line entrypoint. The systemd units written by 'dailywall schedule' rely on it.

See the following for a nice high level overview of what __main__ is intended for:

https://docs.python.org/3/using/cmdline.html#cmdoption-m
"""


from dailywall.cli import main


if __name__ == "__main__":
    main()
