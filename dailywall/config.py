"""
dailywall Configuration Management

This file handles utilities related to generating and loading variables from a configuration file.
DailywallConfig should be loaded at startup in some kind of initialization procedure performed before
any attempt at command processing is done. Raise a DailywallConfigError for any issues that arise in
processing or retrieving these configuration variables.

The configuration file is "config.json" and for Ubuntu (current development target) this is saved
at ~/.config/dailywall/config.json as per modern Linux app development conventions.

The API key for the image generation service is deliberately kept out of config.json. It lives in a
.env file next to the config (see ConfigStore) so that config.json can be shared or inspected freely.
"""

import json
import os
from dataclasses import dataclass
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path, PurePath
from typing import Optional

from dotenv import dotenv_values, set_key


CREDENTIAL_KEY = "OPENAI_API_KEY"

DEFAULT_PROMPT = (
    "Generate a colorful wallpaper featuring a photorealistic character designed with a style "
    "inspired by anime. The character is a young girl with large, expressive eyes and long hair "
    "styled in soft waves. She is dressed in a cute dress and her pose is random. The girl's layer "
    "is small and features her entire body, placed on a clean, spacious background, maybe on the "
    "side of it. The background should have a nice color."
)


class DailywallConfigError(Exception):
    """Raise when an issue occurs with handling dailywall configuration."""

    pass


class CredentialMissingError(Exception):
    """Raise when no API key has been configured for the image generation service."""

    pass


class PathEncoder(json.JSONEncoder):
    """
    custom encoder adds support for serializing pathlib objects as strings
    """

    def default(self, o):
        if isinstance(o, PurePath):
            return str(o)

        else:
            return json.JSONEncoder.default(self, o)


def default_config_dir() -> Path:
    """
    Config directory from environment variable DAILYWALL_CONFIG_DIR, or ~/.config/dailywall.
    """

    try:
        return Path(os.environ["DAILYWALL_CONFIG_DIR"]).expanduser()

    except KeyError:
        return Path("~/.config/dailywall").expanduser()


@dataclass
class DailywallConfig:
    """
    Dataclass to represent configuration variables for dailywall. Provides a namespace and identifiers
    for directories on the filesystem and the tunables of the generation pipeline.

    The pattern applied is to instantiate a DailywallConfig by supplying variadic keyword arguments from
    a deserialized json object. That way application code can reference the identifiers in the
    DailywallConfig dataclass without ever touching brittle dictionary keys. For simplicity the json
    object should be fully flat and avoid nested data structures.
    """

    DAILYWALL_CONFIG_DIR: Path = Path("~/.config/dailywall").expanduser()
    DAILYWALL_WALLPAPER_DIR: Path = (
        Path("~/.local/share/backgrounds/dailywall").expanduser()
    )
    PROMPT: str = DEFAULT_PROMPT
    MODEL: str = "dall-e-3"
    IMAGE_SIZE: str = "1024x1024"
    MAX_ATTEMPTS: int = 3
    RETRY_DELAY_SECONDS: float = 60
    DOWNLOAD_TIMEOUT_SECONDS: float = 60
    FALLBACK_WIDTH: int = 1920
    FALLBACK_HEIGHT: int = 1080
    JOB_NAME: str = "dailywall-daily"

    def __post_init__(self):
        """
        Handle the case where a new DailywallConfig is created from JSON, which cannot
        deserialize a str into a Path. Then check the tunables, since config.json is hand
        edited and a bad value would otherwise only surface halfway through a run.
        """

        self.DAILYWALL_CONFIG_DIR = Path(self.DAILYWALL_CONFIG_DIR).expanduser()
        self.DAILYWALL_WALLPAPER_DIR = Path(self.DAILYWALL_WALLPAPER_DIR).expanduser()

        for name in ("PROMPT", "MODEL", "IMAGE_SIZE", "JOB_NAME"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise DailywallConfigError(f"{name} must be a non-empty string, got {value!r}")

        for name, minimum in (("MAX_ATTEMPTS", 1), ("FALLBACK_WIDTH", 1), ("FALLBACK_HEIGHT", 1)):
            value = getattr(self, name)
            # bool is an int subclass, but "true" is never a meaningful count
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                raise DailywallConfigError(
                    f"{name} must be a whole number of at least {minimum}, got {value!r}"
                )

        for name, allow_zero in (("RETRY_DELAY_SECONDS", True), ("DOWNLOAD_TIMEOUT_SECONDS", False)):
            value = getattr(self, name)
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or value < 0
                or (value == 0 and not allow_zero)
            ):
                bound = "zero or more" if allow_zero else "more than zero"
                raise DailywallConfigError(f"{name} must be a number of seconds, {bound}, got {value!r}")

    @property
    def config_file(self) -> Path:
        return self.DAILYWALL_CONFIG_DIR / "config.json"

    @property
    def credentials_file(self) -> Path:
        return self.DAILYWALL_CONFIG_DIR / ".env"

    def generate_config_json(self) -> Path:
        """
        Write the DailywallConfig to file, serializing to JSON. Returns filepath of written
        config.json file which is located at DAILYWALL_CONFIG_DIR.

        Warning: will overwrite any existing config file.
        """

        try:
            to_json = json.dumps(
                asdict(self), sort_keys=True, indent=4, cls=PathEncoder
            )

        except TypeError as error:
            raise DailywallConfigError(
                f"There was an error trying to serialize config data to JSON: {error}"
            ) from error

        try:
            self.DAILYWALL_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as file:
                file.write(to_json)

        except OSError as error:
            raise DailywallConfigError(
                f"There was an error saving the configuration file: {error}."
            ) from error

        return self.config_file


def init(config_dir: Optional[Path] = None) -> DailywallConfig:
    """initialize the dailywall app, writing a default config file on first run"""

    config_dir = Path(config_dir) if config_dir else default_config_dir()

    try:
        config = load_config(config_dir)

    except FileNotFoundError:
        config = DailywallConfig(DAILYWALL_CONFIG_DIR=config_dir)
        config.generate_config_json()

    return config


def load_config(config_dir: Optional[Path] = None) -> DailywallConfig:
    """
    Load config.json from config_dir (default: DAILYWALL_CONFIG_DIR env variable or ~/.config/dailywall)
    and instantiate variables as a DailywallConfig dataclass.

    Raises FileNotFoundError if there is no config file yet and DailywallConfigError if the file
    exists but can't be used.
    """

    config_dir = Path(config_dir) if config_dir else default_config_dir()
    config_src = config_dir / "config.json"

    with config_src.open("r") as file:
        try:
            from_json = json.loads(file.read())
        except json.JSONDecodeError as error:
            raise DailywallConfigError(
                f"There was an issue reading the config at {config_src}: {error}"
            ) from error

    if not isinstance(from_json, dict):
        raise DailywallConfigError(f"Config at {config_src} must be a JSON object.")

    from_json.setdefault("DAILYWALL_CONFIG_DIR", str(config_dir))

    try:
        return DailywallConfig(**from_json)

    except TypeError as error:
        raise DailywallConfigError(
            f"Unknown setting in config at {config_src}: {error}"
        ) from error


@lru_cache(maxsize=None)
def get_config() -> DailywallConfig:
    """Process-wide config, loaded once on first use."""

    return init()


class ConfigStore:
    """
    Key-value access to the settings the generation pipeline needs at run time: the API key
    and the prompt template.

    The API key is read from the .env file in the config directory first and from the
    OPENAI_API_KEY environment variable second.
    """

    def __init__(self, config: DailywallConfig):
        self.config = config

    def get_credential(self) -> str:
        path = self.config.credentials_file
        if path.exists():
            value = dotenv_values(path).get(CREDENTIAL_KEY)
            if value:
                return value.strip()

        return os.environ.get(CREDENTIAL_KEY, "").strip()

    def set_credential(self, value: str) -> None:
        path = self.config.credentials_file

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(mode=0o600, exist_ok=True)
            set_key(path, CREDENTIAL_KEY, value.strip(), quote_mode="never")

        except OSError as error:
            raise DailywallConfigError(
                f"There was an error saving the API key to {path}: {error}"
            ) from error

    def is_credential_configured(self) -> bool:
        return bool(self.get_credential())

    def require_credential(self) -> str:
        credential = self.get_credential()
        if not credential:
            raise CredentialMissingError(
                f"No API key configured. Run 'dailywall key --set <key>' or export {CREDENTIAL_KEY}."
            )

        return credential

    def get_prompt_template(self) -> str:
        return self.config.PROMPT
