"""
Gnome Wallpaper Handler

This module handles updates to the Gnome desktop background by dropping into the gsettings
CLI, which reads and writes the org.gnome.desktop.background schema.

Settings for desktop backgrounds are defined under the schema: org.gnome.desktop.background
More information on this schema can be found at:
https://github.com/GNOME/gsettings-desktop-schemas/blob/master/schemas/org.gnome.desktop.background.gschema.xml.in
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from dailywall import image_handler
from dailywall.image_store import StoredImage

logger = logging.getLogger(__name__)

SCHEMA = "org.gnome.desktop.background"

# GNOME 42+ reads picture-uri-dark when the dark style is active.
URI_KEYS = ("picture-uri", "picture-uri-dark")


class WallpaperUpdateError(Exception):
    """
    Raised when an attempt to update Gnome desktop background fails.
    """

    pass


class WallpaperApplier(ABC):
    """Makes a stored image the desktop wallpaper."""

    @abstractmethod
    def apply(self, image: StoredImage) -> None:
        """Raise WallpaperUpdateError if the wallpaper could not be set."""


def _gsettings() -> str:
    path = shutil.which("gsettings")
    if path is None:
        raise WallpaperUpdateError("gsettings not found: is this a GNOME desktop?")
    return path


def update_wallpaper(img_path: Path) -> None:
    """
    Update the background image to the one specified by img_path. Raise WallpaperUpdateError if
    issues are encountered during the attempt to update the background.

    gsettings does no validation of its own: an invalid value silently leaves the desktop
    with no image, so the file is checked here first.
    """

    try:
        wallpaper_location = Path(str(img_path).removeprefix("file://")).expanduser().resolve()
    except TypeError as error:
        raise WallpaperUpdateError(
            f"Invalid parameter: {img_path} is not a valid Pathlike object."
        ) from error

    # subsequent operations will fail if path does not exist or is not a file, so catch this.
    if not wallpaper_location.is_file():
        raise WallpaperUpdateError(
            f"Invalid path provided for image location: {img_path} does not exist."
        )

    try:
        image_handler.validate_image(wallpaper_location.read_bytes())
    except (image_handler.InvalidImageError, OSError) as error:
        raise WallpaperUpdateError(
            f"Invalid image type provided. {wallpaper_location.name} is not a valid image."
        ) from error

    gsettings = _gsettings()
    uri = wallpaper_location.as_uri()

    for key in URI_KEYS:
        try:
            subprocess.run(
                [gsettings, "set", SCHEMA, key, uri],
                check=True,
                text=True,
                capture_output=True,
            )

        except subprocess.CalledProcessError as error:
            # older GNOME releases have no picture-uri-dark key
            if key != URI_KEYS[0] and "No such key" in (error.stderr or ""):
                logger.debug("gsettings has no %s key, skipping", key)
                continue
            raise WallpaperUpdateError(
                f"Could not set desktop background: {(error.stderr or '').strip() or error}"
            ) from error

        except OSError as error:
            raise WallpaperUpdateError(f"Could not run gsettings: {error}") from error

    logger.info("desktop background set to %s", uri)


class GnomeWallpaperApplier(WallpaperApplier):
    """
    Points the GNOME background at the dated file. Its URI changes every day, which makes
    GNOME reload the picture; re-setting an unchanged URI would not.
    """

    def apply(self, image: StoredImage) -> None:
        update_wallpaper(image.dated_path)
