"""
Image Store

Durable storage for generated wallpapers. Every commit writes two files into the wallpaper
directory:

    ai-wallpaper-<YYYY-MM-DD>.jpg   one per calendar day, overwritten by later runs that day
    current_wallpaper.jpg           always the most recently committed image

Each file is written to a temporary file in the same directory and then moved over the
target with os.replace, which is atomic on POSIX filesystems. Readers (including a GNOME
session that is displaying the file) see either the old or the new image, never a partial one.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

CURRENT_NAME = "current_wallpaper"
DATED_PREFIX = "ai-wallpaper-"


class PersistenceError(Exception):
    """
    Raised when a wallpaper could not be written to disk.
    """

    pass


@dataclass(frozen=True)
class StoredImage:
    dated_path: Path
    current_path: Path
    image_bytes: bytes = field(repr=False)


def atomic_write(destination: Path, data: bytes) -> Path:
    """
    Write data to destination via a temporary sibling file and os.replace. On failure the
    temporary file is removed and destination is left as it was.
    """

    fd, tmp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
    )

    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())

        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, destination)

    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    return destination


class ImageStore:
    def __init__(
        self,
        directory: Path,
        extension: str = "jpg",
        today: Callable[[], date] = date.today,
    ):
        self.directory = Path(directory).expanduser()
        self.extension = extension.lstrip(".")
        self.today = today

    @property
    def current_path(self) -> Path:
        return self.directory / f"{CURRENT_NAME}.{self.extension}"

    def dated_path(self, day: date) -> Path:
        return self.directory / f"{DATED_PREFIX}{day.isoformat()}.{self.extension}"

    def commit(self, image_bytes: bytes) -> StoredImage:
        """
        Persist image_bytes as today's dated file and as the current alias.

        The two writes are independent: a failure writing one does not undo or prevent the
        other. PersistenceError is raised once both have been attempted if either failed.
        """

        if not image_bytes:
            raise PersistenceError("Refusing to store an empty image.")

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise PersistenceError(
                f"Could not create wallpaper directory {self.directory}: {error}"
            ) from error

        dated_path = self.dated_path(self.today())
        errors = []

        for destination in (dated_path, self.current_path):
            try:
                atomic_write(destination, image_bytes)
                logger.debug("wrote %s (%d bytes)", destination, len(image_bytes))
            except OSError as error:
                logger.error("failed writing %s: %s", destination, error)
                errors.append(f"{destination.name}: {error}")

        if errors:
            raise PersistenceError("Could not save wallpaper: " + "; ".join(errors))

        return StoredImage(
            dated_path=dated_path,
            current_path=self.current_path,
            image_bytes=image_bytes,
        )

    def current_exists(self) -> bool:
        return self.current_path.is_file()

    def read_current_location(self) -> Optional[Path]:
        return self.current_path if self.current_exists() else None

    def read_current(self) -> Optional[bytes]:
        location = self.read_current_location()
        if location is None:
            return None

        try:
            return location.read_bytes()
        except FileNotFoundError:
            return None
