"""
Wallpaper generation pipeline.

One run produces exactly one wallpaper: from the image generation service when it cooperates,
from the gradient fallback when it doesn't. The remote service is treated as unreliable, so
its failures are retried a fixed number of times and then absorbed; only local I/O faults
(writing the file, setting the desktop background) make a run fail.

Nothing raises out of GenerationPipeline.run(). The result is one of the GenerationOutcome
variants below, and callers are expected to branch on it.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Union

from dailywall import image_handler
from dailywall.config import ConfigStore, CredentialMissingError, DailywallConfig
from dailywall.image_handler import GradientSynthesizer, ImageDownloadError, InvalidDimensionsError
from dailywall.image_store import ImageStore, PersistenceError, StoredImage
from dailywall.openai_handler import (
    GenerationRequest,
    OpenAIImageGenerator,
    RemoteGenerationError,
    RemoteImageGenerator,
)
from dailywall.wallpaper_handler import (
    GnomeWallpaperApplier,
    WallpaperApplier,
    WallpaperUpdateError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Constant delay between attempts; no exponential growth."""

    max_attempts: int = 3
    delay_between_attempts: float = 60

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.delay_between_attempts < 0:
            raise ValueError(
                f"delay_between_attempts can't be negative, got {self.delay_between_attempts}"
            )


@dataclass(frozen=True)
class Delivered:
    """The generated image was downloaded, stored and applied."""

    image_bytes: bytes = field(repr=False)
    source_url: str
    stored: StoredImage

    succeeded = True

    @property
    def location(self) -> Path:
        return self.stored.current_path


@dataclass(frozen=True)
class FallbackDelivered:
    """A gradient was stored and applied in place of a generated image."""

    image_bytes: bytes = field(repr=False)
    stored: StoredImage

    succeeded = True

    @property
    def location(self) -> Path:
        return self.stored.current_path


@dataclass(frozen=True)
class Failed:
    """Storing or applying the wallpaper failed."""

    reason: str

    succeeded = False
    location = None


GenerationOutcome = Union[Delivered, FallbackDelivered, Failed]


def build_prompt(template: str, day: date) -> str:
    """Fill the optional {date} placeholder; anything else in the template is left untouched."""

    return template.replace("{date}", day.isoformat())


class GenerationPipeline:
    def __init__(
        self,
        config_store: ConfigStore,
        generator: RemoteImageGenerator,
        store: ImageStore,
        applier: WallpaperApplier,
        synthesizer: Optional[GradientSynthesizer] = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        download_timeout: float = 60,
        fallback_size: tuple[int, int] = (1920, 1080),
        sleep: Callable[[float], None] = time.sleep,
        download: Callable[[str, float], bytes] = image_handler.download_image,
        today: Callable[[], date] = date.today,
    ):
        self.config_store = config_store
        self.generator = generator
        self.store = store
        self.applier = applier
        self.synthesizer = synthesizer or GradientSynthesizer()
        self.retry_policy = retry_policy
        if min(fallback_size) <= 0:
            raise InvalidDimensionsError(
                f"fallback_size must be positive, got {fallback_size[0]}x{fallback_size[1]}"
            )

        self.download_timeout = download_timeout
        self.fallback_size = fallback_size
        self.sleep = sleep
        self.download = download
        self.today = today

    @classmethod
    def from_config(cls, config: DailywallConfig, **overrides) -> "GenerationPipeline":
        """Wire the production collaborators from a loaded config."""

        options = dict(
            config_store=ConfigStore(config),
            generator=OpenAIImageGenerator(model=config.MODEL, size=config.IMAGE_SIZE),
            store=ImageStore(config.DAILYWALL_WALLPAPER_DIR),
            applier=GnomeWallpaperApplier(),
            retry_policy=RetryPolicy(
                max_attempts=config.MAX_ATTEMPTS,
                delay_between_attempts=config.RETRY_DELAY_SECONDS,
            ),
            download_timeout=config.DOWNLOAD_TIMEOUT_SECONDS,
            fallback_size=(config.FALLBACK_WIDTH, config.FALLBACK_HEIGHT),
        )
        options.update(overrides)
        return cls(**options)

    def generate_with_retry(self, request: GenerationRequest) -> Optional[str]:
        """
        Ask the generator for an image URL up to max_attempts times, sleeping the fixed delay
        between failed attempts (not after the last one). Returns None once attempts run out.
        """

        attempts = self.retry_policy.max_attempts

        for attempt in range(1, attempts + 1):
            try:
                url = self.generator.generate(request)
                logger.info("generation succeeded on attempt %d/%d", attempt, attempts)
                return url

            except RemoteGenerationError as error:
                logger.warning("attempt %d/%d failed: %s", attempt, attempts, error)

                if attempt < attempts:
                    self.sleep(self.retry_policy.delay_between_attempts)

        logger.error("all %d generation attempts failed", attempts)
        return None

    def fetch_remote(self) -> Optional[tuple[bytes, str]]:
        """
        Try the remote path end to end. Returns (jpeg bytes, source url), or None if there is
        no credential, the generator gave up, or the download failed.
        """

        try:
            credential = self.config_store.require_credential()
        except CredentialMissingError as error:
            logger.warning("%s Using the gradient fallback.", error)
            return None

        prompt = build_prompt(self.config_store.get_prompt_template(), self.today())
        url = self.generate_with_retry(GenerationRequest(prompt=prompt, credential=credential))
        if url is None:
            return None

        try:
            image_bytes = self.download(url, self.download_timeout)
        except ImageDownloadError as error:
            logger.error("download failed: %s", error)
            return None

        return image_bytes, url

    def run(self) -> GenerationOutcome:
        """
        Produce, store and apply one wallpaper.

        Workflow:
        1. Read the API key; without one, skip straight to the fallback
        2. Call the generator with bounded retry
        3. Download the generated image (not retried)
        4. If any of the above came up empty, synthesize a gradient
        5. Commit to the image store and apply

        Returns Delivered or FallbackDelivered, or Failed if step 5 raised.
        """

        started = time.monotonic()
        remote = self.fetch_remote()

        if remote is not None:
            image_bytes, source_url = remote
        else:
            logger.info("using fallback gradient wallpaper")
            image_bytes = self.synthesizer.synthesize(*self.fallback_size)
            source_url = None

        try:
            stored = self.store.commit(image_bytes)
            self.applier.apply(stored)

        except (PersistenceError, WallpaperUpdateError) as error:
            logger.error("wallpaper run failed: %s", error)
            return Failed(reason=str(error))

        logger.info(
            "wallpaper delivered from %s in %.1fs",
            "remote" if source_url else "fallback",
            time.monotonic() - started,
        )

        if source_url is not None:
            return Delivered(image_bytes=image_bytes, source_url=source_url, stored=stored)

        return FallbackDelivered(image_bytes=image_bytes, stored=stored)
