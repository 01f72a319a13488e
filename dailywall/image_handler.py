"""
Image Handler

Utilities for downloading and synthesizing images.

Downloading images: supports only plain GET requests for image files specified by URL, with
no expectation of authentication. Talking to the image generation service itself is the job
of openai_handler.

Synthesizing images: GradientSynthesizer paints a vertical two-colour gradient. It is the
fallback used whenever the generation service can't give us an image, so it has no failure
modes beyond rejecting impossible dimensions.
"""

import io
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from PIL import Image, ImageDraw, UnidentifiedImageError
import requests

JPEG_QUALITY = 95
CHUNK_SIZE = 8 * 1024


class InvalidImageError(Exception):
    """
    Raised when a provided binary input is not an image. Wrapper around the PIL
    UnidentifiedImageError for better identification of errors during debugging
    and custom error messaging.
    """

    pass


class ImageDownloadError(Exception):
    """
    Raised when an image download is unsuccessful.
    """

    pass


class InvalidDimensionsError(ValueError):
    """
    Raised when asked to synthesize an image with a zero or negative side.
    """

    pass


def validate_image(image_bytes: bytes) -> str:
    """
    Determine whether image_bytes is a valid image and return its format (e.g. "PNG").
    PIL reads the content header to determine file type without decoding the pixel data.
    """

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.format

    except (UnidentifiedImageError, Image.DecompressionBombError) as error:
        raise InvalidImageError("Input does not appear to be an image.") from error


def to_jpeg(image_bytes: bytes, quality: int = JPEG_QUALITY) -> bytes:
    """
    Decode image_bytes and re-encode as JPEG. Transparency is dropped since JPEG has no
    alpha channel.

    Headers claiming more pixels than PIL's MAX_IMAGE_PIXELS guard are rejected before any
    decoding happens.
    """

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            rgb = image.convert("RGB")

    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as error:
        raise InvalidImageError(f"Input could not be decoded as an image: {error}") from error

    out = io.BytesIO()
    rgb.save(out, format="JPEG", quality=quality)
    return out.getvalue()


def _fetch(url: str, timeout: float, cancelled: threading.Event, opened: list) -> bytes:
    """
    Worker half of download_image. Runs in its own thread so the caller can stop waiting at
    the deadline; cancelled is checked between chunks so an abandoned transfer winds down.
    """

    # requests follows 3XX redirects on its own; signed blob storage links rarely redirect
    with requests.get(url, stream=True, timeout=timeout) as r:
        opened.append(r)

        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as error:
            raise ImageDownloadError(
                f"Download error: something went wrong trying to access {url} (status code {r.status_code})"
            ) from error

        buffer = io.BytesIO()
        for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
            if cancelled.is_set():
                raise ImageDownloadError(f"Download error: {url} was abandoned")
            buffer.write(chunk)

    return buffer.getvalue()


def download_image(url: str, timeout: float = 60) -> bytes:
    """
    Download the image at url and return it re-encoded as JPEG bytes.

    timeout bounds the whole transfer in wall-clock time, not just each socket read: requests'
    own timeout resets on every byte received, so a slow trickle could otherwise hang for as
    long as the server keeps sending. The transfer runs in a worker thread and is abandoned
    (response closed) once timeout has passed.

    Raises ImageDownloadError for network errors, bad status codes, an exceeded deadline, or a
    payload that is not an image. Nothing here is retried.
    """

    cancelled = threading.Event()
    opened = []
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dailywall-download")

    try:
        future = executor.submit(_fetch, url, timeout, cancelled, opened)
        payload = future.result(timeout=timeout)

    except FutureTimeoutError as error:
        cancelled.set()
        for response in opened:
            response.close()
        raise ImageDownloadError(f"Download error: {url} took longer than {timeout}s") from error

    except requests.exceptions.Timeout as error:
        raise ImageDownloadError(f"Download error: timed out fetching {url}") from error

    except requests.exceptions.RequestException as error:
        raise ImageDownloadError(str(error)) from error

    finally:
        # never block on a worker still stuck in a socket read
        executor.shutdown(wait=False)

    # successful request but did not get back image data as the response.
    try:
        return to_jpeg(payload)

    except InvalidImageError as error:
        raise ImageDownloadError(
            f"Download error: the target resource at {url} does not appear to be an image."
        ) from error


class GradientSynthesizer:
    """
    Paint a vertical gradient between two random colours.

    Output is always a full-size image; only the colours vary. Pass a seeded random.Random
    to get the same colours every time.
    """

    def __init__(self, rng: Optional[random.Random] = None, quality: int = JPEG_QUALITY):
        self.rng = rng if rng is not None else random.Random()
        self.quality = quality

    def _random_color(self) -> tuple[int, int, int]:
        return (
            self.rng.randint(0, 255),
            self.rng.randint(0, 255),
            self.rng.randint(0, 255),
        )

    def render(self, width: int, height: int) -> Image.Image:
        if width <= 0 or height <= 0:
            raise InvalidDimensionsError(
                f"Cannot synthesize a {width}x{height} image: both sides must be positive."
            )

        start = self._random_color()
        end = self._random_color()

        image = Image.new("RGB", (width, height))
        draw = ImageDraw.Draw(image)

        for y in range(height):
            ratio = y / height
            row_color = tuple(
                int(s + (e - s) * ratio) for s, e in zip(start, end)
            )
            draw.line([(0, y), (width - 1, y)], fill=row_color)

        return image

    def synthesize(self, width: int, height: int) -> bytes:
        image = self.render(width, height)
        out = io.BytesIO()
        image.save(out, format="JPEG", quality=self.quality)
        return out.getvalue()
