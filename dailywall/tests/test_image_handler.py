"""
Tests for image_handler.py

Validate image downloading and gradient synthesis.

*** MOCKING REQUEST CALLS ***

To prevent a network call from being executed during test, we patch the get() method from the
requests module with a MagicMock. download_image uses the response as a context manager, so the
mocked get() returns an object whose __enter__ hands back the configured response.

*** Fixtures ***
- seeded_rng, png_bytes (defined in conftest.py)
"""

import io
import random
import threading
import time
import unittest.mock
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests
from PIL import Image

from dailywall.image_handler import download_image
from dailywall.image_handler import to_jpeg
from dailywall.image_handler import validate_image
from dailywall.image_handler import GradientSynthesizer
from dailywall.image_handler import ImageDownloadError
from dailywall.image_handler import InvalidDimensionsError
from dailywall.image_handler import InvalidImageError

IMG_URL = "https://images.example.com/generated/img-abc123.png"


def fake_response(content: bytes, status_code: int = 200):
    response = unittest.mock.MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = [content[i : i + 1024] for i in range(0, len(content), 1024)]
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


def patch_get(mock_get, response):
    context = unittest.mock.MagicMock()
    context.__enter__.return_value = response
    mock_get.return_value = context


@pytest.mark.parametrize("width, height", [(1, 1), (1, 50), (64, 1), (192, 108)])
def test_synthesize_dimensions(seeded_rng, width, height):
    image_bytes = GradientSynthesizer(rng=seeded_rng).synthesize(width, height)

    with Image.open(io.BytesIO(image_bytes)) as image:
        assert image.format == "JPEG"
        assert image.size == (width, height)
        assert len(image.tobytes()) == width * height * 3


@pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (0, 0), (-5, 10)])
def test_synthesize_rejects_empty_dimensions(seeded_rng, width, height):
    with pytest.raises(InvalidDimensionsError):
        GradientSynthesizer(rng=seeded_rng).synthesize(width, height)


def test_invalid_dimensions_is_value_error():
    assert issubclass(InvalidDimensionsError, ValueError)


def test_render_rows_follow_linear_interpolation():
    """
    Draw the same endpoints the synthesizer will draw by replaying the seeded RNG, then check
    every row against start + (end - start) * y / height, truncated.
    """

    width, height = 5, 7

    replay = random.Random(42)
    start = tuple(replay.randint(0, 255) for _ in range(3))
    end = tuple(replay.randint(0, 255) for _ in range(3))

    image = GradientSynthesizer(rng=random.Random(42)).render(width, height)

    for y in range(height):
        expected = tuple(int(s + (e - s) * (y / height)) for s, e in zip(start, end))
        row = {image.getpixel((x, y)) for x in range(width)}
        assert row == {expected}


def test_render_single_pixel_is_start_color():
    replay = random.Random(7)
    start = tuple(replay.randint(0, 255) for _ in range(3))

    image = GradientSynthesizer(rng=random.Random(7)).render(1, 1)

    assert image.getpixel((0, 0)) == start


def test_same_seed_same_image():
    first = GradientSynthesizer(rng=random.Random(99)).synthesize(20, 20)
    second = GradientSynthesizer(rng=random.Random(99)).synthesize(20, 20)

    assert first == second


def test_validate_image(png_bytes):
    assert validate_image(png_bytes) == "PNG"

    with pytest.raises(InvalidImageError):
        validate_image(b"definitely not an image")


def test_to_jpeg_drops_alpha():
    out = io.BytesIO()
    Image.new("RGBA", (4, 4), (10, 20, 30, 128)).save(out, format="PNG")

    with Image.open(io.BytesIO(to_jpeg(out.getvalue()))) as image:
        assert image.format == "JPEG"
        assert image.mode == "RGB"


@unittest.mock.patch("dailywall.image_handler.requests.get", autospec=True)
def test_download_image_success(mock_get, png_bytes):
    patch_get(mock_get, fake_response(png_bytes))

    image_bytes = download_image(IMG_URL, timeout=60)

    with Image.open(io.BytesIO(image_bytes)) as image:
        assert image.format == "JPEG"
        assert image.size == (8, 8)

    mock_get.assert_called_once_with(IMG_URL, stream=True, timeout=60)


@pytest.mark.parametrize(
    "error",
    [
        requests.exceptions.Timeout("read timed out"),
        requests.exceptions.ConnectionError("connection refused"),
        requests.exceptions.RequestException("generic"),
    ],
)
@unittest.mock.patch("dailywall.image_handler.requests.get", autospec=True)
def test_download_image_request_failure(mock_get, error):
    mock_get.side_effect = error

    with pytest.raises(ImageDownloadError):
        download_image(IMG_URL)


@unittest.mock.patch("dailywall.image_handler.requests.get", autospec=True)
def test_download_image_bad_status(mock_get, png_bytes):
    patch_get(mock_get, fake_response(png_bytes, status_code=403))

    with pytest.raises(ImageDownloadError, match="403"):
        download_image(IMG_URL)


@unittest.mock.patch("dailywall.image_handler.requests.get", autospec=True)
def test_download_image_not_an_image(mock_get):
    patch_get(mock_get, fake_response(b"<html>AccessDenied</html>"))

    with pytest.raises(ImageDownloadError, match="does not appear to be an image"):
        download_image(IMG_URL)


class TrickleHandler(BaseHTTPRequestHandler):
    """Promises a 1000 byte body and then sends it one byte every 100ms."""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "image/png")
        self.send_header("Content-Length", "1000")
        self.end_headers()

        for _ in range(1000):
            if self.server.stopped.is_set():
                return
            try:
                self.wfile.write(b"\x00")
                self.wfile.flush()
            except OSError:
                return
            time.sleep(0.1)

    def log_message(self, *args):
        pass


@pytest.fixture
def trickle_url(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "127.0.0.1")
    monkeypatch.setenv("no_proxy", "127.0.0.1")

    server = ThreadingHTTPServer(("127.0.0.1", 0), TrickleHandler)
    server.daemon_threads = True
    server.stopped = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_port}/slow.png"

    server.stopped.set()
    server.shutdown()
    server.server_close()


def test_download_image_total_deadline(trickle_url):
    """Every byte arrives well inside the read timeout, but the whole transfer still stops at 1s."""

    started = time.monotonic()

    with pytest.raises(ImageDownloadError, match="longer than 1s"):
        download_image(trickle_url, timeout=1)

    assert time.monotonic() - started < 3


def test_to_jpeg_rejects_decompression_bomb(monkeypatch, png_bytes):
    # an 8x8 image is "too large" once the limit is this low
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

    with pytest.raises(InvalidImageError):
        to_jpeg(png_bytes)

    with pytest.raises(InvalidImageError):
        validate_image(png_bytes)


@unittest.mock.patch("dailywall.image_handler.requests.get", autospec=True)
def test_download_image_oversized_image(mock_get, monkeypatch, png_bytes):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    patch_get(mock_get, fake_response(png_bytes))

    with pytest.raises(ImageDownloadError, match="does not appear to be an image"):
        download_image(IMG_URL)
