"""
conftest.py

Test configuration for dailywall tests.

Defines Pytest fixtures for supplying test data and test doubles to tests across the entire
test suite. Fixtures used within only a single module are defined directly in that module.

*** Test doubles ***
- InMemoryJobSystem stands in for systemd: it records registrations by name the way the
  real job system does (one per name, replaced on re-register).
- ScriptedGenerator replays a list of results (URLs or exceptions), one per call.
- RecordingApplier remembers what it was asked to apply instead of touching the desktop.
"""

import io
import random
from datetime import date
from pathlib import Path

import pytest
from PIL import Image

from dailywall.config import DailywallConfig, ConfigStore
from dailywall.cli_utils import console as console_module
from dailywall.image_store import ImageStore
from dailywall.openai_handler import RemoteImageGenerator, RemoteGenerationError
from dailywall.scheduler import JobSystem, JobSystemError
from dailywall.wallpaper_handler import WallpaperApplier, WallpaperUpdateError


class InMemoryJobSystem(JobSystem):
    def __init__(self):
        self.periodic = {}
        self.enqueued = []
        self.register_calls = 0
        self.fail_with = None

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def register_periodic(self, name, interval, command, requires_network=True):
        self._maybe_fail()
        self.register_calls += 1
        self.periodic[name] = {
            "interval": interval,
            "command": list(command),
            "requires_network": requires_network,
        }

    def cancel(self, name):
        self._maybe_fail()
        self.periodic.pop(name, None)

    def is_active(self, name):
        self._maybe_fail()
        return name in self.periodic

    def enqueue(self, command):
        self._maybe_fail()
        self.enqueued.append(list(command))
        return f"once-{len(self.enqueued)}"


class ScriptedGenerator(RemoteImageGenerator):
    """Each call pops the next scripted result: a URL string is returned, an exception raised."""

    def __init__(self, results):
        self.results = list(results)
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def generate(self, request):
        self.requests.append(request)
        result = self.results.pop(0) if self.results else RemoteGenerationError("exhausted")
        if isinstance(result, Exception):
            raise result
        return result


class RecordingApplier(WallpaperApplier):
    def __init__(self, error=None):
        self.applied = []
        self.error = error

    def apply(self, image):
        if self.error is not None:
            raise self.error
        self.applied.append(image)


def make_image_bytes(size=(8, 8), color=(200, 40, 90), format="PNG") -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format=format)
    return out.getvalue()


@pytest.fixture(autouse=True)
def reset_console():
    """--quiet swaps the shared console's file for a junk stream; put it back after each test."""

    yield
    console_module.console.file = None


@pytest.fixture
def config_dir(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "config"
    monkeypatch.setenv("DAILYWALL_CONFIG_DIR", str(path))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return path


@pytest.fixture
def config(config_dir, tmp_path) -> DailywallConfig:
    """A config pointing every directory into tmp_path, written to disk like a real install."""

    cfg = DailywallConfig(
        DAILYWALL_CONFIG_DIR=config_dir,
        DAILYWALL_WALLPAPER_DIR=tmp_path / "wallpapers",
        RETRY_DELAY_SECONDS=0,
        FALLBACK_WIDTH=32,
        FALLBACK_HEIGHT=18,
    )
    cfg.generate_config_json()
    return cfg


@pytest.fixture
def config_store(config) -> ConfigStore:
    return ConfigStore(config)


@pytest.fixture
def today() -> date:
    return date(2024, 3, 14)


@pytest.fixture
def image_store(tmp_path, today) -> ImageStore:
    return ImageStore(tmp_path / "wallpapers", today=lambda: today)


@pytest.fixture
def job_system() -> InMemoryJobSystem:
    return InMemoryJobSystem()


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def applier() -> RecordingApplier:
    return RecordingApplier()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def broken_applier() -> RecordingApplier:
    return RecordingApplier(error=WallpaperUpdateError("gsettings exploded"))


@pytest.fixture
def failing_job_system(job_system) -> InMemoryJobSystem:
    job_system.fail_with = JobSystemError("systemctl not found")
    return job_system
