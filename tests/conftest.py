"""Pytest configuration for Photo Frame Compositor tests."""

import asyncio

import numpy as np
import pytest

from photoframe.assets import AssetLoadResult
from photoframe.capture import RawFrame
from photoframe.config import Config


class FakeAssetStore:
    """In-memory asset store that records every load call."""

    def __init__(self, results=None, delay=0.0):
        self.results = dict(results or {})
        self.delay = delay
        self.calls = []

    async def load(self, name):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.get(name)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return AssetLoadResult.failed("not found")
        return result


def solid_image(width, height, color, alpha=None):
    """uint8 image filled with ``color``; RGBA when ``alpha`` is given."""
    channels = list(color) + ([alpha] if alpha is not None else [])
    image = np.zeros((height, width, len(channels)), dtype=np.uint8)
    image[:] = channels
    return image


@pytest.fixture
def fake_store():
    return FakeAssetStore


@pytest.fixture
def image_factory():
    return solid_image


@pytest.fixture
def make_frame():
    def _make(width, height, color=(90, 90, 90), mirrored=False):
        return RawFrame.from_image(solid_image(width, height, color), mirrored=mirrored)
    return _make


@pytest.fixture
def small_config(tmp_path):
    """A 200x400 target with a logo box that fits it."""
    return Config(
        target_width=200,
        target_height=400,
        padding_inset=10,
        logo_width=120,
        logo_height=40,
        logo_margin_top=5,
        output_dir=tmp_path / "output",
    )
