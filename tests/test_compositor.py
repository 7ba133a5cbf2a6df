"""Tests for the compositor pipeline."""

import asyncio
import dataclasses

import numpy as np
import pytest

from photoframe.assets import AssetLoadResult, AssetState
from photoframe.capture import RawFrame
from photoframe.compositor import Compositor
from photoframe.config import Config, TargetSpec
from photoframe.exceptions import CompositorBusy, InvalidFrame

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREEN = (0, 200, 0)
GRAY = (90, 90, 90)
WHITE = (255, 255, 255)
TEAL = (12, 133, 150)
MAGENTA = (163, 33, 110)


def _near(pixel, color, tolerance=8):
    return all(abs(int(p) - int(c)) <= tolerance for p, c in zip(pixel, color))


def _transparent(image_factory):
    return AssetLoadResult.loaded(image_factory(10, 10, (0, 0, 0), alpha=0))


def _split_frame(width, height, mirrored):
    """Left half red, right half blue."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :width // 2] = RED
    image[:, width // 2:] = BLUE
    return RawFrame.from_image(image, mirrored=mirrored)


def _row_bands(rows):
    """(start, end) of each run of True rows."""
    bands = []
    start = None
    for i, flag in enumerate(rows):
        if flag and start is None:
            start = i
        elif not flag and start is not None:
            bands.append((start, i))
            start = None
    if start is not None:
        bands.append((start, len(rows)))
    return bands


def _has_color(pixels, color, tolerance=40):
    return bool(np.all(np.abs(pixels - np.array(color)) <= tolerance, axis=1).any())


class TestCompose:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("width,height", [(640, 480), (1280, 720), (720, 1280), (500, 500)])
    @pytest.mark.parametrize("style", ["bordered", "full-bleed"])
    async def test_output_matches_target(self, fake_store, make_frame, width, height, style):
        config = Config(overlay_style=style)
        compositor = Compositor.from_config(config, store=fake_store())

        result = await compositor.compose(make_frame(width, height))

        assert (result.width, result.height) == (1080, 1920)
        assert result.image.shape == (1920, 1080, 3)
        assert result.finalized

    @pytest.mark.asyncio
    async def test_mirrored_bordered_scenario(self, fake_store, make_frame, image_factory):
        store = fake_store({
            "frame": _transparent(image_factory),
            "logo": AssetLoadResult.loaded(image_factory(20, 6, GREEN, alpha=255)),
        })
        compositor = Compositor.from_config(Config(overlay_style="bordered", padding_inset=40), store)

        result = await compositor.compose(make_frame(1280, 720, GRAY, mirrored=True))

        assert (result.width, result.height) == (1080, 1920)
        # Border stays background, photo fills the inset
        assert _near(result.image[10, 540], WHITE)
        assert _near(result.image[1000, 540], GRAY)
        assert _near(result.image[1000, 41], GRAY)
        assert result.output_format == "lossy"
        assert result.quality == 0.9

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mirrored,expected_left", [(False, RED), (True, BLUE)])
    async def test_mirroring_follows_source(self, fake_store, image_factory, small_config,
                                            mirrored, expected_left):
        config = dataclasses.replace(small_config, overlay_style="full-bleed")
        store = fake_store({"frame": _transparent(image_factory), "logo": _transparent(image_factory)})
        compositor = Compositor.from_config(config, store)

        result = await compositor.compose(_split_frame(200, 400, mirrored))

        assert _near(result.image[300, 20], expected_left)
        assert _near(result.image[300, 180], BLUE if expected_left == RED else RED)

    @pytest.mark.asyncio
    async def test_frame_overlay_is_full_bleed(self, fake_store, make_frame, image_factory, small_config):
        store = fake_store({
            "frame": AssetLoadResult.loaded(image_factory(7, 13, MAGENTA, alpha=255)),
            "logo": _transparent(image_factory),
        })
        compositor = Compositor.from_config(small_config, store)

        result = await compositor.compose(make_frame(300, 200))

        for y, x in [(0, 0), (399, 199), (200, 100), (0, 199), (399, 0)]:
            assert _near(result.image[y, x], MAGENTA)

    @pytest.mark.asyncio
    async def test_logo_drawn_in_box(self, fake_store, make_frame, image_factory, small_config):
        store = fake_store({
            "frame": _transparent(image_factory),
            "logo": AssetLoadResult.loaded(image_factory(12, 4, GREEN, alpha=255)),
        })
        compositor = Compositor.from_config(small_config, store)

        result = await compositor.compose(make_frame(200, 400))

        x, y, w, h = compositor.logo_rect(small_config.target_spec())
        assert (x, y, w, h) == (40, 15, 120, 40)
        assert _near(result.image[y + h // 2, x + w // 2], GREEN)
        assert _near(result.image[y + h + 5, x + w // 2], GRAY)

    @pytest.mark.asyncio
    async def test_logo_fallback_draws_text(self, fake_store, make_frame, small_config):
        config = dataclasses.replace(small_config, frame_fallback="none",
                                     logo_width=180, logo_height=100)
        store = fake_store({"logo": AssetLoadResult.failed("network error")})
        compositor = Compositor.from_config(config, store)

        result = await compositor.compose(make_frame(200, 400, GRAY))

        x, y, w, h = compositor.logo_rect(config.target_spec())
        box = result.image[y:y + h, x:x + w].astype(int)
        drawn = np.any(np.abs(box - np.array(GRAY)) > 8, axis=2)
        assert drawn.sum() > 50

        bands = _row_bands(drawn.any(axis=1))
        assert len(bands) == 3

        # Outer lines in the caption colour, middle line in the title colour
        top, middle, bottom = (box[start:end].reshape(-1, 3) for start, end in bands)
        assert _has_color(top, TEAL)
        assert _has_color(middle, MAGENTA)
        assert _has_color(bottom, TEAL)
        assert not _has_color(middle, TEAL)

        # Nothing outside the logo box is touched
        assert _near(result.image[300, 100], GRAY)

    @pytest.mark.asyncio
    async def test_missing_frame_degrades_to_gradient_border(self, fake_store, make_frame,
                                                             image_factory, small_config):
        store = fake_store({
            "frame": AssetLoadResult.failed("network error"),
            "logo": AssetLoadResult.loaded(image_factory(12, 4, GREEN, alpha=255)),
        })
        compositor = Compositor.from_config(small_config, store)

        result = await compositor.compose(make_frame(200, 400, GRAY))

        assert compositor.resolver.state("frame") is AssetState.FAILED
        assert _near(result.image[5, 0], TEAL)
        assert _near(result.image[5, 199], MAGENTA)
        assert not _near(result.image[395, 100], WHITE)
        assert not _near(result.image[395, 100], GRAY)
        assert _near(result.image[200, 100], GRAY)
        logo_x, logo_y, logo_w, logo_h = compositor.logo_rect(small_config.target_spec())
        assert _near(result.image[logo_y + logo_h // 2, logo_x + logo_w // 2], GREEN)

    @pytest.mark.asyncio
    async def test_missing_frame_without_border_policy(self, fake_store, make_frame,
                                                       image_factory, small_config):
        config = dataclasses.replace(small_config, frame_fallback="none")
        store = fake_store({
            "frame": AssetLoadResult.failed("network error"),
            "logo": AssetLoadResult.loaded(image_factory(12, 4, GREEN, alpha=255)),
        })
        compositor = Compositor.from_config(config, store)

        result = await compositor.compose(make_frame(200, 400, GRAY))

        assert _near(result.image[5, 0], WHITE)
        assert _near(result.image[395, 100], WHITE)
        assert _near(result.image[200, 100], GRAY)

    @pytest.mark.asyncio
    async def test_explicit_target_spec(self, fake_store, make_frame, small_config):
        compositor = Compositor.from_config(small_config, fake_store())

        result = await compositor.compose(make_frame(64, 48), TargetSpec(300, 500, 20))

        assert (result.width, result.height) == (300, 500)

    @pytest.mark.asyncio
    async def test_border_fallback_follows_target_padding(self, fake_store, make_frame, small_config):
        store = fake_store({"frame": AssetLoadResult.failed("network error")})
        compositor = Compositor.from_config(small_config, store)

        result = await compositor.compose(make_frame(64, 48, GRAY), TargetSpec(300, 500, 20))

        # Ring is 20px wide, not the configured 10px
        assert _near(result.image[250, 5], TEAL)
        assert _near(result.image[250, 15], TEAL, tolerance=12)
        assert not _near(result.image[250, 15], WHITE)
        assert _near(result.image[250, 25], GRAY)
        assert _near(result.image[250, 285], MAGENTA, tolerance=12)
        assert _near(result.image[250, 270], GRAY)


class TestLogoRect:
    def test_centred_below_padding(self, fake_store):
        config = Config(logo_width=200, logo_height=60, logo_margin_top=20)
        compositor = Compositor.from_config(config, fake_store())

        assert compositor.logo_rect(config.target_spec()) == (440, 60, 200, 60)

    def test_follows_explicit_target(self, fake_store, small_config):
        compositor = Compositor.from_config(small_config, fake_store())

        assert compositor.logo_rect(TargetSpec(300, 500, 20)) == (90, 25, 120, 40)

    def test_clamped_to_small_target(self, fake_store, small_config):
        compositor = Compositor.from_config(small_config, fake_store())

        assert compositor.logo_rect(TargetSpec(100, 50, 10)) == (0, 10, 100, 40)


class TestFailureSemantics:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("width,height", [(0, 720), (1280, 0), (-1, 720), (float("nan"), 720)])
    async def test_invalid_dimensions_abort_before_drawing(self, fake_store, width, height):
        store = fake_store()
        compositor = Compositor.from_config(Config(), store)
        frame = RawFrame(np.zeros((720, 1280, 3), dtype=np.uint8), width, height)

        with pytest.raises(InvalidFrame):
            await compositor.compose(frame)

        assert store.calls == []
        assert not compositor.in_progress

    @pytest.mark.asyncio
    async def test_declared_size_must_match_pixels(self, fake_store):
        compositor = Compositor.from_config(Config(), fake_store())
        frame = RawFrame(np.zeros((720, 1280, 3), dtype=np.uint8), 640, 480)

        with pytest.raises(InvalidFrame):
            await compositor.compose(frame)

    @pytest.mark.asyncio
    async def test_missing_pixels(self, fake_store):
        compositor = Compositor.from_config(Config(), fake_store())

        with pytest.raises(InvalidFrame):
            await compositor.compose(RawFrame(None, 640, 480))

    @pytest.mark.asyncio
    async def test_grayscale_frame_accepted(self, fake_store, small_config):
        compositor = Compositor.from_config(small_config, fake_store())
        frame = RawFrame(np.full((40, 30), 128, dtype=np.uint8), 30, 40)

        result = await compositor.compose(frame)

        assert result.image.shape == (400, 200, 3)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_compose_is_rejected(self, fake_store, make_frame, small_config):
        compositor = Compositor.from_config(small_config, fake_store(delay=0.05))

        first = asyncio.create_task(compositor.compose(make_frame(64, 48)))
        await asyncio.sleep(0.01)
        assert compositor.in_progress

        with pytest.raises(CompositorBusy):
            await compositor.compose(make_frame(64, 48))

        await compositor.wait_until_idle()
        result = await first
        assert not compositor.in_progress
        assert result.width == 200

    @pytest.mark.asyncio
    async def test_cancelled_compose_keeps_asset_cache(self, fake_store, make_frame,
                                                       image_factory, small_config):
        store = fake_store({"logo": AssetLoadResult.loaded(image_factory(4, 4, GREEN, alpha=255))},
                           delay=0.05)
        compositor = Compositor.from_config(small_config, store)

        task = asyncio.create_task(compositor.compose(make_frame(64, 48)))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not compositor.in_progress

        await asyncio.sleep(0.1)
        assert compositor.resolver.state("logo") is AssetState.LOADED

        result = await compositor.compose(make_frame(64, 48))
        assert result.height == 400
        assert store.calls.count("logo") == 1
