"""
Compositor module for the Photo Frame Compositor.

This module assembles the final still:
1. Clear the target surface
2. Cover-fit the captured frame into the photo rectangle (inset for the
   bordered style, full surface for full-bleed)
3. Draw it, mirrored when the source was captured mirrored
4. Draw the frame overlay over the whole surface
5. Draw the logo (or its text fallback) into the logo box
6. Freeze the surface into a CompositeResult
"""

import asyncio
import logging
import math
from numbers import Real
from typing import Optional, Tuple

import cv2
import numpy as np

from .assets import FileAssetStore, OverlayResolver, AssetStore
from .capture import RawFrame
from .config import Config, TargetSpec
from .encoder import CompositeResult, LOSSY
from .exceptions import CompositorBusy, InvalidFrame
from .fallback import build_fallbacks
from .geometry import MirrorTransform, compute_fit_geometry, placement_matrix
from .surface import Surface, Rect

logger = logging.getLogger(__name__)


def _valid_dimension(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value) and value > 0


class Compositor:
    """Composes captured frames into fixed-size framed stills."""

    def __init__(self, config: Config, resolver: OverlayResolver):
        self.config = config
        self.resolver = resolver
        self._busy = False
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_config(cls, config: Config, store: Optional[AssetStore] = None) -> "Compositor":
        """Build a compositor with a file-backed (or given) asset store."""
        if store is None:
            store = FileAssetStore.from_config(config)
        resolver = OverlayResolver(
            store,
            fallbacks=build_fallbacks(config),
            default_timeout=config.asset_timeout,
        )
        return cls(config, resolver)

    @property
    def in_progress(self) -> bool:
        """True while a composite holds the target surface."""
        return self._busy

    async def wait_until_idle(self):
        """Wait for the in-flight composite, if any, to finish."""
        await self._idle.wait()

    def photo_rect(self, target: TargetSpec) -> Rect:
        if self.config.overlay_style == "bordered":
            return target.inset_rect()
        return target.full_rect()

    def logo_rect(self, target: TargetSpec) -> Rect:
        width = min(self.config.logo_width, target.width)
        height = min(self.config.logo_height, target.height)
        x = (target.width - width) // 2
        y = min(target.padding_inset + self.config.logo_margin_top, target.height - height)
        return (x, y, width, height)

    async def compose(self, raw_frame: RawFrame, target_spec: Optional[TargetSpec] = None,
                      asset_timeout: Optional[float] = None) -> CompositeResult:
        """
        Compose a captured frame into a framed still.

        Args:
            raw_frame: Captured snapshot; not retained after return
            target_spec: Output surface; defaults to the configured one
            asset_timeout: Seconds to wait for each overlay asset

        Returns:
            CompositeResult with exactly the target dimensions

        Raises:
            InvalidFrame: the frame is malformed (nothing is drawn)
            CompositorBusy: another composite is in flight
        """
        if self._busy:
            raise CompositorBusy("A composite is already in progress")
        image = self._validate_frame(raw_frame)
        target = target_spec or self.config.target_spec()

        self._busy = True
        self._idle.clear()
        try:
            # Overlays are resolved up front so drawing never suspends
            frame_overlay, logo_overlay = await asyncio.gather(
                self.resolver.resolve("frame", asset_timeout),
                self.resolver.resolve("logo", asset_timeout),
            )

            surface = Surface(target.width, target.height, self.config.rgb("background_color"))

            rect = self.photo_rect(target)
            geometry = compute_fit_geometry(raw_frame.width, raw_frame.height, rect[2], rect[3])
            mirror = MirrorTransform(raw_frame.is_mirrored_source, rect[2])
            matrix = mirror.matrix @ placement_matrix(geometry, raw_frame.width)
            surface.draw_image(image, matrix, rect)
            logger.debug(f"Photo placed at {geometry} in {rect} (mirrored={mirror.should_mirror})")

            frame_overlay.draw(surface, target.full_rect(), target)
            logo_overlay.draw(surface, self.logo_rect(target), target)

            pixels = surface.freeze()
        finally:
            self._busy = False
            self._idle.set()

        quality = self.config.output_quality if self.config.output_format == LOSSY else None
        logger.info(
            f"Composited {raw_frame.width}x{raw_frame.height} frame into "
            f"{target.width}x{target.height} ({self.config.overlay_style}, "
            f"frame={'fallback' if frame_overlay.is_fallback else 'asset'}, "
            f"logo={'fallback' if logo_overlay.is_fallback else 'asset'})"
        )
        return CompositeResult(pixels, self.config.output_format, quality)

    @staticmethod
    def _validate_frame(raw_frame: RawFrame) -> np.ndarray:
        """Check the frame and return its pixels as RGB uint8."""
        if raw_frame is None or raw_frame.image is None:
            raise InvalidFrame("Frame has no pixel data")
        if not (_valid_dimension(raw_frame.width) and _valid_dimension(raw_frame.height)):
            raise InvalidFrame(f"Invalid frame dimensions {raw_frame.width!r}x{raw_frame.height!r}")

        image = np.asarray(raw_frame.image)
        if image.dtype != np.uint8:
            raise InvalidFrame(f"Frame pixels must be uint8, got {image.dtype}")
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
        if image.ndim != 3 or image.shape[2] < 3:
            raise InvalidFrame(f"Unsupported frame shape {image.shape}")

        actual: Tuple[int, int] = image.shape[:2]
        if actual != (raw_frame.height, raw_frame.width):
            raise InvalidFrame(
                f"Frame declares {raw_frame.width}x{raw_frame.height} "
                f"but pixels are {actual[1]}x{actual[0]}"
            )
        return image
