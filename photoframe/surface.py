"""
Target drawing surface for the Photo Frame Compositor.

The surface is a single RGB uint8 numpy array owned by one composite at a
time. Every draw call receives its placement and style explicitly; there
is no shared drawing state between calls.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Iterable, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]
Color = Tuple[int, int, int]

# Font files tried in order; the first one Pillow can open wins
_FONT_CANDIDATES = {
    False: ("DejaVuSans.ttf", "Arial.ttf", "LiberationSans-Regular.ttf"),
    True: ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf", "LiberationSans-Bold.ttf"),
}


@dataclass(frozen=True)
class TextStyle:
    """Immutable style for a single text draw call."""
    font_size: int
    color: Color
    bold: bool = False
    anchor: str = "mm"  # Pillow anchor: middle/middle


@functools.lru_cache(maxsize=32)
def load_font(size: int, bold: bool):
    """
    Load a TrueType font at the requested size and weight.

    Returns:
        (font, synthetic_bold) - synthetic_bold is True when no bold face
        was found and the weight has to be drawn with a stroke instead
    """
    for name in _FONT_CANDIDATES[bold]:
        try:
            return ImageFont.truetype(name, size), False
        except OSError:
            continue

    logger.debug(f"No TrueType font found for size={size} bold={bold}, using Pillow default")
    return ImageFont.load_default(size=size), bold


class Surface:
    """Mutable RGB canvas that is frozen once composition finishes."""

    def __init__(self, width: int, height: int, background: Color = (255, 255, 255)):
        self.width = int(width)
        self.height = int(height)
        self.pixels = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        self._frozen = False
        self.clear(background)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self):
        if self._frozen:
            raise RuntimeError("Surface is frozen and can no longer be drawn on")

    def clear(self, color: Color):
        self._check_writable()
        self.pixels[:] = np.asarray(color, dtype=np.uint8)

    def fill_rect(self, rect: Rect, color: Color):
        self._check_writable()
        x, y, w, h = rect
        self.pixels[y:y + h, x:x + w] = np.asarray(color, dtype=np.uint8)

    def draw_image(self, image: np.ndarray, matrix: np.ndarray, rect: Rect):
        """
        Warp ``image`` into ``rect`` with a 3x3 affine matrix.

        The matrix maps source pixel coordinates to coordinates relative to
        the rectangle's origin. Anything mapped outside the rectangle is
        clipped.
        """
        self._check_writable()
        x, y, w, h = rect
        warped = cv2.warpAffine(
            np.ascontiguousarray(image[..., :3]),
            np.ascontiguousarray(matrix[:2], dtype=np.float64),
            (w, h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_REPLICATE,
        )
        self.pixels[y:y + h, x:x + w] = warped

    def blend_image(self, image: np.ndarray, rect: Rect):
        """Resize ``image`` to exactly ``rect`` and alpha-blend it on top."""
        self._check_writable()
        x, y, w, h = rect
        src_h, src_w = image.shape[:2]
        interpolation = cv2.INTER_AREA if (src_w > w or src_h > h) else cv2.INTER_LINEAR
        resized = cv2.resize(image, (w, h), interpolation=interpolation)

        region = self.pixels[y:y + h, x:x + w]
        if resized.ndim == 3 and resized.shape[2] == 4:
            alpha = resized[..., 3:4].astype(np.float32) / 255.0
            rgb = resized[..., :3].astype(np.float32)
            blended = rgb * alpha + region.astype(np.float32) * (1.0 - alpha)
            region[:] = np.clip(blended + 0.5, 0, 255).astype(np.uint8)
        else:
            region[:] = resized[..., :3]

    def fill_gradient_border(self, inset: int, start: Color, end: Color):
        """Paint a left-to-right two-colour gradient on the ring outside ``inset``."""
        self._check_writable()
        if inset <= 0:
            return
        t = np.linspace(0.0, 1.0, self.width, dtype=np.float32)[:, None]
        row = (1.0 - t) * np.asarray(start, np.float32) + t * np.asarray(end, np.float32)
        row = np.clip(row + 0.5, 0, 255).astype(np.uint8)

        self.pixels[:inset, :] = row
        self.pixels[self.height - inset:, :] = row
        self.pixels[:, :inset] = row[:inset]
        self.pixels[:, self.width - inset:] = row[self.width - inset:]

    def draw_text_block(self, lines: Iterable[Tuple[str, Tuple[float, float], TextStyle]]):
        """Draw each ``(text, (x, y), style)`` entry in order."""
        self._check_writable()
        canvas = Image.fromarray(self.pixels)
        draw = ImageDraw.Draw(canvas)
        for text, position, style in lines:
            font, synthetic_bold = load_font(style.font_size, style.bold)
            stroke = max(1, style.font_size // 20) if synthetic_bold else 0
            draw.text(
                position,
                text,
                font=font,
                fill=style.color,
                anchor=style.anchor,
                stroke_width=stroke,
                stroke_fill=style.color,
            )
        self.pixels[:] = np.asarray(canvas)

    def freeze(self) -> np.ndarray:
        """Make the pixels read-only and return them."""
        self._frozen = True
        self.pixels.flags.writeable = False
        return self.pixels
