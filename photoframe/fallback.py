"""
Procedural fallbacks drawn when an overlay asset is unavailable.

Each fallback is a callable ``(surface, rect, target) -> None``. They draw
straight onto the surface, so the composite never ships with a blank
overlay slot.
"""

import logging
from typing import Callable

from .config import Config, TargetSpec
from .surface import Surface, Rect, TextStyle, Color, load_font

logger = logging.getLogger(__name__)

FallbackRenderer = Callable[[Surface, Rect, TargetSpec], None]

# Text logo layout as fractions of the logo box height
CAPTION_SIZE = 0.16
TITLE_SIZE = 0.32
LINE_SPACING = 0.33
MIN_FONT_SIZE = 8


class LogoTextFallback:
    """Three centred lines: small caption, large title, small caption."""

    def __init__(self, caption_top: str, title: str, caption_bottom: str,
                 caption_color: Color, title_color: Color):
        self.caption_top = caption_top
        self.title = title
        self.caption_bottom = caption_bottom
        self.caption_color = caption_color
        self.title_color = title_color

    def _fit_size(self, text: str, size: int, bold: bool, max_width: float) -> int:
        # Shrink until the line fits inside the box
        while size > MIN_FONT_SIZE:
            font, _ = load_font(size, bold)
            if font.getlength(text) <= max_width:
                break
            size -= 1
        return size

    def __call__(self, surface: Surface, rect: Rect, target: TargetSpec):
        x, y, w, h = rect
        cx = x + w / 2.0
        cy = y + h / 2.0
        max_width = w * 0.95

        caption_size = max(MIN_FONT_SIZE, round(h * CAPTION_SIZE))
        title_size = max(MIN_FONT_SIZE, round(h * TITLE_SIZE))
        caption_size = min(
            self._fit_size(self.caption_top, caption_size, False, max_width),
            self._fit_size(self.caption_bottom, caption_size, False, max_width),
        )
        title_size = self._fit_size(self.title, title_size, True, max_width)

        caption_style = TextStyle(font_size=caption_size, color=self.caption_color, bold=False)
        title_style = TextStyle(font_size=title_size, color=self.title_color, bold=True)
        spacing = h * LINE_SPACING

        surface.draw_text_block([
            (self.caption_top, (cx, cy - spacing), caption_style),
            (self.title, (cx, cy), title_style),
            (self.caption_bottom, (cx, cy + spacing), caption_style),
        ])


class GradientBorderFallback:
    """Two-colour gradient ring filling the target's padding inset."""

    def __init__(self, start: Color, end: Color):
        self.start = start
        self.end = end

    def __call__(self, surface: Surface, rect: Rect, target: TargetSpec):
        surface.fill_gradient_border(target.padding_inset, self.start, self.end)


def no_overlay(surface: Surface, rect: Rect, target: TargetSpec):
    """Fallback that leaves the surface untouched."""


def build_fallbacks(config: Config) -> dict:
    """Fallback renderers for the known overlay names."""
    if config.frame_fallback == "border":
        frame_fallback = GradientBorderFallback(
            config.rgb("gradient_start"),
            config.rgb("gradient_end"),
        )
    else:
        frame_fallback = no_overlay

    logo_fallback = LogoTextFallback(
        config.logo_caption_top,
        config.logo_title,
        config.logo_caption_bottom,
        caption_color=config.rgb("caption_color"),
        title_color=config.rgb("title_color"),
    )

    logger.debug(f"Frame fallback policy: {config.frame_fallback}")
    return {"frame": frame_fallback, "logo": logo_fallback}
