"""
Overlay asset loading for the Photo Frame Compositor.

This module handles:
- The asset store boundary (async ``load(name)`` returning loaded/failed)
- A file-backed store decoding images with imageio
- The per-name asset state machine (IDLE -> LOADING -> LOADED | FAILED)
  with one shared pending load per name, caller timeouts, and fallback
  renderers for assets that cannot be produced
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Protocol

import imageio.v3 as iio
import numpy as np

from .config import Config, TargetSpec
from .exceptions import AssetLoadFailure
from .fallback import FallbackRenderer, no_overlay
from .surface import Surface, Rect

logger = logging.getLogger(__name__)


class AssetState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class AssetLoadResult:
    """Outcome of a single asset load: an image or a failure reason."""
    image: Optional[np.ndarray] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None

    @classmethod
    def loaded(cls, image: np.ndarray) -> "AssetLoadResult":
        return cls(image=image)

    @classmethod
    def failed(cls, reason: str) -> "AssetLoadResult":
        return cls(reason=reason)


class AssetStore(Protocol):
    async def load(self, name: str) -> AssetLoadResult:
        ...


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Normalise a decoded image to an RGBA uint8 array."""
    image = np.asarray(image)
    if image.dtype != np.uint8:
        if np.issubdtype(image.dtype, np.floating):
            image = np.clip(image * 255.0 + 0.5, 0, 255).astype(np.uint8)
        elif image.dtype == np.uint16:
            image = (image >> 8).astype(np.uint8)
        else:
            raise ValueError(f"unsupported pixel type {image.dtype}")

    if image.ndim == 2:
        image = image[..., None]
    if image.ndim != 3 or image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError(f"unsupported image shape {image.shape}")

    channels = image.shape[2]
    if channels == 1:
        rgb = np.repeat(image, 3, axis=2)
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
        return np.concatenate([rgb, alpha], axis=2)
    if channels == 2:
        rgb = np.repeat(image[..., :1], 3, axis=2)
        return np.concatenate([rgb, image[..., 1:2]], axis=2)
    if channels == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
        return np.concatenate([image, alpha], axis=2)
    if channels == 4:
        return np.ascontiguousarray(image)
    raise ValueError(f"unsupported channel count {channels}")


class FileAssetStore:
    """Asset store reading images from configured file paths."""

    def __init__(self, paths: Dict[str, Path]):
        self.paths = {name: Path(path) for name, path in paths.items()}

    @classmethod
    def from_config(cls, config: Config) -> "FileAssetStore":
        return cls({"frame": config.frame_asset, "logo": config.logo_asset})

    async def load(self, name: str) -> AssetLoadResult:
        path = self.paths.get(name)
        if path is None:
            return AssetLoadResult.failed(f"no asset configured for '{name}'")

        try:
            image = await asyncio.to_thread(self._read, name, path)
        except AssetLoadFailure as e:
            return AssetLoadResult.failed(e.reason)

        logger.info(f"Loaded overlay asset '{name}' from {path} ({image.shape[1]}x{image.shape[0]})")
        return AssetLoadResult.loaded(image)

    @staticmethod
    def _read(name: str, path: Path) -> np.ndarray:
        if not path.exists():
            raise AssetLoadFailure(name, f"unreachable resource: {path}")
        try:
            return to_rgba(iio.imread(path))
        except Exception as e:
            raise AssetLoadFailure(name, f"decode error: {e}")


@dataclass(frozen=True)
class ResolvedOverlay:
    """An overlay ready to draw: a decoded image or a fallback renderer."""
    name: str
    image: Optional[np.ndarray]
    fallback: FallbackRenderer
    reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.image is None

    def draw(self, surface: Surface, rect: Rect, target: TargetSpec):
        if self.image is not None:
            surface.blend_image(self.image, rect)
        else:
            self.fallback(surface, rect, target)


class _AssetEntry:
    """Cache slot for one asset name."""

    def __init__(self):
        self.state = AssetState.IDLE
        self.image: Optional[np.ndarray] = None
        self.reason: Optional[str] = None
        self.pending: Optional[asyncio.Task] = None


class OverlayResolver:
    """
    Resolves overlay names to images, falling back to procedural drawing.

    The first request for a name starts its load; concurrent requests
    await the same pending task. Once settled the outcome is cached until
    explicitly invalidated. ``resolve`` never raises for asset problems.
    """

    def __init__(self, store: AssetStore,
                 fallbacks: Optional[Dict[str, FallbackRenderer]] = None,
                 default_timeout: Optional[float] = None):
        self.store = store
        self.fallbacks = dict(fallbacks or {})
        self.default_timeout = default_timeout
        self._entries: Dict[str, _AssetEntry] = {}

    def state(self, name: str) -> AssetState:
        entry = self._entries.get(name)
        return entry.state if entry is not None else AssetState.IDLE

    def reason(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        return entry.reason if entry is not None else None

    def invalidate(self, name: str) -> bool:
        """
        Forget a settled outcome so the next request loads again.

        Returns:
            False if the asset is still loading (nothing is reset)
        """
        entry = self._entries.get(name)
        if entry is None:
            return True
        if entry.state is AssetState.LOADING:
            return False
        del self._entries[name]
        logger.info(f"Overlay '{name}' invalidated")
        return True

    async def resolve(self, name: str, timeout: Optional[float] = None) -> ResolvedOverlay:
        """
        Resolve an overlay by name.

        Args:
            name: Logical asset name ("frame", "logo")
            timeout: Seconds to wait for a pending load; None uses the
                resolver default, which may itself be None (wait forever)

        Returns:
            ResolvedOverlay holding either the image or the fallback
        """
        entry = self._entries.get(name)
        if entry is None:
            entry = self._entries[name] = _AssetEntry()

        if entry.state is AssetState.IDLE:
            entry.state = AssetState.LOADING
            entry.pending = asyncio.get_running_loop().create_task(self._load(name, entry))
            logger.debug(f"Overlay '{name}' loading")

        if entry.state is AssetState.LOADING:
            if timeout is None:
                timeout = self.default_timeout
            try:
                # Shielded so a cancelled composite never cancels the shared load
                await asyncio.wait_for(asyncio.shield(entry.pending), timeout)
            except asyncio.TimeoutError:
                reason = f"load timeout after {timeout}s"
                logger.warning(f"Overlay '{name}' unavailable ({reason}), using fallback")
                return self._fallback(name, reason)

        if entry.state is AssetState.LOADED:
            return ResolvedOverlay(name, entry.image, self._fallback_renderer(name))
        return self._fallback(name, entry.reason)

    async def _load(self, name: str, entry: _AssetEntry):
        try:
            result = await self.store.load(name)
            image = to_rgba(result.image) if result.ok else None
            reason = result.reason
        except AssetLoadFailure as e:
            image = None
            reason = e.reason
        except Exception as e:
            image = None
            reason = f"{type(e).__name__}: {e}"

        if image is not None:
            entry.state = AssetState.LOADED
            entry.image = image
        else:
            entry.state = AssetState.FAILED
            entry.reason = reason or "unknown error"
            logger.warning(f"Overlay '{name}' failed to load: {entry.reason}")
        entry.pending = None

    def _fallback_renderer(self, name: str) -> FallbackRenderer:
        return self.fallbacks.get(name, no_overlay)

    def _fallback(self, name: str, reason: Optional[str]) -> ResolvedOverlay:
        return ResolvedOverlay(name, None, self._fallback_renderer(name), reason)
