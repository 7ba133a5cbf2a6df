"""
Capture providers for the Photo Frame Compositor.

A capture provider hands the compositor one pixel snapshot per capture
event through ``current_frame()``. Device negotiation stays in here; the
compositor only ever sees a RawFrame.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import cv2
import imageio.v3 as iio
import numpy as np

from .assets import to_rgba

logger = logging.getLogger(__name__)


@dataclass
class RawFrame:
    """A captured still frame.

    Attributes:
        image: RGB uint8 numpy array of shape (H, W, 3).
        width: Frame width in pixels.
        height: Frame height in pixels.
        is_mirrored_source: True for front-facing captures whose preview
            is shown mirrored.
    """

    image: np.ndarray
    width: int
    height: int
    is_mirrored_source: bool = False

    @classmethod
    def from_image(cls, image: np.ndarray, mirrored: bool = False) -> "RawFrame":
        height, width = image.shape[:2]
        return cls(image=image, width=width, height=height, is_mirrored_source=mirrored)


class CaptureProvider(Protocol):
    def current_frame(self) -> RawFrame:
        ...


class WebcamCapture:
    """Snapshot capture from a webcam / USB camera via OpenCV.

    Args:
        device: Device index (default ``0``) or a V4L2 device path.
        mirrored: Mark frames as mirrored-source (front camera).
        width: Requested frame width (``None`` = camera default).
        height: Requested frame height (``None`` = camera default).
    """

    def __init__(
        self,
        device: Union[int, str] = 0,
        mirrored: bool = True,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ):
        self._device = device
        self._mirrored = mirrored
        self._req_width = width
        self._req_height = height
        self._cap: Optional[cv2.VideoCapture] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self) -> None:
        if self._cap is not None:
            return
        self._cap = cv2.VideoCapture(self._device)
        if not self._cap.isOpened():
            self._cap = None
            raise RuntimeError(f"Could not open webcam device: {self._device}")

        if self._req_width is not None:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._req_width)
        if self._req_height is not None:
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._req_height)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"Webcam opened: device={self._device} {actual_w}x{actual_h} mirrored={self._mirrored}")

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info(f"Webcam closed (device={self._device})")

    def current_frame(self) -> RawFrame:
        if self._cap is None:
            self.open()
        ok, bgr = self._cap.read()
        if not ok or bgr is None:
            raise RuntimeError(f"Could not read a frame from device {self._device}")
        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        return RawFrame.from_image(rgb, mirrored=self._mirrored)


class StillImageCapture:
    """Capture provider that serves a still image from disk."""

    def __init__(self, path: Union[str, Path], mirrored: bool = False):
        self.path = Path(path)
        self.mirrored = mirrored

    def current_frame(self) -> RawFrame:
        image = np.ascontiguousarray(to_rgba(iio.imread(self.path))[..., :3])
        logger.info(f"Loaded still frame {self.path} ({image.shape[1]}x{image.shape[0]})")
        return RawFrame.from_image(image, mirrored=self.mirrored)
