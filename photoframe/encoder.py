"""
Composite result and encoder for the Photo Frame Compositor.

Lossless output is PNG with a fixed compression level; lossy output is
JPEG with a quality in [0, 1]. Both are encoded with OpenCV and are
deterministic for identical pixels and parameters.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from .exceptions import EncodingError

logger = logging.getLogger(__name__)

LOSSLESS = "lossless"
LOSSY = "lossy"
DEFAULT_QUALITY = 0.9
PNG_COMPRESSION = 6

EXTENSIONS = {LOSSLESS: ".png", LOSSY: ".jpg"}


@dataclass(frozen=True)
class CompositeResult:
    """A finished composite: frozen RGB pixels plus the output format."""
    image: np.ndarray
    output_format: str = LOSSY
    quality: Optional[float] = DEFAULT_QUALITY

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def finalized(self) -> bool:
        return not self.image.flags.writeable


def encode(result: CompositeResult, output_format: Optional[str] = None,
           quality: Optional[float] = None) -> bytes:
    """
    Serialise a composite to image bytes.

    Args:
        result: Finished composite
        output_format: "lossless" or "lossy"; defaults to the result's own
        quality: JPEG quality in [0, 1]; lossy only, defaults to 0.9

    Returns:
        Encoded PNG or JPEG bytes

    Raises:
        EncodingError: unfinalised or empty surface, bad parameters, or
            an encoder failure
    """
    if output_format is None:
        output_format = result.output_format
        if quality is None:
            quality = result.quality

    image = result.image
    if image is None or image.ndim != 3 or image.shape[0] == 0 or image.shape[1] == 0:
        raise EncodingError("Cannot encode a surface with zero dimensions")
    if not result.finalized:
        raise EncodingError("Cannot encode a surface that has not been finalised")

    if output_format == LOSSLESS:
        if quality is not None:
            raise EncodingError("Lossless output does not take a quality parameter")
        extension = ".png"
        params = [cv2.IMWRITE_PNG_COMPRESSION, PNG_COMPRESSION]
    elif output_format == LOSSY:
        if quality is None:
            quality = DEFAULT_QUALITY
        if not 0.0 <= quality <= 1.0:
            raise EncodingError(f"Quality must be within [0, 1], got {quality}")
        extension = ".jpg"
        params = [cv2.IMWRITE_JPEG_QUALITY, int(round(quality * 100))]
    else:
        raise EncodingError(f"Unknown output format: {output_format!r}")

    try:
        bgr = cv2.cvtColor(np.ascontiguousarray(image[..., :3]), cv2.COLOR_RGB2BGR)
        ok, buffer = cv2.imencode(extension, bgr, params)
    except cv2.error as e:
        raise EncodingError(f"Encoder failed: {e}")
    if not ok:
        raise EncodingError(f"Encoder failed to produce {extension} output")

    data = buffer.tobytes()
    logger.debug(f"Encoded {result.width}x{result.height} as {output_format} ({len(data)} bytes)")
    return data


def suggested_filename(prefix: str, output_format: str, timestamp: Optional[float] = None) -> str:
    """Download name hint: ``<prefix>-<epoch millis><extension>``."""
    if timestamp is None:
        timestamp = time.time()
    extension = EXTENSIONS.get(output_format)
    if extension is None:
        raise EncodingError(f"Unknown output format: {output_format!r}")
    return f"{prefix}-{int(timestamp * 1000)}{extension}"
