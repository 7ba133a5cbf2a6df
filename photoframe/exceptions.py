"""
Error taxonomy for the Photo Frame Compositor.

Geometry and frame errors are fatal to the call that raised them.
AssetLoadFailure never leaves the overlay resolver: it is converted into a
fallback render there. EncodingError is surfaced to the caller.
"""


class PhotoFrameError(Exception):
    """Base class for all compositor errors."""


class InvalidDimension(PhotoFrameError, ValueError):
    """Raised when a geometry input is non-positive or non-finite."""


class InvalidFrame(PhotoFrameError, ValueError):
    """Raised when a captured frame cannot be composited."""


class AssetLoadFailure(PhotoFrameError):
    """Raised by asset stores when an overlay asset cannot be produced."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class EncodingError(PhotoFrameError):
    """Raised when a composite cannot be serialised."""


class CompositorBusy(PhotoFrameError):
    """Raised when a composite is requested while another is in flight."""
