"""
Package initialization for the Photo Frame Compositor.
"""

# Import main classes for easy access
from .config import Config, TargetSpec, load_config
from .geometry import FitGeometry, MirrorTransform, compute_fit_geometry
from .capture import RawFrame, StillImageCapture, WebcamCapture
from .assets import AssetLoadResult, AssetState, FileAssetStore, OverlayResolver
from .compositor import Compositor
from .encoder import CompositeResult, encode, suggested_filename
from .session import CaptureSession
from .exceptions import (
    AssetLoadFailure,
    CompositorBusy,
    EncodingError,
    InvalidDimension,
    InvalidFrame,
    PhotoFrameError,
)

__version__ = "1.0.0"

__all__ = [
    'Config',
    'TargetSpec',
    'load_config',
    'FitGeometry',
    'MirrorTransform',
    'compute_fit_geometry',
    'RawFrame',
    'StillImageCapture',
    'WebcamCapture',
    'AssetLoadResult',
    'AssetState',
    'FileAssetStore',
    'OverlayResolver',
    'Compositor',
    'CompositeResult',
    'encode',
    'suggested_filename',
    'CaptureSession',
    'AssetLoadFailure',
    'CompositorBusy',
    'EncodingError',
    'InvalidDimension',
    'InvalidFrame',
    'PhotoFrameError',
]
