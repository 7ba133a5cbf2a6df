#!/usr/bin/env python3
"""
Photo Frame Compositor - Main Application

Captures a still (from a webcam or an image file) and produces a fixed-size
framed photo ready for download:
- Cover-fit of the capture into the photo area, mirrored for front cameras
- Full-bleed frame graphic, or a gradient border when it is unavailable
- Logo overlay, or a three-line text logo when it is unavailable
- PNG (lossless) or JPEG (lossy) export
"""

import sys
import argparse
import asyncio
import dataclasses
import logging

from photoframe.config import Config, load_config
from photoframe.capture import StillImageCapture, WebcamCapture
from photoframe.compositor import Compositor
from photoframe.output import DirectoryOutput
from photoframe.session import CaptureSession
from photoframe.exceptions import PhotoFrameError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('photoframe.log')
    ]
)
logger = logging.getLogger(__name__)


class PhotoFrameApp:
    """Main application class for the Photo Frame Compositor."""

    def __init__(self, config: Config):
        self.config = config
        self.compositor = Compositor.from_config(config)
        self.output = DirectoryOutput(config.output_dir)

        logger.info("Photo Frame Compositor initialized")
        logger.info(
            f"Target {config.target_width}x{config.target_height}, "
            f"style={config.overlay_style}, format={config.output_format}"
        )

    def setup_directories(self):
        """Create the output directory if it doesn't exist."""
        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Output directory: {self.config.output_dir}")

    async def validate_assets(self) -> bool:
        """Resolve both overlays and report which ones would fall back."""
        all_loaded = True
        for name in ("frame", "logo"):
            overlay = await self.compositor.resolver.resolve(name)
            if overlay.is_fallback:
                all_loaded = False
                logger.warning(f"Overlay '{name}' will use its fallback: {overlay.reason}")
            else:
                height, width = overlay.image.shape[:2]
                logger.info(f"Overlay '{name}' OK ({width}x{height})")
        return all_loaded

    async def run(self, capture) -> None:
        """Capture one still and save it."""
        session = CaptureSession(capture, self.compositor, self.output, self.config.filename_prefix)
        path = await session.capture()
        logger.info(f"Framed photo saved: {path}")


def build_config(args) -> Config:
    """Load the configuration file and apply command line overrides."""
    config = load_config(args.config)

    overrides = {}
    if args.style:
        overrides['overlay_style'] = args.style
    if args.format:
        overrides['output_format'] = args.format
    if args.quality is not None:
        overrides['output_quality'] = args.quality
    if args.output_dir:
        overrides['output_dir'] = args.output_dir

    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config


def main():
    """Main entry point for the Photo Frame Compositor."""
    parser = argparse.ArgumentParser(
        description="Photo Frame Compositor - Frame a captured photo for download"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--input",
        type=str,
        help="Frame a still image instead of capturing from a camera"
    )
    source.add_argument(
        "--camera",
        type=int,
        default=0,
        help="Camera device index (default: 0)"
    )
    parser.add_argument(
        "--front",
        action="store_true",
        help="Treat the source as a front-facing (mirrored) capture"
    )
    parser.add_argument(
        "--style",
        choices=["bordered", "full-bleed"],
        help="Override the overlay style"
    )
    parser.add_argument(
        "--format",
        choices=["lossless", "lossy"],
        help="Override the output format"
    )
    parser.add_argument(
        "--quality",
        type=float,
        help="JPEG quality between 0 and 1 (lossy only)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        help="Override the output directory"
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only check the overlay assets without capturing"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = build_config(args)
        app = PhotoFrameApp(config)

        if args.validate_only:
            if not asyncio.run(app.validate_assets()):
                sys.exit(1)
            logger.info("Asset validation completed successfully")
            return

        app.setup_directories()

        if args.input:
            asyncio.run(app.run(StillImageCapture(args.input, mirrored=args.front)))
        else:
            with WebcamCapture(args.camera, mirrored=args.front) as camera:
                asyncio.run(app.run(camera))

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        sys.exit(1)
    except (PhotoFrameError, ValueError, RuntimeError, OSError) as e:
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
