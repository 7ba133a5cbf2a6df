"""
Capture session: the caller that drives one capture at a time.

The session snapshots a frame, composes it, encodes it (retrying once on
an encoding failure) and hands the bytes to the output consumer. A second
capture while one is in flight is rejected; ``retake()`` discards the
in-flight capture.
"""

import asyncio
import logging
from typing import Any, Optional

from .capture import CaptureProvider
from .compositor import Compositor
from .encoder import encode, suggested_filename
from .exceptions import CompositorBusy, EncodingError
from .output import OutputConsumer

logger = logging.getLogger(__name__)


class CaptureSession:
    """Runs capture events against one compositor."""

    def __init__(self, capture: CaptureProvider, compositor: Compositor,
                 output: OutputConsumer, filename_prefix: str = "photo-frame"):
        self.capture_provider = capture
        self.compositor = compositor
        self.output = output
        self.filename_prefix = filename_prefix
        self._task: Optional[asyncio.Task] = None

    @property
    def processing(self) -> bool:
        return (self._task is not None and not self._task.done()) or self.compositor.in_progress

    async def capture(self) -> Any:
        """
        Capture, compose, encode and deliver one still.

        Returns:
            Whatever the output consumer returns, or None if the capture
            was discarded by ``retake()``
        """
        if self.processing:
            raise CompositorBusy("A capture is already being processed")

        self._task = asyncio.get_running_loop().create_task(self._run())
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._task.cancelled() and not asyncio.current_task().cancelling():
                logger.info("Capture discarded")
                return None
            raise
        finally:
            self._task = None

    def retake(self) -> bool:
        """Discard the in-flight capture. Returns True if one was cancelled."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        return True

    async def _run(self) -> Any:
        raw_frame = self.capture_provider.current_frame()
        result = await self.compositor.compose(raw_frame)
        del raw_frame

        try:
            data = encode(result)
        except EncodingError as e:
            logger.warning(f"Encoding failed ({e}), retrying once")
            data = encode(result)

        filename = suggested_filename(self.filename_prefix, result.output_format)
        return self.output.deliver(data, filename)
