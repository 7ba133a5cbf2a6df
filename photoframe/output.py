"""
Output consumers: where encoded composites end up.
"""

import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class OutputConsumer(Protocol):
    def deliver(self, data: bytes, suggested_filename: str) -> Any:
        ...


class DirectoryOutput:
    """Writes each delivered image into a directory."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def deliver(self, data: bytes, suggested_filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / Path(suggested_filename).name
        path.write_bytes(data)
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path
