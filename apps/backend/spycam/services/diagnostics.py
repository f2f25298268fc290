from __future__ import annotations

import asyncio
import logging
import tempfile
from functools import lru_cache
from pathlib import Path

from spycam.pipeline.types import EncodedBitmap

logger = logging.getLogger(__name__)

DIAGNOSTIC_FILENAME = "test_image.png"


@lru_cache(maxsize=1)
def scoped_temp_dir() -> Path:
    """Temp directory created once per process for diagnostic output."""
    return Path(tempfile.mkdtemp(prefix="spycam-"))


class DiagnosticPersister:
    """Overwrites a fixed-name file with the last accepted bitmap.

    Write errors are logged and swallowed; they never block delivery to the display.
    """

    def __init__(self, directory: str | Path | None = None, filename: str = DIAGNOSTIC_FILENAME) -> None:
        self._directory = Path(directory).expanduser() if directory else None
        self.filename = filename

    @property
    def directory(self) -> Path:
        return self._directory if self._directory is not None else scoped_temp_dir()

    async def persist(self, bitmap: EncodedBitmap) -> Path | None:
        try:
            path = await asyncio.to_thread(self._write, bitmap.data)
        except (OSError, ValueError) as error:
            logger.error("failed to save diagnostic bitmap: %s", error)
            return None
        logger.info("diagnostic bitmap saved to %s", path)
        return path

    def _write(self, data: bytes) -> Path:
        directory = self.directory
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(data)
        return path
