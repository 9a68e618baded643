"""
Raw sector dump access.

RawSource wraps a read-only file handle with the few operations the
conversion engine needs: sequential reads, absolute seeks and a peek at the
trailer window at the end of the file.
"""

import logging
import os
from typing import BinaryIO, Optional

from .image_formats import ImageReadError

logger = logging.getLogger(__name__)


class RawSource:
    """
    Byte-addressable raw disk dump.

    Attributes:
        path: Path of the raw file
        size: Size of the file in bytes (fixed at open)
        limit: End of the sector payload; reads never go past it

    Example:
        >>> with RawSource("disk.raw") as source:
        ...     first = source.read(512)
    """

    def __init__(self, path: str):
        self.path = str(path)
        self.size = 0
        self.limit: Optional[int] = None
        self._file: Optional[BinaryIO] = None

    def open(self) -> "RawSource":
        """Open the file for reading."""
        try:
            self._file = open(self.path, "rb")
            self.size = os.fstat(self._file.fileno()).st_size
        except OSError as e:
            raise ImageReadError(f"Cannot open raw file: {e.strerror}", self.path) from e

        logger.debug("Opened %s (%d bytes)", self.path, self.size)
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "RawSource":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _handle(self) -> BinaryIO:
        if self._file is None:
            raise ImageReadError("Raw file is not open", self.path)
        return self._file

    def read(self, n: int) -> bytes:
        """
        Read up to n bytes from the current position.

        Fewer bytes are returned at end of file or at the payload limit;
        the caller decides whether that is fatal.
        """
        handle = self._handle()
        try:
            if self.limit is not None:
                n = max(min(n, self.limit - handle.tell()), 0)
            return handle.read(n)
        except OSError as e:
            raise ImageReadError(f"Read failed: {e}", self.path) from e

    def seek(self, offset: int) -> int:
        """Move to an absolute offset."""
        try:
            return self._handle().seek(offset, os.SEEK_SET)
        except (OSError, ValueError) as e:
            raise ImageReadError(f"Seek to {offset} failed: {e}", self.path) from e

    def tell(self) -> int:
        return self._handle().tell()

    def read_trailer_window(self, length: int) -> bytes:
        """
        Return the last `length` bytes of the file.

        The read position is restored afterwards.
        """
        position = self.tell()
        try:
            self.seek(max(self.size - length, 0))
            return self._handle().read(length)
        finally:
            self.seek(position)

    def set_payload_limit(self, limit: int) -> None:
        """Stop sector reads at `limit` bytes, e.g. before a trailer."""
        self.limit = max(limit, 0)
        logger.debug("Payload of %s limited to %d bytes", self.path, self.limit)
