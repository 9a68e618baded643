"""
Context managers for raw2imd.

Provides safe resource management for the IMD output file: the handle is
flushed and closed even if the conversion fails part way.
"""

import os
import logging
from typing import BinaryIO, Optional

from raw2imd.imaging.image_formats import ImageWriteError
from raw2imd.imaging.imd_writer import IMDWriter


class ImageOutputContext:
    """
    Context manager for the IMD output file.

    Opens the output (or the null device for a dry run) and yields an
    IMDWriter. On exit the file is flushed and closed. A partially written
    file is left in place when an exception occurs.

    Attributes:
        imd_path: Output path, or None for a dry run
        writer: IMDWriter (set during context)

    Example:
        >>> with ImageOutputContext("disk.imd") as writer:
        ...     writer.write_header(meta)
        ...     writer.write_track(track)
        >>> # File automatically closed
    """

    def __init__(self, imd_path: Optional[str] = None):
        self.imd_path = imd_path
        self.writer: Optional[IMDWriter] = None
        self._file: Optional[BinaryIO] = None

    def __enter__(self) -> IMDWriter:
        """
        Enter context - create the output file.

        Raises:
            ImageWriteError: If the file cannot be created
        """
        target = self.imd_path if self.imd_path is not None else os.devnull
        try:
            logging.debug(f"Opening {target} for writing")
            self._file = open(target, "wb")
        except OSError as e:
            logging.error(f"Failed to create output: {e}")
            raise ImageWriteError(f"Cannot create IMD file: {e.strerror}",
                                  self.imd_path) from e

        self.writer = IMDWriter(self._file, self.imd_path)
        return self.writer

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Exit context - flush and close the file.

        Returns:
            False to not suppress exceptions
        """
        if self._file is not None:
            try:
                self._file.flush()
                if self.imd_path is not None:
                    os.fsync(self._file.fileno())
                    logging.debug("Output buffers flushed")
            except OSError as flush_error:
                logging.warning(f"Failed to flush output: {flush_error}")
            finally:
                self._file.close()
                self._file = None
                logging.debug("Output closed")

            if exc_type is not None and self.imd_path is not None:
                logging.warning(
                    f"Conversion aborted; {self.imd_path} holds "
                    f"{self.writer.tracks_written} complete tracks"
                )

        # Don't suppress exceptions
        return False
