"""
ImageDisk (IMD) container writer.

File layout:
    - ASCII banner "IMD 1.18: dd/mm/yyyy hh:mm:ss" CR LF, free-form
      comment, then 0x1A
    - One record per track:
        mode, cylinder, head|flags, sector count, size code
        sector numbering map
        cylinder map (only if head & 0x80)
        head map (only if head & 0x40)
        one data record per sector (type byte + payload)

Tracks are written as they are produced; the writer keeps no disk-wide state
beyond a counter.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Optional

from .image_formats import (
    IMD_COMMENT_TERMINATOR,
    IMD_HEAD_CYL_MAP,
    IMD_HEAD_HEAD_MAP,
    IMD_PACKAGE_NAME,
    IMD_REC_COMPRESSED,
    IMD_REC_DELETED,
    IMD_REC_DELETED_COMPRESSED,
    IMD_REC_NORMAL,
    IMD_VERSION,
    ImageWriteError,
    get_sector_length,
)

logger = logging.getLogger(__name__)


@dataclass
class DiskMetadata:
    """
    Disk-level information written once before the tracks.

    Attributes:
        title: Title placed after the banner line
        extra: Further comment text (e.g. read from stdin)
        created: Timestamp used for the banner
    """
    title: Optional[str] = None
    extra: Optional[bytes] = None
    created: datetime = field(default_factory=datetime.now)

    @property
    def comment(self) -> bytes:
        """Comment block (banner line included), without the 0x1A."""
        return make_disk_comment(self.title, self.extra, self.created)


def make_disk_comment(title: Optional[str] = None,
                      extra: Optional[bytes] = None,
                      now: Optional[datetime] = None) -> bytes:
    """
    Build the IMD comment block.

    The banner line is followed by the title and any extra comment text,
    both appended verbatim.

    Example:
        >>> make_disk_comment("CP/M 2.2", now=datetime(2021, 3, 29, 12, 0, 0))
        b'IMD 1.18: 29/03/2021 12:00:00\\r\\nCP/M 2.2'
    """
    now = now or datetime.now()
    comment = (
        f"{IMD_PACKAGE_NAME} {IMD_VERSION}: "
        f"{now.strftime('%d/%m/%Y %H:%M:%S')}\r\n"
    ).encode("ascii")
    if title:
        comment += title.encode("utf-8")
    if extra:
        comment += extra
    return comment


class IMDWriter:
    """
    Streaming IMD writer.

    Example:
        >>> with open("disk.imd", "wb") as f:
        ...     writer = IMDWriter(f)
        ...     writer.write_header(meta)
        ...     writer.write_track(track)
    """

    def __init__(self, stream: BinaryIO, filepath: Optional[str] = None):
        self._stream = stream
        self.filepath = filepath
        self.tracks_written = 0
        self.sectors_written = 0

    def _write(self, data: bytes) -> None:
        try:
            self._stream.write(data)
        except OSError as e:
            raise ImageWriteError(f"Failed to write IMD data: {e}", self.filepath) from e

    def write_header(self, meta: DiskMetadata) -> None:
        """Write the comment block and its terminator."""
        comment = meta.comment
        if bytes([IMD_COMMENT_TERMINATOR]) in comment:
            logger.warning("Removing 0x1A bytes from comment")
            comment = comment.replace(bytes([IMD_COMMENT_TERMINATOR]), b"")
        self._write(comment + bytes([IMD_COMMENT_TERMINATOR]))
        logger.debug("Wrote IMD header (%d comment bytes)", len(comment))

    def write_track(self, track) -> None:
        """
        Write one track record.

        Raises:
            ImageWriteError: If the track is missing sectors or a payload has
                the wrong length
        """
        length = get_sector_length(track.size_code)
        if not track.is_complete:
            raise ImageWriteError(
                f"Track C{track.phys_cyl}:H{track.phys_head} is incomplete",
                self.filepath,
            )

        sectors = track.sectors
        head = track.phys_head
        if any(s.log_cyl != track.phys_cyl for s in sectors):
            head |= IMD_HEAD_CYL_MAP
        if any(s.log_head != track.phys_head for s in sectors):
            head |= IMD_HEAD_HEAD_MAP

        record = bytearray([
            int(track.mode),
            track.phys_cyl,
            head,
            len(sectors),
            track.size_code,
        ])
        record += bytes(s.log_sector for s in sectors)
        if head & IMD_HEAD_CYL_MAP:
            record += bytes(s.log_cyl for s in sectors)
        if head & IMD_HEAD_HEAD_MAP:
            record += bytes(s.log_head for s in sectors)

        for s in sectors:
            # Uniform payloads are stored as a single fill byte
            if s.data.count(s.data[0]) == length:
                record.append(IMD_REC_DELETED_COMPRESSED if s.deleted else IMD_REC_COMPRESSED)
                record += s.data[:1]
            else:
                record.append(IMD_REC_DELETED if s.deleted else IMD_REC_NORMAL)
                record += s.data

        self._write(bytes(record))
        self.tracks_written += 1
        self.sectors_written += len(sectors)

    def flush(self) -> None:
        try:
            self._stream.flush()
        except OSError as e:
            raise ImageWriteError(f"Failed to flush IMD data: {e}", self.filepath) from e
