"""
Conversion driver.

Checks the raw file size against the declared geometry, then walks every
(cylinder, head) pair in cylinder-major order, mapping one track at a time
and handing it straight to the sink. Only the current track is ever held in
memory.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from raw2imd.core.encoding import EncodingMode
from raw2imd.core.geometry import DiskGeometry
from raw2imd.core.skew import SkewTable
from raw2imd.core.track_mapper import map_track
from raw2imd.imaging.image_formats import CapacityError

logger = logging.getLogger(__name__)


@dataclass
class ConversionOptions:
    """
    Behaviour flags for one conversion.

    Attributes:
        ignore_excess: Accept a raw file larger than the geometry
        force_short: Accept a raw file smaller than the geometry
        trailer_present: Raw file ends with a logdisk trailer
    """
    ignore_excess: bool = False
    force_short: bool = False
    trailer_present: bool = False


@dataclass
class ConversionResult:
    """Summary of a completed conversion."""
    tracks: int = 0
    sectors: int = 0
    bytes_read: int = 0
    duration: float = 0.0


def check_capacity(geometry: DiskGeometry, actual_size: int,
                   options: ConversionOptions,
                   filepath: Optional[str] = None) -> int:
    """
    Compare the usable raw size with the size implied by the geometry.

    Args:
        geometry: Declared geometry
        actual_size: Usable bytes in the raw file (trailer already removed)
        options: ignore_excess / force_short overrides
        filepath: Raw file name for messages

    Returns:
        Expected size in bytes

    Raises:
        CapacityError: If the sizes differ and no override applies
    """
    expected = geometry.total_bytes

    if actual_size > expected:
        if not options.ignore_excess:
            raise CapacityError("image file too large", filepath,
                                expected_size=expected, actual_size=actual_size)
        logger.warning("Ignoring %d excess bytes in %s",
                       actual_size - expected, filepath)
    elif actual_size < expected:
        if not options.force_short:
            raise CapacityError("image file too small", filepath,
                                expected_size=expected, actual_size=actual_size)
        logger.warning("Raw file %s is %d bytes short, conversion may stop early",
                       filepath, expected - actual_size)

    return expected


def convert(geometry: DiskGeometry, mode: EncodingMode,
            skew_tables: Sequence[Optional[SkewTable]], source, sink,
            on_track=None) -> ConversionResult:
    """
    Convert every track of the raw source into the sink.

    The header must already have been written. Any failure aborts the
    conversion; tracks already written stay in the sink.

    Args:
        geometry: Declared geometry
        mode: Encoding mode applied to every track
        skew_tables: (side 0 table, side 1 table), entries may be None
        source: Raw byte source
        sink: Object with write_track(track) and flush()
        on_track: Optional callback invoked with each written track

    Returns:
        ConversionResult

    Raises:
        ImageReadError: On a short read or failed seek
        ImageWriteError: If the sink fails
    """
    result = ConversionResult()
    start = time.monotonic()

    for cyl in range(geometry.cylinders):
        for head in range(geometry.heads):
            table = skew_tables[head] if head < len(skew_tables) else None
            track = map_track(cyl, head, geometry, mode, table, source)

            sink.write_track(track)
            sink.flush()

            result.tracks += 1
            result.sectors += track.num_sectors
            result.bytes_read += track.num_sectors * geometry.sector_length
            if on_track is not None:
                on_track(track)

    result.duration = time.monotonic() - start
    logger.info("Converted %d tracks (%d sectors) in %.2fs",
                result.tracks, result.sectors, result.duration)
    return result
