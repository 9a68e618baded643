"""
Track geometry mapping.

Turns the next run of bytes from a raw source into one labelled IMD track:
physical cylinder/head, the logical cylinder/head/sector of every sector, and
the physical slot each sector lands in after interleave.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from raw2imd.core.encoding import EncodingMode
from raw2imd.core.geometry import DiskGeometry, TwoSidePolicy
from raw2imd.core.skew import SkewTable
from raw2imd.imaging.image_formats import ImageReadError, get_sector_length

logger = logging.getLogger(__name__)


class TrackStatus(Enum):
    """State of a track record."""
    UNKNOWN = auto()
    PROBED = auto()


class SectorStatus(Enum):
    """State of a sector record."""
    MISSING = auto()
    GOOD = auto()


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Sector:
    """
    One sector as it will appear in the IMD file.

    Attributes:
        log_cyl: Logical cylinder recorded in the sector ID
        log_head: Logical head recorded in the sector ID
        log_sector: Logical sector number recorded in the sector ID
        data: Sector payload
        deleted: Deleted-data mark (never set for raw dumps)
        status: Read status (always GOOD for raw dumps)
    """
    log_cyl: int
    log_head: int
    log_sector: int
    data: bytes = b""
    deleted: bool = False
    status: SectorStatus = SectorStatus.GOOD


@dataclass
class Track:
    """
    One physical track, sectors indexed by physical slot.

    Attributes:
        phys_cyl: Physical cylinder
        phys_head: Physical head
        mode: Encoding mode shared by the whole disk
        size_code: IMD sector size code
        sectors: Sector records in physical slot order
        status: Track state
    """
    phys_cyl: int
    phys_head: int
    mode: EncodingMode
    size_code: int
    sectors: List[Optional[Sector]] = field(default_factory=list)
    status: TrackStatus = TrackStatus.UNKNOWN

    @property
    def num_sectors(self) -> int:
        return len(self.sectors)

    @property
    def is_complete(self) -> bool:
        """True when every slot holds a sector of the declared size."""
        length = get_sector_length(self.size_code)
        return all(s is not None and len(s.data) == length for s in self.sectors)

    def sector_map(self) -> List[int]:
        """Logical sector numbers in physical slot order."""
        return [s.log_sector for s in self.sectors]


# =============================================================================
# Mapping
# =============================================================================


def track_offset(cyl: int, head: int, geometry: DiskGeometry) -> int:
    """
    Byte offset of a track in a continuation-layout raw file.

    Side 0 occupies cylinders 0..N-1, then side 1 follows.

    Example:
        >>> geometry = DiskGeometry(cylinders=80, heads=2, sectors_per_track=9,
        ...                         sector_length=512, two_side_policy=0)
        >>> track_offset(5, 1, geometry)
        391680
    """
    return (head * geometry.cylinders + cyl) * geometry.track_length


def map_track(cyl: int, head: int, geometry: DiskGeometry, mode: EncodingMode,
              skew_table: Optional[SkewTable], source) -> Track:
    """
    Read one track's sectors from the raw source and label them.

    Sectors are consumed in arrival order. Arrival index s is stored at
    slot skew_table[s] (or s without a table) and numbered s + the side's
    sector offset, so skew moves the bytes but not the numbering.

    Args:
        cyl: Physical cylinder
        head: Physical head
        geometry: Disk geometry
        mode: Encoding mode for the conversion
        skew_table: Interleave table for this head, or None
        source: Byte source with read(n) and, for continuation layout, seek(offset)

    Returns:
        Fully populated Track

    Raises:
        ImageReadError: On a failed seek or a short read
    """
    path = getattr(source, "path", None)
    policy = geometry.two_side_policy

    if policy == TwoSidePolicy.CONTINUATION:
        offset = track_offset(cyl, head, geometry)
        try:
            source.seek(offset)
        except OSError as e:
            raise ImageReadError(
                f"Seek to offset {offset} for C{cyl}:H{head} failed: {e}", path
            ) from e

    n = geometry.sectors_per_track
    length = geometry.sector_length
    first = geometry.sector_offset(head)
    log_head = 0 if policy == TwoSidePolicy.KAYPRO else head

    track = Track(
        phys_cyl=cyl,
        phys_head=head,
        mode=mode,
        size_code=geometry.size_code,
        sectors=[None] * n,
    )

    for s in range(n):
        data = source.read(length)
        if len(data) < length:
            raise ImageReadError(
                f"Short read at C{cyl}:H{head} sector {s}: "
                f"got {len(data)} of {length} bytes", path
            )
        slot = skew_table[s] if skew_table is not None else s
        track.sectors[slot] = Sector(
            log_cyl=cyl,
            log_head=log_head,
            log_sector=s + first,
            data=bytes(data),
        )

    track.status = TrackStatus.PROBED
    logger.debug("Mapped C%d:H%d sectors %s", cyl, head, track.sector_map())
    return track
