"""
Sector interleave (skew) tables.

A skew table maps the order in which sectors arrive from the raw file to
the physical slot they occupy on the destination track. The table is built
once per side and reused for every track on that side.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from raw2imd.core.geometry import DiskGeometry
from raw2imd.imaging.image_formats import GeometryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkewTable:
    """
    Permutation of 0..n-1 from arrival index to physical slot.

    Attributes:
        skew: Skew factor the table was built from
        slots: slots[arrival] -> physical slot
        arrivals: arrivals[slot] -> arrival index (inverse of slots)
    """
    skew: int
    slots: Tuple[int, ...]
    arrivals: Tuple[int, ...]

    def __getitem__(self, arrival: int) -> int:
        return self.slots[arrival]

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def is_identity(self) -> bool:
        return all(slot == index for index, slot in enumerate(self.slots))


def build_skew_table(skew: int, sector_count: int) -> SkewTable:
    """
    Build the physical slot permutation for a skew factor.

    Arrival index s is first placed at (s * |skew|) % sector_count. When that
    slot is taken (skew and sector_count share a factor) the slot is probed
    forward, or backward for a negative skew, with wraparound until a free
    one is found.

    Args:
        skew: Interleave factor; |skew| <= 1 yields the identity
        sector_count: Sectors per track (>= 1)

    Returns:
        SkewTable holding both directions of the mapping

    Raises:
        GeometryError: If sector_count < 1

    Example:
        >>> build_skew_table(2, 8).slots
        (0, 2, 4, 6, 1, 3, 5, 7)
    """
    if sector_count < 1:
        raise GeometryError(
            f"Cannot build skew table for {sector_count} sectors",
            field_name="sectors_per_track",
        )

    if abs(skew) <= 1:
        identity = tuple(range(sector_count))
        return SkewTable(skew=skew, slots=identity, arrivals=identity)

    step = -1 if skew < 0 else 1
    factor = abs(skew)
    slots = [0] * sector_count
    arrivals = [-1] * sector_count

    for s in range(sector_count):
        slot = (s * factor) % sector_count
        while arrivals[slot] != -1:
            slot = (slot + step) % sector_count
        arrivals[slot] = s
        slots[s] = slot

    logger.debug("Skew %d over %d sectors: %s", skew, sector_count, slots)
    return SkewTable(skew=skew, slots=tuple(slots), arrivals=tuple(arrivals))


def skew_table_for(geometry: DiskGeometry, head: int) -> Optional[SkewTable]:
    """
    Skew table for one side of the geometry, or None when there is no interleave.
    """
    skew = geometry.skew_factor(head)
    if abs(skew) <= 1:
        return None
    return build_skew_table(skew, geometry.sectors_per_track)


def build_skew_tables(geometry: DiskGeometry) -> Tuple[Optional[SkewTable], Optional[SkewTable]]:
    """Skew tables for side 0 and side 1."""
    return skew_table_for(geometry, 0), skew_table_for(geometry, 1)
