"""
Mock sources and sinks for testing raw2imd.

Provides an in-memory raw source, a recording track sink, a builder for
synthetic raw images whose sectors are tagged with their own position, and a
minimal IMD reader used to check written images.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from raw2imd.core import DiskGeometry, TwoSidePolicy, build_geometry
from raw2imd.imaging import ImageWriteError

# Fill byte used after the tag bytes of every synthetic sector
FILL_BYTE = 0xA5


def sector_payload(cyl: int, head: int, index: int, length: int) -> bytes:
    """Sector payload tagged with (cylinder, head, arrival index)."""
    return bytes([cyl, head, index]) + bytes([FILL_BYTE] * (length - 3))


def make_geometry(**overrides) -> DiskGeometry:
    """Small double-sided geometry (4 cylinders, 2 heads, 9 x 128 bytes)."""
    values = dict(cylinders=4, heads=2, sectors_per_track=9, sector_length=128)
    values.update(overrides)
    return build_geometry(values)


def make_raw_image(geometry: DiskGeometry) -> bytes:
    """
    Build raw image bytes laid out according to the geometry's policy.

    Continuation images hold all of side 0 before side 1; interlace and
    Kaypro images alternate sides per cylinder.
    """
    if geometry.two_side_policy == TwoSidePolicy.CONTINUATION:
        order = [(c, h) for h in range(geometry.heads)
                 for c in range(geometry.cylinders)]
    else:
        order = [(c, h) for c in range(geometry.cylinders)
                 for h in range(geometry.heads)]

    data = bytearray()
    for cyl, head in order:
        for s in range(geometry.sectors_per_track):
            data += sector_payload(cyl, head, s, geometry.sector_length)
    return bytes(data)


class MemorySource:
    """
    In-memory raw source with the RawSource interface.

    Attributes:
        data: Raw bytes
        path: Name reported in errors
        fail_seek: Raise OSError on every seek
        seeks: Offsets passed to seek()
        reads: Number of read() calls
    """

    def __init__(self, data: bytes, path: str = "memory.raw",
                 fail_seek: bool = False):
        self.data = bytes(data)
        self.path = path
        self.size = len(self.data)
        self.fail_seek = fail_seek
        self.position = 0
        self.seeks: List[int] = []
        self.reads = 0

    def read(self, n: int) -> bytes:
        self.reads += 1
        chunk = self.data[self.position:self.position + n]
        self.position += len(chunk)
        return chunk

    def seek(self, offset: int) -> int:
        if self.fail_seek:
            raise OSError("simulated seek failure")
        self.seeks.append(offset)
        self.position = offset
        return offset

    def tell(self) -> int:
        return self.position

    def read_trailer_window(self, length: int) -> bytes:
        return self.data[-length:]


@dataclass
class RecordingSink:
    """Track sink that keeps every track it is given."""
    tracks: list = field(default_factory=list)
    flushes: int = 0
    fail_on: Optional[int] = None

    def write_track(self, track) -> None:
        if self.fail_on is not None and len(self.tracks) == self.fail_on:
            raise ImageWriteError("simulated write failure")
        self.tracks.append(track)

    def flush(self) -> None:
        self.flushes += 1

    @property
    def coordinates(self) -> list:
        return [(t.phys_cyl, t.phys_head) for t in self.tracks]


def read_imd(data: bytes) -> Dict:
    """
    Parse an IMD image into its comment and a list of track dicts.

    Each track dict holds mode, cyl, head, flags, size_code, smap, cmap,
    hmap and sectors (list of (record type, payload)).
    """
    assert data[:4] == b"IMD "
    end = data.index(0x1A)
    comment = data[:end]
    i = end + 1
    tracks = []

    while i < len(data):
        mode, cyl, head, nsec, size_code = data[i:i + 5]
        i += 5
        length = 128 << size_code
        smap = list(data[i:i + nsec])
        i += nsec
        cmap = hmap = None
        if head & 0x80:
            cmap = list(data[i:i + nsec])
            i += nsec
        if head & 0x40:
            hmap = list(data[i:i + nsec])
            i += nsec

        sectors = []
        for _ in range(nsec):
            rec = data[i]
            i += 1
            if rec in (0x02, 0x04):
                payload = bytes([data[i]]) * length
                i += 1
            else:
                payload = data[i:i + length]
                i += length
            sectors.append((rec, payload))

        tracks.append(dict(
            mode=mode,
            cyl=cyl,
            head=head & 0x3F,
            flags=head & 0xC0,
            size_code=size_code,
            smap=smap,
            cmap=cmap,
            hmap=hmap,
            sectors=sectors,
        ))

    return dict(comment=comment, tracks=tracks)
