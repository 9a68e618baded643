"""
Test fixtures for raw2imd.

Provides in-memory sources, recording sinks and synthetic raw images for
testing without real disk dumps.
"""

from tests.fixtures.mock_sources import (
    FILL_BYTE,
    MemorySource,
    RecordingSink,
    make_geometry,
    make_raw_image,
    read_imd,
    sector_payload,
)

__all__ = [
    "FILL_BYTE",
    "MemorySource",
    "RecordingSink",
    "make_geometry",
    "make_raw_image",
    "read_imd",
    "sector_payload",
]
