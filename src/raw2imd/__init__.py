"""
raw2imd - raw disk sector dump to ImageDisk (IMD) converter.

Converts a flat, geometry-less raw dump of a floppy disk into a
self-describing IMD image, applying the declared geometry, sector
interleave and two-sided layout policy.
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Re-export main entry point
from raw2imd.main import main

# Re-export the conversion engine
from raw2imd.core import (
    DiskGeometry,
    TwoSidePolicy,
    EncodingMode,
    SkewTable,
    Track,
    Sector,
    build_geometry,
    build_skew_table,
    resolve_mode,
    parse_trailer,
    map_track,
    convert,
)

from raw2imd.imaging import (
    IMDWriter,
    RawSource,
    ImageError,
)
from raw2imd.imaging.image_manager import convert_image

__all__ = [
    # Main entry point
    "main",
    "__version__",

    # Engine
    "DiskGeometry",
    "TwoSidePolicy",
    "EncodingMode",
    "SkewTable",
    "Track",
    "Sector",
    "build_geometry",
    "build_skew_table",
    "resolve_mode",
    "parse_trailer",
    "map_track",
    "convert",

    # Files
    "IMDWriter",
    "RawSource",
    "ImageError",
    "convert_image",
]
