"""
Geometry translation engine for raw2imd.

This package turns a declared disk geometry and a raw byte stream into
labelled IMD tracks: skew tables, logdisk trailer parsing, encoding mode
selection, per-track mapping and the conversion driver.
"""

from raw2imd.core.geometry import (
    DiskGeometry,
    TwoSidePolicy,
    SIZE_5_INCH,
    SIZE_8_INCH,
    DATA_RATES,
    build_geometry,
    merge_geometry_values,
    get_geometry_summary,
)

from raw2imd.core.skew import (
    SkewTable,
    build_skew_table,
    build_skew_tables,
    skew_table_for,
)

from raw2imd.core.encoding import (
    EncodingMode,
    resolve_mode,
)

from raw2imd.core.descriptor import (
    TRAILER_LENGTH,
    parse_trailer,
    read_trailer,
)

from raw2imd.core.track_mapper import (
    Sector,
    SectorStatus,
    Track,
    TrackStatus,
    map_track,
    track_offset,
)

from raw2imd.core.converter import (
    ConversionOptions,
    ConversionResult,
    check_capacity,
    convert,
)

__all__ = [
    # Geometry
    "DiskGeometry",
    "TwoSidePolicy",
    "SIZE_5_INCH",
    "SIZE_8_INCH",
    "DATA_RATES",
    "build_geometry",
    "merge_geometry_values",
    "get_geometry_summary",

    # Skew
    "SkewTable",
    "build_skew_table",
    "build_skew_tables",
    "skew_table_for",

    # Encoding
    "EncodingMode",
    "resolve_mode",

    # Trailer
    "TRAILER_LENGTH",
    "parse_trailer",
    "read_trailer",

    # Tracks
    "Sector",
    "SectorStatus",
    "Track",
    "TrackStatus",
    "map_track",
    "track_offset",

    # Driver
    "ConversionOptions",
    "ConversionResult",
    "check_capacity",
    "convert",
]
