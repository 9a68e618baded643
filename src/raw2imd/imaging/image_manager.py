"""
Raw-to-IMD conversion of files.

Ties the pieces together: opens the raw file, reads the optional logdisk
trailer, validates the geometry, checks the file size and only then creates
the IMD file and streams the tracks into it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from raw2imd.core.converter import (
    ConversionOptions,
    ConversionResult,
    check_capacity,
    convert,
)
from raw2imd.core.descriptor import TRAILER_LENGTH, read_trailer
from raw2imd.core.encoding import EncodingMode, resolve_mode
from raw2imd.core.geometry import DiskGeometry, build_geometry, merge_geometry_values
from raw2imd.core.skew import SkewTable, build_skew_tables
from raw2imd.utils.context_managers import ImageOutputContext

from .imd_writer import DiskMetadata
from .raw_source import RawSource

logger = logging.getLogger(__name__)


@dataclass
class ConversionPlan:
    """
    Everything decided before the first track is read.

    Attributes:
        geometry: Validated geometry
        mode: Encoding mode for every track
        skew_tables: Side 0 / side 1 interleave tables (None = no interleave)
        expected_size: Raw bytes the geometry accounts for
        actual_size: Usable raw bytes (trailer excluded)
    """
    geometry: DiskGeometry
    mode: EncodingMode
    skew_tables: Tuple[Optional[SkewTable], Optional[SkewTable]]
    expected_size: int
    actual_size: int


def prepare_conversion(source: RawSource, values: Mapping[str, Any],
                       options: ConversionOptions) -> ConversionPlan:
    """
    Resolve geometry, mode and skew tables and check the raw size.

    Values given explicitly in `values` override those found in the trailer.

    Raises:
        DescriptorError: If the trailer is invalid
        GeometryError: If the geometry is invalid or incomplete
        CapacityError: If the raw size does not fit the geometry
    """
    trailer = read_trailer(source) if options.trailer_present else None
    geometry = build_geometry(merge_geometry_values(trailer, values), source.path)
    mode = resolve_mode(geometry.size_class, geometry.mfm, geometry.data_rate)
    skew_tables = build_skew_tables(geometry)

    actual_size = source.size - (TRAILER_LENGTH if options.trailer_present else 0)
    expected_size = check_capacity(geometry, actual_size, options, source.path)
    if options.trailer_present:
        source.set_payload_limit(actual_size)

    logger.info("Geometry %s, mode %s", geometry, mode.label)
    return ConversionPlan(
        geometry=geometry,
        mode=mode,
        skew_tables=skew_tables,
        expected_size=expected_size,
        actual_size=actual_size,
    )


def convert_image(raw_path: str, imd_path: Optional[str],
                  values: Mapping[str, Any],
                  options: Optional[ConversionOptions] = None,
                  title: Optional[str] = None,
                  comment: Optional[bytes] = None,
                  on_plan: Optional[Callable[[ConversionPlan], None]] = None,
                  on_track: Optional[Callable] = None) -> Tuple[ConversionPlan, ConversionResult]:
    """
    Convert a raw sector dump into an IMD file.

    With imd_path None the tracks are still mapped and encoded but the output
    is discarded, which validates a raw file without producing an image.

    Args:
        raw_path: Raw dump to read
        imd_path: IMD file to create, or None for a dry run
        values: Geometry field values (None entries mean "not given")
        options: Behaviour flags
        title: Title appended to the comment
        comment: Extra comment bytes (e.g. read from stdin)
        on_plan: Called once the plan is known, before any output is created
        on_track: Called with every track written

    Returns:
        (ConversionPlan, ConversionResult)
    """
    options = options or ConversionOptions()

    with RawSource(raw_path) as source:
        plan = prepare_conversion(source, values, options)
        if on_plan is not None:
            on_plan(plan)

        meta = DiskMetadata(title=title, extra=comment)

        with ImageOutputContext(imd_path) as writer:
            writer.write_header(meta)
            result = convert(plan.geometry, plan.mode, plan.skew_tables,
                             source, writer, on_track=on_track)

    logger.info("Wrote %s: %d tracks", imd_path or "(dry run)", result.tracks)
    return plan, result
