"""
Declared disk geometry for raw-to-IMD conversion.

A raw sector dump carries no geometry of its own, so the layout is declared
on the command line (or sniffed from a logdisk trailer) and frozen into a
DiskGeometry value. Every other part of the engine receives that value
explicitly; nothing reads configuration from module state.
"""

import logging
from enum import IntEnum
from typing import Any, Dict, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from raw2imd.imaging.image_formats import (
    GeometryError,
    SECTOR_SIZE_CODES,
    get_size_code,
)

logger = logging.getLogger(__name__)


# Media size classes (nominal diameter in inches)
SIZE_5_INCH = 5
SIZE_8_INCH = 8

# Explicit data rates accepted as overrides, in kbps
DATA_RATES = (250, 300, 500, 1000)

# Highest value a logical sector number can take in an IMD sector map
MAX_SECTOR_NUMBER = 255


class TwoSidePolicy(IntEnum):
    """
    How side 1 of a double-sided raw dump is laid out.

    CONTINUATION: all of side 0, then all of side 1
    INTERLACE: C0H0, C0H1, C1H0, ... (natural order)
    KAYPRO: interlaced, logical head always 0, side 1 numbered after side 0
    """
    CONTINUATION = 0
    INTERLACE = 1
    KAYPRO = 2


# =============================================================================
# Disk Geometry Model
# =============================================================================


class DiskGeometry(BaseModel):
    """
    Immutable description of a raw disk dump.

    Attributes:
        cylinders: Number of cylinders per side
        heads: Number of heads (sides), 1 or 2
        sectors_per_track: Sectors on each track
        sector_length: Bytes per sector (128, 256, 512 or 1024)
        size_class: Media size in inches (5 or 8)
        mfm: True for double density (MFM), False for FM
        data_rate: Explicit data rate in kbps, or None to derive it
        two_side_policy: Layout of side 1 in the raw file
        skew0: Interleave factor for side 0
        skew1: Interleave factor for side 1 (defaults to skew0)
        offset0: First logical sector number on side 0
        offset1: First logical sector number on side 1

    Example:
        >>> geometry = DiskGeometry(cylinders=40, heads=2,
        ...                         sectors_per_track=9, sector_length=512)
        >>> geometry.total_bytes
        368640
        >>> geometry.offset0, geometry.offset1
        (1, 1)
    """
    model_config = ConfigDict(frozen=True)

    cylinders: int = Field(ge=0, le=255)
    heads: int = Field(ge=1, le=2)
    sectors_per_track: int = Field(ge=1, le=255)
    sector_length: int
    size_class: int = SIZE_5_INCH
    mfm: bool = False
    data_rate: Optional[int] = None
    two_side_policy: TwoSidePolicy = TwoSidePolicy.INTERLACE
    skew0: int = 1
    skew1: int
    offset0: int = Field(ge=0)
    offset1: int = Field(ge=0)

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        values = {k: v for k, v in data.items() if v is not None}

        try:
            policy = TwoSidePolicy(int(values.get("two_side_policy",
                                                  TwoSidePolicy.INTERLACE)))
        except (TypeError, ValueError):
            # Reported by field validation
            return values

        if policy == TwoSidePolicy.KAYPRO:
            values.setdefault("offset0", 0)
            if "sectors_per_track" in values:
                values.setdefault("offset1", values["sectors_per_track"])
        else:
            values.setdefault("offset0", 1)
            values.setdefault("offset1", values["offset0"])

        values.setdefault("skew1", values.get("skew0", 1))

        # 1000 kbps only exists as double density
        if values.get("data_rate") == 1000:
            values["mfm"] = True

        return values

    @field_validator("sector_length")
    @classmethod
    def _check_sector_length(cls, value: int) -> int:
        if value not in SECTOR_SIZE_CODES:
            raise ValueError(
                f"sector length must be one of {sorted(SECTOR_SIZE_CODES)}, got {value}"
            )
        return value

    @field_validator("data_rate")
    @classmethod
    def _check_data_rate(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in DATA_RATES:
            raise ValueError(f"data rate must be one of {DATA_RATES}, got {value}")
        return value

    @model_validator(mode="after")
    def _check_sector_numbers(self) -> "DiskGeometry":
        for head, offset in ((0, self.offset0), (1, self.offset1)):
            if head >= self.heads:
                break
            last = offset + self.sectors_per_track - 1
            if last > MAX_SECTOR_NUMBER:
                raise ValueError(
                    f"side {head} sector numbers {offset}..{last} "
                    f"exceed {MAX_SECTOR_NUMBER}"
                )
        return self

    @property
    def size_code(self) -> int:
        """IMD size code for sector_length."""
        return get_size_code(self.sector_length)

    @property
    def track_length(self) -> int:
        """Bytes occupied by one track in the raw file."""
        return self.sectors_per_track * self.sector_length

    @property
    def total_tracks(self) -> int:
        """Calculate total number of tracks (cylinders x heads)."""
        return self.cylinders * self.heads

    @property
    def total_sectors(self) -> int:
        """Calculate total number of sectors on disk."""
        return self.total_tracks * self.sectors_per_track

    @property
    def total_bytes(self) -> int:
        """Expected size of the raw file in bytes."""
        return self.total_sectors * self.sector_length

    def sector_offset(self, head: int) -> int:
        """First logical sector number used on the given head."""
        return self.offset1 if head > 0 else self.offset0

    def skew_factor(self, head: int) -> int:
        """Interleave factor used on the given head."""
        return self.skew1 if head > 0 else self.skew0

    def __str__(self) -> str:
        return (
            f"DiskGeometry("
            f"{self.cylinders}C/{self.heads}H/{self.sectors_per_track}S, "
            f"{self.sector_length}B/sec, "
            f"{self.size_class}\" {'MFM' if self.mfm else 'FM'}, "
            f"{self.two_side_policy.name.lower()})"
        )


# =============================================================================
# Construction helpers
# =============================================================================


def build_geometry(values: Mapping[str, Any],
                   filepath: Optional[str] = None) -> DiskGeometry:
    """
    Validate configuration values into a DiskGeometry.

    None values are treated as "not given" so that defaults apply.

    Args:
        values: Field values (e.g. from the command line and/or a trailer)
        filepath: Raw file the configuration refers to, for error messages

    Returns:
        Frozen DiskGeometry

    Raises:
        GeometryError: If a required field is missing or a value is invalid
    """
    try:
        geometry = DiskGeometry.model_validate(dict(values))
    except ValidationError as e:
        first = e.errors()[0]
        field_name = ".".join(str(part) for part in first["loc"]) or None
        if first["type"] == "missing":
            message = f"Missing required geometry value '{field_name}'"
        else:
            message = f"Invalid geometry: {first['msg']}"
        raise GeometryError(message, filepath, field_name=field_name) from e

    logger.debug("Resolved geometry: %s", geometry)
    return geometry


def merge_geometry_values(*sources: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge partial geometry mappings, later sources taking precedence.

    None values never override an earlier value.

    Example:
        >>> merge_geometry_values({"cylinders": 80, "heads": 2},
        ...                       {"cylinders": None, "heads": 1})
        {'cylinders': 80, 'heads': 1}
    """
    merged: Dict[str, Any] = {}
    for source in sources:
        if not source:
            continue
        for key, value in source.items():
            if value is not None:
                merged[key] = value
    return merged


def get_geometry_summary(geometry: DiskGeometry) -> str:
    """
    Get a human-readable summary of disk geometry.

    Example:
        >>> print(get_geometry_summary(geometry))
        Disk Geometry Summary
        =====================
        Cylinders: 40
        ...
    """
    capacity_kb = geometry.total_bytes / 1024
    side1 = (
        f"\nSide 1: skew {geometry.skew1}, first sector {geometry.offset1}"
        if geometry.heads > 1 else ""
    )

    return f"""Disk Geometry Summary
=====================
Cylinders: {geometry.cylinders}
Heads: {geometry.heads}
Sectors/Track: {geometry.sectors_per_track}
Bytes/Sector: {geometry.sector_length} (code {geometry.size_code})
Media: {geometry.size_class}" {'MFM' if geometry.mfm else 'FM'}
Two-side policy: {geometry.two_side_policy.name.lower()}
Side 0: skew {geometry.skew0}, first sector {geometry.offset0}{side1}
Total Sectors: {geometry.total_sectors:,}
Total Capacity: {capacity_kb:.0f} KB ({geometry.total_bytes:,} bytes)"""
