"""
Encoding mode (modulation + data rate) selection.

The values of EncodingMode are the IMD track mode bytes, so a resolved
mode can be written to the container as-is.
"""

from enum import IntEnum
from typing import Optional

from raw2imd.core.geometry import SIZE_5_INCH, SIZE_8_INCH
from raw2imd.imaging.image_formats import GeometryError


class EncodingMode(IntEnum):
    """IMD data mode byte."""
    FM_500K = 0
    FM_300K = 1
    FM_250K = 2
    MFM_500K = 3
    MFM_300K = 4
    MFM_250K = 5
    MFM_1000K = 6

    @property
    def label(self) -> str:
        """Short label, e.g. 'MFM-500k'."""
        encoding, rate = self.name.split("_")
        return f"{encoding}-{rate.lower()}"


_RATE_MODES = {
    250: (EncodingMode.FM_250K, EncodingMode.MFM_250K),
    300: (EncodingMode.FM_300K, EncodingMode.MFM_300K),
    500: (EncodingMode.FM_500K, EncodingMode.MFM_500K),
    1000: (EncodingMode.MFM_1000K, EncodingMode.MFM_1000K),
}


def resolve_mode(size_class: int, mfm: bool,
                 data_rate: Optional[int] = None) -> EncodingMode:
    """
    Pick the single encoding mode used for every track of a conversion.

    An explicit data rate wins; otherwise 8" media use the 500k rate and
    5.25" media the 250k rate. Any other size class falls back to MFM-250k.

    Args:
        size_class: Media size in inches
        mfm: True for double density
        data_rate: Explicit rate in kbps (250, 300, 500, 1000) or None

    Returns:
        EncodingMode

    Raises:
        GeometryError: If data_rate is not one of the supported rates

    Example:
        >>> resolve_mode(8, True)
        <EncodingMode.MFM_500K: 3>
        >>> resolve_mode(5, False, 1000)
        <EncodingMode.MFM_1000K: 6>
    """
    if data_rate is not None:
        try:
            fm_mode, mfm_mode = _RATE_MODES[data_rate]
        except KeyError:
            raise GeometryError(
                f"Unsupported data rate {data_rate} kbps",
                field_name="data_rate",
            ) from None
        return mfm_mode if mfm else fm_mode

    if size_class == SIZE_8_INCH:
        return EncodingMode.MFM_500K if mfm else EncodingMode.FM_500K
    if size_class == SIZE_5_INCH:
        return EncodingMode.MFM_250K if mfm else EncodingMode.FM_250K
    return EncodingMode.MFM_250K
