"""
Error taxonomy and ImageDisk (IMD) format constants.

This module defines the exceptions raised while turning a raw sector dump
into an IMD container, together with the byte-level constants of the IMD
format used by the writer.

Error classes:
    - GeometryError: invalid or incomplete disk configuration
    - DescriptorError: unrecognised logdisk trailer
    - CapacityError: raw file size does not match the declared geometry
    - ImageReadError: read/seek failure or short read on the raw source
    - ImageWriteError: failure writing the IMD container
"""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class ImageError(Exception):
    """Base exception for conversion errors."""

    def __init__(self, message: str, filepath: Optional[str] = None):
        self.message = message
        self.filepath = filepath
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.filepath:
            return f"{self.message} [File: {self.filepath}]"
        return self.message


class GeometryError(ImageError):
    """Raised when the disk configuration is invalid or incomplete."""

    def __init__(self, message: str, filepath: Optional[str] = None,
                 field_name: Optional[str] = None):
        self.field_name = field_name
        super().__init__(message, filepath)

    def _format_message(self) -> str:
        base = super()._format_message()
        if self.field_name:
            return f"{base} [Field: {self.field_name}]"
        return base


class DescriptorError(ImageError):
    """Raised when an embedded logdisk trailer cannot be parsed."""

    def __init__(self, message: str, filepath: Optional[str] = None,
                 token: Optional[str] = None):
        self.token = token
        super().__init__(message, filepath)

    def _format_message(self) -> str:
        base = super()._format_message()
        if self.token is not None:
            return f"{base} [Token: {self.token!r}]"
        return base


class CapacityError(ImageError):
    """Raised when the raw file is larger or smaller than the geometry."""

    def __init__(self, message: str, filepath: Optional[str] = None,
                 expected_size: Optional[int] = None,
                 actual_size: Optional[int] = None):
        self.expected_size = expected_size
        self.actual_size = actual_size
        super().__init__(message, filepath)

    def _format_message(self) -> str:
        base = super()._format_message()
        if self.expected_size is not None and self.actual_size is not None:
            return f"{base} [Expected: {self.expected_size}, Actual: {self.actual_size}]"
        return base


class ImageReadError(ImageError):
    """Raised when reading the raw source fails."""
    pass


class ImageWriteError(ImageError):
    """Raised when writing the IMD container fails."""
    pass


# =============================================================================
# IMD Format Constants
# =============================================================================

IMD_PACKAGE_NAME = "IMD"
IMD_VERSION = "1.18"

# Terminates the free-form comment block after the banner line
IMD_COMMENT_TERMINATOR = 0x1A

# Flags OR'ed into the head byte of a track header
IMD_HEAD_CYL_MAP = 0x80
IMD_HEAD_HEAD_MAP = 0x40

# Sector data record types
IMD_REC_NORMAL = 0x01
IMD_REC_COMPRESSED = 0x02
IMD_REC_DELETED = 0x03
IMD_REC_DELETED_COMPRESSED = 0x04

# Sector length -> IMD size code
SECTOR_SIZE_CODES: Dict[int, int] = {
    128: 0,
    256: 1,
    512: 2,
    1024: 3,
}


def get_size_code(sector_length: int) -> int:
    """
    Map a sector length in bytes to its IMD size code.

    Args:
        sector_length: Sector length (128, 256, 512 or 1024)

    Returns:
        Size code 0-3

    Raises:
        GeometryError: If the length has no size code
    """
    try:
        return SECTOR_SIZE_CODES[sector_length]
    except KeyError:
        raise GeometryError(
            f"Unsupported sector length {sector_length} "
            f"(expected one of {sorted(SECTOR_SIZE_CODES)})",
            field_name="sector_length",
        ) from None


def get_sector_length(size_code: int) -> int:
    """Inverse of get_size_code()."""
    return 128 << size_code
