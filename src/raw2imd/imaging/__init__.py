"""
File-level support for raw2imd.

Sector-level input and output:
    - RawSource: raw sector dump reader
    - IMDWriter: streaming ImageDisk writer

The file-to-file conversion lives in raw2imd.imaging.image_manager.

Example Usage:
    from raw2imd.imaging.image_manager import convert_image
    convert_image("disk.raw", "disk.imd",
                  {"cylinders": 40, "heads": 2,
                   "sectors_per_track": 9, "sector_length": 512})
"""

# Import from image_formats
from .image_formats import (
    # Exceptions
    ImageError,
    GeometryError,
    DescriptorError,
    CapacityError,
    ImageReadError,
    ImageWriteError,
    # Functions
    get_size_code,
    get_sector_length,
    # Constants
    SECTOR_SIZE_CODES,
    IMD_VERSION,
)

from .imd_writer import (
    IMDWriter,
    DiskMetadata,
    make_disk_comment,
)

from .raw_source import RawSource


__all__ = [
    # Exceptions
    'ImageError',
    'GeometryError',
    'DescriptorError',
    'CapacityError',
    'ImageReadError',
    'ImageWriteError',

    # Functions
    'get_size_code',
    'get_sector_length',
    'make_disk_comment',

    # Classes
    'IMDWriter',
    'DiskMetadata',
    'RawSource',

    # Constants
    'SECTOR_SIZE_CODES',
    'IMD_VERSION',
]
