"""
Error handling utilities for raw2imd.

Maps conversion exceptions to user-facing messages and process exit codes.
"""

from raw2imd.imaging.image_formats import (
    CapacityError,
    DescriptorError,
    GeometryError,
    ImageError,
    ImageReadError,
    ImageWriteError,
)

# Process exit codes
EXIT_SUCCESS = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


def handle_conversion_error(error: ImageError) -> str:
    """
    Centralized error handling with context-aware messages.

    Args:
        error: Exception raised by the conversion

    Returns:
        Formatted error message with a hint where one helps

    Example:
        >>> handle_conversion_error(CapacityError("image file too large",
        ...     "disk.raw", expected_size=368640, actual_size=800000))
        'disk.raw: image file too large (expected 368640 bytes, found 800000); use -i to ignore the excess'
    """
    where = f"{error.filepath}: " if error.filepath else ""

    if isinstance(error, CapacityError):
        hint = "use -i to ignore the excess" if (
            error.actual_size is not None and error.expected_size is not None
            and error.actual_size > error.expected_size
        ) else "use -f to convert a short file"
        return (
            f"{where}{error.message} (expected {error.expected_size} bytes, "
            f"found {error.actual_size}); {hint}"
        )

    if isinstance(error, GeometryError):
        return f"{where}{error.message}"

    if isinstance(error, DescriptorError):
        token = f" near {error.token!r}" if error.token is not None else ""
        return f"{where}{error.message}{token}"

    if isinstance(error, ImageReadError):
        return f"{where}read failed: {error.message}"

    if isinstance(error, ImageWriteError):
        return f"{where}write failed: {error.message}"

    return f"{where}{error.message}"


def get_exit_code(error: ImageError) -> int:
    """
    Exit code for a conversion error.

    Configuration problems detected before any I/O are usage errors;
    everything else is a conversion failure.
    """
    if isinstance(error, GeometryError):
        return EXIT_USAGE
    return EXIT_FAILURE

