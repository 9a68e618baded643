"""
Logdisk trailer parsing.

Some simulator-produced raw dumps end with a 128-byte ASCII trailer that
describes the media, for example::

    5m512z9p2s80t1d0i1l0h

Each token is a decimal number followed by a one-letter tag. Parsing stops
at the first newline, carriage return or NUL.
"""

import logging
import re
from typing import Any, Callable, Dict, Optional, Tuple

from raw2imd.core.geometry import TwoSidePolicy
from raw2imd.imaging.image_formats import DescriptorError

logger = logging.getLogger(__name__)


# Size of the trailer window at the end of the raw file
TRAILER_LENGTH = 128

_TERMINATOR = re.compile(rb"[\n\r\x00]")


def _policy(value: int) -> TwoSidePolicy:
    return TwoSidePolicy(value)


def _flag(value: int) -> bool:
    if value not in (0, 1):
        raise ValueError(value)
    return bool(value)


# tag -> (geometry field, converter)
_TAGS: Dict[str, Tuple[str, Callable[[int], Any]]] = {
    "m": ("size_class", int),
    "z": ("sector_length", int),
    "p": ("sectors_per_track", int),
    "s": ("heads", int),
    "t": ("cylinders", int),
    "d": ("mfm", _flag),
    "i": ("two_side_policy", _policy),
}

# Logical skew and hard-sector flag carry no geometry
_IGNORED_TAGS = frozenset("lh")


def parse_trailer(window: bytes, filepath: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse a logdisk trailer into partial geometry values.

    Args:
        window: Trailing bytes of the raw file (normally TRAILER_LENGTH)
        filepath: Raw file name for error messages

    Returns:
        Dict of DiskGeometry field values found in the trailer

    Raises:
        DescriptorError: On an unknown tag or malformed token

    Example:
        >>> values = parse_trailer(b"5m512z9p2s80t1d0i1l0h\\n")
        >>> values["cylinders"], values["heads"], values["mfm"]
        (80, 2, True)
    """
    # Bytes after the terminator are padding and never parsed
    tokens = _TERMINATOR.split(window, 1)[0]
    try:
        text = tokens.decode("ascii")
    except UnicodeDecodeError as e:
        raise DescriptorError("invalid trailer: not ASCII", filepath) from e

    values: Dict[str, Any] = {}
    digits = ""

    for char in text:
        if char.isdigit():
            digits += char
            continue
        if not digits:
            raise DescriptorError("invalid trailer: tag without value", filepath,
                                  token=char)

        number = int(digits)
        token = digits + char
        digits = ""

        if char in _IGNORED_TAGS:
            logger.debug("Ignoring trailer token %s", token)
            continue
        if char not in _TAGS:
            raise DescriptorError("invalid trailer", filepath, token=token)

        field_name, convert = _TAGS[char]
        try:
            values[field_name] = convert(number)
        except ValueError:
            raise DescriptorError("invalid trailer: bad value", filepath,
                                  token=token) from None

    if digits:
        raise DescriptorError("invalid trailer: value without tag", filepath,
                              token=digits)
    if not values:
        raise DescriptorError("invalid trailer: no geometry found", filepath)

    logger.info("Trailer geometry: %s", values)
    return values


def read_trailer(source) -> Dict[str, Any]:
    """
    Read and parse the trailer window at the end of a raw source.

    Args:
        source: RawSource (anything with size, path and read_trailer_window())

    Returns:
        Partial geometry values, see parse_trailer()

    Raises:
        DescriptorError: If the source is too small or the trailer is invalid
    """
    if source.size < TRAILER_LENGTH:
        raise DescriptorError(
            f"raw file is smaller than the {TRAILER_LENGTH}-byte trailer",
            source.path,
        )
    window = source.read_trailer_window(TRAILER_LENGTH)
    return parse_trailer(window, source.path)
