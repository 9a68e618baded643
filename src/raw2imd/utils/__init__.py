"""
Utility functions for raw2imd.

This module provides logging setup, error reporting and context managers
for the converter.
"""

from raw2imd.utils.error_handler import (
    EXIT_SUCCESS,
    EXIT_USAGE,
    EXIT_FAILURE,
    handle_conversion_error,
    get_exit_code,
)

from raw2imd.utils.logging import (
    setup_logging,
    verbosity_to_level,
    log_performance,
    log_geometry,
)

from raw2imd.utils.context_managers import (
    ImageOutputContext,
)

__all__ = [
    # Error handling
    "EXIT_SUCCESS",
    "EXIT_USAGE",
    "EXIT_FAILURE",
    "handle_conversion_error",
    "get_exit_code",

    # Logging
    "setup_logging",
    "verbosity_to_level",
    "log_performance",
    "log_geometry",

    # Context managers
    "ImageOutputContext",
]
