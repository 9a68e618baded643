"""
Logging configuration for raw2imd.

Console logging goes through rich on stderr. An optional log file receives
full DEBUG output.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def verbosity_to_level(verbose: int) -> int:
    """Map a -v count to a console logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(level: int = logging.WARNING,
                  log_file: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Console logging level (default: logging.WARNING)
        log_file: Optional path of a DEBUG-level log file

    Example:
        >>> setup_logging(logging.INFO)
        >>> logging.info("Conversion started")
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root.addHandler(file_handler)
        logging.debug(f"Python version: {sys.version}")


def log_performance(operation: str, duration: float, **metrics) -> None:
    """
    Log performance metrics for an operation.

    Example:
        >>> log_performance("convert", 0.42, tracks=160, sectors=1440)
    """
    metrics_str = ", ".join(f"{k}={v}" for k, v in metrics.items())
    logging.info(f"Performance - {operation}: {duration:.2f}s, {metrics_str}")


def log_geometry(raw_path: str, geometry) -> None:
    """
    Log the geometry a raw file is being converted with.

    Args:
        raw_path: Raw file path
        geometry: DiskGeometry object
    """
    logging.info(f"Raw file: {raw_path}")
    logging.info(
        f"Geometry: {geometry.cylinders}C/{geometry.heads}H/"
        f"{geometry.sectors_per_track}S ({geometry.sector_length} bytes/sector)"
    )
    total_kb = geometry.total_bytes // 1024
    logging.info(f"Capacity: {geometry.total_sectors} sectors ({total_kb} KB)")
