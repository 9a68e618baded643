"""
Main entry point for raw2imd.

This module provides the main() function that parses the command line,
runs one raw-to-IMD conversion and reports the outcome.
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from raw2imd import __version__
from raw2imd.core.converter import ConversionOptions
from raw2imd.core.geometry import get_geometry_summary
from raw2imd.imaging.image_formats import ImageError
from raw2imd.imaging.image_manager import ConversionPlan, convert_image
from raw2imd.utils import (
    EXIT_SUCCESS,
    EXIT_USAGE,
    get_exit_code,
    handle_conversion_error,
    log_geometry,
    log_performance,
    setup_logging,
    verbosity_to_level,
)

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="raw2imd",
        usage="%(prog)s [OPTION]... RAW-FILE [IMAGE-FILE]",
        description="Convert a raw disk sector dump into an ImageDisk (IMD) file.",
        epilog="Negative skew values must be attached to the option, e.g. -k-3.",
        add_help=False,
    )
    parser.add_argument("--help", action="help", help="show this help and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    size = parser.add_mutually_exclusive_group()
    size.add_argument("-5", dest="size_class", action="store_const", const=5,
                      help='raw represents 5.25" diskette (default)')
    size.add_argument("-8", dest="size_class", action="store_const", const=8,
                      help='raw represents 8" diskette')

    parser.add_argument("-c", "--cylinders", type=int, metavar="NUM",
                        help="number of cylinders")
    parser.add_argument("-h", "--heads", type=int, metavar="NUM",
                        help="number of heads (sides)")
    parser.add_argument("-s", "--sectors", dest="sectors_per_track", type=int,
                        metavar="NUM", help="number of sectors/track")
    parser.add_argument("-l", "--length", dest="sector_length", type=int,
                        metavar="NUM", help="sector length (128, 256, 512, 1024)")
    parser.add_argument("-o", "--offset", dest="offset0", type=int, metavar="NUM",
                        help="first sector number (1, or 0 with -p 2)")
    parser.add_argument("-O", "--offset1", dest="offset1", type=int, metavar="NUM",
                        help="side 1 first sector number (-o, or sectors/track with -p 2)")
    parser.add_argument("-k", "--skew", dest="skew0", type=int, metavar="NUM",
                        help="sector skew (interleave) factor")
    parser.add_argument("-K", "--skew1", dest="skew1", type=int, metavar="NUM",
                        help="side 1 skew factor (-k)")
    parser.add_argument("-p", "--policy", dest="two_side_policy", type=int,
                        metavar="NUM",
                        help="two-side layout: 0 continuation, 1 interlace (default), 2 kaypro")
    parser.add_argument("-r", "--rate", dest="data_rate", type=int, metavar="KBPS",
                        help="data rate override (250, 300, 500, 1000)")
    parser.add_argument("-m", "--mfm", action="store_const", const=True, default=None,
                        help="raw represents MFM (double density)")
    parser.add_argument("-i", "--ignore", dest="ignore_excess", action="store_true",
                        help="ignore extra data in raw file")
    parser.add_argument("-f", "--force", dest="force_short", action="store_true",
                        help="force using smaller raw file")
    parser.add_argument("-L", "--logdisk", dest="trailer_present", action="store_true",
                        help="raw file ends with a logdisk geometry trailer")
    parser.add_argument("-C", "--read-comment", action="store_true",
                        help="read comment from stdin")
    parser.add_argument("-T", "--title", metavar="STR", help="use STR as comment")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="increase verbosity (repeatable)")
    parser.add_argument("--log-file", metavar="PATH", help="write a debug log to PATH")

    parser.add_argument("raw_file", metavar="RAW-FILE")
    parser.add_argument("imd_file", metavar="IMAGE-FILE", nargs="?")
    return parser


def read_comment() -> bytes:
    """Read a free-form comment from stdin until EOF."""
    if sys.stdin.isatty():
        err_console.print("Enter comment, terminated by EOF")
    return sys.stdin.buffer.read()


def show_plan(plan: ConversionPlan) -> None:
    """Print the resolved geometry."""
    table = Table(title="Disk Geometry", show_header=False)
    for line in get_geometry_summary(plan.geometry).splitlines()[2:]:
        key, _, value = line.partition(": ")
        table.add_row(key, value)
    table.add_row("Mode", plan.mode.label)
    console.print(table)


def show_track(track) -> None:
    """Print one line per track, like 'C 0 H 0 MFM-250k 9x512: 1 2 3 ...'."""
    numbers = " ".join(str(n) for n in track.sector_map())
    console.print(
        f"C{track.phys_cyl:3d} H{track.phys_head} {track.mode.label:>9} "
        f"{track.num_sectors}x{128 << track.size_code}: {numbers}",
        highlight=False,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for raw2imd.

    Returns:
        Process exit code (0 success, 1 usage/configuration error,
        2 conversion failure)
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 after --help/--version and 2 on bad usage
        return EXIT_SUCCESS if not e.code else EXIT_USAGE

    setup_logging(verbosity_to_level(args.verbose), args.log_file)

    options = ConversionOptions(
        ignore_excess=args.ignore_excess,
        force_short=args.force_short,
        trailer_present=args.trailer_present,
    )
    values = {
        "cylinders": args.cylinders,
        "heads": args.heads,
        "sectors_per_track": args.sectors_per_track,
        "sector_length": args.sector_length,
        "size_class": args.size_class,
        "mfm": args.mfm,
        "data_rate": args.data_rate,
        "two_side_policy": args.two_side_policy,
        "skew0": args.skew0,
        "skew1": args.skew1,
        "offset0": args.offset0,
        "offset1": args.offset1,
    }

    logger.debug("Options: %s", options)

    comment = read_comment() if args.read_comment else None

    def on_plan(plan: ConversionPlan) -> None:
        log_geometry(args.raw_file, plan.geometry)
        if args.verbose >= 1:
            show_plan(plan)

    try:
        plan, result = convert_image(
            args.raw_file,
            args.imd_file,
            values,
            options,
            title=args.title,
            comment=comment,
            on_plan=on_plan,
            on_track=show_track if args.verbose >= 2 else None,
        )
    except ImageError as e:
        err_console.print(f"[bold red]raw2imd:[/] {escape(handle_conversion_error(e))}",
                          highlight=False, soft_wrap=True)
        exit_code = get_exit_code(e)
        if exit_code == EXIT_USAGE:
            err_console.print(parser.format_usage().rstrip(), markup=False, highlight=False,
                              soft_wrap=True)
        return exit_code

    log_performance("convert", result.duration,
                    tracks=result.tracks, sectors=result.sectors,
                    bytes=result.bytes_read)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
