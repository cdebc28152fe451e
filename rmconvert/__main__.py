"""
reMarkable bundle converter CLI

Convert a reMarkable document bundle (zip of the original PDF plus .rm
stroke records) into one annotated PDF.

Usage:
    python -m rmconvert [options] <inputfile>
    python -m rmconvert -c red -s 2 -r notes.zip -o notes-annotated.pdf
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import load_options, merge_options
from .exceptions import ConfigError, Interrupted, NotFound, RmConvertError
from .pipeline import convert

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_CONFIG = 2
EXIT_FAILED = 3


def build_parser() -> argparse.ArgumentParser:
    # -h is the page height, so help is --help only
    parser = argparse.ArgumentParser(
        description="Convert reMarkable documents into annotated PDFs",
        prog="rmconvert",
        add_help=False,
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Input bundle (.zip)"
    )
    parser.add_argument(
        "-c", "--color",
        help="Set ink color (hex color or CSS color name); default is blue"
    )
    parser.add_argument(
        "-w", "--width",
        type=float,
        help="Set document width in points (default: read from the PDF)"
    )
    parser.add_argument(
        "-h", "--height",
        type=float,
        help="Set document height in points (default: read from the PDF)"
    )
    parser.add_argument(
        "-s", "--stroke-width",
        type=float,
        help="Set stroke width in points (default 0.87)"
    )
    parser.add_argument(
        "-r", "--margins",
        action="store_true",
        help="Color the margin of pages containing annotations"
    )
    parser.add_argument(
        "--margin-color",
        help="Color of the margin highlight (default: the ink color)"
    )
    parser.add_argument(
        "-p", "--pale",
        action="store_true",
        help="Make original text paler to highlight annotations"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output PDF file (default: <inputfile>.pdf)"
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        help="Number of worker processes for page conversion (default 1)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Defaults file (default: ./rmconvert.toml if present)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every conversion step"
    )
    parser.add_argument(
        "--help",
        action="help",
        help="Show this message and exit"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def _raise_interrupted(signum, frame):
    raise Interrupted(signum)


def install_signal_handlers() -> dict:
    """Turn SIGINT/SIGTERM into Interrupted so the workspace unwinds."""
    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _raise_interrupted)
    return previous


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    say = (lambda *a: None) if args.quiet else print

    say(f"reMarkable output converter v{__version__}")

    try:
        options = merge_options(
            load_options(args.config),
            width=args.width,
            height=args.height,
            output=args.output,
            jobs=args.jobs,
            ink_color=args.color,
            stroke_width=args.stroke_width,
            margins=args.margins,
            margin_color=args.margin_color,
            pale=args.pale,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    if not args.input.is_file():
        print(f"File not found: {args.input}", file=sys.stderr)
        return EXIT_NOT_FOUND

    say(f"Input archive: {args.input.stem}.zip")

    previous_handlers = install_signal_handlers()
    try:
        output = convert(args.input, options)
    except Interrupted as e:
        say(f"Caught {signal.Signals(e.signum).name}, aborting.")
        return 128 + e.signum
    except NotFound as e:
        print(e, file=sys.stderr)
        return EXIT_NOT_FOUND
    except RmConvertError as e:
        print(f"FAILED: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    say(f"Output file:   {output}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
