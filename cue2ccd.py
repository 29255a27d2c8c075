#!/usr/bin/env python3

""" cue2ccd.py: Generate CloneCD CCD and SUB files from a raw BIN/CUE image.

Subchannel data is synthesised from the cuesheet; known-bad subchannel data
from an .sbi or .lsd file next to the cuesheet is overlaid when present.
"""
import os
import sys
import logging
import argparse
from typing import Optional, Sequence

import inquirer

from cdimage.conversion import ConversionOptions, convert, output_stem
from cdimage.errors import Cue2CCDError
from cdimage.subchannel.protection import ProtectionType

__version__ = '0.1.0'

logger = logging.getLogger("cue2ccd")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cue2ccd", description="Generate CCD and SUB files from BIN/CUE")
    parser.add_argument("filename", help="Cuesheet of a raw (2352 bytes per sector) disc image")
    parser.add_argument("--skip-img-copy", action="store_true",
                        help="Don't merge the track files into a .img")
    parser.add_argument("--output-path", default=None,
                        help="Directory to write to (default: the cuesheet's directory)")
    parser.add_argument("--protection-type", default=None, type=str.lower,
                        choices=[p.value for p in ProtectionType],
                        help="Protection the .sbi/.lsd sidecar is expected to describe")
    parser.add_argument("--overwrite", action="store_true",
                        help="Replace an existing .img without asking")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def confirm_overwrite(img_path: str) -> bool:
    if not sys.stdin.isatty():
        return False
    return inquirer.confirm(f'{img_path} already exists, overwrite it?', default=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s: %(message)s")

    try:
        options = ConversionOptions(
            output_path=args.output_path,
            skip_img_copy=args.skip_img_copy,
            protection_type=ProtectionType.from_name(args.protection_type) if args.protection_type else None,
            overwrite_img=args.overwrite,
        )
        if not options.skip_img_copy and not options.overwrite_img:
            img_path = output_stem(args.filename, options.output_path) + ".img"
            if os.path.exists(img_path):
                options.overwrite_img = confirm_overwrite(img_path)

        convert(args.filename, options)
    except Cue2CCDError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
