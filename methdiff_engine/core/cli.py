#!/usr/bin/env python
# coding: utf-8

"""
Command-line entry point: probability that individual CpGs have higher
methylation in file A than in file B.
"""

import argparse
import sys
from typing import List, Optional

from methdiff_engine.core.config import INPUT_FORMATS, OUTPUT_FORMATS, get_config
from methdiff_engine.core.engine import compare_files


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="methdiff",
        description="Computes probability that individual CpGs have higher "
        "methylation in file A than in file B.",
    )
    parser.add_argument("cpgs_a", help="Sorted CpG file for dataset A (BED or methcounts)")
    parser.add_argument("cpgs_b", help="Sorted CpG file for dataset B (BED or methcounts)")
    parser.add_argument(
        "-p", "--pseudo", dest="pseudocount", type=float, default=None,
        help="pseudocount added to all counts (default: 1)",
    )
    parser.add_argument(
        "-o", "--out", dest="output", default=None,
        help="output file (default: standard output)",
    )
    parser.add_argument(
        "-A", "--all", dest="all_loci", action="store_true", default=None,
        help="also score sites with no reads in either dataset",
    )
    parser.add_argument(
        "-i", "--input-format", dest="input_format", choices=INPUT_FORMATS, default=None,
        help="input format of both files (default: auto)",
    )
    parser.add_argument(
        "-f", "--format", dest="output_format", choices=OUTPUT_FORMATS, default=None,
        help="output format (default: bed)",
    )
    parser.add_argument(
        "-c", "--config", default=None,
        help="JSON configuration file; command-line options take precedence",
    )
    parser.add_argument("--report", default=None, help="write a PDF run report")
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=None,
        help="print more run info",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = get_config().copy()
        if args.config:
            config.load_from_file(args.config)
        config.update(
            pseudocount=args.pseudocount,
            all_loci=args.all_loci,
            input_format=args.input_format,
            output_format=args.output_format,
            verbose=args.verbose,
        )

        compare_files(
            args.cpgs_a,
            args.cpgs_b,
            output=args.output,
            report=args.report,
            config=config,
        )
    except MemoryError:
        print("ERROR: could not allocate memory", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"ERROR:\t{e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
