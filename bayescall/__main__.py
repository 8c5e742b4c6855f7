#!/usr/bin/env python

"""Command line interface.

Examples
--------
>>> bayescall call -b a.bam b.bam -f ref.fa -t targets.bed > calls.jsonl
>>> bayescall call -b a.bam -f ref.fa --min-base-quality 20 --logger DEBUG
>>> bayescall call -p params.json -o calls.jsonl
>>> bayescall params -p params.json --ploidy 2 --joint
"""

from typing import Optional, List
import argparse
import sys
from pathlib import Path
from loguru import logger
import bayescall as bc
from bayescall.core.exceptions import BayesCallError
from bayescall.schema.params_schema import Params, load_params, save_params

logger = logger.bind(name="bayescall")

VERSION = str(bc.__version__)
HEADER = f"""
-------------------------------------------------------------
 bayescall [v.{VERSION}]
 Bayesian genotype probabilities from aligned reads
-------------------------------------------------------------\
"""

DESCRIPTION = " bayescall command line tool. Select a positional subcommand:"
EPILOG = """\
Note
----
Each subcommand has its own additional help screen, e.g.,:
>>> bayescall call -h

Examples
--------
>>> # call: stream genotype confidences for each covered position
>>> bayescall call -b a.bam b.bam -f ref.fa -t targets.bed > calls.jsonl
>>> bayescall call -b a.bam -f ref.fa --joint --theta 0.01 -o calls.jsonl

>>> # params: show (and optionally save) the parameter settings
>>> bayescall params -p params.json --min-base-quality 20
"""

CALL_EPILOG = """\
Examples
--------
>>> bayescall call -b a.bam b.bam -f ref.fa -t targets.bed > calls.jsonl
>>> bayescall call -b a.bam -f ref.fa --min-base-quality 20 --logger DEBUG
>>> bayescall call -p params.json -o calls.jsonl --logger INFO log.txt
"""

PARAMS_EPILOG = """\
Examples
--------
>>> bayescall params
>>> bayescall params -b a.bam -f ref.fa --joint -o params.json
"""


def add_params_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments that set Params fields to a subcommand parser."""
    params = parser.add_argument_group("params", "args to set parameters")
    params.add_argument(
        "-p", "--params", metavar="params", type=Path,
        help="JSON params file. Other params args override its values.")
    params.add_argument(
        "-b", "--bam", metavar="bam", type=Path, nargs="+", dest="alignment_files",
        help="One or more indexed (or indexable) BAM files.")
    params.add_argument(
        "-f", "--fasta", metavar="fasta", type=Path, dest="reference_sequence",
        help="Reference sequence FASTA file.")
    params.add_argument(
        "-t", "--targets", metavar="bed", type=Path,
        help="BED file of target regions. Default=all reference sequences.")
    params.add_argument(
        "--ploidy", type=int,
        help="Number of alleles in a genotype. Default=2")
    params.add_argument(
        "--candidate-bases", type=str, dest="candidate_bases",
        help="SNV bases in the genotype universe. Default=ATGC")
    params.add_argument(
        "--min-base-quality", type=int, dest="min_base_quality",
        help="Minimum base quality of a base call to use it. Default=0")
    params.add_argument(
        "--min-mapping-quality", type=int, dest="min_mapping_quality",
        help="Minimum mapping quality of a read to use it. Default=0")
    params.add_argument(
        "--max-phred-score", type=float, dest="max_phred_score",
        help="Score reported for a posterior of 1. Default=200")
    params.add_argument(
        "--report-all-samples", action="store_const", const=True, dest="report_all_samples",
        help="Report samples without coverage at a covered position (uniform).")
    params.add_argument(
        "--zero-based", action="store_const", const=False, dest="one_based",
        help="Report 0-based positions. Default is 1-based.")
    params.add_argument(
        "--joint", action="store_const", const=True, dest="joint_prior",
        help="Genotype samples jointly with a population prior.")
    params.add_argument(
        "--theta", type=float,
        help="Population mutation rate for the joint prior. Default=0.001")
    params.add_argument(
        "--dominant-genotypes", type=int, dest="dominant_genotypes",
        help="Best genotypes per sample used in joint combinations. Default=2")
    params.add_argument(
        "--max-deviating-samples", type=int, dest="max_deviating_samples",
        help="Samples allowed off their best genotype in a combination. Default=1")


def setup_call_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Add `bayescall call` subcommand parser."""
    call = subparsers.add_parser(
        "call",
        description=HEADER + "\n" + " bayescall call: genotype probabilities per position",
        help="Stream genotype confidences for each covered position as JSON lines.",
        epilog=CALL_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    call.add_argument(
        "-o", "--output", metavar="output", type=Path,
        help="Path to write JSON lines to. Default=STDOUT.")
    call.add_argument(
        "--logger", type=str, nargs="*", default=("INFO", None),
        help=(
            "Logging info entered as one value for LOGLEVEL, or two values "
            "for LOGLEVEL LOGFILE; e.g., 'DEBUG' or 'DEBUG bayescall.txt.'")
    )
    add_params_arguments(call)


def setup_params_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Add `bayescall params` subcommand parser."""
    pprint = subparsers.add_parser(
        "params",
        description=HEADER + "\n" + " bayescall params: show parameter settings",
        help="Show parameter settings as JSON, optionally save them.",
        epilog=PARAMS_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pprint.add_argument(
        "-o", "--output", metavar="output", type=Path,
        help="Path to save the params JSON file to.")
    pprint.add_argument(
        "--force", action="store_true",
        help="Force overwrite of an existing params JSON file.")
    pprint.add_argument(
        "--logger", type=str, nargs="*", default=("INFO", None),
        help="Logging level, and optionally a log file.")
    add_params_arguments(pprint)


def setup_parsers() -> argparse.ArgumentParser:
    """Setup and return an ArgumentParser w/ subcommands."""
    parser = argparse.ArgumentParser(
        prog="bayescall",
        description=HEADER + "\n" + DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action='version', version=f"bayescall {bc.__version__}")
    subparsers = parser.add_subparsers(help="sub-commands", dest="subcommand")
    setup_call_subparser(subparsers)
    setup_params_subparser(subparsers)
    return parser


def get_params(args: argparse.Namespace) -> Params:
    """Return Params from an optional JSON file updated with CLI args."""
    params = load_params(args.params) if args.params else Params()
    for key in Params.model_fields:
        val = getattr(args, key, None)
        if val is not None:
            setattr(params, key, val)
    return params


def main(argv: Optional[List[str]] = None):
    """Parse user CLI args and perform actions."""
    parser = setup_parsers()
    args = parser.parse_args(argv)
    if not args.subcommand:
        parser.print_help()
        raise SystemExit(1)

    # set logging ---------------------------------------------------
    if hasattr(args, "logger") and args.logger:
        if len(args.logger) > 1 and args.logger[1]:
            bc.set_log_level(args.logger[0], args.logger[1])
        else:
            bc.set_log_level(args.logger[0])

    try:
        params = get_params(args)
    except ValueError as inst:
        logger.error(f"invalid parameters:\n{inst}")
        raise SystemExit(1)
    except BayesCallError as inst:
        logger.error(inst)
        raise SystemExit(1)

    # params job ----------------------------------------------------
    if args.subcommand == "params":
        if args.output:
            if args.output.exists() and not args.force:
                logger.error(f"params file ({args.output}) exists. Use --force to overwrite.")
                raise SystemExit(1)
            save_params(params, args.output)
            logger.info(f"wrote params to {args.output}")
        print(params)
        raise SystemExit(0)

    # call job ------------------------------------------------------
    if args.subcommand == "call":
        try:
            with bc.AlleleReader(params) as reader:
                caller = bc.Caller(params, reader)
                if args.output:
                    with open(args.output, "w", encoding="utf-8") as out:
                        caller.run(out)
                else:
                    caller.run(sys.stdout)
        except BayesCallError as inst:
            logger.error(inst)
            raise SystemExit(1)
        raise SystemExit(0)


if __name__ == "__main__":
    main()
