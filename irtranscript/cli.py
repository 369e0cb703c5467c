# irtranscript/cli.py
from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from . import runtime as rt
from .deps_check import require_dependencies


STEPS = ("all", "classify", "score")
NESTED_POLICIES = ("duplicate", "smallest")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="irtranscript",
        description="Transcript-level intron retention scoring with nested-intron clusters",
    )

    inflags = parser.add_argument_group("input (either -input, or the four IRFinder options)")
    inflags.add_argument("-input", dest="input_table", default=None,
                         help="Tab-separated intron table with gene/Start/End and score columns")
    inflags.add_argument("-control_dir", default=None,
                         help="Directory with IRFinder replicate outputs of the control sample")
    inflags.add_argument("-experiment_dir", default=None,
                         help="Directory with IRFinder replicate outputs of the experiment sample")
    inflags.add_argument("-control_name", default=None,
                         help="Column prefix for control replicates (e.g. HEK293T_scramble)")
    inflags.add_argument("-experiment_name", default=None,
                         help="Column prefix for experiment replicates (e.g. HEK293T_snaR)")

    parser.add_argument("-new_name", default=None,
                        help="Prefix of the lfc/z columns computed from IRFinder input (e.g. snaR)")
    parser.add_argument("-metric", default="IRratio", type=str,
                        help="IRFinder metric to average and report [default IRratio]")
    parser.add_argument("-splice_min", default=10, type=float,
                        help="Minimum SpliceExact across all replicates [default 10]")
    parser.add_argument("-pseudocount", default=1e-6, type=float,
                        help="Pseudocount of the log2 fold change [default 1e-6]")
    parser.add_argument("-score", nargs="*", default=None,
                        help="Score column(s) to test [default {new_name}_{metric}_z]")
    parser.add_argument("-nperms", default=100000, type=int,
                        help="Permutations per gene [default 100000]")
    parser.add_argument("-seed", default=None, type=int,
                        help="Random seed for reproducible permutations [default unseeded]")
    parser.add_argument("-nested_policy", default="duplicate", type=str,
                        help="duplicate: keep one row per enclosing Parent | smallest: smallest Parent only [default duplicate]")
    parser.add_argument("-steps", default="all", type=str,
                        help="all | classify | score [default all]")
    parser.add_argument("--outdir", dest="outdir", metavar="DIR", type=str,
                        default="irtranscript_results",
                        help="Output directory; default irtranscript_results")

    parser.add_argument(
        "-version", action="version",
        help="Print the version and quit",
        version="%(prog)s " + __version__,
    )

    return parser


def _normalize_outdir(outdir: str) -> str:
    outdir = os.path.abspath(os.path.expanduser(outdir or "irtranscript_results"))
    os.makedirs(outdir, exist_ok=True)
    return outdir


def _validate_args(args: argparse.Namespace) -> None:
    if args.steps not in STEPS:
        print("ERROR: Invalid value for -steps. Use: all, classify, score\n")
        raise SystemExit(2)

    if args.nested_policy not in NESTED_POLICIES:
        print("ERROR: Invalid value for -nested_policy. Use: duplicate, smallest\n")
        raise SystemExit(2)

    if args.nperms < 1:
        print("ERROR: -nperms must be at least 1\n")
        raise SystemExit(2)

    irfinder = [args.control_dir, args.experiment_dir, args.control_name, args.experiment_name]
    if args.input_table is None:
        if not all(irfinder):
            print("ERROR: Give -input, or all of -control_dir -experiment_dir -control_name -experiment_name\n")
            raise SystemExit(2)
    elif any(irfinder):
        print("ERROR: -input cannot be combined with IRFinder directory options\n")
        raise SystemExit(2)

    if args.steps == "score" and args.input_table is None:
        print("ERROR: -steps score needs an already classified -input table\n")
        raise SystemExit(2)

    if args.steps != "classify" and not args.score and not args.new_name:
        print("ERROR: Give -score (or -new_name with IRFinder directories)\n")
        raise SystemExit(2)


def configure_runtime(args: argparse.Namespace) -> None:
    """
    Single source of truth: write configuration into irtranscript.runtime (rt.*).
    Stages read it through RunConfig.from_runtime().
    """
    _validate_args(args)

    rt.input_table = os.path.abspath(args.input_table) if args.input_table else None
    rt.control_dir = args.control_dir
    rt.experiment_dir = args.experiment_dir
    rt.control_name = args.control_name
    rt.experiment_name = args.experiment_name
    rt.new_name = args.new_name
    rt.metric = args.metric
    rt.splice_min = args.splice_min
    rt.pseudocount = args.pseudocount
    rt.score = list(args.score) if args.score else None
    rt.nperms = args.nperms
    rt.seed = args.seed
    rt.nested_policy = args.nested_policy
    rt.steps = args.steps
    rt.outdir = _normalize_outdir(args.outdir)
    rt.run_dir = os.path.abspath(os.getcwd())


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    # argparse has already exited for -h/-version
    require_dependencies()

    configure_runtime(args)
    rt.save_snapshot()

    from .pipeline import run_pipeline
    return run_pipeline()


if __name__ == "__main__":
    raise SystemExit(main())
