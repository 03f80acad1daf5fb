"""Command line runner: ``verify`` one program or compare two with ``equiv``."""
import argparse
import json
import logging
import sys

from analysis import run_equivalence, run_verification
from config import DEFAULT_UNROLL_DEPTH, ENGINE_VERSION, LOG_FORMAT, LOG_LEVEL
from errors import ProgramSyntaxError

logger = logging.getLogger("minilang.cli")


def _read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


def _unroll(value):
    depth = int(value)
    if depth < 1:
        raise argparse.ArgumentTypeError("unroll depth must be at least 1")
    return depth


def _print_verdict(verdict, out):
    print(f"verdict: {verdict.status}", file=out)
    if verdict.diagnostic:
        print(f"diagnostic: {verdict.diagnostic}", file=out)
    for model in verdict.counterexamples:
        print(f"counterexample: {json.dumps(model, sort_keys=True)}", file=out)
    for model in verdict.examples:
        print(f"example: {json.dumps(model, sort_keys=True)}", file=out)


def cmd_verify(args, out):
    report = run_verification(_read(args.file), args.unroll)
    if args.show_ssa:
        print("── SSA ──", file=out)
        print(report.ssa_text, file=out)
        print("── Optimized SSA ──", file=out)
        print(report.optimized_ssa_text, file=out)
    if args.show_smt:
        print("── SMT-LIB ──", file=out)
        print(report.script, file=out)
    _print_verdict(report.verdict, out)
    return 0 if report.verdict.holds else 1


def cmd_equiv(args, out):
    report = run_equivalence(_read(args.file1), _read(args.file2), args.unroll)
    if args.show_smt:
        print("── SMT-LIB ──", file=out)
        print(report.script, file=out)
    _print_verdict(report.verdict, out)
    return 0 if report.verdict.holds else 1


def build_parser():
    parser = argparse.ArgumentParser(
        prog="minilang",
        description="Bounded verification and equivalence checking for MiniLang programs.",
    )
    parser.add_argument("--version", action="version", version=ENGINE_VERSION)
    parser.add_argument("--log-level", default=LOG_LEVEL, help="logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_verify = subparsers.add_parser("verify", help="check that every assert holds")
    p_verify.add_argument("file", help="program source file")
    p_verify.add_argument("--unroll", type=_unroll, default=DEFAULT_UNROLL_DEPTH,
                          help="loop unroll depth (default: %(default)s)")
    p_verify.add_argument("--show-ssa", action="store_true", help="print SSA and optimized SSA")
    p_verify.add_argument("--show-smt", action="store_true", help="print the SMT-LIB script")
    p_verify.set_defaults(func=cmd_verify)

    p_equiv = subparsers.add_parser("equiv", help="check that two programs compute the same outputs")
    p_equiv.add_argument("file1")
    p_equiv.add_argument("file2")
    p_equiv.add_argument("--unroll", type=_unroll, default=DEFAULT_UNROLL_DEPTH,
                         help="loop unroll depth (default: %(default)s)")
    p_equiv.add_argument("--show-smt", action="store_true", help="print the SMT-LIB script")
    p_equiv.set_defaults(func=cmd_equiv)
    return parser


def main(argv=None, out=None):
    out = out or sys.stdout
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)
    try:
        return args.func(args, out)
    except ProgramSyntaxError as exc:
        logger.error("syntax error: %s", exc)
        print(f"syntax error: {exc}", file=out)
        return 2


if __name__ == "__main__":
    sys.exit(main())
