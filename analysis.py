"""
Verification and equivalence pipelines.

parse -> SSA -> optimize -> CFG -> encode -> solve, one fresh set of
converter/builder/encoder state per call.  The SSA and script in a report
follow ``LOOP_MODE``; verdicts are always decided on the bounded SSA, with
each loop expanded ``unroll_depth`` times.  The solver is the only awaited
stage; it is injectable (``solver=``) so verdict mapping can be exercised
without z3.  Exceptions from the solver become ``error`` verdicts.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cfg_builder import CFG, to_cfg
from config import DEFAULT_UNROLL_DEPTH, LOOP_MODE, MAX_MODELS
from errors import EncodingMismatch
from program_parser import parse
from ssa_converter import SSAResult, to_ssa
from ssa_ir import format_ssa
from ssa_optimizer import optimize
from ssa_to_smt import encode_equivalence, encode_verification, match_outputs
from z3_runner import solve

logger = logging.getLogger("minilang.analysis")


@dataclass
class Verdict:
    holds: bool
    status: str     # verified | counterexample | equivalent | not_equivalent | unknown | error
    counterexamples: List[Dict[str, object]] = field(default_factory=list)
    examples: List[Dict[str, object]] = field(default_factory=list)
    diagnostic: Optional[str] = None


@dataclass
class VerificationReport:
    ssa: SSAResult
    optimized: list
    cfg: CFG
    script: str
    verdict: Verdict

    @property
    def ssa_text(self):
        return format_ssa(self.ssa.instructions)

    @property
    def optimized_ssa_text(self):
        return format_ssa(self.optimized)


@dataclass
class EquivalenceReport:
    ssa1: SSAResult
    ssa2: SSAResult
    cfg1: CFG
    cfg2: CFG
    script: str
    verdict: Verdict

    @property
    def ssa_texts(self):
        return format_ssa(self.ssa1.instructions), format_ssa(self.ssa2.instructions)


def _depth(unroll_depth):
    depth = DEFAULT_UNROLL_DEPTH if unroll_depth is None else unroll_depth
    if depth < 1:
        raise ValueError(f"unroll depth must be at least 1, got {depth}")
    return depth


def _displayed(program, depth):
    return to_ssa(program, depth if LOOP_MODE == "unroll" else None)


def _bounded(program, depth):
    """Loops expanded ``depth`` times: the form every verdict query is built from."""
    return to_ssa(program, depth)


def _solver_failure(result):
    return Verdict(False, result.status, diagnostic=result.diagnostic or f"solver returned {result.status}")


async def _decide(solver, query, example_script, holds_status, fails_status):
    try:
        result = await solver(query, MAX_MODELS)
        if result.status == "unsat":
            example = await solver(example_script, 1)
            examples = [example.model] if example.satisfiable and example.model is not None else []
            return Verdict(True, holds_status, examples=examples)
    except Exception as exc:
        logger.warning("Solver call failed: %s", exc)
        return Verdict(False, "error", diagnostic=f"{type(exc).__name__}: {exc}")
    if result.satisfiable:
        return Verdict(False, fails_status, counterexamples=list(result.models or [result.model]))
    return _solver_failure(result)


async def verify_program(text, unroll_depth=None, solver=solve):
    """Check that every ``assert`` of ``text`` holds.

    Raises :class:`~errors.ProgramSyntaxError` for malformed input; solver
    trouble is reported in the verdict instead.
    """
    depth = _depth(unroll_depth)
    program = parse(text)
    ssa = _displayed(program, depth)
    optimized = optimize(ssa.instructions)
    cfg = to_cfg(program)
    script = encode_verification(optimized, depth)

    bounded = optimize(_bounded(program, depth).instructions)
    verdict = await _decide(
        solver,
        encode_verification(bounded, depth, negate_goal=True),
        encode_verification(bounded, depth),
        "verified", "counterexample",
    )
    logger.info("Verification verdict: %s", verdict.status)
    return VerificationReport(ssa, optimized, cfg, script, verdict)


async def check_equivalence(text1, text2, unroll_depth=None, solver=solve):
    """Check that two programs leave their outputs with equal values.

    The unoptimized SSA is compared: dead-definition elimination would drop
    the final writes that make up the outputs.
    """
    depth = _depth(unroll_depth)
    program1, program2 = parse(text1), parse(text2)
    ssa1, ssa2 = _displayed(program1, depth), _displayed(program2, depth)
    cfg1, cfg2 = to_cfg(program1), to_cfg(program2)
    script = encode_equivalence(ssa1.instructions, ssa2.instructions, depth)

    bounded1 = _bounded(program1, depth).instructions
    bounded2 = _bounded(program2, depth).instructions
    try:
        match_outputs(bounded1, bounded2)
    except EncodingMismatch as exc:
        verdict = Verdict(False, "not_equivalent", diagnostic=str(exc))
        logger.info("Equivalence verdict: %s (%s)", verdict.status, exc)
        return EquivalenceReport(ssa1, ssa2, cfg1, cfg2, script, verdict)

    verdict = await _decide(
        solver,
        encode_equivalence(bounded1, bounded2, depth, negate_goal=True),
        encode_equivalence(bounded1, bounded2, depth),
        "equivalent", "not_equivalent",
    )
    logger.info("Equivalence verdict: %s", verdict.status)
    return EquivalenceReport(ssa1, ssa2, cfg1, cfg2, script, verdict)


def run_verification(text, unroll_depth=None):
    return asyncio.run(verify_program(text, unroll_depth))


def run_equivalence(text1, text2, unroll_depth=None):
    return asyncio.run(check_equivalence(text1, text2, unroll_depth))
