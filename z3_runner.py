import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from z3 import (
    Context, Or, Solver, Z3Exception, is_false, is_int, is_int_value, is_true,
    parse_smt2_string, sat, unsat,
)

from config import MAX_MODELS, Z3_TIMEOUT_MS

logger = logging.getLogger("minilang.z3")

# Commands the script carries for standalone use; the Python API drives them itself
_DIRECTIVES = ("(check-sat", "(get-model", "(set-logic")


@dataclass
class SolverResult:
    satisfiable: bool
    model: Optional[Dict[str, object]] = None
    status: str = "unsat"        # sat | unsat | unknown | error
    diagnostic: Optional[str] = None
    models: List[Dict[str, object]] = field(default_factory=list)


def strip_directives(script: str) -> str:
    return "\n".join(
        line for line in script.splitlines()
        if not line.strip().startswith(_DIRECTIVES)
    )


def _model_values(model):
    values = {}
    for decl in sorted(model.decls(), key=lambda d: d.name()):
        if decl.arity() != 0:
            continue
        value = model[decl]
        if is_int_value(value):
            values[decl.name()] = value.as_long()
        elif is_true(value) or is_false(value):
            values[decl.name()] = is_true(value)
        else:
            values[decl.name()] = str(value)
    return values


# Load a script into a fresh solver with the configured timeout.
# Each call gets its own z3 Context: the default one is not thread-safe.
def load_solver(script: str, timeout_ms: int = Z3_TIMEOUT_MS, ctx=None):
    ctx = ctx if ctx is not None else Context()
    solver = Solver(ctx=ctx)
    solver.set("timeout", timeout_ms)
    solver.add(parse_smt2_string(strip_directives(script), ctx=ctx))
    return solver


# Check satisfiability; on sat, collect up to max_models distinct models
def solve_sync(script: str, max_models: int = 1, timeout_ms: int = Z3_TIMEOUT_MS) -> SolverResult:
    try:
        solver = load_solver(script, timeout_ms, Context())
        verdict = solver.check()
    except Z3Exception as exc:
        logger.warning("z3 rejected the script: %s", exc)
        return SolverResult(False, status="error", diagnostic=str(exc))

    if verdict == unsat:
        logger.info("z3: unsat")
        return SolverResult(False, status="unsat")
    if verdict != sat:
        reason = solver.reason_unknown()
        logger.warning("z3: unknown (%s)", reason)
        return SolverResult(False, status="unknown", diagnostic=reason)

    models = []
    while True:
        m = solver.model()
        models.append(_model_values(m))
        if len(models) >= max_models:
            break
        # block this assignment of the integer constants (model decls share the solver's context)
        block = [d() != m[d] for d in m.decls() if d.arity() == 0 and is_int(d())]
        if not block:
            break
        solver.add(Or(*block))
        try:
            if solver.check() != sat:
                break
        except Z3Exception as exc:
            logger.warning("z3 failed while enumerating models: %s", exc)
            break
    logger.info("z3: sat (%d model(s))", len(models))
    return SolverResult(True, model=models[0], status="sat", models=models)


def enumerate_models(script: str, max_models: int = MAX_MODELS):
    """Up to ``max_models`` models of ``script`` that differ on some integer constant."""
    return solve_sync(script, max_models=max_models).models


async def solve(script: str, max_models: int = 1) -> SolverResult:
    """Run :func:`solve_sync` off the event loop."""
    return await asyncio.to_thread(solve_sync, script, max_models)
