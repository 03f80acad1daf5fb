import asyncio

import pytest

import analysis
from analysis import check_equivalence, run_equivalence, run_verification, verify_program
from errors import ProgramSyntaxError
from z3_runner import SolverResult

IF_ELSE = (
    "x := 3;\n"
    "if (x < 5) {\n"
    "    y := x + 1;\n"
    "} else {\n"
    "    y := x - 1;\n"
    "}\n"
    "assert(y == 4);\n"
)


class FakeSolver:
    """Replays canned results and records the scripts it was given."""

    def __init__(self, *results):
        self.results = list(results)
        self.scripts = []

    async def __call__(self, script, max_models=1):
        self.scripts.append(script)
        return self.results.pop(0)


class RefusingSolver:
    async def __call__(self, script, max_models=1):
        raise AssertionError("solver must not be consulted")


SAT = SolverResult(True, {"x_0": 1}, "sat", models=[{"x_0": 1}, {"x_0": 2}])
UNSAT = SolverResult(False, status="unsat")


# ── Verdict mapping (fake solver) ────────────────────────────────────

def test_unsat_violation_query_means_verified():
    solver = FakeSolver(UNSAT, SolverResult(True, {"x_0": 3}, "sat", models=[{"x_0": 3}]))
    report = asyncio.run(verify_program("x := 3;\nassert(x > 0);", 1, solver=solver))
    assert report.verdict.holds
    assert report.verdict.status == "verified"
    assert report.verdict.examples == [{"x_0": 3}]
    assert "(not " in solver.scripts[0]
    assert solver.scripts[1] == report.script


def test_sat_violation_query_gives_counterexamples():
    report = asyncio.run(verify_program("y := x;\nassert(y > 0);", 1, solver=FakeSolver(SAT)))
    assert not report.verdict.holds
    assert report.verdict.status == "counterexample"
    assert report.verdict.counterexamples == [{"x_0": 1}, {"x_0": 2}]


@pytest.mark.parametrize("status", ["unknown", "error"])
def test_solver_trouble_is_a_verdict(status):
    failure = SolverResult(False, status=status, diagnostic="timeout")
    report = asyncio.run(verify_program("y := x;\nassert(y > 0);", 1, solver=FakeSolver(failure)))
    assert not report.verdict.holds
    assert report.verdict.status == status
    assert report.verdict.diagnostic == "timeout"


class UnreachableSolver:
    """Fails like a solver behind a dead transport, optionally after some answers."""

    def __init__(self, *results):
        self.results = list(results)

    async def __call__(self, script, max_models=1):
        if self.results:
            return self.results.pop(0)
        raise ConnectionError("solver unreachable")


def test_raising_solver_becomes_error_verdict():
    report = asyncio.run(verify_program("x := 3;\nassert(x > 0);", 1, solver=UnreachableSolver()))
    assert not report.verdict.holds
    assert report.verdict.status == "error"
    assert "solver unreachable" in report.verdict.diagnostic

    report = asyncio.run(check_equivalence("y := x;", "y := x;", 1, solver=UnreachableSolver()))
    assert report.verdict.status == "error"
    assert "ConnectionError" in report.verdict.diagnostic


def test_raising_example_solve_becomes_error_verdict():
    report = asyncio.run(verify_program("x := 3;\nassert(x > 0);", 1, solver=UnreachableSolver(UNSAT)))
    assert report.verdict.status == "error"
    assert report.verdict.diagnostic == "ConnectionError: solver unreachable"


def test_output_count_mismatch_is_not_equivalent_without_solving():
    report = asyncio.run(check_equivalence("x := 1;", "x := 1;\ny := 2;", 1, solver=RefusingSolver()))
    assert not report.verdict.holds
    assert report.verdict.status == "not_equivalent"
    assert "output count mismatch" in report.verdict.diagnostic
    assert "(assert false) ; output count mismatch" in report.script


def test_divergence_query_decides_equivalence():
    solver = FakeSolver(UNSAT, SolverResult(True, {"y_0": 4}, "sat", models=[{"y_0": 4}]))
    report = asyncio.run(check_equivalence("y := 4;", "y := 2 + 2;", 1, solver=solver))
    assert report.verdict.status == "equivalent"
    assert report.verdict.examples == [{"y_0": 4}]

    report = asyncio.run(check_equivalence("y := 4;", "y := 5;", 1, solver=FakeSolver(SAT)))
    assert report.verdict.status == "not_equivalent"
    assert report.verdict.counterexamples == SAT.models


def test_report_carries_every_stage():
    solver = FakeSolver(UNSAT, UNSAT)
    report = asyncio.run(verify_program("x := 3;\ny := x + 1;\nassert(y > 0);", 1, solver=solver))
    assert report.ssa_text == "x_0 = 3\ny_0 = (x_0 + 1)\nassert((y_0 > 0))"
    assert report.optimized_ssa_text == "assert(1)"
    assert report.cfg.nodes[0].label == "Program Start"
    assert report.script.startswith("(set-logic QF_LIA)")
    assert report.verdict.examples == []


def test_syntax_errors_propagate():
    with pytest.raises(ProgramSyntaxError):
        asyncio.run(verify_program("x := ;", 1, solver=RefusingSolver()))
    with pytest.raises(ProgramSyntaxError):
        asyncio.run(check_equivalence("x := 1;", "if x {", 1, solver=RefusingSolver()))


def test_unroll_depth_must_be_positive():
    with pytest.raises(ValueError):
        asyncio.run(verify_program("x := 1;", 0, solver=RefusingSolver()))


# ── End to end with z3 ───────────────────────────────────────────────

def test_scenarios_verify():
    assert run_verification("x := 3;\ny := x + 1;\nassert(y > 0);", 1).verdict.status == "verified"
    assert run_verification(IF_ELSE, 1).verdict.status == "verified"
    assert run_verification("y := x + 1;\nassert(y > x);", 1).verdict.status == "verified"


def test_counterexample_found():
    verdict = run_verification("y := x * 2;\nassert(y > x);", 1).verdict
    assert verdict.status == "counterexample"
    assert 1 <= len(verdict.counterexamples) <= 2
    assert all(model["x_0"] <= 0 for model in verdict.counterexamples)


LOOP = "i := 0;\nwhile (i < 3) {\n  i := i + 1;\n}\n"


def test_loop_verdicts_are_bounded_by_unroll_depth():
    program = LOOP + "assert(i == 3);"
    report = run_verification(program, 3)
    assert report.verdict.status == "verified"
    # the displayed SSA keeps the loop phis
    assert "i_1 = φ(i_0, i_2)" in report.ssa_text
    assert run_verification(program, 2).verdict.status == "counterexample"


def test_identical_loop_programs_are_equivalent():
    assert run_equivalence(LOOP, LOOP, 3).verdict.status == "equivalent"
    assert run_equivalence(LOOP, LOOP.replace("i + 1", "i + 2"), 3).verdict.status == "not_equivalent"


def test_unroll_display_mode(monkeypatch):
    monkeypatch.setattr(analysis, "LOOP_MODE", "unroll")
    report = run_verification(LOOP + "assert(i == 3);", 3)
    assert report.verdict.status == "verified"
    phis = [line for line in report.ssa_text.splitlines() if "φ" in line]
    assert phis
    assert all(line.endswith("]") for line in phis)


def test_equivalence_end_to_end():
    assert run_equivalence("x := 3;\ny := x + 1;", "x := 3;\ny := x + 1;", 1).verdict.status == "equivalent"
    assert run_equivalence("y := x + 1;", "y := 1 + x;", 1).verdict.status == "equivalent"
    verdict = run_equivalence("y := x + 1;", "y := x + 2;", 1).verdict
    assert verdict.status == "not_equivalent"
    assert verdict.counterexamples
