import pytest

from mini_ast import BinaryOp, Literal, UnaryOp, Variable
from program_parser import parse
from ssa_converter import to_ssa
from ssa_ir import Define, Phi, SSAAssert, count_uses, format_ssa
from ssa_optimizer import fold_binary, optimize

PROGRAMS = [
    "x := 3;\ny := x + 1;\nassert(y > 0);",
    "x := 3;\nif (x < 5) {\n  y := x + 1;\n} else {\n  y := x - 1;\n}\nassert(y == 4);",
    "i := 0;\nwhile (i < n) {\n  i := i + 1;\n}\nassert(i >= 0);",
    "a := b * 2;\nc := a - a;\nd := c + 1;\nunused := d * 5;\nassert(a > 0);",
    "s := 0;\nfor (i := 0; i < 3; i := i + 1) {\n  s := s + i;\n}\nassert(s < 10);",
]


def _ssa(text):
    return to_ssa(parse(text)).instructions


def test_straight_line_folds_to_single_assert():
    optimized = optimize(_ssa("x := 3;\ny := x + 1;\nassert(y > 0);"))
    assert optimized == [SSAAssert(Literal(1))]
    assert format_ssa(optimized) == "assert(1)"


def test_phi_operands_untouched_guard_folded():
    optimized = optimize(_ssa(PROGRAMS[1]))
    assert optimized == [
        Define("y_0", Literal(4)),
        Define("y_1", Literal(2)),
        Phi("y_2", ("y_0", "y_1"), Literal(1)),
        SSAAssert(BinaryOp("==", Variable("y_2"), Literal(4))),
    ]


def test_dead_chain_is_removed():
    instructions = [
        Define("a_0", Variable("in_0")),
        Define("b_0", BinaryOp("+", Variable("a_0"), Literal(1))),
        Define("c_0", BinaryOp("*", Variable("b_0"), Variable("b_0"))),
        SSAAssert(BinaryOp(">", Variable("in_0"), Literal(0))),
    ]
    assert optimize(instructions) == [instructions[-1]]


@pytest.mark.parametrize("text", PROGRAMS)
def test_optimize_is_idempotent(text):
    once = optimize(_ssa(text))
    assert optimize(once) == once


@pytest.mark.parametrize("text", PROGRAMS)
def test_no_unused_define_survives(text):
    optimized = optimize(_ssa(text))
    uses = count_uses(optimized)
    assert all(uses[instr.target] > 0 for instr in optimized if isinstance(instr, Define))


def test_input_list_is_not_modified():
    instructions = _ssa(PROGRAMS[0])
    snapshot = list(instructions)
    optimize(instructions)
    assert instructions == snapshot


def test_zero_divisor_is_not_folded():
    instructions = [
        Define("a_0", BinaryOp("/", Literal(1), Literal(0))),
        SSAAssert(BinaryOp("==", Variable("a_0"), Literal(0))),
    ]
    assert optimize(instructions) == instructions


def test_unary_operators_fold():
    instructions = [
        Define("a_0", UnaryOp("!", Literal(0))),
        Define("b_0", UnaryOp("-", Variable("a_0"))),
        SSAAssert(BinaryOp("<", Variable("b_0"), Literal(0))),
    ]
    assert optimize(instructions) == [SSAAssert(Literal(1))]


@pytest.mark.parametrize("op, left, right, expected", [
    ("+", 2, 3, 5),
    ("-", 2, 3, -1),
    ("*", -4, 3, -12),
    ("/", 7, 2, 3),
    ("/", -7, 2, -4),
    ("/", 7, -2, -3),
    ("%", -7, 2, 1),
    ("%", 7, -2, 1),
    ("<", 1, 2, 1),
    (">=", 1, 2, 0),
    ("==", 3, 3, 1),
    ("!=", 3, 3, 0),
    ("/", 5, 0, None),
    ("%", 5, 0, None),
])
def test_fold_binary_uses_smt_integer_semantics(op, left, right, expected):
    assert fold_binary(op, left, right) == expected
