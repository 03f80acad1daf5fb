"""
Convert SSA instruction lists into SMT-LIB v2 scripts.

- Every versioned name becomes an ``Int`` constant (arrays: ``(Array Int Int)``).
- ``x_1 = e`` becomes ``(assert (= x_1 e))``.
- A guarded two-operand phi becomes ``(assert (= r (ite guard a b)))``;
  loop-entry phis carry no guard and leave their result unconstrained.
- ``assert(c)`` becomes ``(assert c)``, or, with ``negate_goal``, all
  conditions are folded into a single ``(assert (not (and ...)))`` so that
  ``unsat`` means the assertions always hold.
"""
import logging

from config import EQUIVALENCE_SUFFIX
from errors import EncodingMismatch, InternalError
from mini_ast import ArrayAccess, BinaryOp, COMPARISON_OPS, Literal, UnaryOp, Variable
from ssa_ir import Define, Phi, SSAAssert, base_name, defined_name, input_names, rename_ssa

logger = logging.getLogger("minilang.smt")

INT = "Int"
BOOL = "Bool"
ARRAY = "(Array Int Int)"

SMT_OPS = {
    "==": "=",
    "!=": "distinct",
    "<": "<",
    ">": ">",
    "<=": "<=",
    ">=": ">=",
    "+": "+",
    "-": "-",
    "*": "*",
    "/": "div",
    "%": "mod",
}

MISMATCH_ASSERTION = "(assert false) ; output count mismatch"


def _int_literal(value):
    return str(value) if value >= 0 else f"(- {-value})"


def _negated_conjunction(terms):
    if not terms:
        return "false"
    if len(terms) == 1:
        return f"(not {terms[0]})"
    return f"(not (and {' '.join(terms)}))"


class SMTEncoder:
    """Accumulates declarations and assertions for one or more programs."""

    def __init__(self):
        self.declarations = {}   # name -> sort, in first-appearance order
        self.assertions = []
        self.conditions = []     # encoded assert(...) conditions, Bool
        self.uses_arrays = False
        self.nonlinear = False

    def declare(self, name, sort=INT):
        known = self.declarations.get(name)
        if known is None:
            self.declarations[name] = sort
        elif known != sort:
            logger.warning("%s used both as %s and %s; keeping %s", name, known, sort, known)

    # ── Expressions ──────────────────────────────────────────────────

    def encode_expr(self, expr):
        """Return ``(smt_text, sort)`` with sort ``Int`` or ``Bool``."""
        if isinstance(expr, Literal):
            return _int_literal(expr.value), INT
        if isinstance(expr, Variable):
            self.declare(expr.name)
            return expr.name, INT
        if isinstance(expr, ArrayAccess):
            self.declare(expr.array, ARRAY)
            self.uses_arrays = True
            return f"(select {expr.array} {self.as_int(expr.index)})", INT
        if isinstance(expr, UnaryOp):
            if expr.operator == "!":
                return f"(not {self.as_bool(expr.operand)})", BOOL
            if expr.operator == "-":
                return f"(- {self.as_int(expr.operand)})", INT
            raise InternalError(f"unknown unary operator: {expr.operator}")
        if isinstance(expr, BinaryOp):
            op = SMT_OPS.get(expr.operator)
            if op is None:
                raise InternalError(f"unknown binary operator: {expr.operator}")
            left, right = self.as_int(expr.left), self.as_int(expr.right)
            if expr.operator in COMPARISON_OPS:
                return f"({op} {left} {right})", BOOL
            if expr.operator == "*" and not (isinstance(expr.left, Literal) or isinstance(expr.right, Literal)):
                self.nonlinear = True
            if expr.operator in ("/", "%") and not isinstance(expr.right, Literal):
                self.nonlinear = True
            return f"({op} {left} {right})", INT
        raise InternalError(f"unknown expression node: {type(expr).__name__}")

    def as_int(self, expr):
        text, sort = self.encode_expr(expr)
        return text if sort == INT else f"(ite {text} 1 0)"

    def as_bool(self, expr):
        if isinstance(expr, Literal):
            return "true" if expr.value != 0 else "false"
        text, sort = self.encode_expr(expr)
        return text if sort == BOOL else f"(not (= {text} 0))"

    # ── Instructions ─────────────────────────────────────────────────

    def add(self, instructions):
        for instr in instructions:
            if isinstance(instr, Define):
                self.declare(instr.target)
                self.assertions.append(f"(assert (= {instr.target} {self.as_int(instr.value)}))")
            elif isinstance(instr, Phi):
                self.declare(instr.result)
                for operand in instr.operands:
                    self.declare(operand)
                if instr.guard is not None and len(instr.operands) == 2:
                    then_op, else_op = instr.operands
                    guard = self.as_bool(instr.guard)
                    self.assertions.append(f"(assert (= {instr.result} (ite {guard} {then_op} {else_op})))")
                else:
                    logger.debug("phi %s left unconstrained", instr.result)
            elif isinstance(instr, SSAAssert):
                self.conditions.append(self.as_bool(instr.condition))
            else:
                raise InternalError(f"unknown SSA instruction: {type(instr).__name__}")
        return self

    def absorb(self, other):
        """Append ``other``'s declarations (by name, first wins) and assertions."""
        for name, sort in other.declarations.items():
            self.declare(name, sort)
        self.assertions.extend(other.assertions)
        self.conditions.extend(other.conditions)
        self.uses_arrays = self.uses_arrays or other.uses_arrays
        self.nonlinear = self.nonlinear or other.nonlinear
        return self

    def logic(self):
        if self.uses_arrays and self.nonlinear:
            return "QF_AUFNIA"
        if self.uses_arrays:
            return "QF_ALIA"
        if self.nonlinear:
            return "QF_NIA"
        return "QF_LIA"

    def render(self, goal):
        lines = [f"(set-logic {self.logic()})"]
        lines += [f"(declare-const {name} {sort})" for name, sort in self.declarations.items()]
        lines += self.assertions
        lines += goal
        lines += ["(check-sat)", "(get-model)"]
        return "\n".join(lines) + "\n"


def encode_verification(instructions, unroll_depth=1, negate_goal=False):
    """SMT-LIB script for one program.

    ``unroll_depth`` is accepted for interface symmetry; loops are already
    resolved by the SSA converter.
    """
    encoder = SMTEncoder().add(instructions)
    if negate_goal:
        goal = [f"(assert {_negated_conjunction(encoder.conditions)})"]
    else:
        goal = [f"(assert {condition})" for condition in encoder.conditions]
    logger.info(
        "Verification script: %d declarations, %d assertions, %d conditions (unroll depth %s)",
        len(encoder.declarations), len(encoder.assertions), len(encoder.conditions), unroll_depth,
    )
    return encoder.render(goal)


def output_variables(instructions):
    """Last written versioned name per base variable, ordered by first write."""
    outputs = {}
    for instr in instructions:
        name = defined_name(instr)
        if name is not None:
            outputs[base_name(name)] = name
    return list(outputs.values())


def match_outputs(instructions1, instructions2):
    """Pair the output variables of two programs positionally.

    Raises :class:`EncodingMismatch` when the counts differ.
    """
    outputs1 = output_variables(instructions1)
    outputs2 = output_variables(instructions2)
    if len(outputs1) != len(outputs2):
        raise EncodingMismatch(outputs1, outputs2)
    return list(zip(outputs1, outputs2))


def encode_equivalence(instructions1, instructions2, unroll_depth=1, negate_goal=False,
                       suffix=EQUIVALENCE_SUFFIX):
    """SMT-LIB script relating two programs.

    The second program's names get ``suffix``.  Inputs read by both
    programs are paired by base name and equated; output pairs are
    asserted equal (or, with ``negate_goal``, asserted to differ
    somewhere).  Differing output counts yield a constant-false
    assertion instead of an error.
    """
    first = SMTEncoder().add(instructions1)
    second = SMTEncoder().add(rename_ssa(instructions2, suffix))
    combined = SMTEncoder().absorb(first).absorb(second)

    goal = [f"(assert {condition})" for condition in combined.conditions]
    # one input version per base name and program; versions may differ between programs
    inputs2 = {base_name(name): name for name in input_names(instructions2)}
    for name in input_names(instructions1):
        other = inputs2.get(base_name(name))
        if other is not None:
            goal.append(f"(assert (= {name} {other}{suffix}))")

    try:
        pairs = match_outputs(instructions1, instructions2)
    except EncodingMismatch as exc:
        logger.warning("Equivalence: %s", exc)
        goal.append(MISMATCH_ASSERTION)
    else:
        equalities = [f"(= {out1} {out2}{suffix})" for out1, out2 in pairs]
        if negate_goal:
            goal.append(f"(assert {_negated_conjunction(equalities)})")
        else:
            goal += [f"(assert {equality})" for equality in equalities]
        logger.info("Equivalence: comparing %d output pairs (unroll depth %s)", len(pairs), unroll_depth)
    return combined.render(goal)
