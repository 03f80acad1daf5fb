"""Constant propagation / folding and dead-definition elimination on SSA."""
import logging
import operator

from errors import InternalError
from mini_ast import ArrayAccess, BinaryOp, Literal, UnaryOp, Variable
from ssa_ir import Define, Phi, SSAAssert, count_uses, expr_uses

logger = logging.getLogger("minilang.optimizer")


# SMT-LIB integer division: a == b * q + r with 0 <= r < |b|
def _smt_mod(a, b):
    return a % abs(b)


def _smt_div(a, b):
    return (a - _smt_mod(a, b)) // b


_BINARY = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _smt_div,
    "%": _smt_mod,
    "==": lambda a, b: int(a == b),
    "!=": lambda a, b: int(a != b),
    "<": lambda a, b: int(a < b),
    ">": lambda a, b: int(a > b),
    "<=": lambda a, b: int(a <= b),
    ">=": lambda a, b: int(a >= b),
}

_UNARY = {
    "-": operator.neg,
    "!": lambda a: int(a == 0),
}


def fold_binary(op, left, right):
    """Value of ``left op right`` or ``None`` when it cannot be folded."""
    if op in ("/", "%") and right == 0:
        return None
    fn = _BINARY.get(op)
    return fn(left, right) if fn else None


def _propagate(expr, constants):
    if isinstance(expr, Literal):
        return expr
    if isinstance(expr, Variable):
        if expr.name in constants:
            return Literal(constants[expr.name])
        return expr
    if isinstance(expr, ArrayAccess):
        return ArrayAccess(expr.array, _propagate(expr.index, constants))
    if isinstance(expr, UnaryOp):
        operand = _propagate(expr.operand, constants)
        if isinstance(operand, Literal) and expr.operator in _UNARY:
            return Literal(_UNARY[expr.operator](operand.value))
        return UnaryOp(expr.operator, operand)
    if isinstance(expr, BinaryOp):
        left = _propagate(expr.left, constants)
        right = _propagate(expr.right, constants)
        if isinstance(left, Literal) and isinstance(right, Literal):
            value = fold_binary(expr.operator, left.value, right.value)
            if value is not None:
                return Literal(value)
        return BinaryOp(expr.operator, left, right)
    raise InternalError(f"unknown expression node: {type(expr).__name__}")


def _fold(instructions):
    constants = {}
    folded = []
    for instr in instructions:
        if isinstance(instr, Define):
            value = _propagate(instr.value, constants)
            if isinstance(value, Literal):
                constants[instr.target] = value.value
            folded.append(Define(instr.target, value))
        elif isinstance(instr, Phi):
            # operands stay as they are, only the guard is simplified
            guard = _propagate(instr.guard, constants) if instr.guard is not None else None
            folded.append(Phi(instr.result, instr.operands, guard))
        elif isinstance(instr, SSAAssert):
            folded.append(SSAAssert(_propagate(instr.condition, constants)))
        else:
            raise InternalError(f"unknown SSA instruction: {type(instr).__name__}")
    return folded


def _eliminate_dead(instructions):
    uses = count_uses(instructions)
    live = list(instructions)
    changed = True
    while changed:
        changed = False
        kept = []
        for instr in live:
            if isinstance(instr, Define) and uses[instr.target] == 0:
                uses.subtract(expr_uses(instr.value))
                changed = True
                continue
            kept.append(instr)
        live = kept
    return live


def optimize(instructions):
    """Return a reduced copy of ``instructions``; the input is not modified."""
    optimized = _eliminate_dead(_fold(instructions))
    logger.info("Optimizer: %d -> %d instructions", len(instructions), len(optimized))
    return optimized
