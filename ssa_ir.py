"""SSA instructions and the helpers shared by the optimizer and encoder."""
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Tuple

from errors import InternalError
from mini_ast import ArrayAccess, BinaryOp, Expression, Literal, UnaryOp, Variable, format_expr


@dataclass(frozen=True)
class Define:
    target: str
    value: Expression


@dataclass(frozen=True)
class Phi:
    result: str
    operands: Tuple[str, ...]
    guard: Optional[Expression] = None


@dataclass(frozen=True)
class SSAAssert:
    condition: Expression


def versioned(name, version):
    return f"{name}_{version}"


def base_name(name):
    """``y_3`` -> ``y``; names without a numeric version are returned unchanged."""
    head, sep, tail = name.rpartition("_")
    if sep and tail.isdigit():
        return head
    return name


def rewrite_expr(expr, rename):
    """Copy of ``expr`` with every variable/array name passed through ``rename``."""
    if isinstance(expr, Literal):
        return expr
    if isinstance(expr, Variable):
        return Variable(rename(expr.name))
    if isinstance(expr, ArrayAccess):
        return ArrayAccess(rename(expr.array), rewrite_expr(expr.index, rename))
    if isinstance(expr, UnaryOp):
        return UnaryOp(expr.operator, rewrite_expr(expr.operand, rename))
    if isinstance(expr, BinaryOp):
        return BinaryOp(expr.operator, rewrite_expr(expr.left, rename), rewrite_expr(expr.right, rename))
    raise InternalError(f"unknown expression node: {type(expr).__name__}")


def rename_ssa(instructions, suffix):
    """Append ``suffix`` to every versioned name (definitions and uses)."""
    def rename(name):
        return f"{name}{suffix}"

    renamed = []
    for instr in instructions:
        if isinstance(instr, Define):
            renamed.append(Define(rename(instr.target), rewrite_expr(instr.value, rename)))
        elif isinstance(instr, Phi):
            guard = rewrite_expr(instr.guard, rename) if instr.guard is not None else None
            renamed.append(Phi(rename(instr.result), tuple(rename(op) for op in instr.operands), guard))
        elif isinstance(instr, SSAAssert):
            renamed.append(SSAAssert(rewrite_expr(instr.condition, rename)))
        else:
            raise InternalError(f"unknown SSA instruction: {type(instr).__name__}")
    return renamed


def expr_uses(expr):
    """Names read by ``expr``, one entry per occurrence."""
    if isinstance(expr, Literal):
        return []
    if isinstance(expr, Variable):
        return [expr.name]
    if isinstance(expr, ArrayAccess):
        return [expr.array] + expr_uses(expr.index)
    if isinstance(expr, UnaryOp):
        return expr_uses(expr.operand)
    if isinstance(expr, BinaryOp):
        return expr_uses(expr.left) + expr_uses(expr.right)
    raise InternalError(f"unknown expression node: {type(expr).__name__}")


def instruction_uses(instr):
    if isinstance(instr, Define):
        return expr_uses(instr.value)
    if isinstance(instr, Phi):
        uses = list(instr.operands)
        if instr.guard is not None:
            uses += expr_uses(instr.guard)
        return uses
    if isinstance(instr, SSAAssert):
        return expr_uses(instr.condition)
    raise InternalError(f"unknown SSA instruction: {type(instr).__name__}")


def count_uses(instructions):
    counts = Counter()
    for instr in instructions:
        counts.update(instruction_uses(instr))
    return counts


def defined_name(instr):
    if isinstance(instr, Define):
        return instr.target
    if isinstance(instr, Phi):
        return instr.result
    return None


def defined_names(instructions):
    return [name for name in map(defined_name, instructions) if name is not None]


def input_names(instructions):
    """Names read somewhere but defined nowhere, in first-use order."""
    defined = set(defined_names(instructions))
    inputs = []
    for instr in instructions:
        for name in instruction_uses(instr):
            if name not in defined and name not in inputs:
                inputs.append(name)
    return inputs


# ── Formatting ────────────────────────────────────────────────────────

def format_instruction(instr):
    if isinstance(instr, Define):
        return f"{instr.target} = {format_expr(instr.value)}"
    if isinstance(instr, Phi):
        text = f"{instr.result} = φ({', '.join(instr.operands)})"
        if instr.guard is not None:
            text += f" [{format_expr(instr.guard)}]"
        return text
    if isinstance(instr, SSAAssert):
        return f"assert({format_expr(instr.condition)})"
    raise InternalError(f"unknown SSA instruction: {type(instr).__name__}")


def format_ssa(instructions):
    return "\n".join(format_instruction(instr) for instr in instructions)
