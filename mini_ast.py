"""AST node types for the MiniLang source language.

Nodes are frozen dataclasses: the parser builds a tree once and every
later stage (SSA conversion, CFG building) only reads it.
"""
from dataclasses import dataclass
from typing import Tuple, Union

from errors import InternalError


# ── Expressions ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class Literal:
    value: int


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class ArrayAccess:
    array: str
    index: "Expression"


@dataclass(frozen=True)
class UnaryOp:
    operator: str
    operand: "Expression"


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "Expression"
    right: "Expression"


Expression = Union[Literal, Variable, ArrayAccess, UnaryOp, BinaryOp]

COMPARISON_OPS = ("==", "!=", "<=", ">=", "<", ">")
ARITHMETIC_OPS = ("+", "-", "*", "/", "%")
# order matters: the parser splits on the first operator of this list
# that occurs in the expression, there is no precedence
BINARY_OPS = COMPARISON_OPS + ARITHMETIC_OPS
UNARY_OPS = ("-", "!")


# ── Statements ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Assignment:
    target: str
    value: Expression


@dataclass(frozen=True)
class Assert:
    condition: Expression


@dataclass(frozen=True)
class If:
    condition: Expression
    then_branch: Tuple["Statement", ...] = ()
    else_branch: Tuple["Statement", ...] = ()


@dataclass(frozen=True)
class While:
    condition: Expression
    body: Tuple["Statement", ...] = ()


@dataclass(frozen=True)
class For:
    init: Assignment
    condition: Expression
    update: Assignment
    body: Tuple["Statement", ...] = ()

    def desugar(self):
        """``init`` followed by a ``While`` whose body ends with ``update``."""
        return self.init, While(self.condition, tuple(self.body) + (self.update,))


Statement = Union[Assignment, Assert, If, While, For]


@dataclass(frozen=True)
class Program:
    statements: Tuple[Statement, ...] = ()

    def __iter__(self):
        return iter(self.statements)

    def __len__(self):
        return len(self.statements)


# ── Helpers ───────────────────────────────────────────────────────────

def format_expr(expr, parens=True):
    """Render an expression as source-like text.

    Binary operations are wrapped in parentheses unless ``parens`` is
    false (CFG labels use the bare form).
    """
    if isinstance(expr, Literal):
        return str(expr.value)
    if isinstance(expr, Variable):
        return expr.name
    if isinstance(expr, ArrayAccess):
        return f"{expr.array}[{format_expr(expr.index, parens)}]"
    if isinstance(expr, UnaryOp):
        return f"{expr.operator}{format_expr(expr.operand, parens)}"
    if isinstance(expr, BinaryOp):
        text = f"{format_expr(expr.left, parens)} {expr.operator} {format_expr(expr.right, parens)}"
        return f"({text})" if parens else text
    raise InternalError(f"unknown expression node: {type(expr).__name__}")


def expr_names(expr):
    """Every variable (and array) name read by ``expr``."""
    if isinstance(expr, Literal):
        return set()
    if isinstance(expr, Variable):
        return {expr.name}
    if isinstance(expr, ArrayAccess):
        return {expr.array} | expr_names(expr.index)
    if isinstance(expr, UnaryOp):
        return expr_names(expr.operand)
    if isinstance(expr, BinaryOp):
        return expr_names(expr.left) | expr_names(expr.right)
    raise InternalError(f"unknown expression node: {type(expr).__name__}")


def assigned_names(statements):
    """Names assigned anywhere in ``statements``, nested blocks included."""
    names = set()
    for stmt in statements:
        if isinstance(stmt, Assignment):
            names.add(stmt.target)
        elif isinstance(stmt, If):
            names |= assigned_names(stmt.then_branch)
            names |= assigned_names(stmt.else_branch)
        elif isinstance(stmt, While):
            names |= assigned_names(stmt.body)
        elif isinstance(stmt, For):
            names |= assigned_names(stmt.desugar())
        elif not isinstance(stmt, Assert):
            raise InternalError(f"unknown statement node: {type(stmt).__name__}")
    return names


def negate(condition: Expression) -> Expression:
    return UnaryOp("!", condition)
