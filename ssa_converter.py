"""AST -> SSA conversion.

Every assignment gets a fresh ``name_version``; ``if`` arms and loops are
joined with phi instructions.  The current versions of one scope live in
an immutable :class:`VersionTable` that is passed down the traversal and
returned to the caller, which merges branch results explicitly.
"""
import logging
from typing import Dict, List, NamedTuple

from errors import InternalError
from mini_ast import (
    ArrayAccess, Assert, Assignment, BinaryOp, For, If, Literal, UnaryOp,
    Variable, While, assigned_names, expr_names, negate,
)
from ssa_ir import Define, Phi, SSAAssert, versioned

logger = logging.getLogger("minilang.ssa")


class VersionTable:
    """Base name -> current version.  Updates return a new table."""

    __slots__ = ("_versions",)

    def __init__(self, versions=None):
        self._versions = dict(versions or {})

    def get(self, name):
        return self._versions.get(name)

    def bind(self, name, version):
        versions = dict(self._versions)
        versions[name] = version
        return VersionTable(versions)

    def names(self):
        return sorted(self._versions)

    def as_dict(self):
        return dict(self._versions)

    def __contains__(self, name):
        return name in self._versions

    def __eq__(self, other):
        return isinstance(other, VersionTable) and self._versions == other._versions

    def __repr__(self):
        return f"VersionTable({self._versions!r})"


class SSAResult(NamedTuple):
    instructions: List
    final_versions: Dict[str, int]


def unroll_loop(loop, depth):
    """``depth`` nested copies of ``if (cond) { body ... }`` standing in for ``loop``."""
    nested = ()
    for _ in range(depth):
        nested = (If(loop.condition, tuple(loop.body) + nested, ()),)
    return nested


class SSAConverter:
    """One conversion run.  Not reusable: counters are per instance."""

    def __init__(self, unroll_depth=None):
        self.unroll_depth = unroll_depth
        self.counter = {}       # next free version per base name
        self.inputs = {}        # version standing for a name's initial value
        self.instructions = []

    def fresh(self, name):
        version = self.counter.get(name, 0)
        self.counter[name] = version + 1
        return version

    def lookup(self, name, env):
        version = env.get(name)
        if version is None:
            # undefined on this path: the program's initial value
            if name not in self.inputs:
                self.inputs[name] = self.fresh(name)
            version = self.inputs[name]
            env = env.bind(name, version)
        return versioned(name, version), env

    def emit(self, instr):
        logger.debug("emit %s", instr)
        self.instructions.append(instr)

    def convert(self, program):
        env = self.transform_block(program.statements, VersionTable())
        return SSAResult(self.instructions, env.as_dict())

    # ── Expressions ──────────────────────────────────────────────────

    def transform_expr(self, expr, env):
        if isinstance(expr, Literal):
            return expr, env
        if isinstance(expr, Variable):
            name, env = self.lookup(expr.name, env)
            return Variable(name), env
        if isinstance(expr, ArrayAccess):
            array, env = self.lookup(expr.array, env)
            index, env = self.transform_expr(expr.index, env)
            return ArrayAccess(array, index), env
        if isinstance(expr, UnaryOp):
            operand, env = self.transform_expr(expr.operand, env)
            return UnaryOp(expr.operator, operand), env
        if isinstance(expr, BinaryOp):
            left, env = self.transform_expr(expr.left, env)
            right, env = self.transform_expr(expr.right, env)
            return BinaryOp(expr.operator, left, right), env
        raise InternalError(f"unknown expression node: {type(expr).__name__}")

    # ── Statements ───────────────────────────────────────────────────

    def transform_block(self, statements, env):
        for stmt in statements:
            env = self.transform_stmt(stmt, env)
        return env

    def transform_stmt(self, stmt, env):
        if isinstance(stmt, Assignment):
            value, env = self.transform_expr(stmt.value, env)
            version = self.fresh(stmt.target)
            self.emit(Define(versioned(stmt.target, version), value))
            return env.bind(stmt.target, version)
        if isinstance(stmt, Assert):
            condition, env = self.transform_expr(stmt.condition, env)
            self.emit(SSAAssert(condition))
            return env
        if isinstance(stmt, If):
            return self.transform_if(stmt, env)
        if isinstance(stmt, While):
            if self.unroll_depth is not None:
                return self.transform_block(unroll_loop(stmt, self.unroll_depth), env)
            return self.transform_while(stmt, env)
        if isinstance(stmt, For):
            init, loop = stmt.desugar()
            return self.transform_stmt(loop, self.transform_stmt(init, env))
        raise InternalError(f"unknown statement node: {type(stmt).__name__}")

    def transform_if(self, stmt, env):
        condition, env = self.transform_expr(stmt.condition, env)
        then_env = self.transform_block(stmt.then_branch, env)
        else_env = self.transform_block(stmt.else_branch, env)
        return self.merge(then_env, else_env, condition)

    def merge(self, then_env, else_env, guard):
        """Join two branch tables, emitting a guarded phi per diverging name.

        A name bound in only one of the tables gets no phi; the merged
        table keeps the version of the branch that defined it.
        """
        merged = {}
        for name in sorted(set(then_env.names()) | set(else_env.names())):
            then_v, else_v = then_env.get(name), else_env.get(name)
            if then_v is None or else_v is None or then_v == else_v:
                merged[name] = then_v if then_v is not None else else_v
                continue
            version = self.fresh(name)
            self.emit(Phi(
                versioned(name, version),
                (versioned(name, then_v), versioned(name, else_v)),
                guard,
            ))
            merged[name] = version
        return VersionTable(merged)

    def transform_while(self, stmt, env):
        # names read by the condition are known on entry
        for name in sorted(expr_names(stmt.condition)):
            _, env = self.lookup(name, env)
        pre = env

        # pre-pass: variables known before the loop that the body redefines
        carried = sorted(assigned_names(stmt.body) & set(pre.names()))
        entry = {name: self.fresh(name) for name in carried}
        body_env = pre
        for name, version in entry.items():
            body_env = body_env.bind(name, version)
        condition, body_env = self.transform_expr(stmt.condition, body_env)

        # body pass, buffered so the entry phis can precede it
        outer, self.instructions = self.instructions, []
        post = self.transform_block(stmt.body, body_env)
        body, self.instructions = self.instructions, outer

        changed = [name for name in carried if post.get(name) != entry[name]]
        for name in carried:
            operands = (versioned(name, pre.get(name)),)
            if name in changed:
                operands += (versioned(name, post.get(name)),)
            self.emit(Phi(versioned(name, entry[name]), operands))
        self.instructions.extend(body)

        result = post
        exit_guard = negate(condition)
        for name in carried:
            if name not in changed:
                result = result.bind(name, pre.get(name))
                continue
            version = self.fresh(name)
            self.emit(Phi(
                versioned(name, version),
                (versioned(name, pre.get(name)), versioned(name, post.get(name))),
                exit_guard,
            ))
            result = result.bind(name, version)
        return result


def to_ssa(program, unroll_depth=None):
    """Convert ``program`` to SSA.

    With ``unroll_depth`` set, loops are expanded into that many nested
    guarded copies instead of loop-entry/exit phi nodes.
    """
    result = SSAConverter(unroll_depth).convert(program)
    phis = sum(isinstance(instr, Phi) for instr in result.instructions)
    logger.info(
        "SSA: %d instructions (%d phi), %d variables",
        len(result.instructions), phis, len(result.final_versions),
    )
    return result
