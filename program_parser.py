"""Line-oriented parser for MiniLang programs.

Statements sit one per line.  Blocks (``if``/``else``, ``while``,
``for``) are located by counting braces, so nesting depth, not line
layout, decides where a block ends.  Expressions use a deliberately flat
grammar: the first operator of ``BINARY_OPS`` found at the top level
splits the text in two and there is no precedence (``a + b * c`` splits
on ``+``, ``a - b - c`` reads as ``a - (b - c)``).
"""
import logging
import re

from errors import ProgramSyntaxError
from mini_ast import (
    ArrayAccess, Assert, Assignment, BinaryOp, BINARY_OPS, For, If, Literal,
    Program, UnaryOp, UNARY_OPS, Variable, While,
)

logger = logging.getLogger("minilang.parser")

KEYWORD_RE = re.compile(r"(if|else|while|for|assert)\b")
IF_RE = re.compile(r"if\s*\((.*)\)\s*\{")
ELSE_RE = re.compile(r"else\s*\{")
WHILE_RE = re.compile(r"while\s*\((.*)\)\s*\{")
FOR_RE = re.compile(r"for\s*\((.*?);(.*?);(.*)\)\s*\{")
ASSERT_RE = re.compile(r"assert\s*\((.*)\)\s*;$")
ARRAY_RE = re.compile(r"([A-Za-z_]\w*)\s*\[(.*)\]$")
IDENT_RE = re.compile(r"[A-Za-z_]\w*$")
INT_RE = re.compile(r"[+-]?\d+$")

# a binary operator right after one of these is really a unary sign
_OPERATOR_TAIL = set("=<>!+-*/%(")


def normalize_whitespace(code: str) -> str:
    return code.replace('\u00A0', ' ').replace('\u200B', ' ')


def parse(text: str) -> Program:
    """Parse program text into a :class:`Program`.

    Raises :class:`ProgramSyntaxError` on the first malformed line.
    """
    lines = []
    for lineno, raw in enumerate(normalize_whitespace(text).splitlines(), start=1):
        code = raw.split("//", 1)[0].strip()
        lines.append((lineno, code))
    statements = _parse_lines(lines)
    logger.info("Parsed %d top-level statements", len(statements))
    return Program(tuple(statements))


def _parse_lines(lines):
    statements = []
    i = 0
    while i < len(lines):
        lineno, line = lines[i]
        if not line:
            i += 1
            continue

        keyword = KEYWORD_RE.match(line)
        if keyword:
            kind = keyword.group(1)
            if kind == "if":
                stmt, i = _parse_if(lines, i)
            elif kind == "while":
                stmt, i = _parse_while(lines, i)
            elif kind == "for":
                stmt, i = _parse_for(lines, i)
            elif kind == "assert":
                stmt, i = _parse_assert(line, lineno), i + 1
            else:
                raise ProgramSyntaxError("'else' without a matching 'if'", line, lineno)
            logger.debug("line %d: %s", lineno, type(stmt).__name__)
            statements.append(stmt)
            continue

        if ":=" in line:
            statements.append(_parse_assignment(line, lineno))
            i += 1
            continue

        if line.startswith("}"):
            raise ProgramSyntaxError("unmatched '}'", line, lineno)
        raise ProgramSyntaxError("unrecognised statement", line, lineno)
    return statements


def _extract_block(lines, i, col):
    """Collect the lines of the block whose ``{`` ends just before ``lines[i][col]``.

    Returns ``(body, end, rest)``: the body as ``(lineno, text)`` pairs, the
    index of the line holding the matching ``}`` and whatever follows it
    on that line.
    """
    depth = 1
    body = []
    j, start = i, col
    while j < len(lines):
        lineno, text = lines[j]
        for k in range(start, len(text)):
            if text[k] == "{":
                depth += 1
            elif text[k] == "}":
                depth -= 1
                if depth == 0:
                    piece = text[start:k].strip()
                    if piece:
                        body.append((lineno, piece))
                    return body, j, text[k + 1:].strip()
        piece = text[start:].strip()
        if piece:
            body.append((lineno, piece))
        j += 1
        start = 0
    lineno, text = lines[i]
    raise ProgramSyntaxError("'{' has no matching '}'", text, lineno)


def _after_block(lines, end, rest):
    """Index to resume at once a block closed on ``lines[end]``."""
    if rest:
        lineno, _ = lines[end]
        raise ProgramSyntaxError("unexpected text after '}'", rest, lineno)
    return end + 1


def _parse_if(lines, i):
    lineno, line = lines[i]
    match = IF_RE.match(line)
    if not match:
        raise ProgramSyntaxError("invalid if statement, expected 'if (cond) {'", line, lineno)
    condition = parse_expression(match.group(1), line, lineno)
    then_lines, end, rest = _extract_block(lines, i, match.end())

    else_lines = []
    else_at = None
    if rest:
        # "} else {" on the closing line
        if not _starts_else(rest):
            _after_block(lines, end, rest)
        lines[end] = (lines[end][0], rest)
        else_at = end
    else:
        nxt = end + 1
        while nxt < len(lines) and not lines[nxt][1]:
            nxt += 1
        if nxt < len(lines) and _starts_else(lines[nxt][1]):
            else_at = nxt

    if else_at is None:
        resume = end + 1
    else:
        else_lineno, else_line = lines[else_at]
        else_match = ELSE_RE.match(else_line)
        if not else_match:
            raise ProgramSyntaxError("invalid else block, expected 'else {'", else_line, else_lineno)
        else_lines, else_end, else_rest = _extract_block(lines, else_at, else_match.end())
        resume = _after_block(lines, else_end, else_rest)

    stmt = If(
        condition,
        tuple(_parse_lines(then_lines)),
        tuple(_parse_lines(else_lines)),
    )
    return stmt, resume


def _starts_else(text):
    keyword = KEYWORD_RE.match(text)
    return keyword is not None and keyword.group(1) == "else"


def _parse_while(lines, i):
    lineno, line = lines[i]
    match = WHILE_RE.match(line)
    if not match:
        raise ProgramSyntaxError("invalid while statement, expected 'while (cond) {'", line, lineno)
    condition = parse_expression(match.group(1), line, lineno)
    body, end, rest = _extract_block(lines, i, match.end())
    return While(condition, tuple(_parse_lines(body))), _after_block(lines, end, rest)


def _parse_for(lines, i):
    lineno, line = lines[i]
    match = FOR_RE.match(line)
    if not match:
        raise ProgramSyntaxError(
            "invalid for statement, expected 'for (init; cond; update) {'", line, lineno)
    init_text, cond_text, update_text = (part.strip() for part in match.groups())
    if ":=" not in init_text or ":=" not in update_text:
        raise ProgramSyntaxError("for loop init and update must be assignments", line, lineno)
    init = _parse_assignment(init_text, lineno, line)
    update = _parse_assignment(update_text, lineno, line)
    condition = parse_expression(cond_text, line, lineno)
    body, end, rest = _extract_block(lines, i, match.end())
    stmt = For(init, condition, update, tuple(_parse_lines(body)))
    return stmt, _after_block(lines, end, rest)


def _parse_assert(line, lineno):
    match = ASSERT_RE.match(line)
    if not match:
        raise ProgramSyntaxError("invalid assert statement, expected 'assert(cond);'", line, lineno)
    return Assert(parse_expression(match.group(1), line, lineno))


def _parse_assignment(text, lineno, line=None):
    line = line if line is not None else text
    target, _, value = text.partition(":=")
    target = target.strip()
    value = value.strip()
    if value.endswith(";"):
        value = value[:-1].strip()
    if not IDENT_RE.match(target):
        raise ProgramSyntaxError(f"invalid assignment target {target!r}", line, lineno)
    return Assignment(target, parse_expression(value, line, lineno))


# ── Expressions ───────────────────────────────────────────────────────

def parse_expression(text, line=None, lineno=None):
    """Parse one expression with the flat, precedence-free grammar."""
    line = line if line is not None else text
    expr = _strip_parens(text.strip())
    if not expr:
        raise ProgramSyntaxError("empty expression", line, lineno)

    # array access is recognised before any operator split
    if "[" in expr and "]" in expr:
        match = ARRAY_RE.match(expr)
        if match and _balanced(match.group(2)):
            return ArrayAccess(match.group(1), parse_expression(match.group(2), line, lineno))

    split = _split_binary(expr)
    if split:
        op, left, right = split
        return BinaryOp(op, parse_expression(left, line, lineno), parse_expression(right, line, lineno))

    if INT_RE.match(expr):
        return Literal(int(expr))
    if expr[0] in UNARY_OPS:
        return UnaryOp(expr[0], parse_expression(expr[1:], line, lineno))
    if IDENT_RE.match(expr):
        return Variable(expr)
    raise ProgramSyntaxError(f"cannot parse expression {expr!r}", line, lineno)


def _split_binary(expr):
    for op in BINARY_OPS:
        depth = 0
        for k, ch in enumerate(expr):
            if ch in "([":
                depth += 1
            elif ch in ")]":
                depth -= 1
            elif depth == 0 and expr.startswith(op, k):
                left = expr[:k].strip()
                if left and left[-1] not in _OPERATOR_TAIL:
                    return op, left, expr[k + len(op):]
    return None


def _strip_parens(expr):
    while expr.startswith("(") and _closing_paren(expr) == len(expr) - 1:
        expr = expr[1:-1].strip()
    return expr


def _closing_paren(expr):
    depth = 0
    for k, ch in enumerate(expr):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return k
    return -1


def _balanced(text):
    depth = 0
    for ch in text:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0
