# cfg_builder.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import graphviz

from errors import InternalError
from mini_ast import Assert, Assignment, For, If, While, format_expr

logger = logging.getLogger("minilang.cfg")


@dataclass
class CFGNode:
    id: int
    label: str


@dataclass
class CFGEdge:
    source: int
    target: int
    label: Optional[str] = None


@dataclass
class CFG:
    nodes: List[CFGNode] = field(default_factory=list)
    edges: List[CFGEdge] = field(default_factory=list)

    def to_dict(self):
        """``{"nodes": [{id, label}], "edges": [{from, to, label?}]}``"""
        edges = []
        for edge in self.edges:
            entry = {"from": edge.source, "to": edge.target}
            if edge.label is not None:
                entry["label"] = edge.label
            edges.append(entry)
        return {
            "nodes": [{"id": node.id, "label": node.label} for node in self.nodes],
            "edges": edges,
        }


def _assignment_label(stmt):
    return f"{stmt.target} := {format_expr(stmt.value, parens=False)}"


class CFGBuilder:
    """Depth-first walk of the AST; node ids are handed out in visiting order."""

    def __init__(self):
        self.nodes = []
        self.edges = []
        self.next_node_id = 0

    def _new_node(self, label):
        node = CFGNode(self.next_node_id, label)
        self.next_node_id += 1
        self.nodes.append(node)
        return node

    def _add_edge(self, source, target, label=None):
        self.edges.append(CFGEdge(source.id, target.id, label))

    def build(self, program):
        start = self._new_node("Program Start")
        self._process_stmt_list(program.statements, start)
        return CFG(self.nodes, self.edges)

    def _process_stmt_list(self, stmts, parent):
        """Attach every statement to ``parent``; returns the last node created at this level."""
        last = parent
        for stmt in stmts:
            last = self._process_stmt(stmt, parent)
        return last

    def _process_stmt(self, stmt, parent):
        if isinstance(stmt, Assignment):
            node = self._new_node(_assignment_label(stmt))
            self._add_edge(parent, node)
            return node

        if isinstance(stmt, Assert):
            node = self._new_node(f"Assert ({format_expr(stmt.condition, parens=False)})")
            self._add_edge(parent, node)
            return node

        if isinstance(stmt, If):
            node = self._new_node(f"If ({format_expr(stmt.condition, parens=False)})")
            self._add_edge(parent, node)
            then_node = self._new_node("Then")
            self._add_edge(node, then_node, "T")
            self._process_stmt_list(stmt.then_branch, then_node)
            else_node = self._new_node("Else")
            self._add_edge(node, else_node, "F")
            self._process_stmt_list(stmt.else_branch, else_node)
            return node

        if isinstance(stmt, While):
            node = self._new_node(f"While ({format_expr(stmt.condition, parens=False)})")
            return self._loop(node, parent, stmt.body)

        if isinstance(stmt, For):
            header = "; ".join((
                _assignment_label(stmt.init),
                format_expr(stmt.condition, parens=False),
                _assignment_label(stmt.update),
            ))
            node = self._new_node(f"For ({header})")
            return self._loop(node, parent, tuple(stmt.body) + (stmt.update,))

        raise InternalError(f"unknown statement node: {type(stmt).__name__}")

    def _loop(self, node, parent, body):
        self._add_edge(parent, node)
        body_node = self._new_node("Loop Body")
        self._add_edge(node, body_node, "T")
        last = self._process_stmt_list(body, body_node)
        # back edge: repetition
        self._add_edge(last, node)
        return node


def to_cfg(program):
    cfg = CFGBuilder().build(program)
    logger.info("CFG: %d nodes, %d edges", len(cfg.nodes), len(cfg.edges))
    return cfg


def cfg_to_dot(cfg):
    """Render ``cfg`` as a :class:`graphviz.Digraph` (``.source`` holds the DOT text)."""
    dot = graphviz.Digraph("CFG", format="png")
    dot.attr(rankdir="TB")
    dot.attr("node", shape="box", fontname="Helvetica", fontsize="10",
             style="filled", fillcolor="lightyellow")
    dot.attr("edge", fontname="Helvetica", fontsize="9")
    for node in cfg.nodes:
        dot.node(f"N{node.id}", label=node.label)
    for edge in cfg.edges:
        dot.edge(f"N{edge.source}", f"N{edge.target}", label=edge.label)
    return dot
