from cfg_builder import cfg_to_dot, to_cfg
from program_parser import parse


def _labels(cfg):
    return [node.label for node in cfg.nodes]


def test_if_else_shape():
    cfg = to_cfg(parse(
        "x := 3;\n"
        "if (x < 5) {\n"
        "    y := x + 1;\n"
        "} else {\n"
        "    y := x - 1;\n"
        "}\n"
        "assert(y > 0);\n"
    ))
    assert _labels(cfg) == [
        "Program Start", "x := 3", "If (x < 5)", "Then", "y := x + 1",
        "Else", "y := x - 1", "Assert (y > 0)",
    ]
    assert cfg.to_dict()["edges"] == [
        {"from": 0, "to": 1},
        {"from": 0, "to": 2},
        {"from": 2, "to": 3, "label": "T"},
        {"from": 3, "to": 4},
        {"from": 2, "to": 5, "label": "F"},
        {"from": 5, "to": 6},
        {"from": 0, "to": 7},
    ]


def test_while_has_back_edge_from_last_body_node():
    cfg = to_cfg(parse("i := 0;\nwhile (i < 3) {\n  i := i + 1;\n}"))
    assert _labels(cfg) == ["Program Start", "i := 0", "While (i < 3)", "Loop Body", "i := i + 1"]
    edges = [(e.source, e.target, e.label) for e in cfg.edges]
    assert edges == [(0, 1, None), (0, 2, None), (2, 3, "T"), (3, 4, None), (4, 2, None)]


def test_empty_loop_body_loops_back_from_marker():
    cfg = to_cfg(parse("while (x > 0) {\n}"))
    edges = [(e.source, e.target, e.label) for e in cfg.edges]
    assert edges == [(0, 1, None), (1, 2, "T"), (2, 1, None)]


def test_for_loop_body_ends_with_update():
    cfg = to_cfg(parse("for (i := 0; i < 2; i := i + 1) {\n  s := s + i;\n}"))
    assert _labels(cfg) == [
        "Program Start", "For (i := 0; i < 2; i := i + 1)", "Loop Body",
        "s := s + i", "i := i + 1",
    ]
    assert (cfg.edges[-1].source, cfg.edges[-1].target) == (4, 1)


def test_node_ids_follow_traversal_order():
    cfg = to_cfg(parse(
        "if (a) {\n  while (b) {\n    c := 1;\n  }\n} else {\n  d := 2;\n}\nassert(d == 2);"
    ))
    assert [node.id for node in cfg.nodes] == list(range(len(cfg.nodes)))
    assert all(edge.source in range(len(cfg.nodes)) for edge in cfg.edges)


def test_empty_program_has_only_start():
    cfg = to_cfg(parse(""))
    assert cfg.to_dict() == {"nodes": [{"id": 0, "label": "Program Start"}], "edges": []}


def test_dot_rendering_contains_every_node_and_edge():
    cfg = to_cfg(parse("i := 0;\nwhile (i < 3) {\n  i := i + 1;\n}"))
    source = cfg_to_dot(cfg).source
    assert "Program Start" in source
    assert "Loop Body" in source
    for edge in cfg.edges:
        assert f"N{edge.source} -> N{edge.target}" in source
