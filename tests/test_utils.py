import pytest

from scalargrad.engine import new_leaf
from scalargrad.utils import draw_dot, trace


def test_trace_collects_nodes_and_operand_edges(graph):
    x = new_leaf(2.0, name="x")
    y = new_leaf(3.0, name="y")
    z = x * y + x
    nodes, edges = trace(z)
    assert len(nodes) == 4
    assert len(edges) == 4
    assert (x, z) in edges


def test_draw_dot_labels(graph):
    x = new_leaf(2.0, name="x")
    w = new_leaf(-1.0, name="w")
    out = (x * w - x).tanh()
    out.backward()

    src = draw_dot(out).source
    assert "x #0" in src
    assert "data 2.0000" in src
    assert "grad 1.0000" in src
    for symbol in ("*", "-", "tanh"):
        assert f"label={symbol}" in src or f'label="{symbol}"' in src


def test_draw_dot_rejects_unknown_rankdir(graph):
    with pytest.raises(AssertionError):
        draw_dot(new_leaf(1.0), rankdir='XY')
