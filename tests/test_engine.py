import math

import numpy as np
import pytest

from scalargrad.engine import (
    Graph,
    Op,
    Value,
    add,
    calculate_grad,
    get_grad,
    get_value,
    mul,
    new_leaf,
    new_parameter,
    reverse_topological_order,
    sub,
    tanh,
    topological_order,
    use_graph,
    zero_grad,
)
from scalargrad.errors import GraphInvariantError, GraphMismatchError


def test_leaf_is_float32_with_zero_grad(graph):
    a = new_leaf(2.5)
    assert isinstance(a.data, np.float32)
    assert isinstance(a.grad, np.float32)
    assert a.grad == 0.0
    assert a.op is Op.NONE
    assert a.operands == ()
    assert not a.is_parameter


def test_parameter_leaf(graph):
    w = new_parameter(-1.0, name="w")
    assert w.is_parameter
    assert w.name == "w"
    assert w.graph is graph


def test_ids_are_monotonic_per_graph(graph):
    a = new_leaf(1.0)
    b = new_leaf(2.0)
    c = a + b
    assert (a.id, b.id, c.id) == (0, 1, 2)

    with use_graph() as other:
        x = Value(1.0)
        assert x.id == 0
        assert x.graph is other
    assert Value(1.0).id == 3


def test_builder_records_operation_and_operands(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    for node, op, expected in [
        (add(a, b), Op.ADD, 5.0),
        (sub(a, b), Op.SUB, -1.0),
        (mul(a, b), Op.MUL, 6.0),
    ]:
        assert node.op is op
        assert node.operands == (a, b)
        assert node.data == expected
        assert node.grad == 0.0

    t = tanh(a)
    assert t.op is Op.TANH
    assert t.operands == (a,)
    assert t.data == pytest.approx(math.tanh(2.0), rel=1e-6)


def test_operands_are_not_mutated(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    a * b - a + b
    assert (a.data, b.data, a.grad, b.grad) == (2.0, 3.0, 0.0, 0.0)


def test_repeated_construction_gives_distinct_nodes(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    c1 = a * b
    c2 = a * b
    assert c1 is not c2
    assert c1.id != c2.id
    assert c1.data == c2.data


def test_plain_numbers_become_constant_leaves(graph):
    a = new_leaf(3.0)
    b = 2 - a
    assert b.data == -1.0
    const, operand = b.operands
    assert operand is a
    assert const.op is Op.NONE and const.data == 2.0
    assert (2 * a).data == 6.0
    assert (1 + a).data == 4.0
    assert (-a).data == -3.0


def test_mixing_graphs_is_rejected():
    a = Graph().leaf(1.0)
    b = Graph().leaf(2.0)
    with pytest.raises(GraphMismatchError):
        a + b


def test_arity_is_checked_at_construction(graph):
    a = new_leaf(1.0)
    with pytest.raises(GraphInvariantError):
        Value(1.0, (a,), Op.ADD)
    with pytest.raises(GraphInvariantError):
        Value(1.0, (a, a), Op.NONE)
    with pytest.raises(GraphInvariantError):
        Value(1.0, (a,), Op.TANH, is_parameter=True)


def test_topological_order_puts_operands_first(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    c = a * b
    d = a + c
    e = tanh(d) * (d - b)

    order = topological_order(e)
    index = {v.id: i for i, v in enumerate(order)}
    assert len(order) == len(index)
    for v in order:
        for child in v.operands:
            assert index[child.id] < index[v.id]
    assert order[-1] is e
    assert {v.id for v in order} == {a.id, b.id, c.id, d.id, e.id, e.operands[0].id, e.operands[1].id}


def test_topological_order_is_deterministic(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    c = a * b
    d = a + c
    assert [v.id for v in topological_order(d)] == [a.id, b.id, c.id, d.id]
    assert [v.id for v in reverse_topological_order(d)] == [d.id, c.id, b.id, a.id]


def test_topological_order_handles_long_chains(graph):
    x = new_leaf(0.0)
    total = x
    for _ in range(5000):
        total = total + x
    assert len(topological_order(total)) == 5001
    calculate_grad(total)
    assert x.grad == 5001.0


def test_gradient_seed(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    root = tanh(a * b - b)
    calculate_grad(root)
    assert root.grad == 1.0

    leaf = new_leaf(7.0)
    calculate_grad(leaf)
    assert leaf.grad == 1.0


def test_additive_accumulation(graph):
    a = new_leaf(2.0)
    b = new_leaf(3.0)
    c = mul(a, b)
    d = add(a, c)
    calculate_grad(d)
    assert a.grad == 4.0
    assert b.grad == 2.0


def test_plus_rule(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    v = a + b
    root = v * 5.0
    calculate_grad(root)
    assert v.grad == 5.0
    assert a.grad == v.grad
    assert b.grad == v.grad


def test_mul_rule(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    v = a * b
    root = v * 5.0
    calculate_grad(root)
    assert a.grad == v.grad * b.data == 15.0
    assert b.grad == v.grad * a.data == 10.0


def test_sub_rule(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    v = a - b
    root = v * 5.0
    calculate_grad(root)
    assert a.grad == 5.0
    assert b.grad == -5.0


def test_tanh_rule_at_zero(graph):
    a = new_leaf(0.0)
    v = tanh(a)
    root = v * 2.0
    calculate_grad(root)
    assert v.data == 0.0
    assert a.grad == v.grad * 1.0 == 2.0


def test_tanh_rule_away_from_zero(graph):
    a = new_leaf(0.8)
    v = a.tanh()
    v.backward()
    assert a.grad == pytest.approx(1 - math.tanh(0.8) ** 2, rel=1e-5)


def test_same_operand_twice(graph):
    a = new_leaf(3.0)
    calculate_grad(a * a)
    assert a.grad == 6.0

    b = new_leaf(3.0)
    calculate_grad(b + b)
    assert b.grad == 2.0

    c = new_leaf(3.0)
    calculate_grad(c - c)
    assert c.grad == 0.0


def test_end_to_end_scenario(graph):
    a = new_leaf(-2.0)
    b = new_leaf(3.0)
    d = mul(a, b)
    e = add(a, b)
    f = mul(d, e)
    calculate_grad(f)

    assert (d.data, e.data, f.data) == (-6.0, 1.0, -6.0)
    assert d.grad == 1.0
    assert e.grad == -6.0
    assert a.grad == -3.0
    assert b.grad == -8.0
    assert get_value(f) == -6.0
    assert get_grad(b) == -8.0


def test_repeated_propagation_double_accumulates(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    c = a * b
    calculate_grad(c)
    calculate_grad(c)
    assert c.grad == 1.0
    assert a.grad == 6.0

    zero_grad(c)
    assert (a.grad, b.grad, c.grad) == (0.0, 0.0, 0.0)
    calculate_grad(c)
    assert a.grad == 3.0


def test_propagation_does_not_touch_values(graph):
    a, b = new_leaf(-2.0), new_leaf(3.0)
    f = tanh(a * b + a - b)
    before = [v.data for v in topological_order(f)]
    calculate_grad(f)
    assert [v.data for v in topological_order(f)] == before


def test_overflow_propagates_without_error(graph):
    big = new_leaf(3e38)
    y = big * 10.0
    assert np.isinf(y.data)
    z = y - y
    assert np.isnan(z.data)
    calculate_grad(z)
    assert z.grad == 1.0


def test_tanh_saturates(graph):
    assert tanh(new_leaf(100.0)).data == 1.0
    assert tanh(new_leaf(-100.0)).data == -1.0


def test_inconsistent_node_is_fatal_during_propagation(graph):
    a, b = new_leaf(2.0), new_leaf(3.0)
    c = a + b
    c._prev = (a,)  # corrupt the node behind the builder's back
    with pytest.raises(GraphInvariantError):
        calculate_grad(c)


def test_op_symbols():
    assert [op.symbol for op in Op] == ['', '+', '*', '-', 'tanh']
    assert [op.arity for op in Op] == [0, 2, 2, 2, 1]


def test_repr(graph):
    x = new_leaf(2.0, name="x")
    y = x * 3.0
    assert repr(x) == "Value('x' id=0, data=2.0, grad=0.0)"
    assert repr(y).endswith("from *)")
