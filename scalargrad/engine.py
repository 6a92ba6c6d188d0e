import itertools
import logging
from contextlib import contextmanager
from enum import Enum

import numpy as np

from scalargrad.errors import GraphInvariantError, GraphMismatchError

logger = logging.getLogger(__name__)


class Op(Enum):
    """
    Closed set of node kinds.

    The member value is the symbol a graph renderer puts next to the node
    (empty for leaves).
    """

    NONE = ''
    ADD = '+'
    MUL = '*'
    SUB = '-'
    TANH = 'tanh'

    @property
    def symbol(self):
        return self.value

    @property
    def arity(self):
        """Number of operands a node of this kind holds."""
        return _ARITY[self]


_ARITY = {Op.NONE: 0, Op.ADD: 2, Op.MUL: 2, Op.SUB: 2, Op.TANH: 1}


class Graph:
    """
    A graph session: owns the id allocator for every node built inside it.

    Ids are unique and increasing within one Graph. Nodes from different
    graphs cannot be combined, so a visited set keyed by id is always sound.

    Example:
        >>> g = Graph()
        >>> x = g.leaf(2.0)
        >>> w = g.parameter(-1.0)
        >>> y = x * w
        >>> (x.id, w.id, y.id)
        (0, 1, 2)
    """

    def __init__(self):
        self._ids = itertools.count()

    def next_id(self):
        return next(self._ids)

    def leaf(self, data, name=""):
        """Create an input or constant node."""
        return Value(data, name=name, graph=self)

    def parameter(self, data, name=""):
        """Create a trainable leaf node."""
        return Value(data, name=name, graph=self, is_parameter=True)

    def __repr__(self):
        return f"Graph(at 0x{id(self):x})"


_default_graph = Graph()


def get_default_graph():
    """Return the graph new nodes are placed in when none is given."""
    return _default_graph


@contextmanager
def use_graph(graph=None):
    """
    Temporarily make `graph` (or a fresh Graph) the default graph.

        with use_graph() as g:
            x = Value(1.0)   # x.id == 0, x.graph is g
    """
    global _default_graph
    prev = _default_graph
    _default_graph = graph if graph is not None else Graph()
    try:
        yield _default_graph
    finally:
        _default_graph = prev


class Value:
    """
    Wraps a single float32 scalar and records the operation that produced it.

    The Value class is the node type of the computation graph. It stores the
    value and its accumulated gradient, and builds a directed acyclic graph by
    recording its operands whenever an operator is applied.

    Example:
        >>> x = Value(2.0)
        >>> y = Value(3.0)
        >>> z = x * y + x
        >>> z.backward()  # Compute gradients
        >>> print(x.grad)  # dz/dx = y + 1 = 4.0
    """

    def __init__(self, data, _children=(), _op=Op.NONE, name="", graph=None, is_parameter=False):
        """
        Initialize a Value object.

        Every structural field is fixed here; a node's operation and operands
        never change afterwards.

        Args:
            data: The numerical value (cast to float32)
            _children: Operand Values, in order (internal use for autograd)
            _op: The Op that produced this Value (internal)
            name: Optional name for debugging and visualization
            graph: Graph that allocates the id (default: the operands' graph,
                   or the default graph for leaves)
            is_parameter: Mark a leaf as trainable
        """
        _children = tuple(_children)
        if len(_children) != _op.arity:
            raise GraphInvariantError(
                f"{_op.name} takes {_op.arity} operand(s), got {len(_children)}"
            )
        if is_parameter and _children:
            raise GraphInvariantError("only leaf nodes can be parameters")

        if graph is None:
            graph = _children[0]._graph if _children else get_default_graph()
        for child in _children:
            if child._graph is not graph:
                raise GraphMismatchError(
                    f"operand {child.id} belongs to {child._graph!r}, not {graph!r}"
                )

        self.data = data
        self.grad = 0.0
        self.name = name
        self.is_parameter = is_parameter

        # Internal variables for building the computational graph
        self._graph = graph
        self.id = graph.next_id()
        self._prev = _children  # Operands, first operand first
        self._op = _op

    @property
    def data(self):
        return self._data

    @data.setter
    def data(self, value):
        self._data = np.float32(value)

    @property
    def grad(self):
        return self._grad

    @grad.setter
    def grad(self, value):
        self._grad = np.float32(value)

    @property
    def op(self):
        return self._op

    @property
    def operands(self):
        return self._prev

    @property
    def graph(self):
        return self._graph

    def _wrap(self, other):
        # Plain numbers become constant leaves in this node's graph
        return other if isinstance(other, Value) else Value(other, graph=self._graph)

    def __add__(self, other):
        """
        Addition: d(a+b)/da = 1, d(a+b)/db = 1

        Example:
            >>> a = Value(2.0)
            >>> b = Value(3.0)
            >>> c = a + b  # c.data = 5.0
        """
        other = self._wrap(other)
        with np.errstate(all='ignore'):
            return Value(self.data + other.data, (self, other), Op.ADD)

    def __mul__(self, other):
        """
        Multiplication: d(a*b)/da = b, d(a*b)/db = a

        Example:
            >>> a = Value(3.0)
            >>> b = Value(4.0)
            >>> c = a * b  # c.data = 12.0
        """
        other = self._wrap(other)
        with np.errstate(all='ignore'):
            return Value(self.data * other.data, (self, other), Op.MUL)

    def __sub__(self, other):
        """
        Subtraction: d(a-b)/da = 1, d(a-b)/db = -1

        Example:
            >>> a = Value(3.0)
            >>> b = Value(4.0)
            >>> c = a - b  # c.data = -1.0
        """
        other = self._wrap(other)
        with np.errstate(all='ignore'):
            return Value(self.data - other.data, (self, other), Op.SUB)

    def tanh(self):
        """
        Hyperbolic tangent: tanh(x) = (e^(2x) - 1) / (e^(2x) + 1)

        Squashes input to range (-1, 1). Derivative: 1 - tanh(x)^2

        Example:
            >>> x = Value(0.0)
            >>> y = x.tanh()  # y.data = 0.0
        """
        with np.errstate(all='ignore'):
            return Value(np.tanh(self.data), (self,), Op.TANH)

    def backward(self):
        """Compute gradients of this Value for every node in its graph."""
        calculate_grad(self)

    # Reverse and derived operations (use the basic operations defined above)

    def __neg__(self):
        """Negation: -x = x * -1"""
        return self * -1

    def __radd__(self, other):
        """Right addition: other + self (when other is not a Value)"""
        return self._wrap(other) + self

    def __rsub__(self, other):
        """Right subtraction: other - self"""
        return self._wrap(other) - self

    def __rmul__(self, other):
        """Right multiplication: other * self (when other is not a Value)"""
        return self._wrap(other) * self

    def __repr__(self):
        """Return a readable string representation of the Value."""
        name_str = f"'{self.name}' " if self.name else ""
        op_str = f" from {self._op.symbol}" if self._op is not Op.NONE else ""
        return f"Value({name_str}id={self.id}, data={self.data}, grad={self.grad}{op_str})"


def new_leaf(value, name="", graph=None):
    """Create an input or constant node in `graph` (default graph if None)."""
    if graph is None:
        graph = get_default_graph()
    return graph.leaf(value, name=name)


def new_parameter(value, name="", graph=None):
    """Create a trainable leaf node in `graph` (default graph if None)."""
    if graph is None:
        graph = get_default_graph()
    return graph.parameter(value, name=name)


def add(a, b):
    return a + b


def sub(a, b):
    return a - b


def mul(a, b):
    return a * b


def tanh(a):
    return a.tanh()


def get_value(node):
    return node.data


def get_grad(node):
    return node.grad


def topological_order(root):
    """
    Return every node reachable from `root`, each after all of its operands.

    Depth-first post-order with a visited set keyed by node id. The first
    operand is always explored before the second, so the order is fixed for a
    given graph shape.

    Example:
        >>> a, b = Value(1.0), Value(2.0)
        >>> c = a * b
        >>> [v.id for v in topological_order(c)] == [a.id, b.id, c.id]
        True
    """
    topo = []
    visited = set()

    # Explicit stack: long sums exceed the interpreter's recursion limit
    stack = [(root, False)]
    while stack:
        v, expanded = stack.pop()
        if expanded:
            topo.append(v)
            continue
        if v.id in visited:
            continue
        visited.add(v.id)
        stack.append((v, True))
        for child in reversed(v._prev):
            if child.id not in visited:
                stack.append((child, False))

    return topo


def reverse_topological_order(root):
    """Root first, leaves last: the order gradients are propagated in."""
    return list(reversed(topological_order(root)))


def zero_grad(root):
    """Reset the gradient of every node reachable from `root` to zero."""
    for v in topological_order(root):
        v.grad = 0.0


def calculate_grad(root):
    """
    Perform backpropagation: accumulate d(root)/d(v) into v.grad for every v.

    Seeds root.grad with 1.0, then walks the graph in reverse topological
    order and applies each node's local derivative rule to its operands.
    Gradients are added with +=, so call zero_grad() (or use fresh nodes)
    before propagating from the same graph twice.

    Example:
        >>> x = Value(2.0)
        >>> y = x * 3 + 1
        >>> calculate_grad(y)
        >>> print(x.grad)  # dy/dx = 3.0
    """
    order = reverse_topological_order(root)
    logger.debug("propagating gradient from node %d through %d nodes", root.id, len(order))

    root.grad = 1.0
    with np.errstate(all='ignore'):
        for v in order:
            _apply_local_rule(v)


def _apply_local_rule(v):
    """Push v.grad into the grads of v's operands according to v's op."""
    op, operands = v._op, v._prev
    if len(operands) != op.arity:
        raise GraphInvariantError(
            f"node {v.id} is tagged {op.name} but has {len(operands)} operand(s)"
        )

    if op is Op.NONE:
        return
    if op is Op.ADD:
        a, b = operands
        a.grad += v.grad
        b.grad += v.grad
    elif op is Op.SUB:
        a, b = operands
        a.grad += v.grad
        b.grad += -v.grad
    elif op is Op.MUL:
        a, b = operands
        a.grad += v.grad * b.data
        b.grad += v.grad * a.data
    elif op is Op.TANH:
        (a,) = operands
        a.grad += v.grad * (1 - np.tanh(a.data) ** 2)
    else:
        raise GraphInvariantError(f"no derivative rule for {op!r} at node {v.id}")
