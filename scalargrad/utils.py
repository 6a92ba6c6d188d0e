"""
Visualization utilities for scalargrad computation graphs.

This module renders the graph below a root Value with graphviz, showing each
node's id, value and gradient, and the operation that produced it.
"""

from graphviz import Digraph

from scalargrad.engine import Op, topological_order


def trace(root):
    """
    Collect the nodes and edges of the computational graph below `root`.

    Args:
        root: A Value representing the output of a computation

    Returns:
        tuple: (nodes, edges) where:
            - nodes: list of all Values, each after its operands
            - edges: list of (operand, result) tuples, one per operand slot

    Example:
        >>> x = Value(2.0)
        >>> y = Value(3.0)
        >>> z = x * y + x
        >>> nodes, edges = trace(z)
        >>> len(nodes)  # x, y, x*y and z
        4
    """
    nodes = topological_order(root)
    edges = [(child, v) for v in nodes for child in v.operands]
    return nodes, edges


def _label(v):
    name = f"{v.name} #{v.id}" if v.name else f"#{v.id}"
    return f"{{ {name} | data {v.data:.4f} | grad {v.grad:.4f} }}"


def draw_dot(root, format='svg', rankdir='LR'):
    """
    Visualize the computational graph of a Value as a directed graph.

    Creates a Graphviz diagram showing:
    - Value nodes with their id, data and gradient
    - Operation nodes (+, *, -, tanh)
    - Edges showing data flow through the computation

    Args:
        root: A Value (typically the loss) to visualize from
        format: Output format ('svg', 'png', 'pdf', etc.)
        rankdir: Graph direction - 'LR' (left-right) or 'TB' (top-bottom)

    Returns:
        Digraph: A graphviz Digraph object that can be rendered or displayed

    Example:
        >>> x = Value(2.0, name='x')
        >>> y = Value(-3.0, name='y')
        >>> z = x * y
        >>> z.backward()
        >>> draw_dot(z).render('computation_graph')  # Saves as SVG

    Note:
        Rendering requires the graphviz system package (apt install graphviz);
        building the Digraph and reading its .source does not.
    """
    assert rankdir in ['LR', 'TB'], "rankdir must be 'LR' (left-right) or 'TB' (top-bottom)"

    nodes, edges = trace(root)
    dot = Digraph(format=format, graph_attr={'rankdir': rankdir})

    for n in nodes:
        uid = str(n.id)
        dot.node(name=uid, label=_label(n), shape='record')

        # If this node was created by an operation, add an operation node
        if n.op is not Op.NONE:
            dot.node(name=uid + n.op.symbol, label=n.op.symbol)
            dot.edge(uid + n.op.symbol, uid)

    # Connect each operand to the operation node of its result
    for n1, n2 in edges:
        dot.edge(str(n1.id), str(n2.id) + n2.op.symbol)

    return dot
