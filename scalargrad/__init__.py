"""
scalargrad: reverse-mode automatic differentiation over scalar graphs.

This package builds a computation graph of float32 scalars as operators are
applied, propagates gradients back through it, and trains small tanh
multi-layer perceptrons by gradient descent.
"""

from scalargrad.engine import (
    Graph,
    Op,
    Value,
    add,
    calculate_grad,
    get_default_graph,
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
from scalargrad.errors import (
    GraphInvariantError,
    GraphMismatchError,
    ScalarGradError,
    ShapeMismatchError,
)
from scalargrad import nn
from scalargrad.train import TrainConfig, train
from scalargrad.utils import draw_dot

__version__ = "0.1.0"
__all__ = [
    "Graph",
    "Op",
    "Value",
    "add",
    "calculate_grad",
    "get_default_graph",
    "get_grad",
    "get_value",
    "mul",
    "new_leaf",
    "new_parameter",
    "reverse_topological_order",
    "sub",
    "tanh",
    "topological_order",
    "use_graph",
    "zero_grad",
    "GraphInvariantError",
    "GraphMismatchError",
    "ScalarGradError",
    "ShapeMismatchError",
    "nn",
    "TrainConfig",
    "train",
    "draw_dot",
]
