"""
Neural network building blocks for scalargrad.

This module provides Neuron, Layer and MLP, each a callable that builds a
computation graph out of its parameter Values and its inputs.
"""

import numpy as np

from scalargrad.engine import Value, get_default_graph
from scalargrad.errors import ShapeMismatchError


class Module:
    """
    Base class for all neural network modules.

    Provides common functionality for managing parameters and gradients.
    """

    def zero_grad(self):
        """
        Reset all gradients to zero.

        Call this before each backward pass to avoid accumulating gradients
        from multiple backward passes.
        """
        for p in self.parameters():
            p.grad = 0.0

    def parameters(self):
        """
        Return a list of all trainable parameters (weights and biases).

        Override this in subclasses to return actual parameters.
        """
        return []


class Neuron(Module):
    """
    A single tanh neuron: output = tanh(x_1*w_1 + ... + x_n*w_n + b)

    Args:
        nin: Number of inputs
        weights: Optional pre-initialized weights (length nin)
        bias: Optional pre-initialized bias
        rng: Source of random initial weights; anything with a
             uniform(low, high) method (default: numpy.random)
        graph: Graph the parameters live in (default: the current default graph)

    Example:
        >>> n = Neuron(2, weights=[0.5, -0.5], bias=0.0)
        >>> y = n([1.0, 1.0])  # y.data = tanh(0.0) = 0.0
    """

    def __init__(self, nin, weights=None, bias=None, rng=None, graph=None):
        self.graph = graph if graph is not None else get_default_graph()
        rng = np.random if rng is None else rng

        if weights is None:
            weights = [rng.uniform(-1, 1) for _ in range(nin)]
        elif len(weights) != nin:
            raise ShapeMismatchError(f"Neuron({nin}) got {len(weights)} initial weights")
        if bias is None:
            bias = rng.uniform(-1, 1)

        self.w = [self.graph.parameter(wi) for wi in weights]
        self.b = self.graph.parameter(bias)

    def __call__(self, x):
        """
        Forward pass: compute the neuron's output for inputs x.

        Args:
            x: Sequence of exactly nin Values or numbers

        Returns:
            Value holding tanh of the weighted sum plus bias

        Raises:
            ShapeMismatchError: if len(x) != nin
        """
        if len(x) != len(self.w):
            raise ShapeMismatchError(f"Neuron({len(self.w)}) applied to {len(x)} inputs")
        x = [xi if isinstance(xi, Value) else self.graph.leaf(xi) for xi in x]

        act = sum((xi * wi for xi, wi in zip(x, self.w)), self.b)
        return act.tanh()

    def parameters(self):
        """Weights in input order, then the bias."""
        return self.w + [self.b]

    def __repr__(self):
        return f"TanhNeuron({len(self.w)})"


class Layer(Module):
    """
    A fully-connected layer of tanh neurons sharing the same inputs.

    Args:
        nin: Number of inputs to each neuron
        nout: Number of neurons (outputs)
        weights: Optional pre-initialized weights, one row of nin per neuron
        biases: Optional pre-initialized biases (length nout)
        rng: Source of random initial weights
        graph: Graph the parameters live in

    Example:
        >>> layer = Layer(3, 2)
        >>> ys = layer([1.0, 2.0, 3.0])  # list of 2 Values
    """

    def __init__(self, nin, nout, weights=None, biases=None, rng=None, graph=None):
        if weights is not None and len(weights) != nout:
            raise ShapeMismatchError(f"Layer({nin}, {nout}) got {len(weights)} weight rows")
        if biases is not None and len(biases) != nout:
            raise ShapeMismatchError(f"Layer({nin}, {nout}) got {len(biases)} biases")

        self.neurons = [
            Neuron(
                nin,
                weights=weights[i] if weights is not None else None,
                bias=biases[i] if biases is not None else None,
                rng=rng,
                graph=graph,
            )
            for i in range(nout)
        ]

    def __call__(self, x):
        """Apply every neuron to the same inputs; returns a list of nout Values."""
        return [n(x) for n in self.neurons]

    def parameters(self):
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        nin = len(self.neurons[0].w) if self.neurons else 0
        return f"Layer({nin} → {len(self.neurons)}, tanh)"


class MLP(Module):
    """
    Multi-Layer Perceptron: a sequence of tanh layers.

    Args:
        nin: Number of input features
        nouts: List of output sizes for each layer
               Example: [4, 4, 1] creates 3 layers: input→4→4→1
        weights: Optional list of pre-initialized weights for each layer
        biases: Optional list of pre-initialized biases for each layer
        rng: Source of random initial weights (e.g. numpy.random.default_rng(0))
        graph: Graph the parameters live in

    Example:
        >>> mlp = MLP(3, [4, 4, 1])
        >>> ypred = mlp([2.0, 3.0, -1.0])  # list with one Value
        >>> loss = (ypred[0] - 1.0) * (ypred[0] - 1.0)
        >>> mlp.zero_grad()  # Reset gradients
        >>> loss.backward()  # Compute gradients
        >>> # Update parameters (SGD)
        >>> for p in mlp.parameters():
        ...     p.data -= learning_rate * p.grad
    """

    def __init__(self, nin, nouts, weights=None, biases=None, rng=None, graph=None):
        self.graph = graph if graph is not None else get_default_graph()
        if weights is not None and len(weights) != len(nouts):
            raise ShapeMismatchError(f"MLP with {len(nouts)} layers got {len(weights)} weight sets")
        if biases is not None and len(biases) != len(nouts):
            raise ShapeMismatchError(f"MLP with {len(nouts)} layers got {len(biases)} bias sets")

        # Build layer sizes: [input_size, hidden1, hidden2, ..., output_size]
        layer_sizes = [nin] + list(nouts)
        self.layers = [
            Layer(
                layer_sizes[i],
                layer_sizes[i + 1],
                weights=weights[i] if weights is not None else None,
                biases=biases[i] if biases is not None else None,
                rng=rng,
                graph=self.graph,
            )
            for i in range(len(nouts))
        ]

    def __call__(self, x):
        """
        Forward pass: pass input through all layers sequentially.

        Returns:
            List of Values produced by the last layer
        """
        for layer in self.layers:
            x = layer(x)
        return x

    def parameters(self):
        """Return all trainable parameters from all layers."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self):
        layer_str = ' → '.join(str(layer) for layer in self.layers)
        return f"MLP[\n  {layer_str}\n]"
