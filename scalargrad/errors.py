"""
Exceptions raised by scalargrad.

Numeric edge cases (NaN, inf) are never reported through these; they flow
through the graph as ordinary IEEE-754 values.
"""


class ScalarGradError(Exception):
    """Base class for all scalargrad errors."""


class ShapeMismatchError(ScalarGradError, ValueError):
    """An input sequence does not have the length a module expects."""


class GraphInvariantError(ScalarGradError, RuntimeError):
    """A node's operation tag and operands disagree. Always a programming error."""


class GraphMismatchError(ScalarGradError, ValueError):
    """Operands of a single operation were created in different graphs."""
