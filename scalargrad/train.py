"""
Gradient-descent training for scalargrad modules.

Each iteration builds a fresh graph of intermediate nodes on top of the
model's parameter leaves, so only the parameters need their gradients
zeroed between passes.
"""

import logging
from dataclasses import dataclass

from scalargrad.engine import Value, calculate_grad
from scalargrad.errors import ShapeMismatchError

logger = logging.getLogger(__name__)


@dataclass
class TrainConfig:
    """Hyperparameters for train()."""

    learning_rate: float = 0.05
    iterations: int = 100
    log_every: int = 10


def _as_list(y):
    if isinstance(y, (list, tuple)):
        return list(y)
    return [y]


def squared_error(predictions, targets, graph=None):
    """
    Sum of squared differences between predictions and targets.

    Args:
        predictions: One entry per sample, each a Value or a list of Values
                     (the output of a Layer or MLP)
        targets: One entry per sample, each a number/Value or a list of them
        graph: Graph for the constant target leaves (default: the graph of
               the first prediction)

    Returns:
        A single Value: sum over samples and outputs of (p - t) * (p - t)
    """
    if len(predictions) != len(targets):
        raise ShapeMismatchError(f"{len(predictions)} predictions for {len(targets)} targets")

    loss = None
    for ypred, ytrue in zip(predictions, targets):
        ypred, ytrue = _as_list(ypred), _as_list(ytrue)
        if len(ypred) != len(ytrue):
            raise ShapeMismatchError(f"prediction of size {len(ypred)} for target of size {len(ytrue)}")
        for p, t in zip(ypred, ytrue):
            if not isinstance(t, Value):
                t = Value(t, graph=graph if graph is not None else p.graph)
            diff = p - t
            term = diff * diff
            loss = term if loss is None else loss + term

    if loss is None:
        raise ShapeMismatchError("squared_error needs at least one prediction")
    return loss


def sgd_step(parameters, learning_rate):
    """Move every parameter against its gradient: p.data -= lr * p.grad"""
    for p in parameters:
        p.data -= learning_rate * p.grad


def train(model, xs, ys, config=None):
    """
    Fit `model` to (xs, ys) by full-batch gradient descent.

    Args:
        model: A Module (usually an MLP) mapping one input list to outputs
        xs: Input samples
        ys: Target for each sample
        config: TrainConfig (default: TrainConfig())

    Returns:
        List of the loss value (as float) before each update
    """
    config = config if config is not None else TrainConfig()
    params = model.parameters()
    logger.info(
        "training %d parameters on %d samples for %d iterations (lr=%g)",
        len(params), len(xs), config.iterations, config.learning_rate,
    )

    history = []
    for k in range(config.iterations):
        ypred = [model(x) for x in xs]
        loss = squared_error(ypred, ys)

        model.zero_grad()
        calculate_grad(loss)
        sgd_step(params, config.learning_rate)

        history.append(float(loss.data))
        if config.log_every and k % config.log_every == 0:
            logger.info("iteration %d loss %.6f", k, loss.data)

    if history:
        logger.info("finished after %d iterations, final loss %.6f", len(history), history[-1])
    return history
