import pytest

from scalargrad.engine import use_graph


@pytest.fixture
def graph():
    """A fresh default graph, so node ids start at 0 in every test."""
    with use_graph() as g:
        yield g
