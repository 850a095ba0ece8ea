# conftest.py
import numpy as np
import pytest

from femsolids.core import Mesh
from femsolids.materials import LinearElasticity


@pytest.fixture
def material():
    """G = 1, K = 2, plane strain (lambda = 4/3)."""
    return LinearElasticity(G=1.0, K=2.0)


@pytest.fixture
def ref_triangle_coords():
    return np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])


@pytest.fixture
def unit_square_two_triangles():
    """Unit square cut along its (0,0)-(1,1) diagonal, with topology."""
    nodes = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    cells = np.array([[0, 1, 2], [0, 2, 3]])
    return Mesh(nodes, cells, build_topology=True)
