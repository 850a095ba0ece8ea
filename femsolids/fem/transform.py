"""femsolids.fem.transform
Reference -> physical mapping for Lagrange triangles.

All functions take the element coordinate array ``xe`` (n_geo, 2) in
lattice order; the geometry order follows from the number of rows
(3 -> P1, 6 -> P2, ...).
"""
import numpy as np

from femsolids.errors import InvalidParameter
from femsolids.fem.reference import get_reference

# local edge k runs from corner k to corner k+1
_TRI_EDGE_VERTICES = np.array([[[0.0, 0.0], [1.0, 0.0]],
                               [[1.0, 0.0], [0.0, 1.0]],
                               [[0.0, 1.0], [0.0, 0.0]]])

_ORDER_FROM_NODES = {3: 1, 6: 2, 10: 3, 15: 4}


def geometry_order(xe) -> int:
    n = len(xe)
    if n not in _ORDER_FROM_NODES:
        raise InvalidParameter(f"Cannot infer triangle geometry order from {n} nodes.")
    return _ORDER_FROM_NODES[n]


def _shape_and_grad(ref, xi_eta):
    xi, eta = float(xi_eta[0]), float(xi_eta[1])
    N = ref.shape(xi, eta)             # (n_loc,)
    dN = ref.grad(xi, eta)             # (n_loc, 2)
    return N, dN


def x_mapping(xe, xi_eta):
    xe = np.asarray(xe, dtype=float)
    ref = get_reference("tri", geometry_order(xe))
    N, _ = _shape_and_grad(ref, xi_eta)
    return N @ xe                       # (2,)


def jacobian(xe, xi_eta):
    xe = np.asarray(xe, dtype=float)
    ref = get_reference("tri", geometry_order(xe))
    _, dN = _shape_and_grad(ref, xi_eta)
    return xe.T @ dN                    # J[i, a] = d x_i / d xi_a


def det_jacobian(xe, xi_eta):
    return float(np.linalg.det(jacobian(xe, xi_eta)))


def edge_point(local_edge_idx: int, t: float):
    """Reference coordinates of parameter t in [0, 1] along a local edge."""
    a, b = _TRI_EDGE_VERTICES[local_edge_idx]
    return a + t * (b - a)


def jacobian_1d(xe, xi_eta, local_edge_idx: int) -> float:
    """
    Length of d x / d t for the edge parameterisation t in [0, 1], i.e. the
    ratio of a physical line element to the parameter increment.
    """
    a, b = _TRI_EDGE_VERTICES[local_edge_idx]
    J = jacobian(xe, xi_eta)
    return float(np.linalg.norm(J @ (b - a)))
