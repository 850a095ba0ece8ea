"""femsolids.integration.quadrature
Quadrature provider for 1-D segments and the reference triangle.

Reference triangle: (0,0)-(1,0)-(0,1); triangle weights sum to its area 0.5.
"""
import math
from functools import lru_cache

import numpy as np
from numpy.polynomial.legendre import leggauss

from femsolids.errors import InvalidParameter, UnsupportedElement

# Low-order symmetric rules (xi, eta), weights sum to 0.5
_SYMMETRIC_TRI_RULES = {
    1: (np.array([[1.0 / 3.0, 1.0 / 3.0]]),
        np.array([0.5])),
    2: (np.array([[1.0 / 6.0, 1.0 / 6.0],
                  [2.0 / 3.0, 1.0 / 6.0],
                  [1.0 / 6.0, 2.0 / 3.0]]),
        np.array([1.0 / 6.0, 1.0 / 6.0, 1.0 / 6.0])),
}


# -------------------------------------------------------------------------
# 1-D Gauss-Legendre
# -------------------------------------------------------------------------
def gauss_legendre(order: int):
    if order < 1:
        raise InvalidParameter(f"Gauss-Legendre order must be >= 1, got {order}")
    return leggauss(order)  # (points, weights) on [-1, 1]


def _gl01(order: int):
    """Gauss-Legendre nodes and weights mapped to [0,1]."""
    xi, w = gauss_legendre(int(order))
    lam = 0.5 * (xi + 1.0)
    wl = 0.5 * w
    return lam, wl


# -------------------------------------------------------------------------
# Triangle
# -------------------------------------------------------------------------
def tri_rule(degree: int):
    """Rule integrating polynomials of total degree ``degree`` exactly.

    Degrees 1 and 2 use the 1- and 3-point symmetric rules; higher degrees
    use the collapsed (Duffy) Gauss product rule, which with n points per
    direction is exact up to degree 2n - 2.
    """
    if degree < 1:
        raise InvalidParameter(f"Triangle rule degree must be >= 1, got {degree}")
    pts, wts = _tri_rule(int(degree))
    return pts.copy(), wts.copy()


@lru_cache(maxsize=None)
def _tri_rule(degree: int):
    if degree in _SYMMETRIC_TRI_RULES:
        pts, wts = _SYMMETRIC_TRI_RULES[degree]
        return pts.copy(), wts.copy()

    n = int(math.ceil((degree + 2) / 2.0))
    u, w_u = _gl01(n)
    pts = []
    wts = []
    for i, ui in enumerate(u):
        for j, vj in enumerate(u):
            r = ui
            s = vj * (1.0 - ui)
            weight = w_u[i] * w_u[j] * (1.0 - ui)
            pts.append([r, s])
            wts.append(weight)
    return np.array(pts), np.array(wts)


# -------------------------------------------------------------------------
# Edge / facet rules (reference domain)
# -------------------------------------------------------------------------
def edge(element_type: str, edge_index: int, order: int = 2):
    """
    Gauss points on a local triangle edge.

    Returns reference points (n, 2) and weights for the edge parameter
    t in [0, 1] (weights sum to 1). The physical line element is
    ``|dx/dt| * w`` (see :func:`femsolids.fem.transform.jacobian_1d`).
    """
    if element_type != 'tri':
        raise UnsupportedElement(f"Only triangular elements are supported, got '{element_type}'.")
    t, wts = _gl01(order)
    if edge_index == 0:   # (0,0)-(1,0)
        pts = np.column_stack([t, np.zeros_like(t)])
    elif edge_index == 1:  # (1,0)-(0,1)
        pts = np.column_stack([1 - t, t])
    elif edge_index == 2:  # (0,1)-(0,0)
        pts = np.column_stack([np.zeros_like(t), 1 - t])
    else:
        raise IndexError(edge_index)
    return pts, wts


# -------------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------------
def volume(element_type: str, degree: int = 2):
    if element_type == 'tri':
        return tri_rule(degree)
    raise UnsupportedElement(f"Only triangular elements are supported, got '{element_type}'.")


def line_quadrature(p0: np.ndarray, p1: np.ndarray, order: int = 2):
    """Gauss rule on the physical segment p0-p1."""
    p0 = np.asarray(p0, float)
    p1 = np.asarray(p1, float)
    xi, w_ref = gauss_legendre(order)
    mid = 0.5 * (p0 + p1)
    half = 0.5 * (p1 - p0)
    pts = mid[None, :] + np.outer(xi, half)
    J = np.linalg.norm(half)
    wts = w_ref * J
    return pts, wts
