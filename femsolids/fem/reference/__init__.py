# femsolids.fem.reference
"""
Order-agnostic reference-element factory for Lagrange triangles.
"""
from functools import lru_cache
from importlib import import_module
import numpy as np

from femsolids.errors import UnsupportedElement


def _frozen(a: np.ndarray) -> np.ndarray:
    """Mark a cached tabulation read-only."""
    a.setflags(write=False)
    return a


class Ref:
    def __init__(self, shape_lambda, deriv_lambdas, nodes):
        self.shape_lambda = shape_lambda
        self.deriv_lambdas = deriv_lambdas
        self.nodes = np.asarray(nodes, dtype=float)   # (n_loc, 2) in (xi, eta)

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @lru_cache(maxsize=None)
    def shape(self, xi, eta):
        return _frozen(np.broadcast_to(self.shape_lambda(xi, eta), (self.n_nodes, 1)).astype(float).ravel())

    @lru_cache(maxsize=None)
    def derivative(self, xi, eta, order_xi, order_eta):
        alpha = (order_xi, order_eta)
        if alpha not in self.deriv_lambdas:
            raise ValueError(f"Derivative order {alpha} not computed. "
                             f"Adjust max_deriv_order >= {order_xi + order_eta}.")
        vals = self.deriv_lambdas[alpha](xi, eta)
        return _frozen(np.broadcast_to(vals, (self.n_nodes, 1)).astype(float).ravel())

    @lru_cache(maxsize=None)
    def grad(self, xi, eta):
        """(n_loc, 2) array of d/dxi, d/deta."""
        dphi_dxi = self.derivative(xi, eta, 1, 0)
        dphi_deta = self.derivative(xi, eta, 0, 1)
        return _frozen(np.hstack((dphi_dxi[:, None], dphi_deta[:, None])))


# local corner positions inside the lattice ordering, per order
def corner_indices(poly_order: int):
    n = poly_order
    return (0, n, (n + 1) * (n + 2) // 2 - 1)


@lru_cache(maxsize=None)
def get_reference(element_type: str, poly_order: int = 1, max_deriv_order: int = 1):
    if element_type != "tri":
        raise UnsupportedElement(f"Only triangular elements are supported, got '{element_type}'.")
    shape_l, deriv_lambdas, nodes = import_module("femsolids.fem.reference.tri_pn").tri_pn(poly_order, max_deriv_order)
    return Ref(shape_l, deriv_lambdas, nodes)
