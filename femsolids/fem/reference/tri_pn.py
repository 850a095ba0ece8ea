from functools import lru_cache

import sympy as sp

from femsolids.errors import UnsupportedElement


def _lattice(n: int):
    """Pn nodes of the reference triangle (0,0)-(1,0)-(0,1), eta outer, xi inner."""
    return [(sp.Rational(i, n), sp.Rational(j, n)) for j in range(n + 1) for i in range(n + 1 - j)]


def _monomials(n: int, xi, eta):
    return [xi ** (d - k) * eta ** k for d in range(n + 1) for k in range(d + 1)]


@lru_cache(maxsize=None)
def tri_pn(n: int, max_deriv_order: int = 1):
    """
    Lagrange basis of order ``n`` on the reference triangle.

    The basis is obtained by inverting the Vandermonde matrix of the
    complete monomial basis at the lattice nodes, then lambdified.

    Returns
    -------
    shape_lambda : callable (xi, eta) -> (n_loc, 1) array
    deriv_lambdas : dict {(a_xi, a_eta): callable}
        Every partial derivative with a_xi + a_eta <= max_deriv_order.
    nodes : list of (xi, eta) floats, lattice order
    """
    if not isinstance(n, int) or n < 1:
        raise UnsupportedElement(f"Polynomial order must be a positive integer, got {n!r}.")
    xi, eta = sp.symbols("xi eta")
    nodes = _lattice(n)
    monos = _monomials(n, xi, eta)

    V = sp.Matrix([[m.subs({xi: a, eta: b}) for m in monos] for a, b in nodes])
    try:
        C = V.inv()      # column k holds the monomial coefficients of phi_k
    except ValueError as exc:
        raise RuntimeError(f"Singular Vandermonde matrix for P{n} triangle.") from exc

    phis = [sp.expand(sum(C[r, k] * monos[r] for r in range(len(monos)))) for k in range(len(nodes))]

    orders = [(a, b) for a in range(max_deriv_order + 1) for b in range(max_deriv_order + 1 - a)]
    derivs = {}
    for a, b in orders:
        derivs[(a, b)] = sp.lambdify(
            (xi, eta), sp.Matrix([sp.diff(phi, xi, a, eta, b) for phi in phis]), "numpy")

    shape_lambda = sp.lambdify((xi, eta), sp.Matrix(phis), "numpy")
    return shape_lambda, derivs, [(float(a), float(b)) for a, b in nodes]
