"""femsolids.fem.values
Per-quadrature-point shape-function data for vector-valued Lagrange fields.

A field with ``n_components`` components on a triangle with ``n_loc`` nodes
has ``n_loc * n_components`` local DOFs ordered node by node:
local DOF ``i`` is node ``i // n_components``, component ``i % n_components``.
"""
from __future__ import annotations

import numpy as np

from femsolids.config import DEFAULT_QUADRATURE, QuadratureConfig
from femsolids.errors import DegenerateElement, InvalidParameter
from femsolids.fem import transform
from femsolids.fem.reference import get_reference
from femsolids.integration.quadrature import edge, volume


def _expand_vector(N: np.ndarray, dN: np.ndarray, n_components: int):
    """Scalar basis -> vector basis.

    N  : (n_qp, n_loc)        -> values (n_qp, n_basis, n_comp)
    dN : (n_qp, n_loc, 2)     -> grads  (n_qp, n_basis, n_comp, 2), grads[q,i,c,a] = d u_c / d x_a
    """
    n_qp, n_loc = N.shape
    n_basis = n_loc * n_components
    values = np.zeros((n_qp, n_basis, n_components))
    grads = np.zeros((n_qp, n_basis, n_components, 2))
    for a in range(n_loc):
        for c in range(n_components):
            i = a * n_components + c
            values[:, i, c] = N[:, a]
            grads[:, i, c, :] = dN[:, a, :]
    return values, grads


class _VectorValuesBase:
    def __init__(self, poly_order: int = 1, n_components: int = 2):
        if n_components < 1:
            raise InvalidParameter(f"n_components must be >= 1, got {n_components}")
        self.poly_order = int(poly_order)
        self.n_components = int(n_components)
        self.ref = get_reference("tri", self.poly_order)
        self.n_basis = self.ref.n_nodes * self.n_components
        self.x = None   # physical quadrature points, (n_qp, 2)

    @property
    def n_qp(self) -> int:
        return len(self.weights)

    def _tabulate(self, pts):
        N = np.array([self.ref.shape(float(xi), float(eta)) for xi, eta in pts])
        dN = np.array([self.ref.grad(float(xi), float(eta)) for xi, eta in pts])
        return N, dN

    @staticmethod
    def _check_coords(xe) -> np.ndarray:
        xe = np.asarray(xe, dtype=float)
        if xe.ndim != 2 or xe.shape[1] != 2:
            raise InvalidParameter(f"Element coordinates must have shape (n_nodes, 2), got {xe.shape}")
        transform.geometry_order(xe)
        return xe


class CellVectorValues(_VectorValuesBase):
    """Shape values, symmetric gradients and ``detJ * w`` on a cell interior."""

    def __init__(self, poly_order: int = 1, config: QuadratureConfig = DEFAULT_QUADRATURE,
                 *, n_components: int = 2):
        super().__init__(poly_order, n_components)
        self.config = config
        self.points, self.weights = volume("tri", config.cell_degree)
        self._N, self._dN_ref = self._tabulate(self.points)
        self.values = None
        self.gradients = None
        self.symmetric_gradients = None
        self.dV = None
        self.detJ = None

    def reinit(self, xe) -> "CellVectorValues":
        xe = self._check_coords(xe)
        n_qp = self.n_qp
        dN_phys = np.empty_like(self._dN_ref)
        detJ = np.empty(n_qp)
        x = np.empty((n_qp, 2))
        for q, xi_eta in enumerate(self.points):
            J = transform.jacobian(xe, xi_eta)
            detJ[q] = np.linalg.det(J)
            if not detJ[q] > 0.0:
                raise DegenerateElement(
                    f"Non-positive Jacobian determinant {detJ[q]:.3e} at quadrature point {q}; "
                    f"element is inverted or collapsed.")
            dN_phys[q] = self._dN_ref[q] @ np.linalg.inv(J)
            x[q] = transform.x_mapping(xe, xi_eta)

        values, grads = _expand_vector(self._N, dN_phys, self.n_components)
        self.values = values
        self.gradients = grads
        if self.n_components == 2:
            self.symmetric_gradients = 0.5 * (grads + np.swapaxes(grads, -1, -2))
        else:
            self.symmetric_gradients = None
        self.detJ = detJ
        self.dV = detJ * self.weights
        self.x = x
        return self


class FaceVectorValues(_VectorValuesBase):
    """Shape values and line measure ``|dx/dt| * w`` on one local face."""

    def __init__(self, poly_order: int = 1, config: QuadratureConfig = DEFAULT_QUADRATURE,
                 *, n_components: int = 2):
        super().__init__(poly_order, n_components)
        self.config = config
        self._rules = []
        for face in range(3):
            pts, wts = edge("tri", face, config.face_points)
            N, _ = self._tabulate(pts)
            self._rules.append((pts, wts, N))
        self.face = None
        self.points, self.weights = self._rules[0][:2]
        self.values = None
        self.dGamma = None
        self.normals = None

    def reinit(self, xe, face: int) -> "FaceVectorValues":
        xe = self._check_coords(xe)
        if face not in (0, 1, 2):
            raise InvalidParameter(f"Triangle face index must be 0, 1 or 2, got {face}")
        pts, wts, N = self._rules[face]
        n_qp = len(wts)
        dGamma = np.empty(n_qp)
        x = np.empty((n_qp, 2))
        normals = np.empty((n_qp, 2))
        for q, xi_eta in enumerate(pts):
            J = transform.jacobian(xe, xi_eta)
            tangent = J @ (transform.edge_point(face, 1.0) - transform.edge_point(face, 0.0))
            length = np.linalg.norm(tangent)
            if not length > 0.0:
                raise DegenerateElement(f"Face {face} has zero length at quadrature point {q}.")
            dGamma[q] = length * wts[q]
            # counter-clockwise cells: outward normal is the tangent turned clockwise
            normals[q] = np.array([tangent[1], -tangent[0]]) / length
            x[q] = transform.x_mapping(xe, xi_eta)

        values, _ = _expand_vector(N, np.zeros(N.shape + (2,)), self.n_components)
        self.face = face
        self.points, self.weights = pts, wts
        self.values = values
        self.dGamma = dGamma
        self.normals = normals
        self.x = x
        return self
