"""femsolids.assembly.element_routine
Element stiffness matrix and boundary load vector for 2D linear elasticity.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Union

import numpy as np

from femsolids.errors import InvalidParameter, UnknownFaceset, UnsupportedMaterial
from femsolids.fem.values import CellVectorValues, FaceVectorValues
from femsolids.materials import LinearElasticity

Traction = Union[np.ndarray, Callable[[np.ndarray], np.ndarray]]


class Formulation(Enum):
    """Weak form of the moment equilibrium ``sigma . nabla = 0``.

    PRIMAL: displacement-based form, boundary conditions
    ``u = u_p`` on Gamma_D and ``t = t_p`` on Gamma_N, with the displacement
    as the primary unknown.
    """
    PRIMAL = "primal"


Primal = Formulation.PRIMAL


def element_routine(formulation: Formulation, ke: np.ndarray, fe: np.ndarray,
                    cv: CellVectorValues, xe, material, thickness: float,
                    fv: Optional[FaceVectorValues] = None, mesh=None, cellid: Optional[int] = None,
                    traction: Optional[Traction] = None, faceset_name: Optional[str] = None):
    """
    Compute the element stiffness matrix ``ke`` and external load vector ``fe``.

    ``ke`` and ``fe`` are overwritten in place and returned. Nothing is
    written if any check fails.

    Parameters
    ----------
    formulation : Formulation
        Which weak form to use; dispatched through a closed table.
    ke, fe : ndarray
        Output storage of shape (n_basis, n_basis) and (n_basis,).
    cv : CellVectorValues
        Cell quadrature/shape-function data (re-initialised here with ``xe``).
    xe : array_like (n_nodes, 2)
        Element node coordinates in lattice order.
    material : LinearElasticity
    thickness : float
        Out-of-plane thickness, strictly positive.
    fv, mesh, cellid, traction, faceset_name
        Optional group, all or none: face values, the owning mesh, the global
        index of this cell, the prescribed traction (2-vector or callable of
        the physical point) and the face set to integrate over.
    """
    try:
        routine = _ELEMENT_ROUTINES[formulation]
    except (KeyError, TypeError):
        raise InvalidParameter(f"Unknown formulation {formulation!r}; "
                               f"expected one of {[f.name for f in Formulation]}.") from None
    return routine(ke, fe, cv, xe, material, thickness, fv, mesh, cellid, traction, faceset_name)


def _check_common(ke, fe, cv, material, thickness):
    if not isinstance(material, LinearElasticity):
        raise UnsupportedMaterial(
            f"Only LinearElasticity is supported by the element routine, got {type(material).__name__}.")
    if not np.isscalar(thickness) or not np.isfinite(thickness) or thickness <= 0.0:
        raise InvalidParameter(f"thickness must be strictly positive, got {thickness!r}")
    if cv.n_components != 2:
        raise InvalidParameter(f"Cell values must describe a 2-component field, got {cv.n_components}.")
    n = cv.n_basis
    if np.shape(ke) != (n, n):
        raise InvalidParameter(f"ke must have shape {(n, n)}, got {np.shape(ke)}")
    if np.shape(fe) != (n,):
        raise InvalidParameter(f"fe must have shape {(n,)}, got {np.shape(fe)}")


def _boundary_group(fv, mesh, cellid, traction, faceset_name) -> bool:
    group = {"fv": fv, "mesh": mesh, "cellid": cellid, "traction": traction, "faceset_name": faceset_name}
    given = [k for k, v in group.items() if v is not None]
    if not given:
        return False
    if len(given) != len(group):
        missing = [k for k in group if k not in given]
        raise InvalidParameter(f"Boundary load needs all of {list(group)}; missing {missing}.")
    if faceset_name not in mesh.facesets:
        raise UnknownFaceset(f"Face set '{faceset_name}' is not defined on the mesh; "
                             f"known sets: {sorted(mesh.facesets)}.")
    if fv.n_components != 2:
        raise InvalidParameter(f"Face values must describe a 2-component field, got {fv.n_components}.")
    return True


def _traction_at(traction: Traction, x: np.ndarray) -> np.ndarray:
    t = traction(x) if callable(traction) else traction
    t = np.asarray(t, dtype=float)
    if t.shape != (2,):
        raise InvalidParameter(f"Traction must be a 2-vector, got shape {t.shape}")
    return t


def _primal_element_routine(ke, fe, cv, xe, material, thickness,
                            fv, mesh, cellid, traction, faceset_name):
    _check_common(ke, fe, cv, material, thickness)
    with_load = _boundary_group(fv, mesh, cellid, traction, faceset_name)

    cv.reinit(xe)
    E = material.tensor
    eps = cv.symmetric_gradients                         # (n_qp, n_basis, 2, 2)
    sig = np.einsum("abcd,qjcd->qjab", E, eps)           # E : eps_j
    ke_local = thickness * np.einsum("qiab,qjab,q->ij", eps, sig, cv.dV)

    fe_local = np.zeros(cv.n_basis)
    if with_load:
        if fv.n_basis != cv.n_basis:
            raise InvalidParameter(f"Face values have {fv.n_basis} basis functions, cell values {cv.n_basis}.")
        for eid, face in sorted(mesh.facesets[faceset_name]):
            if eid != cellid:
                continue
            fv.reinit(xe, face)
            for q in range(len(fv.dGamma)):
                t = _traction_at(traction, fv.x[q])
                fe_local += thickness * fv.dGamma[q] * (fv.values[q] @ t)

    ke[...] = ke_local
    fe[...] = fe_local
    return ke, fe


_ELEMENT_ROUTINES = {
    Formulation.PRIMAL: _primal_element_routine,
}
