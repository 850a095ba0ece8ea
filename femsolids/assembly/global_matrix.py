"""femsolids.assembly.global_matrix"""
import logging

import numpy as np
import scipy.sparse as sp

from femsolids.assembly.element_routine import Formulation, element_routine
from femsolids.errors import InvalidParameter

logger = logging.getLogger(__name__)


def assemble_system(dh, cv, material, thickness, *, field="u", formulation=Formulation.PRIMAL,
                    fv=None, traction=None, faceset_name=None):
    """
    Global stiffness matrix (CSR) and load vector for one field of ``dh``.

    Calls the element routine cell by cell and scatters each (ke, fe) with the
    element's DOF map. Boundary loads are integrated when ``fv``,
    ``traction`` and ``faceset_name`` are all given.
    """
    mesh = dh.mesh
    if cv.poly_order != mesh.poly_order:
        raise InvalidParameter(f"Cell values are P{cv.poly_order} but the mesh is P{mesh.poly_order}.")
    with_load = any(v is not None for v in (fv, traction, faceset_name))
    n = dh.n_local_dofs(field)
    ke = np.zeros((n, n))
    fe = np.zeros(n)
    f = np.zeros(dh.total_dofs)
    rows, cols, data = [], [], []
    for eid in range(mesh.n_elements):
        xe = mesh.cell_coordinates(eid)
        if with_load:
            element_routine(formulation, ke, fe, cv, xe, material, thickness,
                            fv, mesh, eid, traction, faceset_name)
        else:
            element_routine(formulation, ke, fe, cv, xe, material, thickness)
        dofs = np.asarray(dh.element_dofs(field, eid), dtype=int)
        rows.append(np.repeat(dofs, n))
        cols.append(np.tile(dofs, n))
        data.append(ke.ravel().copy())
        np.add.at(f, dofs, fe)
    if rows:
        rows, cols, data = np.concatenate(rows), np.concatenate(cols), np.concatenate(data)
    K = sp.csr_matrix((data, (rows, cols)), shape=(dh.total_dofs, dh.total_dofs))
    logger.info(f"Assembled {mesh.n_elements} elements into a {dh.total_dofs}x{dh.total_dofs} system "
                f"({K.nnz} non-zeros).")
    return K, f
