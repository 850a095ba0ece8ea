"""femsolids.assembly.boundary_conditions"""
import numpy as np
import scipy.sparse as sp

from femsolids.errors import InvalidParameter


def apply_dirichlet(K, f, dofs, values=0.0):
    """
    Impose ``u[dofs] = values`` by symmetric elimination.

    Returns new (K, f): constrained rows and columns are zeroed with a unit
    diagonal, and the known values are moved to the right-hand side.
    """
    K = sp.csr_matrix(K, dtype=float)
    f = np.array(f, dtype=float)
    n = K.shape[0]
    dofs = np.asarray(dofs, dtype=int).ravel()
    if dofs.size and (dofs.min() < 0 or dofs.max() >= n):
        raise InvalidParameter(f"Dirichlet DOFs out of range [0, {n}).")
    vals = np.broadcast_to(np.asarray(values, dtype=float), dofs.shape)

    u_known = np.zeros(n)
    u_known[dofs] = vals
    f -= K @ u_known

    keep = np.ones(n)
    keep[dofs] = 0.0
    D = sp.diags(keep)
    fixed = sp.diags(1.0 - keep)
    K = (D @ K @ D + fixed).tocsr()
    f[dofs] = vals
    return K, f
