"""femsolids.utils.transfer
Nodal interpolation of a P1 displacement solution onto a P2 DOF layout.
"""
from __future__ import annotations

import logging

import numpy as np
from scipy.spatial import cKDTree

from femsolids.config import DEFAULT_TRANSFER, TransferConfig
from femsolids.core.dofhandler import DofHandler
from femsolids.core.topology import edge_key
from femsolids.errors import IncompatibleMeshes, InvalidParameter, UnsupportedElement

logger = logging.getLogger(__name__)

__all__ = ["linear_to_quadratic"]


def _check_handlers(dh_lin: DofHandler, dh_quad: DofHandler, a_lin, field: str) -> np.ndarray:
    for name, dh, order in (("dh_lin", dh_lin, 1), ("dh_quad", dh_quad, 2)):
        if dh.mesh.element_type != "tri" or dh.mesh.poly_order != order:
            raise UnsupportedElement(f"{name} must live on P{order} triangles, got "
                                     f"'{dh.mesh.element_type}' of order {dh.mesh.poly_order}.")
        if field not in dh.field_names:
            raise InvalidParameter(f"Field '{field}' is not defined on {name}.")
        if dh.n_components(field) != 2:
            raise InvalidParameter(f"Transfer needs a 2-component field; '{field}' on {name} "
                                   f"has {dh.n_components(field)}.")
    a_lin = np.asarray(a_lin, dtype=float)
    if a_lin.shape != (dh_lin.total_dofs,):
        raise InvalidParameter(f"a_lin must have shape ({dh_lin.total_dofs},), got {a_lin.shape}")
    return a_lin


def _match(tree: cKDTree, points: np.ndarray, atol: float) -> np.ndarray:
    """Index of the tree point within ``atol`` of each query point, -1 if none."""
    if tree is None or len(points) == 0:
        return np.full(len(points), -1, dtype=int)
    dist, idx = tree.query(points, k=1, distance_upper_bound=atol)
    return np.where(np.isfinite(dist), idx, -1)


def linear_to_quadratic(dh_lin: DofHandler, dh_quad: DofHandler, a_lin, field: str = "u", *,
                        config: TransferConfig = DEFAULT_TRANSFER) -> np.ndarray:
    """
    Interpolate a linear vector solution onto a quadratic DOF handler.

    Every node of the quadratic mesh must coincide (within ``config.atol``)
    with either a vertex of the linear mesh, whose values are copied, or the
    midpoint of a linear edge, which receives the mean of the two endpoint
    values. Anything else raises :class:`IncompatibleMeshes`.

    Returns
    -------
    ndarray (dh_quad.total_dofs,)
        Entries of ``field`` filled in ``dh_quad`` order; DOFs of other
        fields in ``dh_quad`` are left at zero.
    """
    a_lin = _check_handlers(dh_lin, dh_quad, a_lin, field)
    atol = config.atol

    lin_xy = dh_lin.mesh.nodes_x_y_pos
    lin_nodes = np.array(sorted(dh_lin.dof_map[field]), dtype=int)
    lin_values = np.array([a_lin[list(dh_lin.node_dofs(field, n))] for n in lin_nodes]).reshape(-1, 2)

    edges = sorted({edge_key(c[k], c[(k + 1) % 3])
                    for c in dh_lin.mesh.corner_connectivity for k in range(3)})
    edges = np.array(edges, dtype=int).reshape(-1, 2)
    midpoints = 0.5 * (lin_xy[edges[:, 0]] + lin_xy[edges[:, 1]])

    vertex_tree = cKDTree(lin_xy[lin_nodes]) if len(lin_nodes) else None
    midpoint_tree = cKDTree(midpoints) if len(edges) else None
    slot = {int(n): k for k, n in enumerate(lin_nodes)}

    quad_nodes = np.array(sorted(dh_quad.dof_map[field]), dtype=int)
    quad_xy = dh_quad.mesh.nodes_x_y_pos[quad_nodes]
    at_vertex = _match(vertex_tree, quad_xy, atol)
    at_midpoint = _match(midpoint_tree, quad_xy, atol)

    a_quad = np.zeros(dh_quad.total_dofs)
    n_vertex = n_mid = 0
    for nid, xy, iv, im in zip(quad_nodes, quad_xy, at_vertex, at_midpoint):
        if iv >= 0:
            value = lin_values[iv]
            n_vertex += 1
        elif im >= 0:
            a, b = edges[im]
            value = 0.5 * (lin_values[slot[a]] + lin_values[slot[b]])
            n_mid += 1
        else:
            raise IncompatibleMeshes(f"Quadratic node {nid} at ({xy[0]:.6g}, {xy[1]:.6g}) matches no "
                                     f"vertex or edge midpoint of the linear mesh (atol={atol}).")
        a_quad[list(dh_quad.node_dofs(field, nid))] = value

    logger.info(f"Transferred field '{field}' P1 -> P2: {n_vertex} vertex nodes, {n_mid} midpoint nodes, "
                f"{dh_lin.total_dofs} -> {dh_quad.total_dofs} dofs.")
    return a_quad
