"""femsolids.utils.meshgen
Structured triangle meshes for tests and quick studies.
"""
from typing import List, Optional, Tuple

import numba
import numpy as np

from femsolids.core.mesh import Mesh
from femsolids.core.topology import Node, edge_key
from femsolids.errors import InvalidParameter

__all__ = ["structured_triangles", "generate_grid", "quadratic_mesh"]


@numba.jit(nopython=True, cache=True)
def _translate_coords(coords: np.ndarray, offset: np.ndarray):
    """Shift every node by ``offset``."""
    coords[:, 0] += offset[0]
    coords[:, 1] += offset[1]
    return coords


def structured_triangles(Lx: float, Ly: float, *, nx_quads: int, ny_quads: int, poly_order: int,
                         offset: Optional[Tuple[float, float]] = None):
    """
    Raw data of a structured Pk triangle mesh on [0, Lx] x [0, Ly].

    Returns (nodes, elements, edges, corners): Node objects on the fine
    lattice, (n_cells, n_loc) connectivity in lattice order, sorted unique
    corner edges and (n_cells, 3) corner connectivity.
    """
    if nx_quads < 1 or ny_quads < 1:
        raise InvalidParameter(f"Need at least one base quad per direction, got ({nx_quads}, {ny_quads}).")
    if not (Lx > 0.0 and Ly > 0.0):
        raise InvalidParameter(f"Domain extents must be positive, got ({Lx}, {Ly}).")
    if not isinstance(poly_order, int) or poly_order < 1:
        raise InvalidParameter(f"Polynomial order must be a positive integer, got {poly_order!r}.")
    return _structured_pk(Lx, Ly, nx_quads, ny_quads, poly_order, offset)


def _lattice_tags(i: int, j: int, n_x: int, n_y: int, k: int) -> str:
    tags = []
    if i == 0:
        tags.append("boundary_left")
    if i == n_x - 1:
        tags.append("boundary_right")
    if j == 0:
        tags.append("boundary_bottom")
    if j == n_y - 1:
        tags.append("boundary_top")
    tags.append("corner" if i % k == 0 and j % k == 0 else "edge")
    return ",".join(tags)


def _structured_pk(Lx: float, Ly: float, nx: int, ny: int, k: int,
                   offset: Optional[Tuple[float, float]]):
    """
    Every base quad is split along its lower-left/upper-right diagonal into
    (v00, v10, v11) and (v00, v11, v01), both counter-clockwise.
    """
    n_x, n_y = k * nx + 1, k * ny + 1
    X, Y = np.meshgrid(np.linspace(0.0, Lx, n_x), np.linspace(0.0, Ly, n_y))
    coords = np.column_stack([X.ravel(), Y.ravel()])
    if offset is not None:
        coords = _translate_coords(coords, np.array(offset, dtype=np.float64))

    nodes: List[Node] = [
        Node(id=j * n_x + i, x=coords[j * n_x + i, 0], y=coords[j * n_x + i, 1],
             tag=_lattice_tags(i, j, n_x, n_y, k))
        for j in range(n_y) for i in range(n_x)
    ]

    # lattice offsets (xi steps, eta steps) in local node order
    lattice = [(a, b) for b in range(k + 1) for a in range(k + 1 - b)]
    elements = np.empty((2 * nx * ny, len(lattice)), dtype=int)
    corners = np.empty((2 * nx * ny, 3), dtype=int)
    edges = set()

    def gid(ix: int, iy: int) -> int:
        return iy * n_x + ix

    cell = 0
    for qy in range(ny):
        for qx in range(nx):
            v00, v10 = (k * qx, k * qy), (k * (qx + 1), k * qy)
            v01, v11 = (k * qx, k * (qy + 1)), (k * (qx + 1), k * (qy + 1))
            for p0, p1, p2 in ((v00, v10, v11), (v00, v11, v01)):
                step_xi = ((p1[0] - p0[0]) // k, (p1[1] - p0[1]) // k)
                step_eta = ((p2[0] - p0[0]) // k, (p2[1] - p0[1]) // k)
                elements[cell] = [gid(p0[0] + a * step_xi[0] + b * step_eta[0],
                                      p0[1] + a * step_xi[1] + b * step_eta[1]) for a, b in lattice]
                c = (gid(*p0), gid(*p1), gid(*p2))
                corners[cell] = c
                edges.update(edge_key(c[m], c[(m + 1) % 3]) for m in range(3))
                cell += 1

    return nodes, elements, np.array(sorted(edges), dtype=int), corners


def generate_grid(nx: int, ny: int, lower_left=(0.0, 0.0), upper_right=(1.0, 1.0), *,
                  poly_order: int = 1, build_topology: bool = False) -> Mesh:
    """Rectangle [lower_left, upper_right] split into 2 * nx * ny triangles."""
    x0, y0 = map(float, lower_left)
    x1, y1 = map(float, upper_right)
    nodes, elems, _, corners = structured_triangles(x1 - x0, y1 - y0, nx_quads=nx, ny_quads=ny,
                                                    poly_order=poly_order, offset=(x0, y0))
    return Mesh(nodes, elems, corners, element_type="tri", poly_order=poly_order,
                build_topology=build_topology)


def quadratic_mesh(mesh: Mesh, *, build_topology: bool = False) -> Mesh:
    """
    P2 mesh on the same cells as a P1 ``mesh``.

    Original nodes keep their indices; one node is added at the midpoint of
    every edge, numbered in the order the cells first visit the edges.
    Named sets are not copied.
    """
    if mesh.element_type != "tri" or mesh.poly_order != 1:
        raise InvalidParameter(f"quadratic_mesh() expects a P1 triangle mesh, got {mesh!r}.")
    coords = [tuple(xy) for xy in mesh.nodes_x_y_pos]
    nodes: List[Node] = [Node(id=n.id, x=n.x, y=n.y, tag=n.tag) for n in mesh.nodes_list]
    mid_ids = {}

    def mid(a: int, b: int) -> int:
        key = edge_key(a, b)
        if key not in mid_ids:
            nid = len(nodes)
            x = 0.5 * (coords[a][0] + coords[b][0])
            y = 0.5 * (coords[a][1] + coords[b][1])
            nodes.append(Node(id=nid, x=x, y=y, tag="edge"))
            mid_ids[key] = nid
        return mid_ids[key]

    elements = np.empty((mesh.n_elements, 6), dtype=int)
    for eid, (c0, c1, c2) in enumerate(mesh.corner_connectivity):
        c0, c1, c2 = int(c0), int(c1), int(c2)
        # lattice order: (0,0) (.5,0) (1,0) (0,.5) (.5,.5) (0,1)
        elements[eid] = [c0, mid(c0, c1), c1, mid(c0, c2), mid(c1, c2), c2]
    return Mesh(nodes, elements, mesh.corner_connectivity.copy(), element_type="tri", poly_order=2,
                build_topology=build_topology)
