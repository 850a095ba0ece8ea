# adaptive_mesh.py
"""
Conforming refinement of linear triangle meshes by longest-edge bisection
(Rivara's algorithm).

1.  Seed a work queue with the marked cells.
2.  Pop a cell and bisect its longest edge, reusing the midpoint node when
    the edge has already been bisected from the other side.
3.  Split the cell into the two triangles formed by the midpoint and the
    vertex opposite the bisected edge.
4.  Queue the neighbour across the bisected edge (it now sees a midpoint on
    one of its edges) and every child that still carries an edge with a
    midpoint. A queued cell is never queued twice.
5.  Stop when the queue is empty: no active cell keeps an edge with a
    midpoint on it, i.e. there are no hanging nodes.

Ties between equally long edges (within ``RefinementConfig.length_rtol``)
go to the edge with the lexicographically smallest sorted pair of global
node indices.

Storage is arena-style: nodes and cells are appended to fresh lists for the
pass and cells are retired by flag. The input mesh is never touched; the
result is a new Mesh with compact numbering and a rebuilt topology.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, List, Set, Tuple

import numba
import numpy as np

from femsolids.config import DEFAULT_REFINEMENT, RefinementConfig
from femsolids.core.mesh import Mesh
from femsolids.core.topology import Node, edge_key
from femsolids.errors import InvalidMarking, MissingTopology, RefinementLimitExceeded, UnsupportedElement

logger = logging.getLogger(__name__)


@numba.njit(cache=True)
def _edge_lengths(p: np.ndarray) -> np.ndarray:
    """Lengths of the local edges (0,1), (1,2), (2,0) of a triangle."""
    out = np.empty(3)
    for k in range(3):
        j = (k + 1) % 3
        dx = p[j, 0] - p[k, 0]
        dy = p[j, 1] - p[k, 1]
        out[k] = np.sqrt(dx * dx + dy * dy)
    return out


class _CellArena:
    """Working storage of one refinement pass."""

    def __init__(self, mesh: Mesh, config: RefinementConfig):
        self.config = config
        self.coords: List[Tuple[float, float]] = [(float(x), float(y)) for x, y in mesh.nodes_x_y_pos]
        self.cells: List[Tuple[int, int, int]] = [tuple(int(n) for n in c) for c in mesh.corner_connectivity]
        self.active: List[bool] = [True] * len(self.cells)
        self.edge_cells: Dict[Tuple[int, int], Set[int]] = {
            key: set(cells) for key, cells in mesh.topology.edge_cells.items()
        }
        self.midpoints: Dict[Tuple[int, int], int] = {}
        self.n_splits = 0

    def longest_edge(self, cid: int) -> int:
        """Local index k of the edge (cell[k], cell[k+1]) to bisect."""
        cell = self.cells[cid]
        p = np.array([self.coords[n] for n in cell])
        lengths = _edge_lengths(p)
        l_max = lengths.max()
        cutoff = l_max - self.config.length_rtol * l_max
        candidates = [k for k in range(3) if lengths[k] >= cutoff]
        return min(candidates, key=lambda k: edge_key(cell[k], cell[(k + 1) % 3]))

    def midpoint(self, a: int, b: int) -> int:
        key = edge_key(a, b)
        m = self.midpoints.get(key)
        if m is None:
            (xa, ya), (xb, yb) = self.coords[a], self.coords[b]
            m = len(self.coords)
            self.coords.append((0.5 * (xa + xb), 0.5 * (ya + yb)))
            self.midpoints[key] = m
            logger.debug(f"New midpoint node {m} on edge {key}")
        return m

    def _cell_keys(self, cid: int) -> List[Tuple[int, int]]:
        c = self.cells[cid]
        return [edge_key(c[k], c[(k + 1) % 3]) for k in range(3)]

    def bisect(self, cid: int) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """Split ``cid`` along its longest edge; returns (edge key, child ids)."""
        k = self.longest_edge(cid)
        cell = self.cells[cid]
        a, b, c = cell[k], cell[(k + 1) % 3], cell[(k + 2) % 3]
        m = self.midpoint(a, b)

        for key in self._cell_keys(cid):
            owners = self.edge_cells[key]
            owners.discard(cid)
            if not owners:
                del self.edge_cells[key]
        self.active[cid] = False

        children = []
        for child in ((a, m, c), (m, b, c)):
            new_id = len(self.cells)
            self.cells.append(child)
            self.active.append(True)
            for key in self._cell_keys(new_id):
                self.edge_cells.setdefault(key, set()).add(new_id)
            children.append(new_id)

        self.n_splits += 1
        logger.debug(f"Bisected cell {cid} {cell} along {edge_key(a, b)} -> {children}")
        return edge_key(a, b), tuple(children)

    def has_hanging_edge(self, cid: int) -> bool:
        return any(key in self.midpoints for key in self._cell_keys(cid))


def _validate_marking(cells_to_split: Iterable, n_cells: int) -> List[int]:
    marked = set()
    for c in cells_to_split:
        if isinstance(c, (bool, np.bool_)) or not isinstance(c, (int, np.integer)):
            raise InvalidMarking(f"Cell indices must be integers, got {c!r}.")
        if not 0 <= int(c) < n_cells:
            raise InvalidMarking(f"Marked cell {int(c)} is out of range [0, {n_cells}).")
        marked.add(int(c))
    return sorted(marked)


def refine(mesh: Mesh, cells_to_split: Iterable[int], *,
           config: RefinementConfig = DEFAULT_REFINEMENT) -> Mesh:
    """
    Refine ``mesh`` with Rivara's longest-edge bisection.

    Parameters
    ----------
    mesh : Mesh
        Linear (P1) triangle mesh carrying a topology
        (``Mesh(..., build_topology=True)`` or ``generate_grid(..., build_topology=True)``).
    cells_to_split : iterable of int
        Cells to refine; duplicates are ignored.
    config : RefinementConfig
        Tie tolerance and optional cap on the number of bisections.

    Returns
    -------
    Mesh
        New conforming mesh with topology. Original nodes keep their
        indices, midpoints follow in creation order, cells are renumbered.

    Notes
    -----
    Node sets, face sets and cell sets are not carried over to the new mesh
    and have to be rebuilt, e.g. ``mesh.add_faceset("left", lambda x, y: np.isclose(x, 0.0))``.
    """
    if mesh.topology is None:
        raise MissingTopology("refine() needs a mesh with topology; build it with "
                              "build_topology=True or call mesh.build_topology().")
    if mesh.element_type != "tri" or mesh.poly_order != 1:
        raise UnsupportedElement(f"Rivara refinement is restricted to linear triangles, got "
                                 f"'{mesh.element_type}' of order {mesh.poly_order}.")
    marked = _validate_marking(cells_to_split, mesh.n_elements)

    arena = _CellArena(mesh, config)
    queue = deque(marked)
    queued = set(marked)
    while queue:
        cid = queue.popleft()
        queued.discard(cid)
        if not arena.active[cid]:
            continue
        if config.max_splits is not None and arena.n_splits >= config.max_splits:
            raise RefinementLimitExceeded(f"Refinement exceeded max_splits={config.max_splits}.")
        key, children = arena.bisect(cid)

        follow_up = sorted(arena.edge_cells.get(key, ()))
        follow_up += [child for child in children if arena.has_hanging_edge(child)]
        for nxt in follow_up:
            if nxt not in queued:
                queue.append(nxt)
                queued.add(nxt)

    dropped = [name for name, sets in (("facesets", mesh.facesets), ("nodesets", mesh.nodesets),
                                       ("cellsets", mesh.cellsets)) if sets]
    if dropped:
        logger.warning(f"refine(): {', '.join(dropped)} of the input mesh are not carried over; "
                       f"rebuild them on the refined mesh.")

    return _compact(mesh, arena, n_marked=len(marked))


def _compact(mesh: Mesh, arena: _CellArena, n_marked: int) -> Mesh:
    cells = np.array([c for c, alive in zip(arena.cells, arena.active) if alive], dtype=int).reshape(-1, 3)
    nodes = []
    for nid, (x, y) in enumerate(arena.coords):
        tag = mesh.nodes_list[nid].tag if nid < mesh.n_nodes else None
        nodes.append(Node(id=nid, x=x, y=y, tag=tag))
    refined = Mesh(nodes, cells, element_type="tri", poly_order=1, build_topology=True)
    logger.info(f"Rivara refinement: {n_marked} marked, {arena.n_splits} bisections, "
                f"{mesh.n_elements} -> {refined.n_elements} cells, "
                f"{mesh.n_nodes} -> {refined.n_nodes} nodes.")
    return refined


def hanging_nodes(mesh: Mesh, tol: float = 1e-12) -> List[Tuple[int, Tuple[int, int]]]:
    """
    (node, edge) pairs where a mesh node lies strictly inside a cell edge.

    An empty list means the mesh is conforming.
    """
    xy = mesh.nodes_x_y_pos
    used = np.unique(mesh.corner_connectivity)
    found = []
    seen = set()
    for cell in mesh.corner_connectivity:
        for k in range(3):
            key = edge_key(cell[k], cell[(k + 1) % 3])
            if key in seen:
                continue
            seen.add(key)
            a, b = xy[key[0]], xy[key[1]]
            d = b - a
            L2 = float(d @ d)
            for nid in used:
                if nid in key:
                    continue
                r = xy[nid] - a
                t = float(r @ d) / L2
                if tol < t < 1.0 - tol and abs(r[0] * d[1] - r[1] * d[0]) <= tol * L2:
                    found.append((int(nid), key))
    return found
