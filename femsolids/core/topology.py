import numpy as np
from dataclasses import dataclass, field
from typing import Tuple, List, Dict, Optional, Iterable

from femsolids.errors import InvalidParameter


class Node:
    def __init__(self, id, x, y, tag=None):
        self.x = float(x)
        self.y = float(y)
        self.id = int(id)
        self.tag = tag

    def __repr__(self):
        return f"Node {self.id}({self.x:.3f}, {self.y:.3f}, tag='{self.tag}')"

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return np.isclose(self.x, other.x) and np.isclose(self.y, other.y)

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash((self.x, self.y))

    def __getitem__(self, idx):
        if idx == 0: return self.x
        elif idx == 1: return self.y
        raise IndexError("Node supports indices 0 (x) and 1 (y)")

    def __iter__(self):
        yield self.x
        yield self.y


@dataclass(slots=True)
class Edge:
    gid: int
    nodes: Tuple[int, int]      # Global node indices of the edge's endpoints, in the left element's order
    left: int                   # Element ID on the left side of the edge
    right: Optional[int]        # Element ID on the right side of the edge (None on the boundary)
    normal: np.ndarray          # Unit normal, pointing outward from the left element
    lid: Optional[int] = None   # Local edge index within the left element
    tag: str = ""

    @property
    def key(self) -> Tuple[int, int]:
        a, b = self.nodes
        return (a, b) if a < b else (b, a)

    @property
    def is_boundary(self) -> bool:
        return self.right is None


@dataclass(slots=True)
class Element:
    id: int                     # Element ID
    nodes: Tuple[int, ...]      # Global node indices, lattice order
    corner_nodes: Tuple[int, ...] = field(default_factory=tuple)
    tag: str = ""
    edges: Tuple[int, ...] = field(default_factory=tuple)
    neighbors: Dict[int, Optional[int]] = field(default_factory=dict)
    poly_order: int = 1


def edge_key(a: int, b: int) -> Tuple[int, int]:
    """Unordered node pair used as an edge identifier."""
    a, b = int(a), int(b)
    return (a, b) if a < b else (b, a)


class Topology:
    """
    Edge -> incident-cell adjacency of a triangle mesh.

    Every edge is keyed by its sorted corner-node pair and maps to the one
    (boundary) or two (interior) cells that share it. Built from corner
    connectivity only, so it serves linear and quadratic meshes alike.
    """
    _LOCAL_EDGES = ((0, 1), (1, 2), (2, 0))

    def __init__(self, edge_cells: Dict[Tuple[int, int], Tuple[int, ...]],
                 cell_edges: List[Tuple[Tuple[int, int], ...]],
                 edges_list: List[Edge]):
        self.edge_cells = edge_cells
        self.cell_edges = cell_edges
        self.edges_list = edges_list
        self._edge_index = {e.key: e.gid for e in edges_list}

    @classmethod
    def from_cells(cls, corner_connectivity, coords: Optional[np.ndarray] = None) -> "Topology":
        """
        Build the topology from (n_cells, 3) corner connectivity.

        If ``coords`` is given, each Edge also carries the outward unit
        normal of its left element.
        """
        corners = np.asarray(corner_connectivity, dtype=int)
        incidences: Dict[Tuple[int, int], List[int]] = {}
        directed: Dict[Tuple[int, int], Tuple[int, int, int]] = {}
        cell_edges: List[Tuple[Tuple[int, int], ...]] = []
        for eid, cell in enumerate(corners):
            keys = []
            for lid, (i, j) in enumerate(cls._LOCAL_EDGES):
                a, b = int(cell[i]), int(cell[j])
                key = edge_key(a, b)
                incidences.setdefault(key, []).append(eid)
                directed.setdefault(key, (a, b, lid))
                keys.append(key)
            cell_edges.append(tuple(keys))

        edge_cells: Dict[Tuple[int, int], Tuple[int, ...]] = {}
        edges_list: List[Edge] = []
        for gid, (key, eids) in enumerate(incidences.items()):
            if len(eids) > 2:
                raise InvalidParameter(
                    f"Edge {key} is shared by {len(eids)} cells {eids}; a 2D triangle mesh "
                    f"allows at most two.")
            edge_cells[key] = tuple(eids)
            a, b, lid = directed[key]
            if coords is not None:
                normal = cls._outward_normal(coords[a], coords[b])
            else:
                normal = np.zeros(2)
            edges_list.append(Edge(gid=gid, nodes=(a, b), left=eids[0],
                                   right=eids[1] if len(eids) > 1 else None,
                                   normal=normal, lid=lid))
        return cls(edge_cells, cell_edges, edges_list)

    @staticmethod
    def _outward_normal(p0, p1) -> np.ndarray:
        d = np.asarray(p1, dtype=float) - np.asarray(p0, dtype=float)
        n = np.array([d[1], -d[0]], dtype=float)
        length = np.linalg.norm(n)
        return n / length if length > 1e-14 else np.zeros(2)

    # --- queries --------------------------------------------------------
    @property
    def n_edges(self) -> int:
        return len(self.edges_list)

    def cells_of(self, a: int, b: int) -> Tuple[int, ...]:
        """Cells incident to the edge (a, b); empty tuple if it is not an edge."""
        return self.edge_cells.get(edge_key(a, b), ())

    def neighbor(self, cell: int, key: Tuple[int, int]) -> Optional[int]:
        """The other cell across ``key`` or None on the boundary."""
        for other in self.edge_cells[edge_key(*key)]:
            if other != cell:
                return other
        return None

    def neighbors(self, cell: int) -> List[int]:
        out = []
        for key in self.cell_edges[cell]:
            other = self.neighbor(cell, key)
            if other is not None:
                out.append(other)
        return out

    def is_boundary(self, a: int, b: int) -> bool:
        return len(self.cells_of(a, b)) == 1

    def boundary_edges(self) -> List[Tuple[int, int]]:
        return [key for key, cells in self.edge_cells.items() if len(cells) == 1]

    def boundary_faces(self) -> Iterable[Tuple[int, int]]:
        """(cell, local face) pairs lying on the boundary."""
        for eid, keys in enumerate(self.cell_edges):
            for lid, key in enumerate(keys):
                if len(self.edge_cells[key]) == 1:
                    yield eid, lid

    def edge(self, key: Tuple[int, int]) -> Edge:
        return self.edges_list[self._edge_index[edge_key(*key)]]

    def __repr__(self):
        n_bnd = len(self.boundary_edges())
        return f"<Topology n_edges={self.n_edges}, n_boundary={n_bnd}, n_cells={len(self.cell_edges)}>"
