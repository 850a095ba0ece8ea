import logging
from typing import Tuple, List, Dict, Optional, Callable, Set, Union

import numpy as np

from femsolids.core.topology import Element, Node, Topology
from femsolids.errors import InvalidParameter, UnsupportedElement
from femsolids.fem.reference import corner_indices

logger = logging.getLogger(__name__)

Predicate = Callable[[float, float], bool]


class Mesh:
    """
    Triangle mesh: node coordinates, cell connectivity and named sets.

    Cells store their nodes in lattice order (see
    :func:`femsolids.fem.reference.get_reference`); for P1 these are just
    the three corners, for P2 the corners sit at local positions 0, 2, 5.
    The edge-to-cell :class:`Topology` is only built when requested
    (``build_topology=True`` or :meth:`build_topology`), since refinement
    is the only consumer that requires it.
    """
    _EDGE_TABLE = {
        'tri': ((0, 1), (1, 2), (2, 0)),
    }

    def __init__(self,
                 nodes: Union[List['Node'], np.ndarray],
                 element_connectivity: np.ndarray,
                 elements_corner_nodes: np.ndarray = None,
                 *,
                 element_type: str = 'tri',
                 poly_order: int = 1,
                 build_topology: bool = False):
        if element_type not in self._EDGE_TABLE:
            raise UnsupportedElement(f"Unsupported element_type '{element_type}'; only 'tri' is available.")
        self.element_type = element_type
        self.poly_order = int(poly_order)
        self.spatial_dim = 2

        self.nodes_list: List['Node'] = self._as_nodes(nodes)
        self.nodes_x_y_pos = np.array([[n.x, n.y] for n in self.nodes_list], dtype=float).reshape(-1, 2)
        self.nodes = np.arange(len(self.nodes_list))

        conn = np.asarray(element_connectivity, dtype=int)
        n_loc = (self.poly_order + 1) * (self.poly_order + 2) // 2
        if conn.ndim != 2 or conn.shape[1] != n_loc:
            raise InvalidParameter(
                f"P{self.poly_order} triangles need {n_loc} nodes per cell, "
                f"got connectivity of shape {conn.shape}.")
        if conn.size and (conn.min() < 0 or conn.max() >= len(self.nodes_list)):
            raise InvalidParameter(
                f"Cell connectivity references node indices outside [0, {len(self.nodes_list)}).")
        self.elements_connectivity: np.ndarray = conn

        if elements_corner_nodes is None:
            elements_corner_nodes = conn[:, list(corner_indices(self.poly_order))]
        self.corner_connectivity: np.ndarray = np.asarray(elements_corner_nodes, dtype=int).reshape(-1, 3)
        if len(self.corner_connectivity) != len(conn):
            raise InvalidParameter("Corner connectivity and cell connectivity differ in length.")

        self.n_elements = len(self.elements_connectivity)
        self.elements_list: List['Element'] = [
            Element(id=eid, nodes=tuple(int(n) for n in conn[eid]),
                    corner_nodes=tuple(int(n) for n in self.corner_connectivity[eid]),
                    poly_order=self.poly_order)
            for eid in range(self.n_elements)
        ]

        self.facesets: Dict[str, Set[Tuple[int, int]]] = {}
        self.nodesets: Dict[str, Set[int]] = {}
        self.cellsets: Dict[str, Set[int]] = {}

        self.topology: Optional[Topology] = None
        if build_topology:
            self.build_topology()

    @staticmethod
    def _as_nodes(nodes) -> List['Node']:
        if len(nodes) and isinstance(nodes[0], Node):
            return list(nodes)
        coords = np.asarray(nodes, dtype=float).reshape(-1, 2)
        return [Node(id=i, x=x, y=y) for i, (x, y) in enumerate(coords)]

    def build_topology(self) -> Topology:
        """
        Builds the edge topology and fills each Element's edge and
        neighbor information.
        """
        self.topology = Topology.from_cells(self.corner_connectivity, self.nodes_x_y_pos)
        topo = self.topology
        for elem in self.elements_list:
            keys = topo.cell_edges[elem.id]
            elem.edges = tuple(topo.edge(k).gid for k in keys)
            elem.neighbors = {lid: topo.neighbor(elem.id, k) for lid, k in enumerate(keys)}
        logger.debug(f"Built topology for {self!r}: {topo!r}")
        return topo

    @property
    def has_topology(self) -> bool:
        return self.topology is not None

    @property
    def edges_list(self):
        return self.topology.edges_list if self.topology is not None else []

    @property
    def n_nodes(self) -> int:
        return len(self.nodes_list)

    # --- Public API ---
    def neighbors(self) -> List[List[int]]:
        topo = self.topology if self.topology is not None else Topology.from_cells(self.corner_connectivity)
        return [topo.neighbors(eid) for eid in range(self.n_elements)]

    def cell_coordinates(self, elem_id: int) -> np.ndarray:
        """(n_loc, 2) coordinates of a cell's nodes in lattice order."""
        return self.nodes_x_y_pos[self.elements_connectivity[elem_id]]

    def face_nodes(self, elem_id: int, local_face: int) -> Tuple[int, int]:
        c = self.corner_connectivity[elem_id]
        i, j = self._EDGE_TABLE[self.element_type][local_face]
        return int(c[i]), int(c[j])

    def areas(self) -> np.ndarray:
        """Signed area of each element (positive for counter-clockwise corners)."""
        p = self.nodes_x_y_pos[self.corner_connectivity]
        v1 = p[:, 1] - p[:, 0]
        v2 = p[:, 2] - p[:, 0]
        return 0.5 * (v1[:, 0] * v2[:, 1] - v1[:, 1] * v2[:, 0])

    # --- named sets ---
    def add_faceset(self, name: str, predicate: Predicate, *, boundary_only: bool = True) -> Set[Tuple[int, int]]:
        """
        Register the faces whose end nodes all satisfy ``predicate(x, y)``.

        Faces are stored as (cell, local face) pairs, local face k running
        from corner k to corner k+1.
        """
        topo = self.topology if self.topology is not None else Topology.from_cells(self.corner_connectivity)
        if boundary_only:
            candidates = topo.boundary_faces()
        else:
            candidates = ((eid, lid) for eid in range(self.n_elements) for lid in range(3))
        faces = set()
        for eid, lid in candidates:
            a, b = self.face_nodes(eid, lid)
            if all(predicate(*self.nodes_x_y_pos[n]) for n in (a, b)):
                faces.add((eid, lid))
        if not faces:
            logger.warning(f"Face set '{name}' is empty.")
        self.facesets[name] = faces
        return faces

    def add_nodeset(self, name: str, predicate: Predicate) -> Set[int]:
        nodes = {int(nid) for nid, (x, y) in enumerate(self.nodes_x_y_pos) if predicate(x, y)}
        if not nodes:
            logger.warning(f"Node set '{name}' is empty.")
        self.nodesets[name] = nodes
        return nodes

    def add_cellset(self, name: str, predicate: Predicate) -> Set[int]:
        cells = {eid for eid, conn in enumerate(self.elements_connectivity)
                 if all(predicate(*self.nodes_x_y_pos[n]) for n in conn)}
        if not cells:
            logger.warning(f"Cell set '{name}' is empty.")
        self.cellsets[name] = cells
        return cells

    def __repr__(self):
        return (f"<Mesh n_nodes={len(self.nodes_list)}, "
                f"n_elems={self.n_elements}, "
                f"elem_type='{self.element_type}', "
                f"poly_order={self.poly_order}, "
                f"topology={'yes' if self.topology is not None else 'no'}>")
