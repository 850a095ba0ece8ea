# dofhandler.py

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from femsolids.core.mesh import Mesh
from femsolids.errors import InvalidParameter

logger = logging.getLogger(__name__)


class DofHandler:
    """Centralised continuous-Lagrange DOF numbering on the nodes of one mesh."""

    def __init__(self, mesh: Mesh, field_specs: Optional[Mapping[str, int]] = None):
        """
        Initialize a DOF handler.

        Parameters
        ----------
        mesh : Mesh
            Mesh whose nodes carry the DOFs. Its polynomial order is the
            interpolation order of every field.
        field_specs : dict[str, int], default ``{'u': 2}``
            Field name -> number of components (2 for a displacement field).

        Attributes set
        --------------
        field_names : list[str]
        element_maps : dict[str, list[list[int]]]
            For each field and element id the local -> global DOF map, ordered
            node by node with components interleaved
            ``[n0c0, n0c1, n1c0, n1c1, ...]``.
        dof_map : dict[str, dict[int, tuple[int, ...]]]
            {field: {mesh_node_id -> (dof of component 0, dof of component 1, ...)}}
        field_offsets, field_num_dofs : dict[str, int]
        total_dofs : int

        Notes
        -----
        Fields are numbered one after another. Inside a field, nodes get their
        DOFs in the order in which the cells first visit them, so the numbering
        is contiguous even if the mesh holds nodes no cell references.
        """
        if not isinstance(mesh, Mesh):
            raise TypeError("'mesh' must be a femsolids Mesh instance.")
        if field_specs is None:
            field_specs = {"u": 2}
        field_specs = dict(field_specs)
        if not field_specs:
            raise InvalidParameter("'field_specs' cannot be empty.")
        for name, n_comp in field_specs.items():
            if not isinstance(n_comp, (int, np.integer)) or n_comp < 1:
                raise InvalidParameter(f"Field '{name}' needs a positive component count, got {n_comp!r}.")

        self.mesh = mesh
        self.field_names: List[str] = list(field_specs.keys())
        self._n_components: Dict[str, int] = {f: int(c) for f, c in field_specs.items()}
        self.field_offsets: Dict[str, int] = {}
        self.field_num_dofs: Dict[str, int] = {}
        self.element_maps: Dict[str, List[List[int]]] = {f: [] for f in self.field_names}
        self.dof_map: Dict[str, Dict[int, Tuple[int, ...]]] = {f: {} for f in self.field_names}
        self._dof_to_node_map: Dict[int, Tuple[str, int, int]] = {}
        self.total_dofs = 0
        self._build_maps_cg()

    def _build_maps_cg(self) -> None:
        offset = 0
        for fld in self.field_names:
            n_comp = self._n_components[fld]
            self.field_offsets[fld] = offset
            node_dofs: Dict[int, Tuple[int, ...]] = {}
            next_dof = offset
            for conn in self.mesh.elements_connectivity:
                loc = []
                for nid in conn:
                    nid = int(nid)
                    dofs = node_dofs.get(nid)
                    if dofs is None:
                        dofs = tuple(range(next_dof, next_dof + n_comp))
                        node_dofs[nid] = dofs
                        for c, d in enumerate(dofs):
                            self._dof_to_node_map[d] = (fld, nid, c)
                        next_dof += n_comp
                    loc.extend(dofs)
                self.element_maps[fld].append(loc)
            self.dof_map[fld] = node_dofs
            self.field_num_dofs[fld] = next_dof - offset
            offset = next_dof
        self.total_dofs = offset
        logger.debug(f"DofHandler: {self.total_dofs} dofs, per field {self.field_num_dofs}")

    # ------------------------------------------------------------------
    #  Public helpers
    # ------------------------------------------------------------------
    def _check_field(self, field: str) -> None:
        if field not in self._n_components:
            raise InvalidParameter(f"Unknown field '{field}'.")

    def n_components(self, field: str) -> int:
        self._check_field(field)
        return self._n_components[field]

    def n_local_dofs(self, field: str) -> int:
        self._check_field(field)
        return self.mesh.elements_connectivity.shape[1] * self._n_components[field]

    def element_dofs(self, field: str, eid: int) -> List[int]:
        self._check_field(field)
        return self.element_maps[field][eid]

    def node_dofs(self, field: str, node_id: int) -> Tuple[int, ...]:
        self._check_field(field)
        return self.dof_map[field][int(node_id)]

    def dof_origin(self, dof: int) -> Tuple[str, int, int]:
        """(field, mesh node, component) a global DOF belongs to."""
        return self._dof_to_node_map[int(dof)]

    def dofs_on_nodes(self, field: str, node_ids, component: Optional[int] = None) -> np.ndarray:
        self._check_field(field)
        n_comp = self._n_components[field]
        if component is not None and not 0 <= component < n_comp:
            raise InvalidParameter(f"Field '{field}' has {n_comp} components, got component {component}.")
        out = []
        for nid in sorted(int(n) for n in node_ids):
            dofs = self.dof_map[field].get(nid)
            if dofs is None:
                continue
            out.extend(dofs if component is None else (dofs[component],))
        return np.array(out, dtype=int)

    def dofs_on_nodeset(self, field: str, name: str, component: Optional[int] = None) -> np.ndarray:
        if name not in self.mesh.nodesets:
            raise KeyError(f"Node set '{name}' is not registered on the mesh.")
        return self.dofs_on_nodes(field, self.mesh.nodesets[name], component)

    def get_dof_coords(self, field: str) -> np.ndarray:
        """(field_num_dofs, 2) physical coordinates, row k = DOF field_offsets[field] + k."""
        self._check_field(field)
        coords = np.empty((self.field_num_dofs[field], 2))
        off = self.field_offsets[field]
        xy = self.mesh.nodes_x_y_pos
        for nid, dofs in self.dof_map[field].items():
            for d in dofs:
                coords[d - off] = xy[nid]
        return coords

    def __repr__(self):
        return (f"<DofHandler fields={self._n_components}, total_dofs={self.total_dofs}, "
                f"poly_order={self.mesh.poly_order}>")
