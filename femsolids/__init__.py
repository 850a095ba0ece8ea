from femsolids.assembly import Formulation, Primal, apply_dirichlet, assemble_system, element_routine
from femsolids.config import (DEFAULT_QUADRATURE, DEFAULT_REFINEMENT, DEFAULT_TRANSFER,
                              QuadratureConfig, RefinementConfig, TransferConfig)
from femsolids.core import Mesh, Node, Topology
from femsolids.core.dofhandler import DofHandler
from femsolids.fem.values import CellVectorValues, FaceVectorValues
from femsolids.materials import LinearElasticity
from femsolids.utils.adaptive_mesh import refine
from femsolids.utils.meshgen import generate_grid, quadratic_mesh
from femsolids.utils.transfer import linear_to_quadratic

__version__ = "0.1.0"

__all__ = [
    "Formulation", "Primal", "element_routine", "assemble_system", "apply_dirichlet",
    "QuadratureConfig", "RefinementConfig", "TransferConfig",
    "DEFAULT_QUADRATURE", "DEFAULT_REFINEMENT", "DEFAULT_TRANSFER",
    "Mesh", "Node", "Topology", "DofHandler",
    "CellVectorValues", "FaceVectorValues", "LinearElasticity",
    "refine", "generate_grid", "quadratic_mesh", "linear_to_quadratic",
]
