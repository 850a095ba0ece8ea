from .element_routine import Formulation, Primal, element_routine
from .global_matrix import assemble_system
from .boundary_conditions import apply_dirichlet
__all__ = ['Formulation', 'Primal', 'element_routine', 'assemble_system', 'apply_dirichlet']
