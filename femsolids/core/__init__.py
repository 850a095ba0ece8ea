from .mesh import Mesh
from .topology import Edge, Node, Topology
__all__=['Mesh','Edge','Node','Topology']
