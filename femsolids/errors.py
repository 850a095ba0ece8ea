"""femsolids.errors
Exception hierarchy shared by every femsolids module.

Each error also derives from the closest builtin exception so that callers
which only catch ``ValueError``/``KeyError``/``NotImplementedError`` keep
working.
"""


class FemSolidsError(Exception):
    """Base class for all femsolids failures."""


class InvalidParameter(FemSolidsError, ValueError):
    """Bad material, thickness or argument combination supplied by the caller."""


class DegenerateElement(FemSolidsError, ValueError):
    """Element geometry with a non-positive Jacobian determinant."""


class UnsupportedMaterial(FemSolidsError, NotImplementedError):
    """Material variant the element routine cannot handle."""


class UnsupportedElement(FemSolidsError, NotImplementedError):
    """Element type or polynomial order outside the supported set."""


class MissingTopology(FemSolidsError, ValueError):
    """Refinement requested on a mesh that was built without topology."""


class InvalidMarking(FemSolidsError, ValueError):
    """Refinement marking that references a non-existent cell."""


class UnknownFaceset(FemSolidsError, KeyError):
    """Boundary load requested on a face-set name the mesh does not know."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class RefinementLimitExceeded(FemSolidsError, RuntimeError):
    """Refinement needed more bisections than `RefinementConfig.max_splits` allows."""


class IncompatibleMeshes(FemSolidsError, ValueError):
    """Two meshes whose nodes do not correspond geometrically."""


__all__ = [
    "FemSolidsError",
    "InvalidParameter",
    "DegenerateElement",
    "UnsupportedMaterial",
    "UnsupportedElement",
    "MissingTopology",
    "InvalidMarking",
    "UnknownFaceset",
    "IncompatibleMeshes",
    "RefinementLimitExceeded",
]
