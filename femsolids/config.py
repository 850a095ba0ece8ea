"""femsolids.config
Explicit configuration objects.

Nothing in the package reads process-wide defaults at call time: every
routine that needs a quadrature degree or a tolerance takes one of these
objects as an argument (falling back to the module constants below).
"""
from dataclasses import dataclass
from typing import Optional

from femsolids.errors import InvalidParameter


@dataclass(frozen=True)
class QuadratureConfig:
    cell_degree: int = 2     # polynomial degree integrated exactly on the cell
    face_points: int = 2     # Gauss-Legendre points per face

    def __post_init__(self):
        if self.cell_degree < 1:
            raise InvalidParameter(f"cell_degree must be >= 1, got {self.cell_degree}")
        if self.face_points < 1:
            raise InvalidParameter(f"face_points must be >= 1, got {self.face_points}")


@dataclass(frozen=True)
class RefinementConfig:
    length_rtol: float = 1e-12        # edges within this relative tolerance tie
    max_splits: Optional[int] = None  # guard against runaway propagation

    def __post_init__(self):
        if not self.length_rtol >= 0.0:
            raise InvalidParameter(f"length_rtol must be >= 0, got {self.length_rtol}")
        if self.max_splits is not None and self.max_splits < 0:
            raise InvalidParameter(f"max_splits must be >= 0, got {self.max_splits}")


@dataclass(frozen=True)
class TransferConfig:
    atol: float = 1e-10   # absolute distance under which two points coincide

    def __post_init__(self):
        if not self.atol > 0.0:
            raise InvalidParameter(f"atol must be > 0, got {self.atol}")


DEFAULT_QUADRATURE = QuadratureConfig()
DEFAULT_REFINEMENT = RefinementConfig()
DEFAULT_TRANSFER = TransferConfig()
