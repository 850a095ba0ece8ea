"""femsolids.materials
Linear-elastic constitutive model for 2D solids.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import cached_property

import numpy as np

from femsolids.errors import InvalidParameter

_ASSUMPTIONS = ("plane_strain", "plane_stress")


@dataclass(frozen=True)
class LinearElasticity:
    """Isotropic linear elasticity parameterised by shear and bulk modulus.

    Parameters
    ----------
    G : float
        Shear modulus, strictly positive.
    K : float
        Bulk modulus, strictly positive.
    assumption : {'plane_strain', 'plane_stress'}
        How the 3D law is reduced to the plane. With plane strain the
        in-plane Lamé parameter is ``K - 2G/3``; plane stress uses the
        condensed ``2 lambda G / (lambda + 2G)``.

    Notes
    -----
    The 4th-order tensor reads
    ``E_ijkl = lambda d_ij d_kl + G (d_ik d_jl + d_il d_jk)``
    and acts on symmetric 2x2 strain tensors.
    """
    G: float
    K: float
    assumption: str = "plane_strain"

    def __post_init__(self):
        for name in ("G", "K"):
            value = getattr(self, name)
            if not isinstance(value, (int, float, np.floating, np.integer)) or isinstance(value, bool):
                raise InvalidParameter(f"{name} must be a real number, got {value!r}")
            if not math.isfinite(value) or value <= 0.0:
                raise InvalidParameter(f"{name} must be strictly positive and finite, got {value}")
        if self.assumption not in _ASSUMPTIONS:
            raise InvalidParameter(f"Unknown assumption '{self.assumption}'. "
                                   f"Expected one of {_ASSUMPTIONS}.")

    @classmethod
    def from_youngs(cls, E: float, nu: float, assumption: str = "plane_strain") -> "LinearElasticity":
        """Build the material from Young's modulus and Poisson's ratio."""
        if not (E > 0.0):
            raise InvalidParameter(f"E must be strictly positive, got {E}")
        if not (-1.0 < nu < 0.5):
            raise InvalidParameter(f"nu must lie in (-1, 0.5), got {nu}")
        G = E / (2.0 * (1.0 + nu))
        K = E / (3.0 * (1.0 - 2.0 * nu))
        return cls(G=G, K=K, assumption=assumption)

    # ------------------------------------------------------------------
    @property
    def shear_modulus(self) -> float:
        return float(self.G)

    @property
    def bulk_modulus(self) -> float:
        return float(self.K)

    @property
    def youngs_modulus(self) -> float:
        return 9.0 * self.K * self.G / (3.0 * self.K + self.G)

    @property
    def poisson_ratio(self) -> float:
        return (3.0 * self.K - 2.0 * self.G) / (2.0 * (3.0 * self.K + self.G))

    @property
    def lame_lambda(self) -> float:
        lam = self.K - 2.0 * self.G / 3.0
        if self.assumption == "plane_stress":
            lam = 2.0 * lam * self.G / (lam + 2.0 * self.G)
        return float(lam)

    @cached_property
    def tensor(self) -> np.ndarray:
        """Elasticity tensor, shape (2, 2, 2, 2), read-only."""
        lam, mu = self.lame_lambda, float(self.G)
        d = np.eye(2)
        E = (lam * np.einsum("ij,kl->ijkl", d, d)
             + mu * (np.einsum("ik,jl->ijkl", d, d) + np.einsum("il,jk->ijkl", d, d)))
        E.setflags(write=False)
        return E

    def voigt(self) -> np.ndarray:
        """3x3 matrix acting on (eps_xx, eps_yy, gamma_xy)."""
        lam, mu = self.lame_lambda, float(self.G)
        return np.array([[lam + 2.0 * mu, lam, 0.0],
                         [lam, lam + 2.0 * mu, 0.0],
                         [0.0, 0.0, mu]])

    def stress(self, strain: np.ndarray) -> np.ndarray:
        """Cauchy stress sigma = E : eps for a 2x2 strain tensor."""
        strain = np.asarray(strain, dtype=float)
        if strain.shape != (2, 2):
            raise InvalidParameter(f"strain must have shape (2, 2), got {strain.shape}")
        return np.einsum("ijkl,kl->ij", self.tensor, strain)
