"""
Tolerance and quadrature parameters.

Both objects are passed explicitly to the topology and integration
routines; nothing here is read as hidden module state.

Usage
-----
    from bezsurf._config import Tolerances, QuadratureConfig

    tol = Tolerances(edge_ulps=4096.0)
    surface = Surface3D(tolerances=tol)
    area = surface_area(surface, config=QuadratureConfig(area_points=12))
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class Tolerances:
    """Tolerances used when comparing coordinates of independently built patches.

    Two edges match when every control-point coordinate differs by no more
    than ``edge_tolerance(scale)``, where ``scale`` is the largest absolute
    coordinate of the surface.  The tolerance is a multiple of the spacing
    between adjacent doubles at that magnitude, so it grows with the size
    of the model instead of being a fixed constant.

    Attributes
    ----------
    edge_ulps : float
        Number of units in the last place (at ``scale``) allowed between
        matching coordinates.
    absolute : float
        Lower bound on the tolerance, for surfaces whose coordinates are
        all very close to zero.
    flatness : float or None
        Default flatness limit for the approximate integration path.
        ``None`` disables it.
    """
    edge_ulps: float = 1024.0
    absolute: float = 0.0
    flatness: Optional[float] = None

    def edge_tolerance(self, scale: float) -> float:
        """Return the matching tolerance for coordinates of magnitude ``scale``."""
        scale = abs(float(scale))
        return max(self.edge_ulps * float(np.spacing(scale)), self.absolute)


@dataclass
class QuadratureConfig:
    """Gauss-Legendre point counts for area integrals.

    Flux integrals (volume, center of mass, moments) are polynomial and use
    orders derived from the field degree; the area integrand is not
    polynomial, so its order is a tunable accuracy setting.

    Attributes
    ----------
    area_points : int
        Points per parameter direction for cubic patches and cubic vertices.
    area_triangle_points : int
        Points per parameter direction for cubic and planar triangles.
    """
    area_points: int = 8
    area_triangle_points: int = 8

    def __post_init__(self):
        if self.area_points < 1 or self.area_triangle_points < 1:
            raise ValueError("quadrature point counts must be positive")


DEFAULT_TOLERANCES = Tolerances()
DEFAULT_QUADRATURE = QuadratureConfig()
