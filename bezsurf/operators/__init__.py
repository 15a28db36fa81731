"""
Integral operators over surfaces of Bezier patches.

This package computes area, volume, center of mass, second moments and
integrals of user-supplied fields by Gauss-Legendre quadrature with
compensated summation, sequentially or on one worker thread per partition.

Submodules
----------
area     : Surface area (segment_area, surface_area)
volume   : Enclosed volume by the divergence theorem (volume_of)
integral : Integrals of user scalar and vector fields (surface_integral,
           flux_integral)
moments  : Center of mass, second moments, inertia tensor, principal axes
"""

from bezsurf.operators._registry import MethodRegistry
from bezsurf.operators._accumulator import KahanAccumulator
from bezsurf.operators._quadrature import (
    flux_order,
    gauss_legendre01,
    sample_segment,
    scalar_order,
    segment_samplers,
)
from bezsurf.operators._parallel import default_partitions, integrate
from bezsurf.operators.area import segment_area, surface_area
from bezsurf.operators.volume import segment_volume_flux, volume_of
from bezsurf.operators.integral import flux_integral, surface_integral
from bezsurf.operators.moments import (
    center_of_mass_of,
    moments_of,
    principal_axes,
    principal_axes_transform,
    principal_moments,
    to_moments_of_inertia,
)

__all__ = [
    'MethodRegistry', 'KahanAccumulator',
    'flux_order', 'gauss_legendre01', 'sample_segment', 'scalar_order',
    'segment_samplers',
    'default_partitions', 'integrate',
    'segment_area', 'surface_area',
    'segment_volume_flux', 'volume_of',
    'flux_integral', 'surface_integral',
    'center_of_mass_of', 'moments_of', 'principal_axes',
    'principal_axes_transform', 'principal_moments', 'to_moments_of_inertia',
]
