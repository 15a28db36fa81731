"""
Parametric-surface kernel built from cubic Bezier patches and triangles.

Subpackages
-----------
geometry  : Patch evaluation, subdivision, boundary paths, transforms
operators : Area, volume, center of mass, moments (sequential or threaded)

Modules
-------
_surface   : Surface3D store, well-formedness, boundary, components
_iterators : SurfaceIterator, SubdivisionIterator, SurfaceIteratorSplitter
_topology  : Edge extraction and matching
_config    : Tolerances and quadrature settings
_shapes    : Reference surfaces (sphere, cones, boxes)
"""

from bezsurf._config import (
    DEFAULT_QUADRATURE,
    DEFAULT_TOLERANCES,
    QuadratureConfig,
    Tolerances,
)
from bezsurf._iterators import (
    PatchIterator,
    SubdivisionIterator,
    SurfaceIterator,
    SurfaceIteratorSplitter,
)
from bezsurf._surface import Patch, Surface3D
from bezsurf.geometry import MAX_COORDS, Path3D, PatchType

__all__ = [
    'DEFAULT_QUADRATURE', 'DEFAULT_TOLERANCES', 'QuadratureConfig', 'Tolerances',
    'PatchIterator', 'SubdivisionIterator', 'SurfaceIterator',
    'SurfaceIteratorSplitter',
    'Patch', 'Surface3D',
    'MAX_COORDS', 'Path3D', 'PatchType',
]
