"""
Surface area of patch collections.

Usage
-----
    from bezsurf.operators import surface_area

    a = surface_area(surface)
    a = surface_area(surface, parallel=True, partitions=4, level=1)
"""

from functools import partial
from typing import Optional

import numpy as np

from bezsurf._config import DEFAULT_QUADRATURE, QuadratureConfig
from bezsurf.geometry import PatchType
from bezsurf.operators._parallel import as_surface_iterator, integrate
from bezsurf.operators._quadrature import area_order, sample_segment


def segment_area(ptype: PatchType, pts, config: Optional[QuadratureConfig] = None) -> float:
    """Area ``int int |Pu x Pv| du dv`` of one patch."""
    config = config if config is not None else DEFAULT_QUADRATURE
    _, normals, weights = sample_segment(ptype, pts, area_order(ptype, config))
    return float(weights @ np.linalg.norm(normals, axis=1))


def surface_area(shape, parallel: bool = False, partitions: Optional[int] = None,
                 level: int = 0, config: Optional[QuadratureConfig] = None) -> float:
    """Total area of a surface.

    Parameters
    ----------
    shape : Surface3D or SurfaceIterator
        Patches to integrate over.  An iterator is consumed.
    parallel : bool
        Integrate partitions on worker threads.
    partitions : int, optional
        Number of partitions for the parallel path.
    level : int
        Subdivide each patch ``level`` times first (more accurate for
        strongly curved patches).
    config : QuadratureConfig, optional
        Quadrature orders.

    Returns
    -------
    float
        Area.
    """
    iterator, n_source = as_surface_iterator(shape, level)
    return integrate(iterator, partial(segment_area, config=config),
                     parallel=parallel, partitions=partitions,
                     max_partitions=n_source)
