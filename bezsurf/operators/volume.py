"""
Enclosed volume by the divergence theorem.

``V = 1/3 * flux of (r - ref)`` through the surface.  For a closed,
consistently oriented surface the result does not depend on ``ref``.

Usage
-----
    from bezsurf.operators import volume_of

    v = volume_of(surface)
    v = volume_of(surface, ref_point=[10.0, 0.0, 0.0], parallel=True)
"""

from typing import Optional

import numpy as np

from bezsurf.geometry import PatchType
from bezsurf.operators._parallel import as_surface_iterator, integrate
from bezsurf.operators._quadrature import flux_order, sample_segment


def segment_volume_flux(ptype: PatchType, pts, ref) -> float:
    """Flux of ``r - ref`` through one patch (three times its volume share)."""
    points, normals, weights = sample_segment(ptype, pts, flux_order(ptype, 1))
    return float(weights @ np.einsum('ij,ij->i', points - ref, normals))


def volume_of(shape, ref_point=None, parallel: bool = False,
              partitions: Optional[int] = None, level: int = 0) -> float:
    """Volume enclosed by an oriented surface.

    Parameters
    ----------
    shape : Surface3D or SurfaceIterator
        Surface to integrate over.  An iterator is consumed.
    ref_point : array_like, optional
        Reference point of the flux integral.  Defaults to the center of
        the bounding box for a ``Surface3D`` and the origin for an iterator.
    parallel : bool
        Integrate partitions on worker threads.
    partitions : int, optional
        Number of partitions for the parallel path.
    level : int
        Subdivision depth applied before integrating.

    Returns
    -------
    float
        Signed volume; positive when normals point outward.

    Raises
    ------
    ValueError
        If the surface is two-sided.
    """
    iterator, n_source = as_surface_iterator(shape, level)
    if not iterator.is_oriented():
        raise ValueError("volume requires an oriented surface")
    if ref_point is not None:
        ref = np.asarray(ref_point, dtype=float).reshape(3)
    elif n_source:
        lo, hi = shape.bounds()
        ref = 0.5 * (lo + hi)
    else:
        ref = np.zeros(3)
    total = integrate(iterator, lambda ptype, pts: segment_volume_flux(ptype, pts, ref),
                      parallel=parallel, partitions=partitions,
                      max_partitions=n_source)
    return total / 3.0
