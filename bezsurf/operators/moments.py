"""
Center of mass, second moments and moments of inertia of closed surfaces.

Volume integrals are turned into surface fluxes with the divergence
theorem, e.g. ``int x dV = flux of (x^2/2, 0, 0)`` and
``int x y dV = flux of (x^2 y/2, 0, 0)``.  Coordinates are taken relative
to a point near the solid (bounding-box center or the given center) to
limit cancellation.

Usage
-----
    from bezsurf.operators import (center_of_mass_of, moments_of,
                                   to_moments_of_inertia, principal_moments)

    cm = center_of_mass_of(surface)
    m = moments_of(surface, cm)
    inertia = to_moments_of_inertia(m)
    principal_moments(inertia)
"""

import logging
from typing import Optional

import numpy as np
from scipy.linalg import eigh

from bezsurf.geometry import AffineTransform, nearly_flat
from bezsurf.operators._parallel import integrate
from bezsurf.operators._quadrature import flux_order, sample_segment

logger = logging.getLogger(__name__)


def _require_closed_manifold(surface):
    if not surface.is_oriented():
        raise ValueError("surface is not oriented")
    if not surface.is_closed_manifold():
        raise ValueError("surface is not a closed manifold")


def _flatness_limit(surface, flatness_limit):
    if flatness_limit is not None:
        return flatness_limit
    return surface.tolerances.flatness


def _sample(ptype, pts, degree, limit):
    flat = limit is not None and nearly_flat(limit, ptype, pts)
    return sample_segment(ptype, pts, flux_order(ptype, degree, flat))


def center_of_mass_of(surface, volume: Optional[float] = None,
                      flatness_limit: Optional[float] = None,
                      parallel: bool = False, partitions: Optional[int] = None,
                      level: int = 0) -> np.ndarray:
    """Center of mass of the uniform solid bounded by ``surface``.

    Parameters
    ----------
    surface : Surface3D
        Oriented closed manifold.
    volume : float, optional
        Known volume of the solid; computed alongside the moments if omitted.
    flatness_limit : float, optional
        Enables the approximate path: patches that :func:`nearly_flat`
        accepts are integrated with a low-order rule.  Defaults to
        ``surface.tolerances.flatness``.
    parallel : bool
        Integrate partitions on worker threads.
    partitions : int, optional
        Number of partitions for the parallel path.
    level : int
        Subdivision depth applied before integrating.

    Returns
    -------
    ndarray
        Center of mass, shape ``(3,)``.

    Raises
    ------
    ValueError
        If the surface is not an oriented closed manifold, or the volume
        is zero.
    """
    _require_closed_manifold(surface)
    lo, hi = surface.bounds()
    center = 0.5 * (lo + hi)
    limit = _flatness_limit(surface, flatness_limit)

    def kernel(ptype, pts):
        points, normals, weights = _sample(ptype, pts, 2, limit)
        q = points - center
        vol = weights @ np.einsum('ij,ij->i', q, normals) / 3.0
        first = weights @ (0.5 * q * q * normals)
        return np.concatenate([[vol], first])

    values = integrate(surface.iterator(level=level), kernel, (4,),
                       parallel=parallel, partitions=partitions,
                       max_partitions=len(surface))
    v = values[0] if volume is None else volume
    if v == 0.0:
        raise ValueError("cannot compute the center of mass of a zero-volume surface")
    return values[1:] / v + center


def moments_of(surface, center, volume: Optional[float] = None,
               flatness_limit: Optional[float] = None,
               parallel: bool = False, partitions: Optional[int] = None,
               level: int = 0) -> np.ndarray:
    """Second moments about ``center`` per unit volume.

    ``m[i][j] = int (x_i - c_i)(x_j - c_j) dV / V``.  With ``center`` the
    center of mass this is the covariance of a uniform solid; see
    :func:`to_moments_of_inertia` for the inertia tensor.

    Parameters
    ----------
    surface : Surface3D
        Oriented closed manifold.
    center : array_like
        Point the moments are taken about.
    volume : float, optional
        Known volume; computed alongside the moments if omitted.
    flatness_limit, parallel, partitions, level
        As for :func:`center_of_mass_of`.

    Returns
    -------
    ndarray
        Symmetric ``(3, 3)`` matrix.
    """
    _require_closed_manifold(surface)
    c = np.asarray(center, dtype=float).reshape(3)
    limit = _flatness_limit(surface, flatness_limit)

    def kernel(ptype, pts):
        points, normals, weights = _sample(ptype, pts, 3, limit)
        q = points - c
        x, y, z = q.T
        nx, ny, nz = normals.T
        return weights @ np.column_stack([
            np.einsum('ij,ij->i', q, normals) / 3.0,
            x ** 3 * nx / 3.0,
            y ** 3 * ny / 3.0,
            z ** 3 * nz / 3.0,
            x * x * y * nx / 2.0,
            x * x * z * nx / 2.0,
            y * y * z * ny / 2.0,
        ])

    values = integrate(surface.iterator(level=level), kernel, (7,),
                       parallel=parallel, partitions=partitions,
                       max_partitions=len(surface))
    v = values[0] if volume is None else volume
    if v == 0.0:
        raise ValueError("cannot compute the moments of a zero-volume surface")
    _, xx, yy, zz, xy, xz, yz = values / v
    return np.array([[xx, xy, xz], [xy, yy, yz], [xz, yz, zz]])


def to_moments_of_inertia(moments) -> np.ndarray:
    """Inertia tensor (per unit mass) from second moments.

    ``I[i][i] = m[i+1][i+1] + m[i+2][i+2]`` (indices mod 3) and
    ``I[i][j] = -m[i][j]`` for ``i != j``.
    """
    m = np.asarray(moments, dtype=float)
    if m.shape != (3, 3):
        raise ValueError(f"moments must be a 3x3 matrix, got shape {m.shape}")
    inertia = -m
    for i in range(3):
        inertia[i, i] = m[(i + 1) % 3, (i + 1) % 3] + m[(i + 2) % 3, (i + 2) % 3]
    return inertia


def principal_moments(moments) -> np.ndarray:
    """Eigenvalues of a symmetric moments matrix, ascending."""
    return eigh(np.asarray(moments, dtype=float), eigvals_only=True)


def principal_axes(moments, eps: float = 1e-10) -> np.ndarray:
    """Unit eigenvectors of a moments matrix, one per row.

    Row ``i`` belongs to the ``i``-th value of :func:`principal_moments`.
    Each of the first two axes is signed so its largest component is
    positive, and the third is their cross product, so the rows form a
    right-handed frame.  Components smaller than ``eps`` are set to zero.
    """
    _, vectors = eigh(np.asarray(moments, dtype=float))
    axes = vectors.T.copy()
    for i in range(2):
        if axes[i, np.argmax(np.abs(axes[i]))] < 0.0:
            axes[i] = -axes[i]
    axes[2] = np.cross(axes[0], axes[1])
    axes[np.abs(axes) < eps] = 0.0
    return axes / np.linalg.norm(axes, axis=1, keepdims=True)


def principal_axes_transform(axes, center) -> AffineTransform:
    """Rotation about ``center`` taking principal axis ``i`` to coordinate axis ``i``.

    The result can be passed as the ``transform`` of a surface iterator.
    """
    rotation = np.asarray(axes, dtype=float)
    c = np.asarray(center, dtype=float).reshape(3)
    if rotation.shape != (3, 3):
        raise ValueError(f"axes must be a 3x3 matrix, got shape {rotation.shape}")
    logger.debug("principal axes transform about %s", c)
    return AffineTransform(rotation, offset=c - rotation @ c)
