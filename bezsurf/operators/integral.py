"""
Surface integrals of user-supplied scalar and vector fields.

``surface_integral`` computes ``int_S f dA`` and ``flux_integral`` computes
``int_S F . n dA``.  Fields are functions of coordinate arrays ``x, y, z``
evaluated at all quadrature points of a patch at once.  ``degree`` is the
total degree of a polynomial that approximates the field well over one
patch; it sets the number of Gauss-Legendre points.  Passing a list of
fields integrates all of them with one evaluation of the patch geometry
and returns one value per field.

Usage
-----
    from bezsurf.operators import flux_integral, surface_integral

    a = surface_integral(surface, lambda x, y, z: 1.0, degree=0)
    v = flux_integral(surface, lambda x, y, z: (x / 3, y / 3, z / 3), degree=1)
    sx, sy = surface_integral(surface, [lambda x, y, z: x,
                                        lambda x, y, z: y], degree=1,
                              parallel=True, partitions=4)
"""

from typing import Optional

import numpy as np

from bezsurf._iterators import SurfaceIterator
from bezsurf.geometry import nearly_flat
from bezsurf.operators._parallel import as_surface_iterator, integrate
from bezsurf.operators._quadrature import flux_order, sample_segment, scalar_order


def _fields(f):
    """``(list of fields, batched)`` for one field or a list of them."""
    if callable(f):
        return [f], False
    fields = list(f)
    if not fields:
        raise ValueError("at least one field is required")
    for field in fields:
        if not callable(field):
            raise ValueError(f"fields must be callable, got {type(field).__name__}")
    return fields, True


def _surface_iterator(shape, transform, level):
    if transform is None:
        return as_surface_iterator(shape, level)
    if isinstance(shape, SurfaceIterator):
        raise ValueError("a transform can only be applied to a Surface3D; "
                         "pass it to Surface3D.iterator instead")
    if not hasattr(shape, 'iterator'):
        raise ValueError(f"expected a Surface3D or a SurfaceIterator, "
                         f"got {type(shape).__name__}")
    return shape.iterator(transform=transform, level=level), len(shape)


def _check_degree(degree):
    if degree < 0:
        raise ValueError(f"degree must be non-negative, got {degree}")


def _flat(limit, ptype, pts):
    return limit is not None and nearly_flat(limit, ptype, pts)


def surface_integral(shape, f, degree: int, transform=None,
                     parallel: bool = False, partitions: Optional[int] = None,
                     level: int = 0, flatness_limit: Optional[float] = None):
    """Integral of a scalar field over a surface, ``int_S f dA``.

    Parameters
    ----------
    shape : Surface3D or SurfaceIterator
        Surface to integrate over.  An iterator is consumed.
    f : callable or sequence of callables
        ``f(x, y, z)`` taking coordinate arrays and returning an array
        broadcastable to their shape (a constant is fine).  A sequence
        gives the batched form.
    degree : int
        Degree of a polynomial approximating ``f`` over one patch.
    transform : callable, optional
        Applied to the control points of a ``Surface3D``'s patches; the
        surface itself is not modified.
    parallel : bool
        Integrate partitions on worker threads.
    partitions : int, optional
        Number of partitions for the parallel path.
    level : int
        Subdivision depth applied before integrating.  Useful when
        ``transform`` is not affine.
    flatness_limit : float, optional
        Patches that :func:`nearly_flat` accepts use a low-order rule.

    Returns
    -------
    float or ndarray
        The integral, or one integral per field in the batched form.
    """
    _check_degree(degree)
    fields, batched = _fields(f)
    iterator, n_source = _surface_iterator(shape, transform, level)

    def kernel(ptype, pts):
        n = scalar_order(ptype, degree, _flat(flatness_limit, ptype, pts))
        points, normals, weights = sample_segment(ptype, pts, n)
        dA = weights * np.linalg.norm(normals, axis=1)
        x, y, z = points.T
        return np.array([dA @ np.broadcast_to(field(x, y, z), x.shape)
                         for field in fields])

    total = integrate(iterator, kernel, (len(fields),), parallel=parallel,
                      partitions=partitions, max_partitions=n_source)
    return total if batched else float(total[0])


def flux_integral(shape, F, degree: int, transform=None,
                  parallel: bool = False, partitions: Optional[int] = None,
                  level: int = 0, flatness_limit: Optional[float] = None):
    """Flux of a vector field through a surface, ``int_S F . n dA``.

    Parameters
    ----------
    shape : Surface3D or SurfaceIterator
        Oriented surface to integrate over.  An iterator is consumed.
    F : callable or sequence of callables
        ``F(x, y, z)`` returning the three components, each broadcastable
        to the shape of the coordinate arrays.  A sequence gives the
        batched form.
    degree : int
        Degree of a polynomial approximating ``F`` over one patch.
    transform, parallel, partitions, level, flatness_limit
        As for :func:`surface_integral`.

    Returns
    -------
    float or ndarray
        The flux, or one flux per field in the batched form.

    Raises
    ------
    ValueError
        If the surface is two-sided.
    """
    _check_degree(degree)
    fields, batched = _fields(F)
    iterator, n_source = _surface_iterator(shape, transform, level)
    if not iterator.is_oriented():
        raise ValueError("a flux integral requires an oriented surface")

    def kernel(ptype, pts):
        n = flux_order(ptype, degree, _flat(flatness_limit, ptype, pts))
        points, normals, weights = sample_segment(ptype, pts, n)
        x, y, z = points.T
        out = np.empty(len(fields))
        for k, field in enumerate(fields):
            components = field(x, y, z)
            if len(components) != 3:
                raise ValueError(f"a vector field must return 3 components, "
                                 f"got {len(components)}")
            values = np.column_stack([np.broadcast_to(c, x.shape) for c in components])
            out[k] = weights @ np.einsum('ij,ij->i', values, normals)
        return out

    total = integrate(iterator, kernel, (len(fields),), parallel=parallel,
                      partitions=partitions, max_partitions=n_source)
    return total if batched else float(total[0])
