"""
Gauss-Legendre sampling of patches for surface and flux integrals.

A sampler returns, for one patch, the quadrature points ``P``, the
unnormalized normals ``N = dP/du x dP/dv`` at those points and the weights
``W``, so that

    area         = sum(W * |N|)
    flux of F    = sum(W * F(P) . N)

Patches (and cubic vertices, through their exact patch form) use the
tensor rule on ``[0, 1]^2``.  Triangles use a collapsed rule: ``u`` nodes on
``[0, 1]`` and, for each, ``v`` nodes on ``[0, 1 - u]``.
"""

from functools import lru_cache

import numpy as np

from bezsurf._config import DEFAULT_QUADRATURE, QuadratureConfig
from bezsurf.geometry import (
    PatchType,
    cubic_vertex_to_patch,
    evaluate,
    u_tangent,
    v_tangent,
)
from bezsurf.operators._registry import MethodRegistry


@lru_cache(maxsize=None)
def gauss_legendre01(n: int):
    """Nodes and weights of the ``n``-point Gauss-Legendre rule on ``[0, 1]``."""
    if n < 1:
        raise ValueError(f"quadrature order must be positive, got {n}")
    x, w = np.polynomial.legendre.leggauss(n)
    t, wt = 0.5 * (x + 1.0), 0.5 * w
    t.setflags(write=False)
    wt.setflags(write=False)
    return t, wt


def _frozen(*arrays):
    for a in arrays:
        a.setflags(write=False)
    return arrays


@lru_cache(maxsize=None)
def square_rule(n: int):
    """Tensor rule on the unit square: flat ``(u, v, weights)``."""
    t, w = gauss_legendre01(n)
    u, v = np.meshgrid(t, t, indexing='ij')
    weights = np.outer(w, w)
    return _frozen(u.ravel(), v.ravel(), weights.ravel())


@lru_cache(maxsize=None)
def triangle_rule(n: int):
    """Collapsed rule on the triangle ``u, v >= 0, u + v <= 1``."""
    t, w = gauss_legendre01(n)
    u = np.repeat(t, n)
    v = (1.0 - u) * np.tile(t, n)
    weights = np.outer(w * (1.0 - t), w).ravel()
    return _frozen(u, v, weights)


def _sample(ptype, pts, rule):
    u, v, weights = rule
    points = evaluate(ptype, pts, u, v)
    normals = np.cross(u_tangent(ptype, pts, u, v), v_tangent(ptype, pts, u, v))
    return points, normals, weights


def sample_cubic_patch(pts, n):
    return _sample(PatchType.CUBIC_PATCH, pts, square_rule(n))


def sample_cubic_vertex(pts, n):
    return sample_cubic_patch(cubic_vertex_to_patch(pts), n)


def sample_cubic_triangle(pts, n):
    return _sample(PatchType.CUBIC_TRIANGLE, pts, triangle_rule(n))


def sample_planar_triangle(pts, n):
    return _sample(PatchType.PLANAR_TRIANGLE, pts, triangle_rule(n))


segment_samplers = MethodRegistry("segment sampler")
segment_samplers.register(PatchType.CUBIC_PATCH.value, sample_cubic_patch)
segment_samplers.register(PatchType.CUBIC_VERTEX.value, sample_cubic_vertex)
segment_samplers.register(PatchType.CUBIC_TRIANGLE.value, sample_cubic_triangle)
segment_samplers.register(PatchType.PLANAR_TRIANGLE.value, sample_planar_triangle)


def sample_segment(ptype: PatchType, pts, n: int):
    """Quadrature points, normals and weights for one patch.

    Parameters
    ----------
    ptype : PatchType
        Patch type.
    pts : ndarray
        ``(npoints, 3)`` control points.
    n : int
        Gauss-Legendre points per parameter direction.

    Returns
    -------
    (ndarray, ndarray, ndarray)
        Points ``(m, 3)``, unnormalized normals ``(m, 3)``, weights ``(m,)``.
    """
    return segment_samplers[ptype.value](pts, n)


def flux_order(ptype: PatchType, degree: int, flat: bool = False) -> int:
    """Points per direction that integrate a degree-``degree`` field's flux.

    ``3k+6`` for cubic patches and cubic vertices, ``3k+4`` for cubic
    triangles, ``3k+1`` for planar triangles; patches judged nearly flat use
    ``k+2``, the order of a bilinear patch.
    """
    if flat:
        return degree + 2
    if ptype in (PatchType.CUBIC_PATCH, PatchType.CUBIC_VERTEX):
        return 3 * degree + 6
    if ptype is PatchType.CUBIC_TRIANGLE:
        return 3 * degree + 4
    return 3 * degree + 1


def area_order(ptype: PatchType, config: QuadratureConfig = DEFAULT_QUADRATURE) -> int:
    if ptype in (PatchType.CUBIC_PATCH, PatchType.CUBIC_VERTEX):
        return config.area_points
    return config.area_triangle_points


def scalar_order(ptype: PatchType, degree: int, flat: bool = False) -> int:
    """Points per direction for the integral of a degree-``degree`` scalar field.

    ``|Pu x Pv|`` is not polynomial, so curved types get ``3k+8`` points;
    the constant area element of a planar triangle needs ``3k+2``.  Patches
    judged nearly flat use ``k+3``.
    """
    if flat:
        return degree + 3
    if ptype is PatchType.PLANAR_TRIANGLE:
        return 3 * degree + 2
    return 3 * degree + 8
