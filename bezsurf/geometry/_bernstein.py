"""
Position and tangent evaluation for the four patch types.

All functions are pure and vectorized: ``u`` and ``v`` may be scalars or
arrays of the same shape, and the result has shape ``u.shape + (3,)``.

Usage
-----
    from bezsurf.geometry import PatchType, evaluate, u_tangent, normal

    p = evaluate(PatchType.CUBIC_PATCH, coords, 0.5, 0.5)
    n = normal(PatchType.CUBIC_PATCH, coords, 0.5, 0.5)
"""

from math import factorial

import numpy as np

from bezsurf.geometry._patch_types import PatchType, as_points

# (i, j, k) exponents of u, v, w for each cubic-triangle control point
TRIANGLE_EXPONENTS = np.array([
    (0, 0, 3), (0, 1, 2), (0, 2, 1), (0, 3, 0),
    (1, 0, 2), (1, 1, 1), (1, 2, 0),
    (2, 0, 1), (2, 1, 0),
    (3, 0, 0),
])

TRIANGLE_COEFFICIENTS = np.array([
    factorial(3) / (factorial(i) * factorial(j) * factorial(k))
    for i, j, k in TRIANGLE_EXPONENTS
])

# Point indices of named cubic-triangle control points
P003, P012, P021, P030, P102, P111, P120, P201, P210, P300 = range(10)


def bernstein3(t):
    """Cubic Bernstein basis, shape ``t.shape + (4,)``."""
    t = np.asarray(t, dtype=float)
    s = 1.0 - t
    return np.stack([s * s * s, 3.0 * t * s * s, 3.0 * t * t * s, t * t * t],
                    axis=-1)


def bernstein3_derivative(t):
    """Derivative of the cubic Bernstein basis, shape ``t.shape + (4,)``."""
    t = np.asarray(t, dtype=float)
    s = 1.0 - t
    return np.stack([-3.0 * s * s,
                     3.0 * s * s - 6.0 * t * s,
                     6.0 * t * s - 3.0 * t * t,
                     3.0 * t * t], axis=-1)


def _triangle_basis(u, v, w):
    i, j, k = TRIANGLE_EXPONENTS.T
    u, v, w = (x[..., None] for x in (u, v, w))
    return TRIANGLE_COEFFICIENTS * u ** i * v ** j * w ** k


def _triangle_basis_partial(u, v, w, axis):
    # d/du or d/dv along the plane w = 1 - u - v
    i, j, k = TRIANGLE_EXPONENTS.T
    u, v, w = (x[..., None] for x in (u, v, w))
    dw = k * u ** i * v ** j * w ** np.maximum(k - 1, 0)
    if axis == 0:
        d = i * u ** np.maximum(i - 1, 0) * v ** j * w ** k
    else:
        d = j * u ** i * v ** np.maximum(j - 1, 0) * w ** k
    return TRIANGLE_COEFFICIENTS * (d - dw)


def _broadcast_params(u, v, w=None):
    u = np.asarray(u, dtype=float)
    v = np.asarray(v, dtype=float)
    u, v = np.broadcast_arrays(u, v)
    if w is None:
        w = 1.0 - u - v
    else:
        w = np.broadcast_to(np.asarray(w, dtype=float), u.shape)
    return u, v, w


def _check_w(ptype, w):
    if w is not None and not ptype.is_triangle:
        raise ValueError(f"barycentric w is only defined for triangles, "
                         f"not {ptype.name}")


def evaluate(ptype: PatchType, coords, u, v, w=None) -> np.ndarray:
    """Evaluate a patch at parameters ``(u, v)``.

    Parameters
    ----------
    ptype : PatchType
        Patch type.
    coords : array_like
        Control points (flat or ``(n, 3)``).
    u, v : float or array_like
        Parameters.  Patches use ``[0, 1]^2``; triangle types use
        ``u, v >= 0, u + v <= 1``.
    w : float or array_like, optional
        Third barycentric coordinate for triangle types; defaults to
        ``1 - u - v``.

    Returns
    -------
    ndarray
        Points, shape ``np.shape(u) + (3,)``.
    """
    _check_w(ptype, w)
    pts = as_points(ptype, coords)
    u, v, w = _broadcast_params(u, v, w)
    if ptype is PatchType.CUBIC_PATCH:
        grid = pts.reshape(4, 4, 3)
        return np.einsum('...i,...j,jic->...c', bernstein3(u), bernstein3(v), grid)
    if ptype is PatchType.CUBIC_TRIANGLE:
        return np.einsum('...k,kc->...c', _triangle_basis(u, v, w), pts)
    if ptype is PatchType.PLANAR_TRIANGLE:
        return w[..., None] * pts[0] + v[..., None] * pts[1] + u[..., None] * pts[2]
    # CUBIC_VERTEX: ruled surface from the curve to the apex
    curve = np.einsum('...i,ic->...c', bernstein3(u), pts[:4])
    return (1.0 - v)[..., None] * curve + v[..., None] * pts[4]


def u_tangent(ptype: PatchType, coords, u, v, w=None) -> np.ndarray:
    """Partial derivative with respect to ``u``.

    For triangle types the derivative is taken with ``w = 1 - u - v``, i.e.
    along the parameter plane.
    """
    _check_w(ptype, w)
    pts = as_points(ptype, coords)
    u, v, w = _broadcast_params(u, v, w)
    if ptype is PatchType.CUBIC_PATCH:
        grid = pts.reshape(4, 4, 3)
        return np.einsum('...i,...j,jic->...c',
                         bernstein3_derivative(u), bernstein3(v), grid)
    if ptype is PatchType.CUBIC_TRIANGLE:
        return np.einsum('...k,kc->...c',
                         _triangle_basis_partial(u, v, w, 0), pts)
    if ptype is PatchType.PLANAR_TRIANGLE:
        return np.broadcast_to(pts[2] - pts[0], u.shape + (3,)).copy()
    dcurve = np.einsum('...i,ic->...c', bernstein3_derivative(u), pts[:4])
    return (1.0 - v)[..., None] * dcurve


def v_tangent(ptype: PatchType, coords, u, v, w=None) -> np.ndarray:
    """Partial derivative with respect to ``v``."""
    _check_w(ptype, w)
    pts = as_points(ptype, coords)
    u, v, w = _broadcast_params(u, v, w)
    if ptype is PatchType.CUBIC_PATCH:
        grid = pts.reshape(4, 4, 3)
        return np.einsum('...i,...j,jic->...c',
                         bernstein3(u), bernstein3_derivative(v), grid)
    if ptype is PatchType.CUBIC_TRIANGLE:
        return np.einsum('...k,kc->...c',
                         _triangle_basis_partial(u, v, w, 1), pts)
    if ptype is PatchType.PLANAR_TRIANGLE:
        return np.broadcast_to(pts[1] - pts[0], u.shape + (3,)).copy()
    curve = np.einsum('...i,ic->...c', bernstein3(u), pts[:4])
    return pts[4] - curve


def normal(ptype: PatchType, coords, u, v) -> np.ndarray:
    """Unit normal ``Pu x Pv / |Pu x Pv|``.

    Where the tangents are parallel or vanish (a collapsed edge, coincident
    control points) the zero vector is returned; use :func:`has_normal` to
    tell the cases apart.
    """
    n = np.cross(u_tangent(ptype, coords, u, v), v_tangent(ptype, coords, u, v))
    norm = np.linalg.norm(n, axis=-1, keepdims=True)
    out = np.zeros_like(n)
    np.divide(n, norm, out=out, where=norm > 0.0)
    return out


def has_normal(ptype: PatchType, coords, u, v):
    """True where the normal at ``(u, v)`` is defined."""
    n = np.cross(u_tangent(ptype, coords, u, v), v_tangent(ptype, coords, u, v))
    return np.linalg.norm(n, axis=-1) > 0.0


def elevate_degree(degree: int, coords) -> np.ndarray:
    """Raise a Bezier curve of the given degree by one, exactly.

    ``Q_0 = P_0``, ``Q_{n+1} = P_n`` and
    ``Q_i = (i P_{i-1} + (n+1-i) P_i) / (n+1)``.  Elevating the reversed curve
    gives the reversed result bit for bit, so two patches sharing an edge
    agree on its elevated form whichever direction they traverse it in.

    Parameters
    ----------
    degree : int
        Degree of the input curve (``>= 1``).
    coords : array_like
        ``degree + 1`` control points, as an ``(degree + 1, d)`` array or a
        flat array of ``3 * (degree + 1)`` coordinates.

    Returns
    -------
    ndarray
        ``degree + 2`` control points in the same layout as ``coords``.
    """
    if degree < 1:
        raise ValueError(f"degree must be at least 1, got {degree}")
    arr = np.asarray(coords, dtype=float)
    flat = arr.ndim == 1
    p = arr.reshape(degree + 1, -1) if flat else arr
    if p.shape[0] != degree + 1:
        raise ValueError(
            f"a degree {degree} curve has {degree + 1} control points, "
            f"got {p.shape[0]}"
        )
    n = degree
    q = np.empty((n + 2, p.shape[1]))
    q[0] = p[0]
    q[n + 1] = p[n]
    for i in range(1, n + 1):
        q[i] = (i * p[i - 1] + (n + 1 - i) * p[i]) / (n + 1)
    return q.reshape(-1) if flat else q


def line_to_cubic(p0, p1) -> np.ndarray:
    """Control points ``(4, 3)`` of the straight segment from ``p0`` to ``p1``."""
    line = np.array([p0, p1], dtype=float)
    return elevate_degree(2, elevate_degree(1, line))


def cubic_vertex_to_patch(coords) -> np.ndarray:
    """Exact cubic-patch form ``(16, 3)`` of a cubic vertex.

    Row ``v = 0`` is the curve, row ``v = 1`` is the apex repeated, and each
    column is the line from a curve control point to the apex.
    """
    pts = as_points(PatchType.CUBIC_VERTEX, coords)
    grid = np.empty((4, 4, 3))
    for i in range(4):
        grid[:, i] = line_to_cubic(pts[i], pts[4])
    return grid.reshape(16, 3)


def planar_to_cubic_triangle(coords) -> np.ndarray:
    """Exact cubic-triangle form ``(10, 3)`` of a planar triangle."""
    p0, p1, p2 = as_points(PatchType.PLANAR_TRIANGLE, coords)
    out = np.empty((10, 3))
    out[[P003, P012, P021, P030]] = line_to_cubic(p0, p1)
    out[[P003, P102, P201, P300]] = line_to_cubic(p0, p2)
    out[[P300, P210, P120, P030]] = line_to_cubic(p2, p1)
    out[P111] = (p0 + p1 + p2) / 3.0
    return out
