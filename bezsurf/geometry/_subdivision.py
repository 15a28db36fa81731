"""
Subdivision of patches into children that reproduce the parent exactly.

Every split is written as chains of pairwise averages (de Casteljau
halving).  Averaging is symmetric in its arguments, so a boundary curve
halved from either end yields the same new points bit for bit.  Two
neighbouring patches that subdivide independently therefore agree on
their shared edge and the refined mesh has no cracks.

Usage
-----
    from bezsurf.geometry import split_segment, PatchType

    children = split_segment(PatchType.CUBIC_PATCH, coords)
    for ptype, pts in children:
        ...
"""

import numpy as np

from bezsurf.geometry._patch_types import PatchType, as_points
from bezsurf.geometry._bernstein import (
    cubic_vertex_to_patch,
    line_to_cubic,
    P003, P012, P021, P030, P102, P111, P120, P201, P210, P300,
)

#: Control points of the half ``t in [0, 1/2]`` of a cubic, as a matrix.
SPLIT_LEFT = np.array([
    [1.0, 0.0, 0.0, 0.0],
    [0.5, 0.5, 0.0, 0.0],
    [0.25, 0.5, 0.25, 0.0],
    [0.125, 0.375, 0.375, 0.125],
])

#: Control points of the half ``t in [1/2, 1]`` of a cubic, as a matrix.
SPLIT_RIGHT = SPLIT_LEFT[::-1, ::-1].copy()

# Relabelings new[i] = old[map[i]] that move the v=0 or w=0 edge to u=0
_V0_TO_U0 = [P300, P201, P102, P003, P210, P111, P012, P120, P021, P030]
_W0_TO_U0 = [P030, P120, P210, P300, P021, P111, P201, P012, P102, P003]


def _halve(arr, axis=0):
    """de Casteljau halving of cubics along ``axis`` (length 4 -> 7)."""
    p0, p1, p2, p3 = np.moveaxis(np.asarray(arr, dtype=float), axis, 0)
    m01 = (p0 + p1) * 0.5
    m12 = (p1 + p2) * 0.5
    m23 = (p2 + p3) * 0.5
    m012 = (m01 + m12) * 0.5
    m123 = (m12 + m23) * 0.5
    mid = (m012 + m123) * 0.5
    return np.moveaxis(np.stack([p0, m01, m012, mid, m123, m23, p3]), 0, axis)


def midcoord(a, b):
    """Midpoint of ``a`` and ``b``, symmetric bit for bit.

    ``midcoord(a, b) == midcoord(b, a)`` exactly for all finite inputs.  The
    value is the split point of the line from ``a`` to ``b`` in its cubic
    form (:func:`line_to_cubic`), so a planar triangle and a cubic patch
    sharing a straight edge produce the same new vertex.  Works elementwise
    on scalars and arrays.
    """
    return _halve(line_to_cubic(a, b))[3]


def split_cubic_bezier_curve(coords):
    """Split a cubic curve at ``t = 1/2``.

    Parameters
    ----------
    coords : array_like
        ``(4, d)`` control points, or 12 flat coordinates.

    Returns
    -------
    (ndarray, ndarray)
        Left and right halves as ``(4, d)`` arrays.  Reversing the input
        reverses and swaps the halves exactly.
    """
    pts = np.asarray(coords, dtype=float)
    if pts.ndim == 1:
        pts = pts.reshape(4, -1)
    if pts.shape[0] != 4:
        raise ValueError(f"a cubic curve has 4 control points, got {pts.shape[0]}")
    h = _halve(pts)
    return h[0:4].copy(), h[3:7].copy()


def _grid(coords):
    return as_points(PatchType.CUBIC_PATCH, coords).reshape(4, 4, 3)


def get_left_patch(coords) -> np.ndarray:
    """Half ``u in [0, 1/2]`` of a cubic patch, ``(16, 3)``."""
    return _halve(_grid(coords), axis=1)[:, 0:4].reshape(16, 3)


def get_right_patch(coords) -> np.ndarray:
    """Half ``u in [1/2, 1]`` of a cubic patch, ``(16, 3)``."""
    return _halve(_grid(coords), axis=1)[:, 3:7].reshape(16, 3)


def get_bottom_patch(coords) -> np.ndarray:
    """Half ``v in [0, 1/2]`` of a cubic patch, ``(16, 3)``."""
    return _halve(_grid(coords), axis=0)[0:4].reshape(16, 3)


def get_top_patch(coords) -> np.ndarray:
    """Half ``v in [1/2, 1]`` of a cubic patch, ``(16, 3)``."""
    return _halve(_grid(coords), axis=0)[3:7].reshape(16, 3)


def split_cubic_patch(coords):
    """Split a cubic patch into quadrants.

    Equivalent to ``S.CP.S^T`` per coordinate with ``S`` one of
    :data:`SPLIT_LEFT` / :data:`SPLIT_RIGHT`.

    Returns
    -------
    list of ndarray
        Four ``(16, 3)`` children: ``u, v`` in ``[0, 1/2]^2``,
        ``[1/2, 1] x [0, 1/2]``, ``[0, 1/2] x [1/2, 1]``, ``[1/2, 1]^2``.
    """
    g = _halve(_halve(_grid(coords), axis=1), axis=0)
    return [g[0:4, 0:4].reshape(16, 3), g[0:4, 3:7].reshape(16, 3),
            g[3:7, 0:4].reshape(16, 3), g[3:7, 3:7].reshape(16, 3)]


def permute_cubic_triangle(coords) -> np.ndarray:
    """Relabel a cubic triangle so its longest side is the ``u = 0`` edge.

    The relabeling is a cyclic permutation of ``(u, v, w)``, so the
    orientation (and the surface) is unchanged.
    """
    pts = as_points(PatchType.CUBIC_TRIANGLE, coords)
    len_v = np.sum((pts[P003] - pts[P030]) ** 2)
    len_u = np.sum((pts[P003] - pts[P300]) ** 2)
    len_w = np.sum((pts[P030] - pts[P300]) ** 2)
    if len_v >= len_u and len_v >= len_w:
        return pts.copy()
    if len_u >= len_w:
        return pts[_V0_TO_U0].copy()
    return pts[_W0_TO_U0].copy()


def split_cubic_triangle(coords):
    """Bisect a cubic triangle from the middle of its ``u = 0`` edge to ``P300``.

    Each child is relabeled so that its unsplit parent side becomes its own
    ``u = 0`` edge; splitting both children again bisects the two remaining
    parent sides.

    Returns
    -------
    (ndarray, ndarray)
        The children as ``(10, 3)`` arrays, the ``w >= v`` half first.
    """
    p = as_points(PatchType.CUBIC_TRIANGLE, coords)
    left, right = split_cubic_bezier_curve(p[[P003, P012, P021, P030]])
    cp120 = 0.25 * p[P102] + 0.5 * p[P111] + 0.25 * p[P120]
    cp210 = 0.5 * p[P201] + 0.5 * p[P210]
    cp111_l = 0.5 * p[P102] + 0.5 * p[P111]
    cp111_u = 0.5 * p[P120] + 0.5 * p[P111]
    t1 = np.array([p[P300], p[P201], p[P102], p[P003],
                   cp210, cp111_l, left[1], cp120, left[2], left[3]])
    t2 = np.array([p[P030], p[P120], p[P210], p[P300],
                   right[2], cp111_u, cp210, right[1], cp120, right[0]])
    return t1, t2


def quarter_cubic_triangle(coords):
    """Split a cubic triangle into four children, each parent side halved once."""
    a, b = split_cubic_triangle(permute_cubic_triangle(coords))
    return [*split_cubic_triangle(a), *split_cubic_triangle(b)]


def split_planar_triangle(coords):
    """Split a planar triangle at its edge midpoints.

    Returns the three corner children (at ``P0``, ``P1``, ``P2``) followed by
    the middle child, each ``(3, 3)``.
    """
    p0, p1, p2 = as_points(PatchType.PLANAR_TRIANGLE, coords)
    m01 = midcoord(p0, p1)
    m02 = midcoord(p0, p2)
    m12 = midcoord(p1, p2)
    return [np.array([p0, m01, m02]), np.array([m01, p1, m12]),
            np.array([m02, m12, p2]), np.array([m01, m12, m02])]


def split_cubic_vertex(coords):
    """Split a cubic vertex into two cubic patches and two cubic vertices.

    The lower half ``v in [0, 1/2]`` of the parameter square becomes two
    cubic patches (split in ``u``); the upper half becomes two cubic
    vertices whose curves are the top rows of those patches.

    Returns
    -------
    list of (PatchType, ndarray)
    """
    pts = as_points(PatchType.CUBIC_VERTEX, coords)
    grid = cubic_vertex_to_patch(pts).reshape(4, 4, 3)
    g = _halve(_halve(grid, axis=0)[0:4], axis=1)
    left = g[:, 0:4]
    right = g[:, 3:7]
    apex = pts[4][None, :]
    return [
        (PatchType.CUBIC_PATCH, left.reshape(16, 3)),
        (PatchType.CUBIC_PATCH, right.reshape(16, 3)),
        (PatchType.CUBIC_VERTEX, np.concatenate([left[3], apex])),
        (PatchType.CUBIC_VERTEX, np.concatenate([right[3], apex])),
    ]


def split_segment(ptype: PatchType, coords):
    """Split any patch into its four children.

    Returns
    -------
    list of (PatchType, ndarray)
        Children in a fixed order; each keeps the parent's orientation.
    """
    if ptype is PatchType.CUBIC_PATCH:
        return [(ptype, c) for c in split_cubic_patch(coords)]
    if ptype is PatchType.CUBIC_TRIANGLE:
        return [(ptype, c) for c in quarter_cubic_triangle(coords)]
    if ptype is PatchType.PLANAR_TRIANGLE:
        return [(ptype, c) for c in split_planar_triangle(coords)]
    if ptype is PatchType.CUBIC_VERTEX:
        return split_cubic_vertex(coords)
    raise ValueError(f"Unknown patch type: {ptype!r}")


def _curve_nearly_flat(limit, c):
    chord = c[3] - c[0]
    length = np.linalg.norm(chord)
    d = np.diff(c, axis=0)
    if length == 0.0:
        return bool(np.all(d == 0.0))
    dots = d @ chord
    if np.any(dots < 0.0):
        return False
    crosses = np.linalg.norm(np.cross(d, chord), axis=1)
    if np.any(crosses > limit * dots):
        return False
    ratios = np.linalg.norm(d, axis=1) / length
    return bool(np.all(np.abs(ratios - 1.0 / 3.0) <= limit))


def nearly_flat(limit: float, ptype: PatchType, coords) -> bool:
    """Heuristic test for a patch that is close to a parametrically linear one.

    Every control-polygon line (rows, columns and both diagonals of a patch;
    the three sides of a triangle) must have its legs pointing along the
    chord (``|leg x chord| <= limit * leg.chord``) with lengths within
    ``limit`` of a third of the chord.  A cubic triangle's interior point
    must also lie within ``limit`` times its longest side of the average of
    the side points.  Planar triangles return ``False``: they are already
    integrated exactly with low-order rules.

    Parameters
    ----------
    limit : float
        Flatness limit; larger values accept more curved patches.
    ptype : PatchType
        Patch type.
    coords : array_like
        Control points.
    """
    if ptype is PatchType.PLANAR_TRIANGLE:
        return False
    if ptype is PatchType.CUBIC_VERTEX:
        return nearly_flat(limit, PatchType.CUBIC_PATCH, cubic_vertex_to_patch(coords))
    pts = as_points(ptype, coords)
    if ptype is PatchType.CUBIC_PATCH:
        g = pts.reshape(4, 4, 3)
        lines = [g[j] for j in range(4)] + [g[:, i] for i in range(4)]
        lines.append(g[[0, 1, 2, 3], [0, 1, 2, 3]])
        lines.append(g[[0, 1, 2, 3], [3, 2, 1, 0]])
        return all(_curve_nearly_flat(limit, c) for c in lines)
    sides = [pts[[P003, P102, P201, P300]], pts[[P300, P210, P120, P030]],
             pts[[P030, P021, P012, P003]]]
    if not all(_curve_nearly_flat(limit, c) for c in sides):
        return False
    scale = max(np.linalg.norm(c[3] - c[0]) for c in sides)
    center = np.mean(pts[[P012, P021, P102, P201, P210, P120]], axis=0)
    return bool(np.linalg.norm(pts[P111] - center) <= limit * scale)
