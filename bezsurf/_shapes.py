"""
Builders for reference surfaces.

Usage
-----
    from bezsurf._shapes import bezier_sphere, double_cone, box

    S = bezier_sphere(100.0)
    C = double_cone(50.0, 50.0, center=(51.0, 51.0, 0.0))
    B = box((0, 0, 0), (1, 2, 3), kind="cubic_patch")
"""

import numpy as np

from bezsurf._surface import Surface3D
from bezsurf.geometry import line_to_cubic, planar_to_cubic_triangle


def circle_arcs(radius, center=(0.0, 0.0, 0.0), n_arcs=12):
    """Counterclockwise circle in the plane ``z = center[2]`` as cubic arcs.

    Returns
    -------
    list of ndarray
        ``n_arcs`` control polygons ``(4, 3)``; consecutive arcs share
        their end points exactly.
    """
    c = np.asarray(center, dtype=float)
    angles = np.linspace(0.0, 2.0 * np.pi, n_arcs, endpoint=False)
    k = 4.0 / 3.0 * np.tan(np.pi / (2.0 * n_arcs))
    radial = np.column_stack([np.cos(angles), np.sin(angles), np.zeros(n_arcs)])
    tangent = np.column_stack([-np.sin(angles), np.cos(angles), np.zeros(n_arcs)])
    arcs = []
    for i in range(n_arcs):
        j = (i + 1) % n_arcs
        p0 = c + radius * radial[i]
        p3 = c + radius * radial[j]
        arcs.append(np.array([p0, p0 + k * radius * tangent[i],
                              p3 - k * radius * tangent[j], p3]))
    return arcs


def cone(radius, height, center=(0.0, 0.0, 0.0), n_arcs=12, surface=None):
    """Lateral surface of a cone made of cubic vertices.

    The base circle lies in the plane ``z = center[2]`` and the apex is at
    ``center + (0, 0, height)``; a negative height puts the apex below the
    base.  Normals point out of the cone.  The base is left open.
    """
    s = surface if surface is not None else Surface3D()
    apex = np.asarray(center, dtype=float) + [0.0, 0.0, height]
    for i, arc in enumerate(circle_arcs(radius, center, n_arcs)):
        if height >= 0.0:
            s.add_cubic_vertex(np.vstack([arc, apex]), tag=f"cone {i}")
        else:
            s.add_flipped_cubic_vertex(np.vstack([arc, apex]), tag=f"cone {i}")
    return s


def double_cone(radius, height, center=(0.0, 0.0, 0.0), n_arcs=12):
    """Two cones of the given ``height`` sharing a base circle: a closed solid."""
    s = cone(radius, height, center, n_arcs)
    return cone(radius, -height, center, n_arcs, surface=s)


def _sincos(angle):
    # exact values on the equator so both hemispheres share it
    if angle == 0.5 * np.pi:
        return 1.0, 0.0
    return np.sin(angle), np.cos(angle)


def _hermite_patch(r, phi0, phi1, theta0, theta1, dtheta):
    """Bicubic Hermite interpolant of the sphere on one parameter cell.

    ``u`` runs along the polar angle ``phi`` and ``v`` along ``theta`` so the
    normal points outward.  ``theta1`` is passed separately from ``dtheta``
    so the seam at ``theta = 0`` reuses exactly the same values.
    """
    dphi = phi1 - phi0
    grid = np.empty((4, 4, 3))
    for phi, su, (ia, ib) in ((phi0, 1.0, (0, 1)), (phi1, -1.0, (3, 2))):
        sp, cp = _sincos(phi)
        for theta, sv, (ja, jb) in ((theta0, 1.0, (0, 1)), (theta1, -1.0, (3, 2))):
            st, ct = np.sin(theta), np.cos(theta)
            p = r * np.array([sp * ct, sp * st, cp])
            p_phi = r * np.array([cp * ct, cp * st, -sp])
            p_theta = r * np.array([-sp * st, sp * ct, 0.0])
            p_phi_theta = r * np.array([-cp * st, cp * ct, 0.0])
            du = su * dphi / 3.0 * p_phi
            dv = sv * dtheta / 3.0 * p_theta
            duv = su * sv * dphi * dtheta / 9.0 * p_phi_theta
            grid[ja, ia] = p
            grid[ja, ib] = p + du
            grid[jb, ia] = p + dv
            grid[jb, ib] = p + du + dv + duv
    return grid.reshape(16, 3)


def bezier_sphere(radius, center=(0.0, 0.0, 0.0), n_theta=24, n_phi=6):
    """Sphere made of two hemispherical grids of cubic patches.

    The northern grid has ``n_theta`` patches around the axis and ``n_phi``
    from the pole to the equator; the patches interpolate the sphere and
    its derivatives at their corners.  The southern grid is its mirror
    image, appended with flipped orientation.  Patches touching a pole have
    one collapsed edge.
    """
    c = np.asarray(center, dtype=float)
    thetas = np.linspace(0.0, 2.0 * np.pi, n_theta, endpoint=False)
    dtheta = 2.0 * np.pi / n_theta
    phis = np.linspace(0.0, 0.5 * np.pi, n_phi + 1)
    north = [_hermite_patch(radius, phis[i], phis[i + 1], thetas[j],
                            thetas[(j + 1) % n_theta], dtheta)
             for i in range(n_phi) for j in range(n_theta)]
    s = Surface3D()
    for k, grid in enumerate(north):
        s.add_cubic_patch(grid + c, tag=f"north {k}")
    mirror = np.array([1.0, 1.0, -1.0])
    for k, grid in enumerate(north):
        s.add_flipped_cubic_patch(grid * mirror + c, tag=f"south {k}")
    return s


_BOX_FACES = (
    # corner indices, counterclockwise seen from outside
    (0, 3, 2, 1),  # z = lo
    (4, 5, 6, 7),  # z = hi
    (0, 1, 5, 4),  # y = lo
    (2, 3, 7, 6),  # y = hi
    (1, 2, 6, 5),  # x = hi
    (0, 4, 7, 3),  # x = lo
)


def _bilinear_patch(a, b, c, d):
    # corners (u, v) = (0,0), (1,0), (1,1), (0,1)
    grid = np.empty((4, 4, 3))
    grid[0] = line_to_cubic(a, b)
    grid[3] = line_to_cubic(d, c)
    for i in range(4):
        grid[:, i] = line_to_cubic(grid[0, i], grid[3, i])
    return grid.reshape(16, 3)


def box(lo, hi, kind="planar_triangle"):
    """Axis-aligned box with outward normals.

    Parameters
    ----------
    lo, hi : array_like
        Opposite corners.
    kind : str
        ``"planar_triangle"``, ``"cubic_triangle"`` (two triangles per face)
        or ``"cubic_patch"`` (one bilinear patch per face).
    """
    lo = np.asarray(lo, dtype=float)
    hi = np.asarray(hi, dtype=float)
    corners = np.array([[x, y, z] for z in (lo[2], hi[2])
                        for (x, y) in ((lo[0], lo[1]), (hi[0], lo[1]),
                                       (hi[0], hi[1]), (lo[0], hi[1]))])
    s = Surface3D()
    for f, (ia, ib, ic, id_) in enumerate(_BOX_FACES):
        a, b, c, d = corners[[ia, ib, ic, id_]]
        if kind == "cubic_patch":
            s.add_cubic_patch(_bilinear_patch(a, b, c, d), tag=f"face {f}")
            continue
        # planar triangle (P0, P1, P2) has normal (P2-P0) x (P1-P0)
        for tri in ((a, c, b), (a, d, c)):
            if kind == "planar_triangle":
                s.add_planar_triangle(np.array(tri), tag=f"face {f}")
            elif kind == "cubic_triangle":
                s.add_cubic_triangle(planar_to_cubic_triangle(np.array(tri)),
                                     tag=f"face {f}")
            else:
                raise ValueError(f"Unknown box kind: {kind!r}")
    return s
