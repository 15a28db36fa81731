"""
Patch type tags and control-point array helpers.

Every patch is a flat array of 3D control points whose length is fixed by
its type.  Internally the points are handled as ``(npoints, 3)`` arrays;
flat arrays of the right length are accepted everywhere.
"""

from enum import Enum

import numpy as np

#: Largest flat control-point array of any patch type (a cubic patch).
MAX_COORDS = 48


class PatchType(Enum):
    """Tag identifying the kind of patch a control-point array describes."""
    PLANAR_TRIANGLE = "planar_triangle"
    CUBIC_TRIANGLE = "cubic_triangle"
    CUBIC_PATCH = "cubic_patch"
    CUBIC_VERTEX = "cubic_vertex"

    @property
    def npoints(self) -> int:
        """Number of control points."""
        return _NPOINTS[self]

    @property
    def ncoords(self) -> int:
        """Length of the flat coordinate array."""
        return 3 * _NPOINTS[self]

    @property
    def is_triangle(self) -> bool:
        """True for types parametrized on the triangle u, v >= 0, u + v <= 1."""
        return self in (PatchType.PLANAR_TRIANGLE, PatchType.CUBIC_TRIANGLE)


_NPOINTS = {
    PatchType.PLANAR_TRIANGLE: 3,
    PatchType.CUBIC_TRIANGLE: 10,
    PatchType.CUBIC_PATCH: 16,
    PatchType.CUBIC_VERTEX: 5,
}


def as_points(ptype: PatchType, coords) -> np.ndarray:
    """Return the control points of a patch as an ``(npoints, 3)`` array.

    Parameters
    ----------
    ptype : PatchType
        Patch type.
    coords : array_like
        Flat array with at least ``ptype.ncoords`` entries, or an array of
        3D points with at least ``ptype.npoints`` rows.  Extra trailing
        entries are ignored.

    Raises
    ------
    ValueError
        If ``coords`` is too short for the patch type.
    """
    if not isinstance(ptype, PatchType):
        raise ValueError(f"Unknown patch type: {ptype!r}")
    arr = np.asarray(coords, dtype=float)
    if arr.ndim == 2 and arr.shape[1] == 3:
        arr = arr.reshape(-1)
    elif arr.ndim != 1:
        raise ValueError(
            f"control points must be a flat array or an (n, 3) array, "
            f"got shape {arr.shape}"
        )
    if arr.size < ptype.ncoords:
        raise ValueError(
            f"{ptype.name} needs {ptype.ncoords} coordinates, got {arr.size}"
        )
    return arr[:ptype.ncoords].reshape(-1, 3)
