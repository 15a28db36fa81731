"""
Coordinate transforms applied lazily by surface iterators.

A transform is any callable mapping an ``(n, 3)`` array of points to an
``(n, 3)`` array.  Affine maps keep Bezier patches exact (control points
transform like points); other maps are applied to the control points only.

Usage
-----
    from bezsurf.geometry import affine_transform, translation

    it = surface.iterator(transform=translation(1.0, 0.0, 0.0))
    it = surface.iterator(transform=affine_transform(np.diag([2.0, 2.0, 2.0])))
"""

import numpy as np


class AffineTransform:
    """Affine map ``x -> A x + b``.

    Parameters
    ----------
    matrix : array_like
        ``(3, 3)`` linear part, ``(3, 4)`` ``[A | b]`` or ``(4, 4)``
        homogeneous matrix.
    offset : array_like, optional
        Translation ``b`` when ``matrix`` is ``(3, 3)``.
    """

    def __init__(self, matrix, offset=None):
        m = np.asarray(matrix, dtype=float)
        if m.shape == (4, 4):
            if not np.array_equal(m[3], [0.0, 0.0, 0.0, 1.0]):
                raise ValueError("homogeneous matrix must have last row [0, 0, 0, 1]")
            m = m[:3]
        if m.shape == (3, 4):
            linear, b = m[:, :3], m[:, 3]
        elif m.shape == (3, 3):
            linear = m
            b = np.zeros(3) if offset is None else np.asarray(offset, dtype=float)
        else:
            raise ValueError(f"expected a 3x3, 3x4 or 4x4 matrix, got {m.shape}")
        if offset is not None and m.shape != (3, 3):
            raise ValueError("offset is only accepted with a 3x3 matrix")
        self.linear = linear.copy()
        self.offset = b.reshape(3).copy()

    def __call__(self, points):
        pts = np.asarray(points, dtype=float)
        return pts @ self.linear.T + self.offset

    def matrix(self) -> np.ndarray:
        """Homogeneous ``(4, 4)`` form."""
        out = np.eye(4)
        out[:3, :3] = self.linear
        out[:3, 3] = self.offset
        return out


def affine_transform(matrix, offset=None) -> AffineTransform:
    """Build an :class:`AffineTransform`."""
    return AffineTransform(matrix, offset)


def translation(dx: float, dy: float, dz: float) -> AffineTransform:
    """Pure translation."""
    return AffineTransform(np.eye(3), offset=[dx, dy, dz])
