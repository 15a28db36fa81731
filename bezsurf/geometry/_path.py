"""
Piecewise-cubic 3D paths, used to report surface boundaries.

A path is a list of segments ``(segment_type, control_points)``.  Each
subpath starts with ``MOVETO``, continues with ``CUBICTO`` segments (three
control points each, the start point being the previous end point) and is
optionally terminated by ``CLOSE``.

Usage
-----
    path = Path3D()
    path.move_to(p0)
    path.cubic_to(p1, p2, p3)
    path.close_path()
    path.length()
"""

import numpy as np

from bezsurf.geometry._bernstein import bernstein3, bernstein3_derivative

MOVETO = "moveto"
CUBICTO = "cubicto"
CLOSE = "close"


class Path3D:
    """Sequence of cubic Bezier segments in 3D."""

    def __init__(self):
        self._segments = []
        self._current = None

    def move_to(self, point):
        """Start a new subpath at ``point``."""
        p = np.array(point, dtype=float).reshape(1, 3)
        self._segments.append((MOVETO, p))
        self._current = p[0]

    def cubic_to(self, p1, p2, p3):
        """Append a cubic segment from the current point."""
        if self._current is None:
            raise RuntimeError("cubic_to called before move_to")
        pts = np.array([p1, p2, p3], dtype=float).reshape(3, 3)
        self._segments.append((CUBICTO, pts))
        self._current = pts[2]

    def close_path(self):
        """Mark the current subpath as closed."""
        if self._current is None:
            raise RuntimeError("close_path called before move_to")
        self._segments.append((CLOSE, np.empty((0, 3))))
        self._current = None

    def is_empty(self) -> bool:
        return not self._segments

    def __len__(self):
        return len(self._segments)

    def segments(self):
        """Iterate over ``(segment_type, control_points)`` pairs (copies)."""
        for kind, pts in self._segments:
            yield kind, pts.copy()

    def subpaths(self):
        """Return a list of subpaths, each a list of ``(4, 3)`` cubic arrays."""
        result = []
        start = None
        for kind, pts in self._segments:
            if kind == MOVETO:
                result.append([])
                start = pts[0]
            elif kind == CUBICTO:
                result[-1].append(np.vstack([start, pts]))
                start = pts[2]
        return result

    def is_closed(self, index: int) -> bool:
        """True if subpath ``index`` ends with ``CLOSE``."""
        count = -1
        closed = []
        for kind, _ in self._segments:
            if kind == MOVETO:
                count += 1
                closed.append(False)
            elif kind == CLOSE:
                closed[count] = True
        return closed[index]

    def length(self, n_points: int = 10) -> float:
        """Arc length of all cubic segments by Gauss-Legendre quadrature."""
        x, w = np.polynomial.legendre.leggauss(n_points)
        t = 0.5 * (x + 1.0)
        db = bernstein3_derivative(t)
        total = 0.0
        for sub in self.subpaths():
            for curve in sub:
                speed = np.linalg.norm(db @ curve, axis=1)
                total += 0.5 * float(np.dot(w, speed))
        return total

    def points(self, n_per_segment: int = 8) -> np.ndarray:
        """Sample every cubic segment at ``n_per_segment`` parameters in [0, 1)."""
        t = np.arange(n_per_segment) / n_per_segment
        b = bernstein3(t)
        samples = [b @ curve for sub in self.subpaths() for curve in sub]
        if not samples:
            return np.empty((0, 3))
        return np.vstack(samples)
