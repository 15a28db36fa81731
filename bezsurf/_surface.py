"""
Surface3D: an ordered collection of Bezier patches.

A surface is built by appending patches and is then treated as read-only
by geometric queries; ``reverse_orientation`` is the only operation that
rewrites existing patches.  Edge matching is computed on first use and
cached until the surface changes.

Usage
-----
    from bezsurf import Surface3D

    s = Surface3D()
    s.add_cubic_patch(grid)            # 16 points, row v=0 first
    s.add_cubic_vertex(curve_and_apex) # 4 curve points then the apex
    s.is_well_formed()
    s.get_boundary().is_empty()
    s.area(), s.volume()
"""

import logging
from typing import NamedTuple, Optional

import numpy as np

from bezsurf._config import DEFAULT_TOLERANCES, Tolerances
from bezsurf._iterators import PatchIterator, SubdivisionIterator, SurfaceIterator
from bezsurf._topology import (
    EdgeTable,
    chain_boundary,
    component_labels,
    match_edges,
)
from bezsurf.geometry import PatchType, as_points

logger = logging.getLogger(__name__)


class Patch(NamedTuple):
    """A stored patch: type, read-only ``(n, 3)`` control points and a tag."""
    ptype: PatchType
    points: np.ndarray
    tag: object = None


def _frozen_points(ptype: PatchType, coords) -> np.ndarray:
    pts = np.array(as_points(ptype, coords), dtype=float)
    if not np.all(np.isfinite(pts)):
        raise ValueError(f"{ptype.name} control points must be finite")
    pts.setflags(write=False)
    return pts


def reversed_points(ptype: PatchType, pts: np.ndarray) -> np.ndarray:
    """Control points of the same patch with its normal flipped.

    Cubic patches are transposed (``u`` and ``v`` swapped), cubic triangles
    swap the roles of ``u`` and ``v`` (``P_ijk -> P_jik``), planar triangles
    swap ``P1`` and ``P2`` and cubic vertices reverse their curve.  Each map
    is an involution.
    """
    if ptype is PatchType.CUBIC_PATCH:
        return pts.reshape(4, 4, 3).transpose(1, 0, 2).reshape(16, 3).copy()
    if ptype is PatchType.CUBIC_TRIANGLE:
        # P003 P012 P021 P030 P102 P111 P120 P201 P210 P300
        # -> P003 P102 P201 P300 P012 P111 P210 P021 P120 P030
        return pts[[0, 4, 7, 9, 1, 5, 8, 2, 6, 3]].copy()
    if ptype is PatchType.PLANAR_TRIANGLE:
        return pts[[0, 2, 1]].copy()
    if ptype is PatchType.CUBIC_VERTEX:
        return pts[[3, 2, 1, 0, 4]].copy()
    raise ValueError(f"Unknown patch type: {ptype!r}")


class Surface3D:
    """Insertion-ordered collection of patches.

    Parameters
    ----------
    oriented : bool
        True (default) for an orientable surface whose shared edges must be
        traversed in opposite directions by the two patches; False for a
        two-sided surface where either direction is accepted.
    tolerances : Tolerances, optional
        Matching tolerances; defaults to :data:`DEFAULT_TOLERANCES`.
    """

    def __init__(self, oriented: bool = True, tolerances: Optional[Tolerances] = None):
        self._oriented = oriented
        self.tolerances = tolerances if tolerances is not None else DEFAULT_TOLERANCES
        self._patches = []
        self._edges: Optional[EdgeTable] = None

    # -- construction -----------------------------------------------------

    def _append(self, ptype: PatchType, coords, tag=None, flip: bool = False):
        pts = _frozen_points(ptype, coords)
        if flip:
            pts = reversed_points(ptype, pts)
            pts.setflags(write=False)
        self._patches.append(Patch(ptype, pts, tag))
        self._edges = None

    def add_planar_triangle(self, coords, tag=None):
        """Append a planar triangle ``P0, P1, P2`` (normal ``(P2-P0) x (P1-P0)``)."""
        self._append(PatchType.PLANAR_TRIANGLE, coords, tag)

    def add_flipped_planar_triangle(self, coords, tag=None):
        self._append(PatchType.PLANAR_TRIANGLE, coords, tag, flip=True)

    def add_cubic_triangle(self, coords, tag=None):
        """Append a cubic triangle in P003, P012, ..., P300 order."""
        self._append(PatchType.CUBIC_TRIANGLE, coords, tag)

    def add_flipped_cubic_triangle(self, coords, tag=None):
        self._append(PatchType.CUBIC_TRIANGLE, coords, tag, flip=True)

    def add_cubic_patch(self, coords, tag=None):
        """Append a cubic patch; point ``(i, j)`` is at index ``4*j + i``."""
        self._append(PatchType.CUBIC_PATCH, coords, tag)

    def add_flipped_cubic_patch(self, coords, tag=None):
        self._append(PatchType.CUBIC_PATCH, coords, tag, flip=True)

    def add_cubic_vertex(self, coords, tag=None):
        """Append a cubic vertex: four curve control points, then the apex."""
        self._append(PatchType.CUBIC_VERTEX, coords, tag)

    def add_flipped_cubic_vertex(self, coords, tag=None):
        self._append(PatchType.CUBIC_VERTEX, coords, tag, flip=True)

    def append(self, other):
        """Append every patch of another surface or of a surface iterator.

        Tags are copied.  A ``SurfaceIterator`` is consumed.
        """
        if isinstance(other, Surface3D):
            # copy first: other may be self
            self._patches.extend(list(other._patches))
        elif isinstance(other, SurfaceIterator):
            while not other.is_done():
                ptype, pts = other.current_points()
                self._append(ptype, pts, other.current_tag())
                other.next()
        else:
            raise ValueError(
                f"can only append a Surface3D or a SurfaceIterator, "
                f"got {type(other).__name__}"
            )
        self._edges = None

    # -- queries -----------------------------------------------------------

    def __len__(self):
        return len(self._patches)

    def size(self) -> int:
        return len(self._patches)

    def is_oriented(self) -> bool:
        return self._oriented

    def get_segment(self, index: int, coords) -> PatchType:
        """Copy patch ``index`` into the flat buffer ``coords``; return its type."""
        patch = self._patches[index]
        n = patch.ptype.ncoords
        if len(coords) < n:
            raise ValueError(f"coordinate buffer too small for {patch.ptype.name}: "
                             f"need {n}, got {len(coords)}")
        coords[:n] = patch.points.reshape(-1)
        return patch.ptype

    def get_segment_tag(self, index: int):
        return self._patches[index].tag

    def segments(self):
        """Iterate over the stored :class:`Patch` records."""
        return iter(self._patches)

    def bounds(self):
        """Axis-aligned bounding box of the control points, ``(lo, hi)``.

        Bezier patches lie in the convex hull of their control points, so
        the box contains the surface.
        """
        if not self._patches:
            raise ValueError("an empty surface has no bounds")
        pts = np.vstack([p.points for p in self._patches])
        return pts.min(axis=0), pts.max(axis=0)

    def iterator(self, transform=None, level: int = 0) -> SurfaceIterator:
        """Return a fresh iterator over the patches.

        Parameters
        ----------
        transform : callable, optional
            Applied to each patch's control points as it is read.
        level : int
            Subdivision depth; each patch yields ``4**level`` children.
        """
        it = PatchIterator(self._patches, transform=transform, oriented=self._oriented)
        if level == 0:
            return it
        return SubdivisionIterator(it, level)

    # -- topology ------------------------------------------------------------

    def _edge_table(self) -> EdgeTable:
        if self._edges is None:
            self._edges = match_edges(self._patches, self._oriented, self.tolerances)
        return self._edges

    def is_well_formed(self, out=None) -> bool:
        """Check that every shared edge is shared by exactly two patches.

        Parameters
        ----------
        out : file-like, optional
            Receives one line per violation.

        Returns
        -------
        bool
            False for malformed surfaces; no exception is raised.
        """
        table = self._edge_table()
        for msg in table.violations:
            logger.debug(msg)
            if out is not None:
                out.write(msg + "\n")
        return table.well_formed

    def get_boundary(self):
        """Boundary as a :class:`Path3D`, or ``None`` if the surface is malformed.

        The path is empty for a closed manifold.
        """
        table = self._edge_table()
        if not table.well_formed:
            return None
        return chain_boundary(table)

    def is_closed_manifold(self) -> bool:
        table = self._edge_table()
        return table.well_formed and len(table.boundary_edges) == 0

    def _labels(self):
        return component_labels(len(self._patches), self._edge_table())

    def number_of_components(self) -> int:
        """Number of edge-connected components."""
        return self._labels()[0]

    def get_component(self, i: int) -> "Surface3D":
        """Component ``i`` as a new surface (components ordered by first patch)."""
        count, labels = self._labels()
        if not 0 <= i < count:
            raise ValueError(f"component index {i} out of range [0, {count})")
        component = Surface3D(self._oriented, self.tolerances)
        component._patches = [p for p, lab in zip(self._patches, labels) if lab == i]
        return component

    def reverse_orientation(self):
        """Flip the normal of every patch in place."""
        flipped = []
        for patch in self._patches:
            pts = reversed_points(patch.ptype, patch.points)
            pts.setflags(write=False)
            flipped.append(Patch(patch.ptype, pts, patch.tag))
        self._patches = flipped
        self._edges = None

    # -- integrals -------------------------------------------------------------

    def area(self, parallel: bool = False, partitions: Optional[int] = None,
             level: int = 0, config=None) -> float:
        """Surface area; see :func:`bezsurf.operators.surface_area`."""
        from bezsurf.operators.area import surface_area
        return surface_area(self, parallel=parallel, partitions=partitions,
                            level=level, config=config)

    def volume(self, parallel: bool = False, ref_point=None,
               partitions: Optional[int] = None, level: int = 0) -> float:
        """Enclosed volume; see :func:`bezsurf.operators.volume_of`."""
        from bezsurf.operators.volume import volume_of
        return volume_of(self, ref_point=ref_point, parallel=parallel,
                         partitions=partitions, level=level)
