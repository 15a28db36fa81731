"""
Forward-only cursors over the patches of a surface.

A :class:`SurfaceIterator` exposes one patch at a time: ``is_done()``,
``current_segment(coords)`` (copies the control points into a caller
buffer and returns the patch type) and ``next()``.  Iterators are single
pass; build a new one to traverse again.

Usage
-----
    it = surface.iterator(level=2)
    coords = np.empty(MAX_COORDS)
    while not it.is_done():
        ptype = it.current_segment(coords)
        ...
        it.next()

    splitter = SurfaceIteratorSplitter(4, surface.iterator(level=2))
    parts = [splitter.get_surface_iterator(i) for i in range(4)]
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from bezsurf.geometry import MAX_COORDS, PatchType, split_segment

logger = logging.getLogger(__name__)


def _fill_buffer(coords, ptype: PatchType, pts: np.ndarray) -> PatchType:
    n = ptype.ncoords
    if len(coords) < n:
        raise ValueError(
            f"coordinate buffer too small for {ptype.name}: "
            f"need {n}, got {len(coords)}"
        )
    coords[:n] = pts.reshape(-1)
    return ptype


class SurfaceIterator(ABC):
    """Base class for single-pass cursors over surface patches."""

    @abstractmethod
    def is_done(self) -> bool:
        """True once every patch has been visited."""

    @abstractmethod
    def current_segment(self, coords) -> PatchType:
        """Copy the current patch's control points into ``coords``.

        Parameters
        ----------
        coords : ndarray
            Flat buffer with room for the patch (``MAX_COORDS`` always
            suffices).

        Returns
        -------
        PatchType
            Type of the current patch.

        Raises
        ------
        ValueError
            If ``coords`` is too short.
        RuntimeError
            If the iterator is exhausted.
        """

    @abstractmethod
    def next(self) -> None:
        """Advance to the next patch; ``RuntimeError`` when already done."""

    @abstractmethod
    def current_source_id(self) -> int:
        """Index, in the originating surface, of the current patch."""

    def current_tag(self):
        """Diagnostic tag of the current patch, or ``None``."""
        return None

    def is_oriented(self) -> bool:
        return True

    def partition(self, n: int) -> Optional[list]:
        """Split the remaining patches into ``n`` contiguous iterators.

        Returns ``None`` when the iterator cannot be split by index range;
        :class:`SurfaceIteratorSplitter` then drains it instead.
        """
        return None

    def _check_not_done(self):
        if self.is_done():
            raise RuntimeError("surface iterator is exhausted")

    def current_points(self):
        """Return ``(ptype, points)`` for the current patch as a fresh array."""
        buf = np.empty(MAX_COORDS)
        ptype = self.current_segment(buf)
        return ptype, buf[:ptype.ncoords].reshape(-1, 3).copy()

    def segments(self):
        """Consume the iterator, yielding ``(ptype, points)`` pairs."""
        while not self.is_done():
            yield self.current_points()
            self.next()


def _range_bounds(start: int, stop: int, n: int):
    count = stop - start
    return [start + (count * k) // n for k in range(n + 1)]


class PatchIterator(SurfaceIterator):
    """Cursor over ``patches[start:stop]``.

    Parameters
    ----------
    patches : sequence
        Patch records with ``ptype``, ``points`` and ``tag`` attributes.
    start, stop : int
        Index range to visit.
    transform : callable, optional
        Applied to each patch's ``(n, 3)`` control points when it is read.
    oriented : bool
        Orientation mode of the surface the patches come from.
    """

    def __init__(self, patches, start: int = 0, stop: Optional[int] = None,
                 transform=None, oriented: bool = True):
        self._patches = patches
        self._index = start
        self._stop = len(patches) if stop is None else stop
        self._transform = transform
        self._oriented = oriented

    def is_done(self) -> bool:
        return self._index >= self._stop

    def current_segment(self, coords) -> PatchType:
        self._check_not_done()
        patch = self._patches[self._index]
        pts = patch.points
        if self._transform is not None:
            pts = np.asarray(self._transform(pts), dtype=float)
        return _fill_buffer(coords, patch.ptype, pts)

    def next(self) -> None:
        self._check_not_done()
        self._index += 1

    def current_source_id(self) -> int:
        self._check_not_done()
        return self._index

    def current_tag(self):
        self._check_not_done()
        return self._patches[self._index].tag

    def is_oriented(self) -> bool:
        return self._oriented

    def partition(self, n: int) -> list:
        bounds = _range_bounds(self._index, self._stop, n)
        return [PatchIterator(self._patches, bounds[k], bounds[k + 1],
                              self._transform, self._oriented)
                for k in range(n)]


class SegmentListIterator(SurfaceIterator):
    """Cursor over a list of ``(ptype, points, source_id, tag)`` entries."""

    def __init__(self, entries, oriented: bool = True):
        self._entries = entries
        self._index = 0
        self._oriented = oriented

    def is_done(self) -> bool:
        return self._index >= len(self._entries)

    def current_segment(self, coords) -> PatchType:
        self._check_not_done()
        ptype, pts, _, _ = self._entries[self._index]
        return _fill_buffer(coords, ptype, pts)

    def next(self) -> None:
        self._check_not_done()
        self._index += 1

    def current_source_id(self) -> int:
        self._check_not_done()
        return self._entries[self._index][2]

    def current_tag(self):
        self._check_not_done()
        return self._entries[self._index][3]

    def is_oriented(self) -> bool:
        return self._oriented

    def partition(self, n: int) -> list:
        bounds = _range_bounds(self._index, len(self._entries), n)
        return [SegmentListIterator(self._entries[bounds[k]:bounds[k + 1]],
                                    self._oriented)
                for k in range(n)]


class SubdivisionIterator(SurfaceIterator):
    """Decorate an iterator so each patch is replaced by ``4**level`` children.

    Children are produced depth first from an explicit stack whose size
    never exceeds ``3 * level + 1`` entries.  ``current_source_id()`` reports
    the index of the patch a child came from, so it never decreases.

    Parameters
    ----------
    src : SurfaceIterator
        Iterator supplying the patches to subdivide.  It is advanced by this
        iterator and must not be used directly afterwards.
    level : int
        Number of times each patch is split into four.

    Raises
    ------
    ValueError
        If ``level`` is negative.
    """

    def __init__(self, src: SurfaceIterator, level: int):
        if level < 0:
            raise ValueError(f"subdivision level must be non-negative, got {level}")
        self._src = src
        self._level = level
        self._stack = []
        self._source_id = -1
        self._tag = None
        self._started = False
        self._load()

    def _load(self):
        if self._src.is_done():
            return
        buf = np.empty(MAX_COORDS)
        ptype = self._src.current_segment(buf)
        self._source_id = self._src.current_source_id()
        self._tag = self._src.current_tag()
        self._stack.append((ptype, buf[:ptype.ncoords].reshape(-1, 3).copy(), 0))
        self._descend()

    def _descend(self):
        while self._stack and self._stack[-1][2] < self._level:
            ptype, pts, depth = self._stack.pop()
            for child_type, child in reversed(split_segment(ptype, pts)):
                self._stack.append((child_type, child, depth + 1))

    @property
    def level(self) -> int:
        return self._level

    def is_done(self) -> bool:
        return not self._stack

    def current_segment(self, coords) -> PatchType:
        self._check_not_done()
        ptype, pts, _ = self._stack[-1]
        return _fill_buffer(coords, ptype, pts)

    def next(self) -> None:
        self._check_not_done()
        self._started = True
        self._stack.pop()
        if self._stack:
            self._descend()
        else:
            self._src.next()
            self._load()

    def current_source_id(self) -> int:
        self._check_not_done()
        return self._source_id

    def current_tag(self):
        self._check_not_done()
        return self._tag

    def is_oriented(self) -> bool:
        return self._src.is_oriented()

    def partition(self, n: int) -> Optional[list]:
        # Only a fresh iterator can be split by source range
        if self._started:
            return None
        parts = self._src.partition(n)
        if parts is None:
            return None
        return [SubdivisionIterator(p, self._level) for p in parts]


class SurfaceIteratorSplitter:
    """Split an iterator into ``n`` disjoint, contiguous partitions.

    Partitions are index ranges over the source patches, so a subdivided
    iterator is split before subdivision and every child stays with its
    parent.  Iterators that cannot be split by range are drained into a
    list first.  Partition membership depends only on the patch sequence
    and ``n``.  The base iterator must not be used after splitting.

    Parameters
    ----------
    n : int
        Number of partitions (``>= 1``).  Some may be empty.
    iterator : SurfaceIterator
        Iterator to split.
    """

    def __init__(self, n: int, iterator: SurfaceIterator):
        if n < 1:
            raise ValueError(f"number of partitions must be positive, got {n}")
        parts = iterator.partition(n)
        if parts is None:
            entries = []
            while not iterator.is_done():
                ptype, pts = iterator.current_points()
                entries.append((ptype, pts, iterator.current_source_id(),
                                iterator.current_tag()))
                iterator.next()
            logger.debug("drained %d segments for splitting", len(entries))
            parts = SegmentListIterator(entries, iterator.is_oriented()).partition(n)
        self._parts = parts

    def number_of_partitions(self) -> int:
        return len(self._parts)

    def __len__(self):
        return len(self._parts)

    def get_surface_iterator(self, i: int) -> SurfaceIterator:
        """Iterator for partition ``i`` (``0 <= i < n``)."""
        if not 0 <= i < len(self._parts):
            raise ValueError(f"partition index {i} out of range [0, {len(self._parts)})")
        return self._parts[i]
