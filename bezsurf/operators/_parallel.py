"""
Sequential and fork-join drivers for per-patch integrals.

A kernel maps one patch ``(ptype, points)`` to its contribution (a float
or a fixed-shape array).  The sequential driver feeds every patch of an
iterator into one :class:`KahanAccumulator`.  The parallel driver splits
the iterator into disjoint partitions, runs one worker per partition in a
thread pool created for the call, gives each worker its own accumulator
and adds the partial sums once every worker has finished.

Usage
-----
    total = integrate(surface.iterator(), kernel, parallel=True, partitions=4)
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from bezsurf._iterators import SubdivisionIterator, SurfaceIterator, SurfaceIteratorSplitter
from bezsurf.geometry import MAX_COORDS
from bezsurf.operators._accumulator import KahanAccumulator

logger = logging.getLogger(__name__)


def default_partitions() -> int:
    """Number of partitions used when the caller does not choose one."""
    return os.cpu_count() or 1


def as_surface_iterator(shape, level: int = 0):
    """Return ``(iterator, n_source_patches)`` for a surface or an iterator.

    ``n_source_patches`` is ``None`` when ``shape`` is already an iterator.
    """
    if isinstance(shape, SurfaceIterator):
        if level:
            return SubdivisionIterator(shape, level), None
        return shape, None
    if hasattr(shape, 'iterator'):
        return shape.iterator(level=level), len(shape)
    raise ValueError(f"expected a Surface3D or a SurfaceIterator, "
                     f"got {type(shape).__name__}")


def integrate_partition(iterator: SurfaceIterator, kernel: Callable,
                        shape=()) -> KahanAccumulator:
    """Consume ``iterator``, accumulating ``kernel(ptype, points)``."""
    acc = KahanAccumulator(shape)
    buf = np.empty(MAX_COORDS)
    while not iterator.is_done():
        ptype = iterator.current_segment(buf)
        acc.add(kernel(ptype, buf[:ptype.ncoords].reshape(-1, 3)))
        iterator.next()
    return acc


def integrate(iterator: SurfaceIterator, kernel: Callable, shape=(),
              parallel: bool = False, partitions: Optional[int] = None,
              max_partitions: Optional[int] = None):
    """Sum ``kernel`` over every patch of ``iterator``.

    Parameters
    ----------
    iterator : SurfaceIterator
        Patches to integrate over; consumed.
    kernel : callable
        ``kernel(ptype, points)`` returning a value of shape ``shape``.
    shape : tuple
        Shape of the kernel's values.
    parallel : bool
        Use one worker thread per partition.
    partitions : int, optional
        Number of partitions; defaults to :func:`default_partitions`.
    max_partitions : int, optional
        Upper bound on the partition count (e.g. the number of patches).

    Returns
    -------
    float or ndarray
        The total.  Parallel and sequential totals differ only by rounding.
    """
    if not parallel:
        return integrate_partition(iterator, kernel, shape).sum
    n = partitions if partitions is not None else default_partitions()
    if n < 1:
        raise ValueError(f"number of partitions must be positive, got {n}")
    if max_partitions is not None:
        n = max(1, min(n, max_partitions))
    splitter = SurfaceIteratorSplitter(n, iterator)
    parts = [splitter.get_surface_iterator(i) for i in range(n)]
    logger.debug("integrating over %d partitions", n)
    with ThreadPoolExecutor(max_workers=n) as pool:
        futures = [pool.submit(integrate_partition, part, kernel, shape)
                   for part in parts]
        partials = [f.result() for f in futures]
    total = partials[0]
    for partial in partials[1:]:
        total = total + partial
    return total.sum
