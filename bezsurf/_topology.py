"""
Edge extraction and matching for surfaces made of Bezier patches.

Every patch contributes up to four boundary edges, each expressed as a
cubic control polygon running counterclockwise around the patch's
parameter domain.  Two edges are shared when one is the reversal of the
other within the surface's tolerance.  The matching drives well-formedness
checks, boundary extraction and the component decomposition.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree

from bezsurf.geometry import Path3D, PatchType, line_to_cubic

logger = logging.getLogger(__name__)


def patch_edges(ptype: PatchType, pts: np.ndarray):
    """Return the non-degenerate edges of a patch as ``(side, curve)`` pairs.

    Curves are ``(4, 3)`` arrays in counterclockwise order around the
    parameter domain; edges whose control points all coincide (such as the
    apex side of a cubic vertex or the pole of a sphere patch) are skipped.
    """
    if ptype is PatchType.CUBIC_PATCH:
        g = pts.reshape(4, 4, 3)
        curves = [g[0, :], g[:, 3], g[3, ::-1], g[::-1, 0]]
    elif ptype is PatchType.CUBIC_TRIANGLE:
        curves = [pts[[0, 4, 7, 9]], pts[[9, 8, 6, 3]], pts[[3, 2, 1, 0]]]
    elif ptype is PatchType.PLANAR_TRIANGLE:
        p0, p1, p2 = pts
        curves = [line_to_cubic(p0, p2), line_to_cubic(p2, p1), line_to_cubic(p1, p0)]
    elif ptype is PatchType.CUBIC_VERTEX:
        curves = [pts[0:4], line_to_cubic(pts[3], pts[4]),
                  line_to_cubic(pts[4], pts[0])]
    else:
        raise ValueError(f"Unknown patch type: {ptype!r}")
    return [(side, np.array(c)) for side, c in enumerate(curves)
            if not np.all(c == c[0])]


@dataclass
class EdgeTable:
    """Result of matching the edges of a surface.

    Attributes
    ----------
    patch : ndarray
        Patch index of each edge.
    side : ndarray
        Side index of each edge within its patch.
    curves : ndarray
        ``(n_edges, 4, 3)`` control polygons.
    partner : ndarray
        Index of the matching edge, or -1 for an unmatched edge.
    tolerance : float
        Coordinate tolerance used for matching.
    violations : list of str
        Human-readable descriptions of malformations.
    """
    patch: np.ndarray
    side: np.ndarray
    curves: np.ndarray
    partner: np.ndarray
    tolerance: float
    violations: list = field(default_factory=list)

    @property
    def well_formed(self) -> bool:
        return not self.violations

    @property
    def boundary_edges(self) -> np.ndarray:
        return np.flatnonzero(self.partner < 0)


def _same(a, b, tol):
    return bool(np.all(np.abs(a - b) <= tol))


def match_edges(patches, oriented: bool, tolerances) -> EdgeTable:
    """Match the edges of ``patches`` pairwise.

    Candidate partners are found with a ``cKDTree`` over edge start points
    (Chebyshev distance); a candidate matches when all four control points
    agree within ``tolerances.edge_tolerance(scale)``, ``scale`` being the
    largest absolute coordinate of the surface.

    An edge with exactly one reversed partner is interior.  An edge with
    none is a boundary edge.  More than one partner, or on an oriented
    surface a partner running the same way, makes the surface malformed.
    Two-sided surfaces accept a single partner in either direction.
    """
    patch_idx, sides, curves = [], [], []
    for i, patch in enumerate(patches):
        for side, curve in patch_edges(patch.ptype, patch.points):
            patch_idx.append(i)
            sides.append(side)
            curves.append(curve)
    n_edges = len(curves)
    if n_edges == 0:
        return EdgeTable(np.empty(0, int), np.empty(0, int), np.empty((0, 4, 3)),
                         np.empty(0, int), tolerances.edge_tolerance(0.0))

    patch_idx = np.array(patch_idx)
    sides = np.array(sides)
    curves = np.array(curves)
    tol = tolerances.edge_tolerance(np.max(np.abs(curves)))
    starts = curves[:, 0]
    tree = cKDTree(starts)
    reversed_candidates = tree.query_ball_point(curves[:, 3], r=tol, p=np.inf)
    forward_candidates = tree.query_ball_point(starts, r=tol, p=np.inf)

    partner = np.full(n_edges, -1)
    violations = []

    def describe(e):
        return f"patch {patch_idx[e]} side {sides[e]}"

    for e in range(n_edges):
        rev = [f for f in reversed_candidates[e]
               if f != e and _same(curves[f][::-1], curves[e], tol)]
        fwd = [f for f in forward_candidates[e]
               if f != e and _same(curves[f], curves[e], tol)]
        if oriented:
            for f in fwd:
                violations.append(
                    f"{describe(e)}: shares an edge with {describe(f)} "
                    f"traversed in the same direction"
                )
            matches = rev
        else:
            matches = sorted(set(rev) | set(fwd))
        if len(matches) == 1:
            partner[e] = matches[0]
        elif len(matches) > 1:
            others = ", ".join(describe(f) for f in matches)
            violations.append(f"{describe(e)}: edge shared by {len(matches)} "
                              f"other edges ({others})")

    table = EdgeTable(patch_idx, sides, curves, partner, tol, violations)
    logger.debug("matched %d edges, %d boundary, %d violations (tolerance %g)",
                 n_edges, len(table.boundary_edges), len(violations), tol)
    return table


def chain_boundary(table: EdgeTable) -> Path3D:
    """Chain the unmatched edges of ``table`` into maximal paths.

    Each chain is followed forward from its lowest-numbered edge until it
    returns to its start (a closed subpath) or cannot continue; open chains
    are then extended backward.  The result is empty for a closed manifold.
    """
    path = Path3D()
    bidx = table.boundary_edges
    if len(bidx) == 0:
        return path
    curves = table.curves[bidx]
    tol = table.tolerance
    start_tree = cKDTree(curves[:, 0])
    end_tree = cKDTree(curves[:, 3])
    used = np.zeros(len(bidx), dtype=bool)

    def find(tree, point):
        hits = [k for k in tree.query_ball_point(point, r=tol, p=np.inf)
                if not used[k]]
        return min(hits) if hits else None

    for first in range(len(bidx)):
        if used[first]:
            continue
        chain = [first]
        used[first] = True
        closed = False
        while True:
            end = curves[chain[-1], 3]
            if _same(end, curves[first, 0], tol):
                closed = True
                break
            k = find(start_tree, end)
            if k is None:
                break
            chain.append(k)
            used[k] = True
        if not closed:
            while True:
                k = find(end_tree, curves[chain[0], 0])
                if k is None:
                    break
                chain.insert(0, k)
                used[k] = True
        path.move_to(curves[chain[0], 0])
        for k in chain:
            path.cubic_to(*curves[k, 1:])
        if closed:
            path.close_path()
    return path


def component_labels(n_patches: int, table: EdgeTable):
    """Connected components of the patch adjacency graph.

    Patches are adjacent when they share a matched edge.  Components are
    numbered in order of their lowest patch index.

    Returns
    -------
    (int, ndarray)
        Number of components and the component label of each patch.
    """
    if n_patches == 0:
        return 0, np.empty(0, dtype=int)
    matched = np.flatnonzero(table.partner >= 0)
    rows = table.patch[matched]
    cols = table.patch[table.partner[matched]]
    graph = coo_matrix((np.ones(len(matched)), (rows, cols)),
                       shape=(n_patches, n_patches))
    count, labels = connected_components(graph, directed=False)
    _, first = np.unique(labels, return_index=True)
    rank = np.empty(count, dtype=int)
    rank[np.argsort(first)] = np.arange(count)
    return count, rank[labels]
