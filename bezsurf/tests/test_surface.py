"""Tests for Surface3D: construction, well-formedness, boundary, components."""

import io
import logging

import numpy as np
import numpy.testing as npt
import pytest

from bezsurf import MAX_COORDS, PatchType, Surface3D, Tolerances
from bezsurf._shapes import bezier_sphere, box, cone, double_cone

BOX_KINDS = ["planar_triangle", "cubic_triangle", "cubic_patch"]


def _without(surface, tag):
    """Copy of ``surface`` without the patches tagged ``tag``."""
    out = Surface3D(surface.is_oriented(), surface.tolerances)
    for patch in surface.segments():
        if patch.tag != tag:
            add = {
                PatchType.PLANAR_TRIANGLE: out.add_planar_triangle,
                PatchType.CUBIC_TRIANGLE: out.add_cubic_triangle,
                PatchType.CUBIC_PATCH: out.add_cubic_patch,
                PatchType.CUBIC_VERTEX: out.add_cubic_vertex,
            }[patch.ptype]
            add(patch.points, tag=patch.tag)
    return out


# Construction

class TestConstruction:
    def test_add_and_read_back(self):
        s = Surface3D()
        pts = np.arange(48, dtype=float).reshape(16, 3)
        s.add_cubic_patch(pts, tag="a")
        s.add_planar_triangle(pts[:3].ravel())
        assert len(s) == s.size() == 2
        buf = np.zeros(MAX_COORDS)
        assert s.get_segment(0, buf) is PatchType.CUBIC_PATCH
        npt.assert_array_equal(buf, pts.ravel())
        assert s.get_segment(1, buf) is PatchType.PLANAR_TRIANGLE
        npt.assert_array_equal(buf[:9], pts[:3].ravel())
        assert s.get_segment_tag(0) == "a"
        assert s.get_segment_tag(1) is None

    def test_stored_points_are_copies(self):
        s = Surface3D()
        pts = np.eye(3)
        s.add_planar_triangle(pts)
        pts[0, 0] = 5.0
        stored = next(s.segments()).points
        assert stored[0, 0] == 1.0
        with pytest.raises(ValueError):
            stored[0, 0] = 2.0

    def test_get_segment_buffer_too_small(self):
        s = Surface3D()
        s.add_cubic_vertex(np.zeros((5, 3)))
        with pytest.raises(ValueError, match="buffer too small"):
            s.get_segment(0, np.empty(12))

    def test_non_finite_rejected(self):
        s = Surface3D()
        pts = np.zeros((3, 3))
        pts[1, 2] = np.nan
        with pytest.raises(ValueError, match="finite"):
            s.add_planar_triangle(pts)
        pts[1, 2] = np.inf
        with pytest.raises(ValueError, match="finite"):
            s.add_planar_triangle(pts)
        assert len(s) == 0

    def test_short_input_rejected(self):
        with pytest.raises(ValueError):
            Surface3D().add_cubic_triangle(np.zeros(27))

    def test_flipped_addition_reverses_normal(self):
        from bezsurf.geometry import normal
        pts = np.array([[0.0, 0, 0], [0.0, 1, 0], [1.0, 0, 0]])
        s = Surface3D()
        s.add_planar_triangle(pts)
        s.add_flipped_planar_triangle(pts)
        a, b = (p.points for p in s.segments())
        npt.assert_allclose(normal(PatchType.PLANAR_TRIANGLE, a, 0.2, 0.2), [0, 0, 1])
        npt.assert_allclose(normal(PatchType.PLANAR_TRIANGLE, b, 0.2, 0.2), [0, 0, -1])

    def test_bounds(self):
        s = box((-1, 2, 3), (4, 5, 6))
        lo, hi = s.bounds()
        npt.assert_array_equal(lo, [-1, 2, 3])
        npt.assert_array_equal(hi, [4, 5, 6])
        with pytest.raises(ValueError, match="empty"):
            Surface3D().bounds()

    def test_append_surface_and_iterator(self):
        a = box((0, 0, 0), (1, 1, 1))
        b = box((5, 0, 0), (6, 1, 1))
        a.append(b)
        assert len(a) == 24
        c = Surface3D()
        c.append(b.iterator(level=1))
        assert len(c) == 48
        assert c.get_segment_tag(0) == "face 0"

    def test_append_to_itself_doubles(self):
        s = box((0, 0, 0), (1, 1, 1))
        s.append(s)
        assert len(s) == 24
        buf_a, buf_b = np.empty(MAX_COORDS), np.empty(MAX_COORDS)
        for i in range(12):
            t = s.get_segment(i, buf_a)
            assert s.get_segment(i + 12, buf_b) is t
            npt.assert_array_equal(buf_a[:t.ncoords], buf_b[:t.ncoords])
            assert s.get_segment_tag(i) == s.get_segment_tag(i + 12)
        assert not s.is_well_formed()

    def test_append_own_iterator_doubles(self):
        s = box((0, 0, 0), (1, 1, 1))
        s.append(s.iterator())
        assert len(s) == 24

    def test_append_rejects_other_types(self):
        with pytest.raises(ValueError, match="can only append"):
            Surface3D().append([1, 2, 3])


# Well-formedness and boundary

class TestWellFormed:
    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_box_is_closed_manifold(self, kind):
        s = box((0, 0, 0), (1, 2, 3), kind=kind)
        assert s.is_well_formed()
        assert s.is_closed_manifold()
        assert s.get_boundary().is_empty()
        assert s.number_of_components() == 1

    def test_sphere_is_closed_manifold(self):
        s = bezier_sphere(100.0)
        assert len(s) == 288
        assert s.is_well_formed()
        assert s.get_boundary().is_empty()

    def test_double_cone_is_closed_manifold(self):
        s = double_cone(50.0, 50.0, center=(51.0, 51.0, 0.0))
        assert s.is_closed_manifold()

    def test_cone_boundary_is_base_circle(self):
        s = cone(50.0, 50.0, center=(51.0, 51.0, 0.0))
        assert s.is_well_formed()
        assert not s.is_closed_manifold()
        path = s.get_boundary()
        assert len(path.subpaths()) == 1
        assert path.is_closed(0)
        assert path.length() == pytest.approx(100.0 * np.pi, rel=1e-5)
        pts = path.points()
        npt.assert_allclose(np.linalg.norm(pts[:, :2] - 51.0, axis=1), 50.0, rtol=1e-3)
        npt.assert_array_equal(pts[:, 2], 0.0)

    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_open_box_boundary(self, kind):
        s = _without(box((0, 0, 0), (1, 2, 3), kind=kind), "face 1")
        assert s.is_well_formed()
        path = s.get_boundary()
        assert len(path.subpaths()) == 1
        assert path.is_closed(0)
        assert path.length() == pytest.approx(6.0)
        npt.assert_allclose(path.points()[:, 2], 3.0)

    def test_duplicate_patch_is_malformed(self):
        s = box((0, 0, 0), (1, 1, 1))
        s.add_planar_triangle(next(s.segments()).points)
        out = io.StringIO()
        assert not s.is_well_formed(out)
        assert "shared by 2" in out.getvalue()
        assert s.get_boundary() is None
        assert not s.is_closed_manifold()

    def test_same_direction_edge_is_malformed(self):
        pts = np.array([[0.0, 0, 0], [0.0, 1, 0], [1.0, 0, 0]])
        other = np.array([[0.0, 0, 0], [-1.0, 0, 0], [0.0, 1, 0]])
        s = Surface3D()
        s.add_planar_triangle(pts)
        s.add_flipped_planar_triangle(other)
        out = io.StringIO()
        assert not s.is_well_formed(out)
        assert "same direction" in out.getvalue()

    def test_two_sided_accepts_either_direction(self):
        pts = np.array([[0.0, 0, 0], [0.0, 1, 0], [1.0, 0, 0]])
        other = np.array([[0.0, 0, 0], [-1.0, 0, 0], [0.0, 1, 0]])
        s = Surface3D(oriented=False)
        s.add_planar_triangle(pts)
        s.add_flipped_planar_triangle(other)
        assert s.is_well_formed()
        assert s.number_of_components() == 1
        assert sum(len(sp) for sp in s.get_boundary().subpaths()) == 4

    def test_flipped_face_breaks_oriented_box(self):
        s = box((0, 0, 0), (1, 1, 1), kind="cubic_patch")
        faces = [p.points for p in s.segments()]
        t = Surface3D()
        for k, f in enumerate(faces):
            (t.add_flipped_cubic_patch if k == 0 else t.add_cubic_patch)(f)
        assert not t.is_well_formed()
        u = Surface3D(oriented=False)
        for k, f in enumerate(faces):
            (u.add_flipped_cubic_patch if k == 0 else u.add_cubic_patch)(f)
        assert u.is_well_formed()
        assert u.get_boundary().is_empty()

    def test_violations_logged(self, caplog):
        s = box((0, 0, 0), (1, 1, 1))
        s.add_planar_triangle(next(s.segments()).points)
        with caplog.at_level(logging.DEBUG, logger="bezsurf"):
            s.is_well_formed()
        assert any("shared by" in r.getMessage() for r in caplog.records)

    def test_tolerance_absorbs_rounding(self):
        pts = np.array([[0.0, 0, 0], [0.0, 1, 0], [1.0, 0, 0]])
        other = np.array([[0.0, 1, 0], [1.0, 1, 0], [1.0, 1e-15, 0]])
        s = Surface3D()
        s.add_planar_triangle(pts)
        s.add_planar_triangle(other)
        assert s.is_well_formed()
        strict = Surface3D(tolerances=Tolerances(edge_ulps=0.0, absolute=1e-18))
        strict.add_planar_triangle(pts)
        strict.add_planar_triangle(other)
        assert len(strict.get_boundary().subpaths()) == 2

    def test_cache_invalidated_on_change(self):
        s = _without(box((0, 0, 0), (1, 1, 1)), "face 1")
        assert not s.is_closed_manifold()
        for patch in box((0, 0, 0), (1, 1, 1)).segments():
            if patch.tag == "face 1":
                s.add_planar_triangle(patch.points)
        assert s.is_closed_manifold()


# Components and orientation

class TestComponents:
    def test_two_boxes(self):
        s = box((0, 0, 0), (1, 1, 1))
        s.append(box((3, 0, 0), (5, 1, 1)))
        assert s.number_of_components() == 2
        first = s.get_component(0)
        second = s.get_component(1)
        assert len(first) == len(second) == 12
        assert first.volume() == pytest.approx(1.0)
        assert second.volume() == pytest.approx(2.0)
        assert first.is_closed_manifold() and second.is_closed_manifold()

    def test_component_order_follows_first_patch(self):
        s = box((3, 0, 0), (5, 1, 1))
        s.append(box((0, 0, 0), (1, 1, 1)))
        assert s.get_component(0).volume() == pytest.approx(2.0)

    def test_component_index_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            box((0, 0, 0), (1, 1, 1)).get_component(1)

    def test_empty_surface(self):
        s = Surface3D()
        assert s.is_well_formed()
        assert s.number_of_components() == 0
        assert s.get_boundary().is_empty()


class TestReverseOrientation:
    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_twice_restores_patches(self, kind):
        s = box((0, 0, 0), (1, 2, 3), kind=kind)
        before = [p.points.copy() for p in s.segments()]
        s.reverse_orientation()
        s.reverse_orientation()
        for a, p in zip(before, s.segments()):
            npt.assert_array_equal(a, p.points)

    def test_negates_volume(self):
        s = double_cone(50.0, 50.0)
        v = s.volume()
        s.reverse_orientation()
        assert s.is_closed_manifold()
        assert s.volume() == pytest.approx(-v, rel=1e-12)

    def test_vertex_reversal(self):
        from bezsurf._surface import reversed_points
        pts = np.arange(15, dtype=float).reshape(5, 3)
        rev = reversed_points(PatchType.CUBIC_VERTEX, pts)
        npt.assert_array_equal(rev[:4], pts[3::-1])
        npt.assert_array_equal(rev[4], pts[4])
