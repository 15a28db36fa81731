"""Tests for bezsurf.operators: quadrature, area, volume, field integrals, moments, parallel driver."""

import numpy as np
import numpy.testing as npt
import pytest

from bezsurf import PatchType, QuadratureConfig, Surface3D
from bezsurf._shapes import bezier_sphere, box, cone, double_cone

BOX_KINDS = ["planar_triangle", "cubic_triangle", "cubic_patch"]
CONE_VOLUME = np.pi * 50.0 ** 2 * 100.0 / 3.0


@pytest.fixture(scope="module")
def sphere():
    return bezier_sphere(100.0, center=(10.0, 20.0, 30.0))


@pytest.fixture(scope="module")
def double_cone_51():
    return double_cone(50.0, 50.0, center=(51.0, 51.0, 0.0))


# Registry tests

class TestMethodRegistry:
    def test_register_and_retrieve(self):
        from bezsurf.operators._registry import MethodRegistry
        reg = MethodRegistry("test")
        reg.register("foo", lambda x: x + 1)
        assert reg["foo"](5) == 6

    def test_unknown_key_raises(self):
        from bezsurf.operators._registry import MethodRegistry
        reg = MethodRegistry("test")
        with pytest.raises(KeyError, match="Unknown test"):
            reg["nonexistent"]

    def test_available(self):
        from bezsurf.operators._registry import MethodRegistry
        reg = MethodRegistry("test")
        reg.register("a", lambda: None)
        reg.register("b", lambda: None)
        assert set(reg.available()) == {"a", "b"}

    def test_contains(self):
        from bezsurf.operators._registry import MethodRegistry
        reg = MethodRegistry("test")
        reg.register("a", lambda: None)
        assert "a" in reg
        assert "b" not in reg

    def test_every_patch_type_has_a_sampler(self):
        from bezsurf.operators import segment_samplers
        assert set(segment_samplers.available()) == {t.value for t in PatchType}


# Compensated summation

class TestKahanAccumulator:
    def test_recovers_small_terms(self):
        from bezsurf.operators import KahanAccumulator
        acc = KahanAccumulator()
        acc.add(1.0)
        acc.add_all([1e-16] * 10000)
        assert acc.sum == pytest.approx(1.0 + 1e-12, abs=1e-14)

    def test_vector_values(self):
        from bezsurf.operators import KahanAccumulator
        acc = KahanAccumulator((3,))
        for k in range(10):
            acc.add(np.array([0.1, 1.0, -float(k)]))
        npt.assert_allclose(acc.sum, [1.0, 10.0, -45.0])

    def test_combine_partials(self):
        from bezsurf.operators import KahanAccumulator
        a, b = KahanAccumulator(), KahanAccumulator()
        a.add_all([0.5] * 4)
        b.add_all([0.25] * 4)
        assert (a + b).sum == 3.0

    def test_combine_shape_mismatch(self):
        from bezsurf.operators import KahanAccumulator
        with pytest.raises(ValueError, match="shapes"):
            KahanAccumulator() + KahanAccumulator((2,))


# Quadrature rules

class TestQuadrature:
    def test_gauss_legendre_exactness(self):
        from bezsurf.operators import gauss_legendre01
        t, w = gauss_legendre01(3)
        assert w @ t ** 5 == pytest.approx(1.0 / 6.0, rel=1e-14)
        assert w.sum() == pytest.approx(1.0, rel=1e-14)

    def test_gauss_legendre_rejects_zero(self):
        from bezsurf.operators import gauss_legendre01
        with pytest.raises(ValueError):
            gauss_legendre01(0)

    def test_triangle_rule_exactness(self):
        from bezsurf.operators._quadrature import triangle_rule
        u, v, w = triangle_rule(3)
        assert w @ (u ** 2 * v) == pytest.approx(1.0 / 60.0, rel=1e-13)
        assert w.sum() == pytest.approx(0.5, rel=1e-14)

    def test_flux_orders(self):
        from bezsurf.operators import flux_order
        assert flux_order(PatchType.CUBIC_PATCH, 1) == 9
        assert flux_order(PatchType.CUBIC_VERTEX, 2) == 12
        assert flux_order(PatchType.CUBIC_TRIANGLE, 1) == 7
        assert flux_order(PatchType.PLANAR_TRIANGLE, 3) == 10
        assert flux_order(PatchType.CUBIC_PATCH, 2, flat=True) == 4

    def test_scalar_orders(self):
        from bezsurf.operators import scalar_order
        assert scalar_order(PatchType.CUBIC_PATCH, 0) == 8
        assert scalar_order(PatchType.CUBIC_TRIANGLE, 1) == 11
        assert scalar_order(PatchType.PLANAR_TRIANGLE, 2) == 8
        assert scalar_order(PatchType.CUBIC_VERTEX, 1, flat=True) == 4

    @pytest.mark.parametrize("rule_name", ["square_rule", "triangle_rule"])
    def test_cached_rules_are_read_only(self, rule_name):
        from bezsurf.operators import _quadrature
        rule = getattr(_quadrature, rule_name)
        for a in rule(4):
            assert not a.flags.writeable
            with pytest.raises(ValueError):
                a[0] = 0.0
        assert rule(4)[2].sum() > 0.0

    def test_sample_shapes(self):
        from bezsurf.operators import sample_segment
        rng = np.random.default_rng(0)
        points, normals, weights = sample_segment(
            PatchType.CUBIC_TRIANGLE, rng.uniform(size=(10, 3)), 5)
        assert points.shape == normals.shape == (25, 3)
        assert weights.shape == (25,)

    def test_config_validation(self):
        with pytest.raises(ValueError, match="positive"):
            QuadratureConfig(area_points=0)


# Area

class TestArea:
    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_box_area(self, kind):
        from bezsurf.operators import surface_area
        s = box((0, 0, 0), (1, 2, 3), kind=kind)
        assert surface_area(s) == pytest.approx(22.0, rel=1e-12)

    def test_sphere_area(self, sphere):
        assert sphere.area() == pytest.approx(4.0 * np.pi * 100.0 ** 2, rel=1e-4)

    def test_cone_area(self):
        # lateral area pi r l with slant height l
        s = cone(50.0, 50.0)
        expected = np.pi * 50.0 * np.hypot(50.0, 50.0)
        assert s.area() == pytest.approx(expected, rel=1e-5)

    def test_parallel_matches_sequential(self, sphere):
        from bezsurf.operators import surface_area
        seq = surface_area(sphere)
        par = surface_area(sphere, parallel=True, partitions=4)
        assert par == pytest.approx(seq, rel=1e-10)

    def test_subdivision_level(self, sphere):
        from bezsurf.operators import surface_area
        assert surface_area(sphere, level=1) == pytest.approx(surface_area(sphere), rel=1e-6)

    def test_iterator_input(self):
        from bezsurf.geometry import AffineTransform
        from bezsurf.operators import surface_area
        s = box((0, 0, 0), (1, 1, 1))
        it = s.iterator(transform=AffineTransform(2.0 * np.eye(3)))
        assert surface_area(it) == pytest.approx(24.0)

    def test_rejects_other_inputs(self):
        from bezsurf.operators import surface_area
        with pytest.raises(ValueError, match="expected a Surface3D"):
            surface_area([1, 2, 3])


# Volume

class TestVolume:
    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_box_volume(self, kind):
        from bezsurf.operators import volume_of
        s = box((-1, 0, 2), (0, 2, 5), kind=kind)
        assert volume_of(s) == pytest.approx(6.0, rel=1e-12)

    def test_sphere_volume(self, sphere):
        assert sphere.volume() == pytest.approx(4.0 / 3.0 * np.pi * 100.0 ** 3, rel=1e-4)

    def test_double_cone_volume(self, double_cone_51):
        assert double_cone_51.volume() == pytest.approx(CONE_VOLUME, rel=1e-5)

    def test_reference_point_invariance(self, sphere):
        from bezsurf.operators import volume_of
        a = volume_of(sphere)
        b = volume_of(sphere, ref_point=[0.0, 0.0, 0.0])
        c = volume_of(sphere, ref_point=[-370.0, 120.0, 55.0])
        assert b == pytest.approx(a, rel=1e-8)
        assert c == pytest.approx(a, rel=1e-8)

    def test_parallel_matches_sequential(self, double_cone_51):
        from bezsurf.operators import volume_of
        seq = volume_of(double_cone_51)
        for partitions in (1, 2, 3, 7, 100):
            par = volume_of(double_cone_51, parallel=True, partitions=partitions)
            assert par == pytest.approx(seq, rel=1e-10)

    def test_subdivided_volume(self, double_cone_51):
        from bezsurf.operators import volume_of
        v = volume_of(double_cone_51)
        assert volume_of(double_cone_51, level=2) == pytest.approx(v, rel=1e-10)
        assert volume_of(double_cone_51, level=1, parallel=True,
                         partitions=3) == pytest.approx(v, rel=1e-10)

    def test_transformed_iterator(self):
        from bezsurf.geometry import AffineTransform
        from bezsurf.operators import volume_of
        s = box((0, 0, 0), (1, 1, 1), kind="cubic_triangle")
        it = s.iterator(transform=AffineTransform(2.0 * np.eye(3), offset=[5.0, 0, 0]))
        assert volume_of(it) == pytest.approx(8.0)

    def test_two_sided_surface_rejected(self):
        from bezsurf.operators import volume_of
        s = Surface3D(oriented=False)
        s.append(box((0, 0, 0), (1, 1, 1)))
        with pytest.raises(ValueError, match="oriented"):
            volume_of(s)


# Center of mass and moments

class TestCenterOfMass:
    def test_sphere_center(self, sphere):
        from bezsurf.operators import center_of_mass_of
        npt.assert_allclose(center_of_mass_of(sphere), [10.0, 20.0, 30.0], atol=1e-6)

    def test_box_center(self):
        from bezsurf.operators import center_of_mass_of
        s = box((1, 2, 3), (2, 6, 4), kind="cubic_patch")
        npt.assert_allclose(center_of_mass_of(s), [1.5, 4.0, 3.5], atol=1e-12)

    def test_known_volume(self):
        from bezsurf.operators import center_of_mass_of
        s = box((0, 0, 0), (2, 2, 2))
        npt.assert_allclose(center_of_mass_of(s, volume=8.0), [1.0, 1.0, 1.0], atol=1e-12)

    def test_parallel(self, double_cone_51):
        from bezsurf.operators import center_of_mass_of
        npt.assert_allclose(center_of_mass_of(double_cone_51, parallel=True, partitions=5),
                            center_of_mass_of(double_cone_51), rtol=1e-12, atol=1e-9)

    def test_flatness_fast_path(self, sphere):
        from bezsurf.operators import center_of_mass_of
        exact = center_of_mass_of(sphere)
        fast = center_of_mass_of(sphere, flatness_limit=0.5)
        npt.assert_allclose(fast, exact, atol=1e-3)

    def test_flatness_from_tolerances(self):
        from bezsurf import Tolerances
        from bezsurf.operators import center_of_mass_of
        s = Surface3D(tolerances=Tolerances(flatness=0.5))
        s.append(box((0, 0, 0), (2, 4, 6), kind="cubic_patch"))
        npt.assert_allclose(center_of_mass_of(s), [1.0, 2.0, 3.0], atol=1e-12)

    def test_open_surface_rejected(self):
        from bezsurf.operators import center_of_mass_of
        with pytest.raises(ValueError, match="closed manifold"):
            center_of_mass_of(cone(50.0, 50.0))

    def test_zero_volume_rejected(self):
        from bezsurf.operators import center_of_mass_of, moments_of
        tri = np.array([[0.0, 0, 0], [0.0, 1, 0], [1.0, 0, 0]])
        s = Surface3D()
        s.add_planar_triangle(tri)
        s.add_flipped_planar_triangle(tri)
        assert s.is_closed_manifold()
        with pytest.raises(ValueError, match="zero-volume"):
            center_of_mass_of(s)
        with pytest.raises(ValueError, match="zero-volume"):
            moments_of(s, [0.0, 0.0, 0.0])


class TestMoments:
    def test_sphere_moments(self, sphere):
        from bezsurf.operators import moments_of
        m = moments_of(sphere, [10.0, 20.0, 30.0])
        npt.assert_allclose(np.diag(m), [2000.0] * 3, rtol=1e-3)
        off = m[~np.eye(3, dtype=bool)]
        npt.assert_allclose(off, 0.0, atol=1e-2)
        npt.assert_allclose(m, m.T)

    def test_box_moments(self):
        from bezsurf.operators import moments_of
        # uniform box of side a has variance a^2 / 12 per axis
        s = box((0, 0, 0), (1, 2, 3), kind="cubic_triangle")
        m = moments_of(s, [0.5, 1.0, 1.5])
        npt.assert_allclose(m, np.diag([1.0, 4.0, 9.0]) / 12.0, atol=1e-12)

    def test_double_cone_inertia(self, double_cone_51):
        from bezsurf.operators import center_of_mass_of, moments_of, to_moments_of_inertia
        cm = center_of_mass_of(double_cone_51)
        npt.assert_allclose(cm, [51.0, 51.0, 0.0], atol=1e-6)
        inertia = to_moments_of_inertia(moments_of(double_cone_51, cm))
        npt.assert_allclose(np.diag(inertia), [625.0, 625.0, 750.0], rtol=1e-4)
        npt.assert_allclose(inertia[~np.eye(3, dtype=bool)], 0.0, atol=1e-3)

    def test_parallel_moments(self, double_cone_51):
        from bezsurf.operators import moments_of
        c = [51.0, 51.0, 0.0]
        npt.assert_allclose(moments_of(double_cone_51, c, parallel=True, partitions=4),
                            moments_of(double_cone_51, c), rtol=1e-10, atol=1e-8)

    def test_two_sided_rejected(self):
        from bezsurf.operators import moments_of
        s = Surface3D(oriented=False)
        s.append(box((0, 0, 0), (1, 1, 1)))
        with pytest.raises(ValueError, match="not oriented"):
            moments_of(s, [0.5, 0.5, 0.5])


class TestPrincipalAxes:
    def test_to_moments_of_inertia(self):
        from bezsurf.operators import to_moments_of_inertia
        m = np.array([[1.0, 0.5, 0.25], [0.5, 2.0, 0.125], [0.25, 0.125, 3.0]])
        expected = np.array([[5.0, -0.5, -0.25], [-0.5, 4.0, -0.125],
                             [-0.25, -0.125, 3.0]])
        npt.assert_array_equal(to_moments_of_inertia(m), expected)
        with pytest.raises(ValueError, match="3x3"):
            to_moments_of_inertia(np.eye(2))

    def test_diagonal_axes(self):
        from bezsurf.operators import principal_axes, principal_moments
        m = np.diag([3.0, 1.0, 2.0])
        npt.assert_allclose(principal_moments(m), [1.0, 2.0, 3.0])
        npt.assert_allclose(principal_axes(m), [[0, 1, 0], [0, 0, 1], [1, 0, 0]], atol=1e-12)

    def test_rotated_axes_form_right_handed_frame(self):
        from scipy.spatial.transform import Rotation
        from bezsurf.operators import principal_axes
        r = Rotation.from_euler("xyz", [0.3, -0.7, 1.1]).as_matrix()
        m = r @ np.diag([1.0, 2.0, 3.0]) @ r.T
        axes = principal_axes(m)
        npt.assert_allclose(axes @ axes.T, np.eye(3), atol=1e-12)
        assert np.linalg.det(axes) == pytest.approx(1.0)
        npt.assert_allclose(axes @ m @ axes.T, np.diag([1.0, 2.0, 3.0]), atol=1e-10)

    def test_axes_transform(self):
        from scipy.spatial.transform import Rotation
        from bezsurf.operators import principal_axes, principal_axes_transform
        r = Rotation.from_euler("zyx", [0.2, 0.4, -0.9]).as_matrix()
        axes = principal_axes(r @ np.diag([1.0, 2.0, 3.0]) @ r.T)
        center = np.array([4.0, -1.0, 2.0])
        t = principal_axes_transform(axes, center)
        npt.assert_allclose(t(center), center, atol=1e-12)
        npt.assert_allclose(t(center + axes), center + np.eye(3), atol=1e-12)

    def test_axes_transform_aligns_surface(self):
        from scipy.spatial.transform import Rotation
        from bezsurf.operators import principal_axes_transform, volume_of
        r = Rotation.from_euler("x", 0.5).as_matrix()
        s = box((0, 0, 0), (1, 2, 3))
        t = principal_axes_transform(r, [0.5, 1.0, 1.5])
        assert volume_of(s.iterator(transform=t)) == pytest.approx(6.0)


# Integrals of user fields

def _one(x, y, z):
    return 1.0


def _r_over_3(x, y, z):
    return x / 3.0, y / 3.0, z / 3.0


class TestSurfaceIntegral:
    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_constant_field_gives_area(self, kind):
        from bezsurf.operators import surface_integral
        s = box((0, 0, 0), (1, 2, 3), kind=kind)
        assert surface_integral(s, _one, 0) == pytest.approx(22.0, rel=1e-13)

    def test_sphere_area(self, sphere):
        from bezsurf.operators import surface_integral
        assert surface_integral(sphere, _one, 0) == pytest.approx(
            4.0 * np.pi * 100.0 ** 2, rel=1e-4)

    def test_linear_field(self):
        from bezsurf.operators import surface_integral
        s = box((0, 0, 0), (1, 2, 3))
        assert surface_integral(s, lambda x, y, z: x, 1) == pytest.approx(11.0)

    def test_batched_matches_single(self, sphere):
        from bezsurf.operators import surface_integral
        fields = [_one, lambda x, y, z: x, lambda x, y, z: y * z]
        batched = surface_integral(sphere, fields, 2)
        assert batched.shape == (3,)
        for field, value in zip(fields, batched):
            assert surface_integral(sphere, field, 2) == pytest.approx(value, rel=1e-14)

    def test_parallel_matches_sequential(self, sphere):
        from bezsurf.operators import surface_integral
        field = lambda x, y, z: x * x
        seq = surface_integral(sphere, field, 2)
        par = surface_integral(sphere, field, 2, parallel=True, partitions=5)
        assert par == pytest.approx(seq, rel=1e-12)

    def test_transform_moves_surface(self):
        from bezsurf.geometry import translation
        from bezsurf.operators import surface_integral
        s = box((0, 0, 0), (1, 2, 3))
        moved = surface_integral(s, lambda x, y, z: x, 1,
                                 transform=translation(1.0, 0.0, 0.0))
        assert moved == pytest.approx(33.0)
        npt.assert_array_equal(s.bounds()[0], [0, 0, 0])

    def test_level_and_flatness(self):
        from bezsurf.operators import surface_integral
        s = box((0, 0, 0), (1, 2, 3), kind="cubic_patch")
        assert surface_integral(s, _one, 0, level=1) == pytest.approx(22.0)
        assert surface_integral(s, _one, 0, flatness_limit=0.5) == pytest.approx(22.0)

    def test_transform_needs_surface(self):
        from bezsurf.geometry import translation
        from bezsurf.operators import surface_integral
        s = box((0, 0, 0), (1, 1, 1))
        with pytest.raises(ValueError, match="transform"):
            surface_integral(s.iterator(), _one, 0, transform=translation(1, 0, 0))

    def test_invalid_arguments(self):
        from bezsurf.operators import surface_integral
        s = box((0, 0, 0), (1, 1, 1))
        with pytest.raises(ValueError, match="non-negative"):
            surface_integral(s, _one, -1)
        with pytest.raises(ValueError, match="at least one"):
            surface_integral(s, [], 0)
        with pytest.raises(ValueError, match="callable"):
            surface_integral(s, [_one, 2.0], 0)


class TestFluxIntegral:
    @pytest.mark.parametrize("kind", BOX_KINDS)
    def test_position_over_three_gives_volume(self, kind):
        from bezsurf.operators import flux_integral
        s = box((0, 0, 0), (1, 2, 3), kind=kind)
        assert flux_integral(s, _r_over_3, 1) == pytest.approx(6.0, rel=1e-12)

    def test_sphere_matches_volume_of(self, sphere):
        from bezsurf.operators import flux_integral, volume_of
        flux = flux_integral(sphere, _r_over_3, 1)
        assert flux == pytest.approx(4.0 / 3.0 * np.pi * 100.0 ** 3, rel=1e-4)
        assert flux == pytest.approx(volume_of(sphere), rel=1e-8)

    def test_divergence_theorem_on_double_cone(self, double_cone_51):
        from bezsurf.operators import flux_integral
        flux = flux_integral(double_cone_51, lambda x, y, z: (0.0, 0.0, z), 1)
        assert flux == pytest.approx(CONE_VOLUME, rel=1e-5)

    def test_batched_and_parallel(self, double_cone_51):
        from bezsurf.operators import flux_integral
        fields = [_r_over_3, lambda x, y, z: (x, 0.0, 0.0)]
        seq = flux_integral(double_cone_51, fields, 1)
        par = flux_integral(double_cone_51, fields, 1, parallel=True, partitions=3)
        npt.assert_allclose(par, seq, rtol=1e-12)
        assert seq[0] == pytest.approx(seq[1], rel=1e-10)

    def test_scaling_transform(self):
        from bezsurf.geometry import affine_transform
        from bezsurf.operators import flux_integral
        s = box((0, 0, 0), (1, 2, 3))
        flux = flux_integral(s, _r_over_3, 1,
                             transform=affine_transform(np.diag([2.0, 2.0, 2.0])))
        assert flux == pytest.approx(48.0)

    def test_two_sided_rejected(self):
        from bezsurf.operators import flux_integral
        s = Surface3D(oriented=False)
        s.add_planar_triangle(np.eye(3))
        with pytest.raises(ValueError, match="oriented"):
            flux_integral(s, _r_over_3, 1)

    def test_field_must_have_three_components(self):
        from bezsurf.operators import flux_integral
        with pytest.raises(ValueError, match="3 components"):
            flux_integral(box((0, 0, 0), (1, 1, 1)), lambda x, y, z: (x, y), 1)


# Parallel driver

class TestIntegrate:
    def test_counts_patches(self):
        from bezsurf.operators import integrate
        s = box((0, 0, 0), (1, 1, 1))
        count = lambda ptype, pts: 1.0
        assert integrate(s.iterator(), count) == 12.0
        assert integrate(s.iterator(), count, parallel=True, partitions=5) == 12.0
        assert integrate(s.iterator(level=2), count, parallel=True,
                         partitions=3) == 12.0 * 16

    def test_vector_kernel(self):
        from bezsurf.operators import integrate
        s = box((0, 0, 0), (1, 1, 1), kind="cubic_patch")
        kernel = lambda ptype, pts: pts.mean(axis=0)
        npt.assert_allclose(integrate(s.iterator(), kernel, (3,), parallel=True,
                                      partitions=2),
                            integrate(s.iterator(), kernel, (3,)))

    def test_invalid_partitions(self):
        from bezsurf.operators import integrate
        with pytest.raises(ValueError, match="positive"):
            integrate(box((0, 0, 0), (1, 1, 1)).iterator(), lambda t, p: 1.0,
                      parallel=True, partitions=0)

    def test_default_partitions(self):
        from bezsurf.operators import default_partitions
        assert default_partitions() >= 1

    def test_kernel_errors_propagate(self):
        from bezsurf.operators import integrate

        def kernel(ptype, pts):
            raise ArithmeticError("boom")

        with pytest.raises(ArithmeticError, match="boom"):
            integrate(box((0, 0, 0), (1, 1, 1)).iterator(), kernel,
                      parallel=True, partitions=2)
