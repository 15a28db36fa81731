"""
Patch geometry: evaluation, degree elevation, subdivision, paths and transforms.

Submodules
----------
_patch_types : PatchType tags and control-point helpers
_bernstein   : Position/tangent evaluation, degree elevation, exact conversions
_subdivision : de Casteljau splitting, symmetric midpoints, flatness test
_path        : Path3D (piecewise-cubic boundary paths)
_transform   : Affine transforms applied by surface iterators
"""

from bezsurf.geometry._patch_types import MAX_COORDS, PatchType, as_points
from bezsurf.geometry._bernstein import (
    bernstein3,
    bernstein3_derivative,
    cubic_vertex_to_patch,
    elevate_degree,
    evaluate,
    has_normal,
    line_to_cubic,
    normal,
    planar_to_cubic_triangle,
    u_tangent,
    v_tangent,
)
from bezsurf.geometry._subdivision import (
    SPLIT_LEFT,
    SPLIT_RIGHT,
    get_bottom_patch,
    get_left_patch,
    get_right_patch,
    get_top_patch,
    midcoord,
    nearly_flat,
    permute_cubic_triangle,
    quarter_cubic_triangle,
    split_cubic_bezier_curve,
    split_cubic_patch,
    split_cubic_triangle,
    split_cubic_vertex,
    split_planar_triangle,
    split_segment,
)
from bezsurf.geometry._path import CLOSE, CUBICTO, MOVETO, Path3D
from bezsurf.geometry._transform import AffineTransform, affine_transform, translation

__all__ = [
    'MAX_COORDS', 'PatchType', 'as_points',
    'bernstein3', 'bernstein3_derivative', 'cubic_vertex_to_patch',
    'elevate_degree', 'evaluate', 'has_normal', 'line_to_cubic', 'normal',
    'planar_to_cubic_triangle', 'u_tangent', 'v_tangent',
    'SPLIT_LEFT', 'SPLIT_RIGHT', 'get_bottom_patch', 'get_left_patch',
    'get_right_patch', 'get_top_patch', 'midcoord', 'nearly_flat',
    'permute_cubic_triangle', 'quarter_cubic_triangle',
    'split_cubic_bezier_curve', 'split_cubic_patch', 'split_cubic_triangle',
    'split_cubic_vertex', 'split_planar_triangle', 'split_segment',
    'CLOSE', 'CUBICTO', 'MOVETO', 'Path3D',
    'AffineTransform', 'affine_transform', 'translation',
]
