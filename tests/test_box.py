"""Unit tests for boxes.

Tests cover:
- Face construction
- Nearest face selection and normals
- Rotated boxes: normals rotated back are axis normals
- Misses
"""

import math

import pytest
import taichi as ti


def _run_hit(box_args, origin, direction):
    from raytrace.geometry.box import Box, hit_box, vec3

    lo, hi, rotation, offset = box_args
    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel():
        # Single-iteration outer loop keeps the face loop serial
        for _ in range(1):
            box = Box(
                min_corner=vec3(lo[0], lo[1], lo[2]),
                max_corner=vec3(hi[0], hi[1], hi[2]),
                rotation=rotation,
                offset=vec3(offset[0], offset[1], offset[2]),
            )
            rec = hit_box(
                vec3(origin[0], origin[1], origin[2]),
                vec3(direction[0], direction[1], direction[2]),
                box,
                1e-4,
                1e10,
            )
            hit[None] = rec.hit
            t_val[None] = rec.t
            normal[None] = rec.normal
            front_face[None] = rec.front_face

    test_kernel()
    return hit[None], t_val[None], normal[None], front_face[None]


UNIT_BOX = ((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), 0.0, (0.0, 0.0, 0.0))


class TestBoxFaces:
    """Tests for box_face."""

    def test_face_layout(self):
        from raytrace.geometry.box import Box, box_face, vec3

        axes = ti.field(dtype=ti.i32, shape=6)
        facings = ti.field(dtype=ti.i32, shape=6)
        ks = ti.field(dtype=ti.f32, shape=6)

        @ti.kernel
        def test_kernel():
            box = Box(
                min_corner=vec3(0.0, 1.0, 2.0),
                max_corner=vec3(3.0, 4.0, 5.0),
                rotation=0.0,
                offset=vec3(0.0, 0.0, 0.0),
            )
            for f in ti.static(range(6)):
                rect = box_face(box, f)
                axes[f] = rect.axis
                facings[f] = rect.facing
                ks[f] = rect.k

        test_kernel()
        assert axes.to_numpy().tolist() == [2, 2, 1, 1, 0, 0]
        assert facings.to_numpy().tolist() == [0, 1, 0, 1, 0, 1]
        assert ks.to_numpy().tolist() == pytest.approx([2.0, 5.0, 1.0, 4.0, 0.0, 3.0])


class TestBoxIntersection:
    """Tests for hit_box."""

    @pytest.mark.parametrize(
        "origin,direction,expected_normal",
        [
            ((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), (0.0, 0.0, 1.0)),
            ((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), (0.0, 0.0, -1.0)),
            ((0.0, 5.0, 0.0), (0.0, -1.0, 0.0), (0.0, 1.0, 0.0)),
            ((-5.0, 0.2, 0.1), (1.0, 0.0, 0.0), (-1.0, 0.0, 0.0)),
        ],
    )
    def test_nearest_face(self, origin, direction, expected_normal):
        hit, t, n, front = _run_hit(UNIT_BOX, origin, direction)
        assert hit == 1
        assert t == pytest.approx(4.0, abs=1e-5)
        assert (n[0], n[1], n[2]) == pytest.approx(expected_normal, abs=1e-6)
        assert front == 1

    def test_from_inside_hits_back_of_face(self):
        hit, t, n, front = _run_hit(UNIT_BOX, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert hit == 1
        assert t == pytest.approx(1.0, abs=1e-5)
        assert n[2] == pytest.approx(1.0)
        assert front == 0

    def test_miss(self):
        hit, *_ = _run_hit(UNIT_BOX, (3.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0


class TestRotatedBox:
    """Tests for rotated boxes."""

    @pytest.mark.parametrize(
        "origin,direction",
        [
            ((0.3, 0.2, 6.0), (0.0, 0.0, -1.0)),
            ((6.0, -0.4, 0.1), (-1.0, 0.0, 0.0)),
            ((0.1, 6.0, 0.2), (0.0, -1.0, 0.0)),
            ((4.0, 1.0, 4.0), (-1.0, -0.2, -1.0)),
        ],
    )
    def test_normal_rotated_back_is_axis_aligned(self, origin, direction):
        theta = math.radians(15.0)
        box = ((-1.5, -3.0, -1.5), (1.5, 3.0, 1.5), theta, (0.0, 0.0, 0.0))
        hit, _, n, _ = _run_hit(box, origin, direction)
        assert hit == 1

        # Rotate by -theta about y
        c, s = math.cos(-theta), math.sin(-theta)
        local = (c * n[0] + s * n[2], n[1], -s * n[0] + c * n[2])
        magnitudes = sorted(abs(x) for x in local)
        assert magnitudes[0] == pytest.approx(0.0, abs=1e-5)
        assert magnitudes[1] == pytest.approx(0.0, abs=1e-5)
        assert magnitudes[2] == pytest.approx(1.0, abs=1e-5)

    def test_offset_box(self):
        box = ((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), math.radians(30.0), (0.0, 0.0, -10.0))
        hit, t, _, _ = _run_hit(box, (0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit == 1
        # Rotated face is farther than 1 from the center along the view axis
        assert 8.0 < t < 9.0
