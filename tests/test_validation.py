"""
End-to-end validation tests for splat PLY decoding.

These tests build complete PLY files and check the decoded buffers against
values computed by hand.
"""

import struct

import numpy as np
import pytest
from pyply import (
    HeaderMalformed,
    Truncated,
    UnsupportedListProperty,
    parse_splat_ply,
    parse_splat_ply_with_opts,
)


def _binary_ply(names, rows, element="vertex", fmt="binary_little_endian"):
    """Binary PLY with float properties only."""
    lines = ["ply", f"format {fmt} 1.0", f"element {element} {len(rows)}"]
    lines += [f"property float {n}" for n in names]
    lines.append("end_header")
    header = ("\n".join(lines) + "\n").encode("ascii")
    prefix = "<" if fmt == "binary_little_endian" else ">"
    body = b"".join(struct.pack(prefix + "f" * len(names), *row) for row in rows)
    return header + body


def _ascii_ply(names, rows):
    lines = ["ply", "format ascii 1.0", f"element vertex {len(rows)}"]
    lines += [f"property float {n}" for n in names]
    lines.append("end_header")
    lines += [" ".join(repr(float(v)) for v in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("ascii")


XYZW_NAMES = ["x", "y", "z", "scale_0", "scale_1", "scale_2", "qx", "qy", "qz", "qw", "opacity"]
WXYZ_NAMES = ["x", "y", "z", "scale_0", "scale_1", "scale_2", "rot_0", "rot_1", "rot_2", "rot_3", "opacity"]


class TestValidation:
    """End-to-end validation tests."""

    def test_element_name_case_insensitive(self):
        rows = [(1.0, 2.0, 3.0, 0.1, 0.2, 0.3, 0.0, 0.0, 0.0, 1.0, 0.5)]
        lower = parse_splat_ply(_binary_ply(XYZW_NAMES, rows, element="vertex"))
        upper = parse_splat_ply(_binary_ply(XYZW_NAMES, rows, element="VERTEX"))

        assert upper.count == lower.count == 1
        np.testing.assert_array_equal(upper.center, lower.center)
        np.testing.assert_array_equal(upper.covariance, lower.covariance)
        np.testing.assert_array_equal(upper.rgba, lower.rgba)

    def test_identity_rotation_covariance_and_alpha(self):
        sx, sy, sz = 0.5, 2.0, 3.0
        rows = [(float(i), 0.0, 0.0, np.log(sx), np.log(sy), np.log(sz), 0.0, 0.0, 0.0, 1.0, 0.0)
                for i in range(3)]
        result = parse_splat_ply(_binary_ply(XYZW_NAMES, rows))

        assert result.count == 3
        covariance = result.covariance.reshape(3, 6)
        for cov in covariance:
            np.testing.assert_allclose(cov, [sx ** 2, 0, 0, sy ** 2, 0, sz ** 2], rtol=1e-5, atol=1e-7)

        alphas = result.rgba >> np.uint32(24)
        np.testing.assert_array_equal(alphas, [127, 127, 127])

    def test_linear_scale_identity_rotation(self):
        rows = [(0.0, 0.0, 0.0, 2.0, 3.0, 4.0, 0.0, 0.0, 0.0, 1.0, 0.0)]
        result = parse_splat_ply_with_opts(_binary_ply(XYZW_NAMES, rows), False, True)
        np.testing.assert_array_equal(result.covariance, [4.0, 0.0, 0.0, 9.0, 0.0, 16.0])
        assert int(result.rgba[0]) >> 24 == 127

    @pytest.mark.parametrize("axis_angle", [
        ((0.0, 0.0, 1.0), np.pi / 2),
        ((1.0, 0.0, 0.0), 0.3),
        ((1.0, 2.0, -0.5), 1.1),
        ((0.0, 1.0, 1.0), -2.4),
    ])
    def test_rotation_layouts_agree(self, axis_angle):
        axis, angle = axis_angle
        axis = np.asarray(axis) / np.linalg.norm(axis)
        w = np.cos(angle / 2)
        x, y, z = axis * np.sin(angle / 2)
        scales = (np.log(0.2), np.log(1.0), np.log(3.0))

        xyzw = parse_splat_ply(_binary_ply(XYZW_NAMES, [(0.0, 0.0, 0.0) + scales + (x, y, z, w, 0.0)]))
        wxyz = parse_splat_ply(_binary_ply(WXYZ_NAMES, [(0.0, 0.0, 0.0) + scales + (w, x, y, z, 0.0)]))

        np.testing.assert_allclose(xyzw.covariance, wxyz.covariance, atol=1e-4)

    def test_rotation_about_z_swaps_axes(self):
        s = np.sqrt(0.5)
        rows = [(0.0, 0.0, 0.0, 1.0, 2.0, 3.0, s, 0.0, 0.0, s, 0.0)]
        result = parse_splat_ply_with_opts(_binary_ply(WXYZ_NAMES, rows), False, True)
        np.testing.assert_allclose(result.covariance, [4.0, 0.0, 0.0, 1.0, 0.0, 9.0], atol=1e-5)

    def test_bbox_contains_all_centers(self):
        rng = np.random.default_rng(11)
        rows = []
        for _ in range(50):
            center = tuple(rng.uniform(-100, 100, size=3))
            rows.append(center + (0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0))
        result = parse_splat_ply(_binary_ply(WXYZ_NAMES, rows))

        centers = result.center.reshape(-1, 3)
        assert np.all(result.bbox_min <= result.bbox_max)
        assert np.all(centers >= result.bbox_min)
        assert np.all(centers <= result.bbox_max)
        np.testing.assert_array_equal(result.bbox_min, centers.min(axis=0))
        np.testing.assert_array_equal(result.bbox_max, centers.max(axis=0))

    def test_bbox_ascii(self):
        rows = [(-1.0, 5.0, 2.0) + (0.0,) * 3 + (1.0, 0.0, 0.0, 0.0, 0.0),
                (3.0, -5.0, 2.0) + (0.0,) * 3 + (1.0, 0.0, 0.0, 0.0, 0.0)]
        result = parse_splat_ply(_ascii_ply(WXYZ_NAMES, rows))
        np.testing.assert_array_equal(result.bbox_min, [-1.0, -5.0, 2.0])
        np.testing.assert_array_equal(result.bbox_max, [3.0, 5.0, 2.0])

    @pytest.mark.parametrize("data", [
        b"",
        b"p",
        b"ply\nformat ascii 1.0\nelement vertex 1\n",
        b"ply\nformat ascii 1.0\nelement vertex 1\nend_head",
        b"\x00" * 64,
    ])
    def test_missing_sentinel(self, data):
        with pytest.raises(HeaderMalformed):
            parse_splat_ply(data)

    def test_list_property_is_an_error(self):
        header = ("ply\nformat binary_little_endian 1.0\nelement vertex 1\n"
                  + "".join(f"property float {n}\n" for n in WXYZ_NAMES)
                  + "property list uchar float f_rest\nend_header\n").encode("ascii")
        body = struct.pack("<" + "f" * 11, *([0.0] * 11)) + b"\x00"
        with pytest.raises(UnsupportedListProperty):
            parse_splat_ply(header + body)

    def test_ascii_rgb_unit_range(self):
        names = WXYZ_NAMES + ["red", "green", "blue"]
        rows = [(0.0,) * 6 + (1.0, 0.0, 0.0, 0.0, 100.0) + (0.5, 0.5, 0.5)]
        result = parse_splat_ply(_ascii_ply(names, rows))
        pixel = int(result.rgba[0])
        assert (pixel & 0xFF, (pixel >> 8) & 0xFF, (pixel >> 16) & 0xFF) == (127, 127, 127)

    def test_ascii_rgb_byte_range(self):
        names = WXYZ_NAMES + ["red", "green", "blue"]
        rows = [(0.0,) * 6 + (1.0, 0.0, 0.0, 0.0, 100.0) + (200.0, 0.0, 0.0)]
        result = parse_splat_ply(_ascii_ply(names, rows))
        pixel = int(result.rgba[0])
        assert (pixel & 0xFF, (pixel >> 8) & 0xFF, (pixel >> 16) & 0xFF) == (200, 0, 0)

    def test_zero_quaternion_finite(self):
        rows = [(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)]
        for names in (XYZW_NAMES, WXYZ_NAMES):
            result = parse_splat_ply(_binary_ply(names, rows))
            assert result.covariance.shape == (6,)
            assert np.all(np.isfinite(result.covariance))

    def test_failure_returns_nothing(self):
        rows = [(0.0,) * 11] * 3
        data = _binary_ply(WXYZ_NAMES, rows)
        result = None
        with pytest.raises(Truncated):
            result = parse_splat_ply(data[:-1])
        assert result is None
