"""
Tests for the feature field and frame validation
"""

import numpy as np
import pytest

from psicortex.field import (
    LAYERS,
    box_var3,
    load_frame,
    make_field,
    rgb_to_luminance,
    sobel_magnitude,
    update_features,
    validate_frame,
)


class TestMakeField:
    """Field construction."""

    def test_all_layers_square_and_zero(self):
        fld = make_field(16)
        names = [n for n, _ in fld.layers()]
        assert names == list(LAYERS)
        for _, arr in fld.layers():
            assert arr.shape == (16, 16)
            assert arr.dtype == np.float32
            assert not arr.any()

    def test_clear_keeps_shape(self):
        fld = make_field(12)
        fld.memory_strength[:] = 0.5
        fld.frames_seen = 3
        fld.clear()
        assert fld.memory_strength.shape == (12, 12)
        assert not fld.memory_strength.any()
        assert fld.frames_seen == 0


class TestKernels:
    """3x3 interior kernels."""

    def test_sobel_flat_is_zero(self):
        A = np.full((10, 10), 0.4)
        assert np.allclose(sobel_magnitude(A), 0.0)

    def test_sobel_vertical_step(self):
        A = np.zeros((10, 10))
        A[:, 5:] = 1.0
        mag = sobel_magnitude(A)
        assert mag.shape == (8, 8)
        # interior columns 4 and 5 straddle the step
        assert np.allclose(mag[:, 3], 4.0)
        assert np.allclose(mag[:, 4], 4.0)
        assert np.allclose(mag[:, 0], 0.0)

    def test_box_var3_is_population_variance(self):
        A = np.zeros((3, 3))
        A[1, 1] = 9.0
        # mean 1, E[x^2] 9 -> var 8
        assert box_var3(A)[0, 0] == pytest.approx(8.0)


class TestValidateFrame:
    """Frame acceptance rules."""

    def test_none_and_wrong_shape_rejected(self):
        assert validate_frame(None, 8) is None
        assert validate_frame(np.zeros((8, 9)), 8) is None
        assert validate_frame(np.zeros((8,)), 8) is None

    def test_non_finite_rejected(self):
        f = np.zeros((8, 8))
        f[2, 3] = np.nan
        assert validate_frame(f, 8) is None

    def test_non_numeric_rejected(self):
        assert validate_frame(np.full((8, 8), "a"), 8) is None
        assert validate_frame(np.zeros((8, 8), dtype=bool), 8) is None

    def test_uint8_scaled(self):
        f = np.full((8, 8), 255, dtype=np.uint8)
        out = validate_frame(f, 8)
        assert out.dtype == np.float32
        assert np.allclose(out, 1.0)

    def test_rgb_converted_with_luma(self):
        f = np.zeros((8, 8, 3), dtype=np.float32)
        f[..., 1] = 1.0
        out = validate_frame(f, 8)
        assert np.allclose(out, 0.587, atol=1e-6)

    def test_values_clipped(self):
        out = validate_frame(np.full((8, 8), 3.0), 8)
        assert np.allclose(out, 1.0)

    def test_rgba_uint8_luminance(self):
        img = np.full((4, 4, 4), 255, dtype=np.uint8)
        assert np.allclose(rgb_to_luminance(img), 1.0, atol=1e-5)


class TestFeatures:
    """load_frame + update_features."""

    def test_load_shifts_previous(self):
        fld = make_field(8)
        load_frame(fld, np.full((8, 8), 0.2))
        load_frame(fld, np.full((8, 8), 0.7))
        assert np.allclose(fld.previous, 0.2)
        assert np.allclose(fld.current, 0.7)
        assert fld.frames_seen == 2

    def test_motion_skipped_on_first_frame(self):
        fld = make_field(8)
        load_frame(fld, np.full((8, 8), 0.9))
        update_features(fld)
        assert not fld.motion_map.any()

    def test_motion_is_abs_difference(self):
        fld = make_field(8)
        load_frame(fld, np.full((8, 8), 0.9))
        load_frame(fld, np.full((8, 8), 0.4))
        update_features(fld)
        assert np.allclose(fld.motion_map, 0.5)

    def test_color_copies_current_and_border_untouched(self):
        fld = make_field(8)
        frame = np.zeros((8, 8))
        frame[:, 4:] = 1.0
        load_frame(fld, frame)
        update_features(fld)
        assert np.array_equal(fld.color_map, fld.current)
        assert fld.edge_map[1:-1, 3].max() > 0.0
        assert not fld.edge_map[0, :].any()
        assert not fld.texture_map[:, 0].any()
