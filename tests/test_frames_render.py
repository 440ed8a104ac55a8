"""
Tests for frame preparation, the synthetic source and render outputs
"""

import numpy as np
import pytest

from psicortex.config import SourceCfg
from psicortex.engine import Engine
from psicortex.frames import (
    SyntheticSource,
    black_frame,
    center_crop_square,
    prepare_frame,
    resample_2d,
)
from psicortex.field import make_field
from psicortex.render import (
    DEFAULT_VISIBLE,
    attractor_rgb,
    feature_rgb,
    memory_rgb,
    scout_sprites,
)
from psicortex.scouts import SCOUT_COLORS, ScoutType


class TestPrepareFrame:
    """Arbitrary images -> (N, N) luminance."""

    def test_rgb_uint8_resampled(self):
        img = np.full((48, 64, 3), 255, dtype=np.uint8)
        out = prepare_frame(img, 32)
        assert out.shape == (32, 32)
        assert out.dtype == np.float32
        assert np.allclose(out, 1.0, atol=1e-5)

    def test_center_crop(self):
        img = np.zeros((4, 8))
        img[:, 2:6] = 1.0
        assert np.all(center_crop_square(img) == 1.0)

    def test_resample_identity_and_linear(self):
        A = np.arange(16, dtype=float).reshape(4, 4)
        assert resample_2d(A, (4, 4)) is not None
        assert np.array_equal(resample_2d(A, (4, 4)), A)
        up = resample_2d(A, (7, 7))
        assert up[0, 0] == pytest.approx(0.0)
        assert up[-1, -1] == pytest.approx(15.0)

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            prepare_frame(np.zeros((4, 4, 2)), 8)


class TestSyntheticSource:
    """Stand-in camera."""

    def test_frames_in_range_and_bright_enough(self):
        src = SyntheticSource(32, SourceCfg(noise_sigma=0.05), seed=0)
        for _ in range(5):
            f = src.next_frame()
            assert f.shape == (32, 32)
            assert f.min() >= 0.0 and f.max() <= 1.0
            assert f.mean() > 0.1
        assert src.t == 5

    def test_dark_schedule(self):
        src = SyntheticSource(16, SourceCfg(dark_every=10, dark_length=3))
        dark = [t for t in range(20) if src.is_dark(t)]
        assert dark == [7, 8, 9, 17, 18, 19]
        assert np.array_equal(src.frame_at(8), black_frame(16))

    def test_peak_moves(self):
        cfg = SourceCfg(noise_sigma=0.0, background=0.0,
                        sources=[{"kind": "moving_peak_2d", "amp": 1.0, "speed_x": 0.25,
                                  "speed_y": 0.0, "width_x": 1.0, "width_y": 1.0,
                                  "start_x": 0, "start_y": 8}])
        src = SyntheticSource(16, cfg)
        f0 = src.frame_at(0)
        f1 = src.frame_at(1)
        assert np.unravel_index(np.argmax(f0), f0.shape) == (8, 0)
        assert np.unravel_index(np.argmax(f1), f1.shape) == (8, 4)

    def test_bar(self):
        cfg = SourceCfg(noise_sigma=0.0, background=0.0,
                        sources=[{"kind": "moving_bar", "amp": 1.0, "speed": 0.0, "width": 1.0, "start": 3}])
        f = SyntheticSource(16, cfg).frame_at(0)
        assert np.allclose(f[:, 3], 1.0)
        assert np.allclose(f[0], f[5])


class TestRender:
    """Images and sprites for display."""

    def test_images_uint8_and_scaled(self):
        fld = make_field(8)
        fld.edge_map[:] = 0.25
        fld.motion_map[:] = 0.05
        fld.texture_map[:] = 1.0
        fld.attractor_field[:] = 0.05
        fld.attractor_memory[:] = 1.0
        fld.memory_strength[:] = 0.5
        f = feature_rgb(fld)
        assert f.shape == (8, 8, 3) and f.dtype == np.uint8
        assert f[0, 0].tolist() == [127, 127, 255]
        a = attractor_rgb(fld)
        assert a[0, 0].tolist() == [127, 127, 0]
        m = memory_rgb(fld)
        assert m[0, 0].tolist() == [255, 127, 0]

    def test_default_visibility(self):
        assert ScoutType.EDGE_VERTICAL in DEFAULT_VISIBLE
        assert ScoutType.TEXTURE_HIGH in DEFAULT_VISIBLE
        assert ScoutType.COLOR_BRIGHT not in DEFAULT_VISIBLE
        assert ScoutType.EDGE_DIAGONAL_1 not in DEFAULT_VISIBLE
        assert len(DEFAULT_VISIBLE) == 7

    def test_sprites_filter_and_scale(self, cfg_dict):
        eng = Engine(cfg_dict)
        pop = eng.scouts
        pop.activation[:] = 0.05
        pop.activation[pop.types == int(ScoutType.EDGE_VERTICAL)] = 0.3
        pop.activation[pop.types == int(ScoutType.COLOR_BRIGHT)] = 0.9
        sprites = scout_sprites(pop, DEFAULT_VISIBLE)
        assert [s["type"] for s in sprites] == [ScoutType.EDGE_VERTICAL]
        s = sprites[0]
        assert np.allclose(s["size"], 1.6)
        assert np.allclose(s["opacity"], 0.6)
        assert s["color"] == SCOUT_COLORS[ScoutType.EDGE_VERTICAL]

        every = scout_sprites(pop, list(ScoutType))
        bright = [x for x in every if x["type"] is ScoutType.COLOR_BRIGHT][0]
        assert np.allclose(bright["opacity"], 1.0)

    def test_sprites_tinted_while_dreaming(self, cfg_dict):
        eng = Engine(cfg_dict)
        eng.scouts.activation[:] = 0.5
        eng.scouts.dream_mode[:] = True
        s = scout_sprites(eng.scouts, [ScoutType.EDGE_VERTICAL])[0]
        assert s["color"] != SCOUT_COLORS[ScoutType.EDGE_VERTICAL]
