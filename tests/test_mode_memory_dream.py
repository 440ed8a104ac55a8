"""
Tests for the mode controller, memory reinforcement and dream generator
"""

import numpy as np
import pytest

from psicortex import dream, memory
from psicortex.config import DreamCfg, MemoryCfg, ModeCfg
from psicortex.field import make_field
from psicortex.mode import Mode, ModeState, frame_strength, update_mode


class TestModeController:
    """Awake/dreaming switching."""

    def test_frame_strength_is_mean(self):
        assert frame_strength(np.full((4, 4), 0.3)) == pytest.approx(0.3, abs=1e-6)
        assert frame_strength(np.zeros((4, 4))) == 0.0

    def test_dark_frame_starts_dreaming(self):
        st = update_mode(ModeState(), 0.0, ModeCfg())
        assert st.mode is Mode.DREAMING
        assert st.dream_intensity == pytest.approx(0.02)
        assert st.transitions == 1

    def test_threshold_is_strict(self):
        cfg = ModeCfg(dark_threshold=0.1)
        assert update_mode(ModeState(), 0.0999, cfg).is_dreaming
        assert not update_mode(ModeState(), 0.1, cfg).is_dreaming

    def test_intensity_saturates(self):
        st = ModeState()
        cfg = ModeCfg()
        prev = 0.0
        for _ in range(60):
            update_mode(st, 0.0, cfg)
            assert st.dream_intensity >= prev
            prev = st.dream_intensity
        assert st.dream_intensity == 1.0

    def test_wake_decays_multiplicatively(self):
        st = ModeState(mode=Mode.DREAMING, dream_intensity=0.5)
        update_mode(st, 0.8, ModeCfg())
        assert st.mode is Mode.AWAKE
        assert st.dream_intensity == pytest.approx(0.475)
        assert st.ticks_in_mode == 1


class TestMemory:
    """Reinforcement and decay of the memory store."""

    def test_active_cell_reinforced(self):
        fld = make_field(8)
        fld.attractor_field[3, 3] = 0.5
        memory.reinforce(fld, MemoryCfg())
        assert fld.memory_strength[3, 3] == pytest.approx(0.01)
        assert fld.attractor_memory[3, 3] == pytest.approx(0.025)
        assert fld.memory_strength[0, 0] == 0.0

    def test_idle_cell_forgets_below_floor(self):
        fld = make_field(8)
        fld.memory_strength[2, 2] = 0.05
        fld.attractor_memory[2, 2] = 0.8
        fld.memory_strength[4, 4] = 0.5
        fld.attractor_memory[4, 4] = 0.8
        memory.reinforce(fld, MemoryCfg())
        assert fld.memory_strength[2, 2] == pytest.approx(0.05 * 0.995)
        assert fld.attractor_memory[2, 2] == pytest.approx(0.8 * 0.999)
        # strong memories keep their content
        assert fld.attractor_memory[4, 4] == pytest.approx(0.8)

    def test_strength_capped(self):
        fld = make_field(8)
        fld.attractor_field[:] = 5.0
        fld.memory_strength[:] = 0.999
        memory.reinforce(fld, MemoryCfg())
        assert fld.memory_strength.max() <= 1.0
        assert fld.attractor_memory.max() <= 1.0

    def test_coverage(self):
        fld = make_field(4)
        fld.memory_strength[0, :] = 0.5
        assert memory.coverage(fld) == pytest.approx(0.25)


class TestDream:
    """Dream content generation."""

    def test_awake_is_noop(self):
        fld = make_field(16)
        fld.memory_strength[:] = 1.0
        fld.attractor_memory[:] = 0.5
        dream.generate(fld, ModeState(), 3.0, DreamCfg())
        assert np.all(fld.attractor_memory == 0.5)

    def test_weak_memory_untouched(self):
        fld = make_field(16)
        fld.memory_strength[:] = 0.01
        fld.attractor_memory[:] = 0.5
        st = ModeState(mode=Mode.DREAMING, dream_intensity=1.0)
        dream.generate(fld, st, 3.0, DreamCfg())
        assert np.all(fld.attractor_memory == 0.5)

    def test_strong_memory_perturbed_and_bounded(self):
        fld = make_field(16)
        fld.memory_strength[:] = 1.0
        fld.attractor_memory[:] = 0.5
        st = ModeState(mode=Mode.DREAMING, dream_intensity=1.0)
        dream.generate(fld, st, 3.0, DreamCfg())
        assert not np.all(fld.attractor_memory == 0.5)
        assert np.abs(fld.attractor_memory - 0.5).max() <= 0.02 * 1.5 + 1e-6
        assert fld.attractor_memory.min() >= 0.0 and fld.attractor_memory.max() <= 1.0

    def test_wave_cache_does_not_leak_state(self):
        first = dream.dream_wave(16, 2.0, 0.05)
        first[:] = 99.0
        again = dream.dream_wave(16, 2.0, 0.05)
        assert np.abs(again).max() <= 1.5 + 1e-6
        assert dream.dream_wave(24, 2.0, 0.05).shape == (24, 24)
        y, x = dream._grid(16)
        assert not y.flags.writeable and not x.flags.writeable

    def test_blend_current_follows_memory(self, rng):
        fld = make_field(16)
        fld.attractor_memory[:] = 0.6
        st = ModeState(mode=Mode.DREAMING, dream_intensity=1.0)
        dream.blend_current(fld, st, rng, DreamCfg())
        assert np.abs(fld.current - 0.6).max() <= 0.05 + 1e-6
        assert fld.frames_seen == 1
