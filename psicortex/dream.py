# psicortex/dream.py
"""
Autonomous content while the input is dark.

generate() perturbs the memory store with a slow interference pattern whose phase
comes from wall-clock seconds, so the same (t, state) gives the same result but two
runs never dream alike. blend_current() then feeds memory back into `current` so the
feature channels reflect memory content instead of the ignored camera frame.
"""
from __future__ import annotations
from typing import Dict, Tuple

import numpy as np

from .config import DreamCfg
from .field import Field, load_frame
from .mode import ModeState

_GRID_CACHE: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}


def _grid(N: int) -> Tuple[np.ndarray, np.ndarray]:
    g = _GRID_CACHE.get(N)
    if g is None:
        y, x = np.indices((N, N), dtype=np.float32)
        y.flags.writeable = False
        x.flags.writeable = False
        g = (y, x)
        _GRID_CACHE[N] = g
    return g


def dream_wave(N: int, t: float, spatial_freq: float) -> np.ndarray:
    """Sum of three sinusoids in cell coordinates and time, roughly in [-1.5, 1.5]."""
    y, x = _grid(N)
    k = float(spatial_freq)
    t = float(t)
    w = (
        np.sin(x * k + t * 0.5) * np.cos(y * k + t * 0.3)
        + 0.5 * np.sin((x + y) * k * 0.6 + t * 0.7)
    )
    return w.astype(np.float32, copy=False)


def generate(fld: Field, mode: ModeState, t: float, cfg: DreamCfg) -> None:
    """Perturb attractor_memory where memory_strength exceeds the floor. No-op while awake."""
    if not mode.is_dreaming:
        return
    S = fld.memory_strength
    M = fld.attractor_memory
    live = S > cfg.strength_floor
    if not np.any(live):
        return
    wave = dream_wave(fld.size, t, cfg.spatial_freq)
    gain = cfg.amplitude * float(mode.dream_intensity)
    M[live] += gain * S[live] * wave[live]
    np.clip(M, 0.0, 1.0, out=M)


def blend_current(fld: Field, mode: ModeState, rng: np.random.Generator, cfg: DreamCfg) -> None:
    """current <- attractor_memory + jitter scaled by dream_intensity (clamped)."""
    noise = rng.random(fld.shape, dtype=np.float32) - 0.5
    dreamt = fld.attractor_memory + cfg.jitter * float(mode.dream_intensity) * noise
    load_frame(fld, np.clip(dreamt, 0.0, 1.0))
