# psicortex/scouts.py
"""
Scout population: many small feature detectors ("minimodels") living on the field.

Every scout is one index into a set of parallel numpy arrays. The whole population is
advanced by update_scouts(), a free function that reads one frozen snapshot of the
field; nothing in the field is written until the aggregator runs afterwards, so the
result does not depend on scout order.

Per-type behaviour is data, not subclasses:
  STIMULUS[type]          -> function(field, ys, xs) -> stimulus per scout
  GRADIENT_CHANNEL[type]  -> name of the field layer the scout climbs while awake
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Dict, Tuple

import numpy as np

from .config import ScoutCfg
from .field import Field, central_grad
from .mode import ModeState


class ScoutType(IntEnum):
    EDGE_VERTICAL = 0
    EDGE_HORIZONTAL = 1
    EDGE_DIAGONAL_1 = 2
    EDGE_DIAGONAL_2 = 3
    MOTION_UP = 4
    MOTION_DOWN = 5
    MOTION_LEFT = 6
    MOTION_RIGHT = 7
    COLOR_BRIGHT = 8
    COLOR_DARK = 9
    TEXTURE_HIGH = 10
    TEXTURE_LOW = 11


N_TYPES = len(ScoutType)

EDGE_TYPES = (ScoutType.EDGE_VERTICAL, ScoutType.EDGE_HORIZONTAL,
              ScoutType.EDGE_DIAGONAL_1, ScoutType.EDGE_DIAGONAL_2)
MOTION_TYPES = (ScoutType.MOTION_UP, ScoutType.MOTION_DOWN,
                ScoutType.MOTION_LEFT, ScoutType.MOTION_RIGHT)
COLOR_TYPES = (ScoutType.COLOR_BRIGHT, ScoutType.COLOR_DARK)
TEXTURE_TYPES = (ScoutType.TEXTURE_HIGH, ScoutType.TEXTURE_LOW)

SCOUT_COLORS: Dict[ScoutType, str] = {
    ScoutType.EDGE_VERTICAL: "#ff0000",
    ScoutType.EDGE_HORIZONTAL: "#ff4400",
    ScoutType.EDGE_DIAGONAL_1: "#ff8800",
    ScoutType.EDGE_DIAGONAL_2: "#ffcc00",
    ScoutType.MOTION_UP: "#00ff00",
    ScoutType.MOTION_DOWN: "#00ff88",
    ScoutType.MOTION_LEFT: "#00ffff",
    ScoutType.MOTION_RIGHT: "#0088ff",
    ScoutType.COLOR_BRIGHT: "#ffffff",
    ScoutType.COLOR_DARK: "#888888",
    ScoutType.TEXTURE_HIGH: "#ff00ff",
    ScoutType.TEXTURE_LOW: "#8800ff",
}

DREAM_TINT = "#9966ff"


def blend_color(base: str, dreaming: bool, tint: str = DREAM_TINT, amount: float = 0.5) -> str:
    """Mix a '#rrggbb' color toward the dream tint when dreaming; unchanged otherwise."""
    if not dreaming:
        return base
    a = float(np.clip(amount, 0.0, 1.0))
    b = [int(base[i:i + 2], 16) for i in (1, 3, 5)]
    t = [int(tint[i:i + 2], 16) for i in (1, 3, 5)]
    mixed = [int(round((1.0 - a) * bc + a * tc)) for bc, tc in zip(b, t)]
    return "#{:02x}{:02x}{:02x}".format(*mixed)


# ============================================================
# Dispatch tables
# ============================================================

StimulusFn = Callable[[Field, np.ndarray, np.ndarray], np.ndarray]


def _edge_vertical(f: Field, ys, xs):
    c = f.current
    return np.abs(c[ys, xs - 1] - c[ys, xs + 1])


def _edge_horizontal(f: Field, ys, xs):
    c = f.current
    return np.abs(c[ys - 1, xs] - c[ys + 1, xs])


def _edge_diagonal_1(f: Field, ys, xs):
    c = f.current
    return np.abs(c[ys - 1, xs - 1] - c[ys + 1, xs + 1])


def _edge_diagonal_2(f: Field, ys, xs):
    c = f.current
    return np.abs(c[ys - 1, xs + 1] - c[ys + 1, xs - 1])


def _motion(f: Field, ys, xs):
    return f.motion_map[ys, xs]


def _bright(f: Field, ys, xs):
    return f.color_map[ys, xs]


def _dark(f: Field, ys, xs):
    return 1.0 - f.color_map[ys, xs]


def _texture_high(f: Field, ys, xs):
    return f.texture_map[ys, xs]


def _texture_low(f: Field, ys, xs):
    return np.maximum(0.0, 0.5 - f.texture_map[ys, xs])


STIMULUS: Dict[ScoutType, StimulusFn] = {
    ScoutType.EDGE_VERTICAL: _edge_vertical,
    ScoutType.EDGE_HORIZONTAL: _edge_horizontal,
    ScoutType.EDGE_DIAGONAL_1: _edge_diagonal_1,
    ScoutType.EDGE_DIAGONAL_2: _edge_diagonal_2,
    ScoutType.MOTION_UP: _motion,
    ScoutType.MOTION_DOWN: _motion,
    ScoutType.MOTION_LEFT: _motion,
    ScoutType.MOTION_RIGHT: _motion,
    ScoutType.COLOR_BRIGHT: _bright,
    ScoutType.COLOR_DARK: _dark,
    ScoutType.TEXTURE_HIGH: _texture_high,
    ScoutType.TEXTURE_LOW: _texture_low,
}

GRADIENT_CHANNEL: Dict[ScoutType, str] = {}
GRADIENT_CHANNEL.update({t: "edge_map" for t in EDGE_TYPES})
GRADIENT_CHANNEL.update({t: "motion_map" for t in MOTION_TYPES})
GRADIENT_CHANNEL.update({t: "color_map" for t in COLOR_TYPES})
GRADIENT_CHANNEL.update({t: "texture_map" for t in TEXTURE_TYPES})


# ============================================================
# Population
# ============================================================

@dataclass
class ScoutPopulation:
    types: np.ndarray         # (P,) int8, ScoutType values, fixed for life
    x: np.ndarray             # (P,) float64
    y: np.ndarray
    vx: np.ndarray
    vy: np.ndarray
    activation: np.ndarray
    energy: np.ndarray
    sensitivity: np.ndarray   # per-scout constants
    threshold: np.ndarray
    history: np.ndarray       # (P, K) ring buffer of recent stimuli, slot = tick % K
    dream_mode: np.ndarray    # (P,) bool
    drift_x: np.ndarray
    drift_y: np.ndarray
    age: np.ndarray           # (P,) int64

    def __len__(self) -> int:
        return int(self.types.shape[0])

    @property
    def history_len(self) -> int:
        return int(self.history.shape[1])

    def positions(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.x, self.y

    def type_counts(self) -> Dict[ScoutType, int]:
        counts = np.bincount(self.types.astype(np.int64), minlength=N_TYPES)
        return {t: int(counts[int(t)]) for t in ScoutType}

    def recent_stimulus(self) -> np.ndarray:
        """Per-scout mean over the ring buffer (diagnostic only; nothing feeds it back)."""
        return self.history.mean(axis=1)


def create_population(count: int, size: int, rng: np.random.Generator, cfg: ScoutCfg) -> ScoutPopulation:
    """
    Types are assigned round-robin so the twelve types differ in count by at most one.
    energy in [0.5, 1), sensitivity in [0.5, 1), threshold in [0.1, 0.4).
    """
    P = int(count)
    lo, hi = float(cfg.margin), float(size) - float(cfg.margin)
    return ScoutPopulation(
        types=(np.arange(P) % N_TYPES).astype(np.int8),
        x=rng.uniform(lo, hi, size=P),
        y=rng.uniform(lo, hi, size=P),
        vx=np.zeros(P),
        vy=np.zeros(P),
        activation=np.zeros(P),
        energy=rng.random(P) * 0.5 + 0.5,
        sensitivity=rng.random(P) * 0.5 + 0.5,
        threshold=rng.random(P) * 0.3 + 0.1,
        history=np.zeros((P, int(cfg.history_len))),
        dream_mode=np.zeros(P, dtype=bool),
        drift_x=np.zeros(P),
        drift_y=np.zeros(P),
        age=np.zeros(P, dtype=np.int64),
    )


def readable_cells(pop: ScoutPopulation, size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Floored cells plus a mask of scouts whose 3x3 neighbourhood lies inside the grid.
    Normal clamped movement keeps everyone readable; only a margin < 1 can break it.
    """
    xi = np.floor(pop.x).astype(np.int64)
    yi = np.floor(pop.y).astype(np.int64)
    ok = (xi >= 1) & (xi <= size - 2) & (yi >= 1) & (yi <= size - 2)
    return yi, xi, ok


def _awake_stimulus(pop: ScoutPopulation, fld: Field, yi, xi, ok) -> np.ndarray:
    stim = np.zeros(len(pop))
    for t, fn in STIMULUS.items():
        m = ok & (pop.types == int(t))
        if np.any(m):
            stim[m] = fn(fld, yi[m], xi[m])
    return stim


def _awake_gradient(pop: ScoutPopulation, fld: Field, yi, xi, ok) -> Tuple[np.ndarray, np.ndarray]:
    gx = np.zeros(len(pop))
    gy = np.zeros(len(pop))
    for t, layer in GRADIENT_CHANNEL.items():
        m = ok & (pop.types == int(t))
        if np.any(m):
            gx[m], gy[m] = central_grad(getattr(fld, layer), yi[m], xi[m])
    return gx, gy


def update_scouts(
    pop: ScoutPopulation,
    fld: Field,
    mode: ModeState,
    now: float,
    rng: np.random.Generator,
    cfg: ScoutCfg,
    tick: int = 0,
) -> None:
    """Advance every scout by one tick (stimulus -> activation -> forces -> motion)."""
    P = len(pop)
    N = fld.size
    dreaming = mode.is_dreaming
    intensity = float(mode.dream_intensity)

    # 1. mirror the global mode
    pop.dream_mode[:] = dreaming

    # 2. stimulus from the frozen field
    yi, xi, ok = readable_cells(pop, N)
    if dreaming:
        stim = np.zeros(P)
        yv, xv = yi[ok], xi[ok]
        noise = (rng.random(int(ok.sum())) - 0.5) * cfg.dream_stimulus_noise
        stim[ok] = fld.memory_strength[yv, xv] * fld.attractor_memory[yv, xv] + noise
    else:
        stim = _awake_stimulus(pop, fld, yi, xi, ok)
    np.maximum(stim, 0.0, out=stim)

    # 3. ring buffer
    pop.history[:, int(tick) % pop.history_len] = stim

    # 4. activation EMA (unreadable scouts keep their activation)
    act = pop.activation
    act[ok] = act[ok] * 0.9 + stim[ok] * pop.sensitivity[ok] * 0.1
    np.clip(act, 0.0, 1.0, out=act)

    # 5. forces
    if dreaming:
        gx = np.zeros(P)
        gy = np.zeros(P)
        gx[ok], gy[ok] = central_grad(fld.attractor_memory, yi[ok], xi[ok])
    else:
        gx, gy = _awake_gradient(pop, fld, yi, xi, ok)
    fx = gx * act * cfg.gradient_gain
    fy = gy * act * cfg.gradient_gain

    above = ok & (act > pop.threshold)
    if np.any(above):
        density = fld.attractor_memory if dreaming else fld.attractor_field
        cx, cy = central_grad(density, yi[above], xi[above])
        fx[above] += cx * cfg.cluster_gain
        fy[above] += cy * cfg.cluster_gain

    explore = above | ~ok
    n_explore = int(explore.sum())
    if n_explore:
        scale = cfg.explore_noise * ((1.0 + cfg.dream_noise_boost * intensity) if dreaming else 1.0)
        fx[explore] += (rng.random(n_explore) - 0.5) * scale
        fy[explore] += (rng.random(n_explore) - 0.5) * scale

    if dreaming:
        g = cfg.drift_gain * intensity
        pop.drift_x[:] = np.sin(now * 0.5 + pop.y * 0.02) * g
        pop.drift_y[:] = np.cos(now * 0.4 + pop.x * 0.02) * g
        fx[ok] += pop.drift_x[ok]
        fy[ok] += pop.drift_y[ok]
    else:
        pop.drift_x.fill(0.0)
        pop.drift_y.fill(0.0)

    # 6. integrate + clamp (scouts are never removed or wrapped)
    pop.vx *= cfg.velocity_damping
    pop.vx += fx * cfg.force_scale
    pop.vy *= cfg.velocity_damping
    pop.vy += fy * cfg.force_scale
    pop.x += pop.vx
    pop.y += pop.vy
    lo, hi = float(cfg.margin), float(N) - float(cfg.margin)
    np.clip(pop.x, lo, hi, out=pop.x)
    np.clip(pop.y, lo, hi, out=pop.y)

    # 7. energy follows recent activation
    pop.energy *= cfg.energy_decay
    pop.energy += act * (1.0 - cfg.energy_decay)
    pop.age += 1
