# psicortex/render.py
"""Read-only views of the simulation for display collaborators (no plotting here)."""
from __future__ import annotations
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

import numpy as np

from .field import Field
from .scouts import SCOUT_COLORS, ScoutPopulation, ScoutType, blend_color

DEFAULT_VISIBLE: FrozenSet[ScoutType] = frozenset({
    ScoutType.EDGE_VERTICAL,
    ScoutType.EDGE_HORIZONTAL,
    ScoutType.MOTION_UP,
    ScoutType.MOTION_DOWN,
    ScoutType.MOTION_LEFT,
    ScoutType.MOTION_RIGHT,
    ScoutType.TEXTURE_HIGH,
})

MIN_VISIBLE_ACTIVATION = 0.1


def _to_u8(A: np.ndarray, gain: float) -> np.ndarray:
    return np.clip(A * (255.0 * gain), 0.0, 255.0).astype(np.uint8)


def feature_rgb(fld: Field) -> np.ndarray:
    """R = edges, G = motion, B = texture; (N, N, 3) uint8."""
    return np.stack([
        _to_u8(fld.edge_map, 2.0),
        _to_u8(fld.motion_map, 10.0),
        _to_u8(fld.texture_map, 5.0),
    ], axis=-1)


def attractor_rgb(fld: Field) -> np.ndarray:
    a = _to_u8(fld.attractor_field, 10.0)
    return np.stack([a, a, np.zeros_like(a)], axis=-1)


def memory_rgb(fld: Field) -> np.ndarray:
    """R = remembered content, G = confidence."""
    return np.stack([
        _to_u8(fld.attractor_memory, 1.0),
        _to_u8(fld.memory_strength, 1.0),
        np.zeros(fld.shape, dtype=np.uint8),
    ], axis=-1)


def input_rgb(fld: Field) -> np.ndarray:
    g = _to_u8(fld.current, 1.0)
    return np.stack([g, g, g], axis=-1)


def scout_sprites(
    pop: ScoutPopulation,
    visible: Optional[Iterable[ScoutType]] = None,
    min_activation: float = MIN_VISIBLE_ACTIVATION,
) -> List[Dict[str, Any]]:
    """
    One entry per visible type with at least one scout above `min_activation`:
    {"type", "name", "color", "x", "y", "size", "opacity"}. Colors are tinted while dreaming.
    """
    vis = set(DEFAULT_VISIBLE if visible is None else visible)
    dreaming = bool(pop.dream_mode.any()) if len(pop) else False
    out: List[Dict[str, Any]] = []
    for t in ScoutType:
        if t not in vis:
            continue
        m = (pop.types == int(t)) & (pop.activation >= min_activation)
        if not np.any(m):
            continue
        act = pop.activation[m]
        out.append({
            "type": t,
            "name": t.name.replace("_", " ").lower(),
            "color": blend_color(SCOUT_COLORS[t], dreaming),
            "x": pop.x[m],
            "y": pop.y[m],
            "size": 1.0 + 2.0 * act,
            "opacity": np.minimum(1.0, 2.0 * act),
        })
    return out
