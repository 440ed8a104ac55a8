# psicortex/mode.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .config import ModeCfg


class Mode(Enum):
    AWAKE = "awake"
    DREAMING = "dreaming"


@dataclass
class ModeState:
    visual_input_strength: float = 0.0
    mode: Mode = Mode.AWAKE
    dream_intensity: float = 0.0
    ticks_in_mode: int = 0
    transitions: int = 0

    @property
    def is_dreaming(self) -> bool:
        return self.mode is Mode.DREAMING


def frame_strength(luminance: np.ndarray) -> float:
    """Mean normalized intensity: 0 = black, 1 = full white."""
    if luminance.size == 0:
        return 0.0
    return float(np.clip(np.mean(luminance, dtype=np.float64), 0.0, 1.0))


def update_mode(state: ModeState, strength: float, cfg: ModeCfg) -> ModeState:
    """
    Hard threshold, no hysteresis: DREAMING iff strength < cfg.dark_threshold.
    dream_intensity ramps up linearly while dreaming (capped at 1) and decays
    multiplicatively while awake.
    """
    state.visual_input_strength = float(strength)
    new_mode = Mode.DREAMING if strength < cfg.dark_threshold else Mode.AWAKE

    if new_mode is state.mode:
        state.ticks_in_mode += 1
    else:
        state.mode = new_mode
        state.ticks_in_mode = 1
        state.transitions += 1

    if state.is_dreaming:
        state.dream_intensity = min(1.0, state.dream_intensity + cfg.dream_ramp)
    else:
        state.dream_intensity *= cfg.wake_decay
    return state
