# psicortex/memory.py
from __future__ import annotations
import numpy as np

from .config import MemoryCfg
from .field import Field


def reinforce(fld: Field, cfg: MemoryCfg) -> None:
    """
    One reinforcement/decay pass over the memory store.

    Active cells (attractor_field above the activity threshold) gain strength and
    pull attractor_memory toward the attractor value. Inactive cells lose strength
    slowly; once strength is under the forget floor the content itself fades,
    even more slowly. Both layers stay in [0,1].
    """
    A = fld.attractor_field
    M = fld.attractor_memory
    S = fld.memory_strength

    active = A > cfg.activity_threshold
    idle = ~active

    lr = float(np.clip(cfg.learning_rate, 0.0, 1.0))
    S[active] = np.minimum(S[active] + cfg.strength_gain, 1.0)
    M[active] = (1.0 - lr) * M[active] + lr * np.minimum(A[active], 1.0)

    S[idle] *= cfg.strength_decay
    forgetting = idle & (S < cfg.forget_floor)
    M[forgetting] *= cfg.forget_decay

    np.clip(M, 0.0, 1.0, out=M)
    np.clip(S, 0.0, 1.0, out=S)


def coverage(fld: Field, floor: float = 0.05) -> float:
    """Fraction of cells whose memory strength exceeds `floor`."""
    return float(np.mean(fld.memory_strength > floor))
