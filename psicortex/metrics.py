# psicortex/metrics.py
from __future__ import annotations
from typing import List, Dict, Any, Optional, TYPE_CHECKING
import time

import numpy as np

from .memory import coverage

if TYPE_CHECKING:
    from .engine import SimState

_last_emit_t: Optional[float] = None

ACTIVE_LEVEL = 0.1
SCOUTS_PER_CLUSTER = 50


def collect(state: "SimState") -> Dict[str, Any]:
    """
    Telemetry row for the current state. Cheap enough to call every tick.
    active = activation > 0.1; clusters = active // 50; coherence = active / total.
    """
    global _last_emit_t
    now = time.perf_counter()
    if _last_emit_t is None:
        _last_emit_t = now
    dt = now - _last_emit_t
    _last_emit_t = now

    pop = state.scouts
    fld = state.field
    total = len(pop)
    active = int(np.count_nonzero(pop.activation > ACTIVE_LEVEL))
    return {
        "tick": int(state.tick),
        "mode": state.mode.mode.value,
        "dreaming": bool(state.mode.is_dreaming),
        "dream_intensity": float(state.mode.dream_intensity),
        "input_strength": float(state.mode.visual_input_strength),
        "active_scouts": active,
        "clusters": active // SCOUTS_PER_CLUSTER,
        "coherence": (active / total) if total else 0.0,
        "mean_activation": float(pop.activation.mean()) if total else 0.0,
        "field_energy": float(fld.attractor_field.sum(dtype=np.float64)),
        "memory_mean": float(fld.attractor_memory.mean(dtype=np.float64)),
        "strength_mean": float(fld.memory_strength.mean(dtype=np.float64)),
        "memory_coverage": coverage(fld),
        "recent_stimulus": float(pop.recent_stimulus().mean()) if total else 0.0,
        "frames_rejected": int(state.frames_rejected),
        "dt_since_last_collect_s": dt,
    }


def format_for_log(rows: List[Dict[str, Any]]) -> str:
    """
    Pretty one-liner per row for console logs.
    """
    out_lines: List[str] = []
    for r in rows:
        line = (
            f"[t={int(r.get('tick', 0))} {r.get('mode', '?')}] "
            f"dream={float(r.get('dream_intensity', 0.0)):.3f} "
            f"in={float(r.get('input_strength', 0.0)):.3f} "
            f"active={int(r.get('active_scouts', 0))} "
            f"clusters={int(r.get('clusters', 0))} "
            f"coh={float(r.get('coherence', 0.0)):.3f} "
            f"E_attr={float(r.get('field_energy', 0.0)):.3f} "
            f"M̄={float(r.get('memory_mean', 0.0)):.4f} "
            f"S̄={float(r.get('strength_mean', 0.0)):.4f} "
            f"cov={float(r.get('memory_coverage', 0.0)):.3f} "
            f"stim={float(r.get('recent_stimulus', 0.0)):.4e}"
        )
        out_lines.append(line)
    return "\n".join(out_lines)
