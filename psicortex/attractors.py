# psicortex/attractors.py
from __future__ import annotations
from typing import Dict, List, Any

import numpy as np

from .config import AggregatorCfg
from .field import Field, box_mean3
from .scouts import ScoutPopulation


def box_blur(A: np.ndarray) -> np.ndarray:
    """Single 3x3 mean pass; border cells become 0."""
    out = np.zeros_like(A)
    out[1:-1, 1:-1] = box_mean3(A)
    return out


def rebuild_attractor_field(fld: Field, pop: ScoutPopulation, cfg: AggregatorCfg) -> np.ndarray:
    """
    Clear attractor_field, deposit `cfg.deposit * activation` at every in-bounds scout's
    floored cell (scouts sharing a cell accumulate), then smooth once.
    """
    N = fld.size
    A = fld.attractor_field
    A.fill(0.0)
    xi = np.floor(pop.x).astype(np.int64)
    yi = np.floor(pop.y).astype(np.int64)
    inb = (xi >= 0) & (xi < N) & (yi >= 0) & (yi < N)
    if np.any(inb):
        np.add.at(A, (yi[inb], xi[inb]), (cfg.deposit * pop.activation[inb]).astype(A.dtype))
    np.copyto(A, box_blur(A))
    return A


def attractor_peaks(fld: Field, k: int = 16, r_nms: int = 2) -> List[Dict[str, Any]]:
    """
    Strongest local maxima of the attractor field, with a small non-maximum suppression
    window so neighbouring cells of one blob are reported once. For overlays.
    """
    A = fld.attractor_field
    if not np.any(A > 0.0):
        return []
    H, W = A.shape
    flat = A.ravel()
    order = np.argsort(-flat)
    visited = np.zeros_like(A, dtype=bool)
    out: List[Dict[str, Any]] = []
    for idx in order:
        if len(out) >= k or flat[idx] <= 0.0:
            break
        y0, x0 = divmod(int(idx), W)
        if visited[y0, x0]:
            continue
        yL = max(0, y0 - r_nms); yH = min(H, y0 + r_nms + 1)
        xL = max(0, x0 - r_nms); xH = min(W, x0 + r_nms + 1)
        visited[yL:yH, xL:xH] = True
        out.append({
            "pos": (y0, x0),
            "amp": float(A[y0, x0]),
            "memory": float(fld.attractor_memory[y0, x0]),
            "strength": float(fld.memory_strength[y0, x0]),
        })
    return out
