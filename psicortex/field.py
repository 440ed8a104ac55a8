# psicortex/field.py
"""
Feature field ("psi field"): the shared retina every scout reads.

All layers are float32 (N, N) arrays, index-aligned cell-for-cell, addressed
as [y, x]. A Field is never resized in place; build a new one with make_field.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, fields
from typing import Any, Iterator, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

LAYERS: Tuple[str, ...] = (
    "current", "previous",
    "edge_map", "motion_map", "color_map", "texture_map",
    "attractor_field", "attractor_memory", "memory_strength",
)


@dataclass
class Field:
    size: int
    current: np.ndarray
    previous: np.ndarray
    edge_map: np.ndarray
    motion_map: np.ndarray
    color_map: np.ndarray
    texture_map: np.ndarray
    attractor_field: np.ndarray
    attractor_memory: np.ndarray
    memory_strength: np.ndarray
    frames_seen: int = 0

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.size, self.size)

    def layers(self) -> Iterator[Tuple[str, np.ndarray]]:
        for f in fields(self):
            if f.name in LAYERS:
                yield f.name, getattr(self, f.name)

    def clear(self) -> None:
        """Zero every layer in place (dimensions are kept)."""
        for _, arr in self.layers():
            arr.fill(0.0)
        self.frames_seen = 0


def make_field(size: int) -> Field:
    N = int(size)
    layers = {name: np.zeros((N, N), dtype=np.float32) for name in LAYERS}
    return Field(size=N, **layers)


# ============================================================
# 3x3 kernels (interior only, slicing instead of loops)
# ============================================================

def _neighbors(A: np.ndarray):
    """The nine shifted interior views of A, row-major from (-1,-1) to (+1,+1)."""
    H, W = A.shape
    return [A[dy:H - 2 + dy, dx:W - 2 + dx] for dy in range(3) for dx in range(3)]


def sobel_magnitude(A: np.ndarray) -> np.ndarray:
    """|∇A| with horizontal/vertical Sobel kernels, shape (N-2, N-2)."""
    tl, tc, tr, ml, _, mr, bl, bc, br = _neighbors(A)
    gx = (tr + 2.0 * mr + br) - (tl + 2.0 * ml + bl)
    gy = (bl + 2.0 * bc + br) - (tl + 2.0 * tc + tr)
    return np.sqrt(gx * gx + gy * gy)


def box_mean3(A: np.ndarray) -> np.ndarray:
    return sum(_neighbors(A)) / 9.0


def box_var3(A: np.ndarray) -> np.ndarray:
    """
    Population variance over the 3x3 neighbourhood (divide by 9), taken about the
    neighbourhood mean rather than the centre cell.
    """
    nb = _neighbors(A)
    mean = sum(nb) / 9.0
    mean2 = sum(v * v for v in nb) / 9.0
    return np.maximum(mean2 - mean * mean, 0.0)


def central_grad(A: np.ndarray, ys: np.ndarray, xs: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Central differences A[y, x+1] - A[y, x-1] and A[y+1, x] - A[y-1, x] sampled at
    integer cells (ys, xs). Callers guarantee 1 <= ys, xs <= N-2.
    """
    gx = A[ys, xs + 1] - A[ys, xs - 1]
    gy = A[ys + 1, xs] - A[ys - 1, xs]
    return gx, gy


# ============================================================
# Frame handling
# ============================================================

LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def rgb_to_luminance(img: np.ndarray) -> np.ndarray:
    """(H, W, 3|4) RGB(A) -> (H, W) float32 luminance. Integer input is taken as 0..255."""
    img = np.asarray(img)
    rgb = img[..., :3].astype(np.float32)
    if np.issubdtype(img.dtype, np.integer):
        rgb /= 255.0
    return rgb @ LUMA


def validate_frame(frame: Any, size: int) -> Optional[np.ndarray]:
    """
    Return a float32 (size, size) luminance raster in [0,1], or None when the frame is
    missing, mis-shaped or non-finite. RGB(A) rasters are converted to luminance.
    """
    if frame is None:
        return None
    try:
        arr = np.asarray(frame)
    except (TypeError, ValueError):
        return None
    if arr.dtype == bool or not np.issubdtype(arr.dtype, np.number):
        return None
    if arr.ndim == 3 and arr.shape[2] in (3, 4):
        arr = rgb_to_luminance(arr)
    elif arr.ndim == 2 and np.issubdtype(arr.dtype, np.integer):
        arr = arr.astype(np.float32) / 255.0
    if arr.shape != (size, size):
        return None
    arr = arr.astype(np.float32, copy=False)
    if not np.all(np.isfinite(arr)):
        return None
    return np.clip(arr, 0.0, 1.0)


def load_frame(fld: Field, luminance: np.ndarray) -> None:
    """previous <- current, then current <- luminance (the diff basis for motion)."""
    np.copyto(fld.previous, fld.current)
    np.copyto(fld.current, np.clip(luminance, 0.0, 1.0))
    fld.frames_seen += 1


def update_features(fld: Field) -> None:
    """Recompute edge/motion/color/texture from `current`."""
    cur = fld.current
    fld.edge_map[1:-1, 1:-1] = sobel_magnitude(cur)
    if fld.frames_seen >= 2:
        np.abs(cur - fld.previous, out=fld.motion_map)
    np.copyto(fld.color_map, cur)
    fld.texture_map[1:-1, 1:-1] = box_var3(cur)
