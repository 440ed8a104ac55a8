# psicortex/frames.py
"""
Frame collaborators: synthetic luminance source and helpers that turn arbitrary
images into the (N, N) luminance rasters the engine expects.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .config import SourceCfg
from .field import rgb_to_luminance


# ------------------------------
# helpers (periodic distances)
# ------------------------------
def _ring_dist(n: int, x: np.ndarray, x0: float) -> np.ndarray:
    """Shortest periodic distance on a ring of length n."""
    d = np.abs(x - x0)
    return np.minimum(d, n - d)


def _gauss_2d(nx: int, ny: int, x0: float, y0: float, amp: float, wx: float, wy: float) -> np.ndarray:
    """
    Separable periodic Gaussian on a torus (ny, nx) centered at (x0, y0).
    Returns an array of shape (ny, nx).
    """
    xs = np.arange(nx, dtype=float)
    ys = np.arange(ny, dtype=float)
    dx = _ring_dist(nx, xs, x0)
    dy = _ring_dist(ny, ys, y0)
    wx = max(1e-9, float(wx))
    wy = max(1e-9, float(wy))
    gx = np.exp(-(dx * dx) / (2.0 * wx * wx))
    gy = np.exp(-(dy * dy) / (2.0 * wy * wy))
    return float(amp) * (gy[:, None] * gx[None, :])


def resample_2d(img: np.ndarray, target_hw: Tuple[int, int]) -> np.ndarray:
    """Bilinear resample by two separable np.interp passes."""
    img = np.asarray(img, dtype=float)
    H, W = img.shape
    Ht, Wt = int(target_hw[0]), int(target_hw[1])
    if (H, W) == (Ht, Wt):
        return img
    x_src = np.linspace(0.0, 1.0, W)
    x_tgt = np.linspace(0.0, 1.0, Wt)
    tmp = np.empty((H, Wt), dtype=float)
    for r in range(H):
        tmp[r, :] = np.interp(x_tgt, x_src, img[r, :])
    y_src = np.linspace(0.0, 1.0, H)
    y_tgt = np.linspace(0.0, 1.0, Ht)
    out = np.empty((Ht, Wt), dtype=float)
    for c in range(Wt):
        out[:, c] = np.interp(y_tgt, y_src, tmp[:, c])
    return out


def center_crop_square(img: np.ndarray) -> np.ndarray:
    H, W = img.shape[:2]
    s = min(H, W)
    y0 = (H - s) // 2
    x0 = (W - s) // 2
    return img[y0:y0 + s, x0:x0 + s]


def prepare_frame(image: Any, size: int) -> np.ndarray:
    """
    Any grayscale or RGB(A) image -> float32 (size, size) luminance in [0,1].
    Non-square images are center-cropped first so the field is not stretched.
    """
    img = np.asarray(image)
    if img.ndim == 3 and img.shape[2] in (3, 4):
        lum = rgb_to_luminance(img)
    elif img.ndim == 2:
        lum = img.astype(np.float32)
        if np.issubdtype(img.dtype, np.integer):
            lum /= 255.0
    else:
        raise ValueError(f"expected a 2-D or RGB(A) image, got shape {img.shape}")
    lum = resample_2d(center_crop_square(lum), (size, size))
    return np.clip(lum, 0.0, 1.0).astype(np.float32)


def black_frame(size: int) -> np.ndarray:
    return np.zeros((size, size), dtype=np.float32)


def uniform_frame(size: int, value: float) -> np.ndarray:
    return np.full((size, size), float(value), dtype=np.float32)


# ------------------------------
# synthetic source
# ------------------------------
DEFAULT_SOURCES: List[Dict[str, Any]] = [
    {"kind": "moving_peak_2d", "amp": 0.7, "speed_x": 0.004, "speed_y": 0.002,
     "width_x": 12.0, "width_y": 12.0},
    {"kind": "moving_peak_2d", "amp": 0.5, "speed_x": -0.003, "speed_y": 0.005,
     "width_x": 6.0, "width_y": 18.0, "start_x": 64, "start_y": 192},
]


class SyntheticSource:
    """
    Moving Gaussian blobs on a torus over a flat background, stand-in for a camera.

    Supported sources:
      {"kind":"moving_peak_2d","amp":0.7,"speed_x":0.004,"speed_y":0.002,
       "width_x":12.0,"width_y":12.0,"start_x":N//2,"start_y":N//2}
      {"kind":"moving_bar","amp":0.6,"speed":0.003,"width":4.0,"start":N//2}

    Speeds are fractions of the grid per frame. With dark_every > 0 the source emits
    black frames for dark_length ticks out of every dark_every, which puts the engine
    to sleep on a schedule.
    """

    def __init__(self, size: int, cfg: Optional[SourceCfg] = None, seed: int = 0):
        self.size = int(size)
        self.cfg = cfg or SourceCfg()
        self.rng = np.random.default_rng(int(seed))
        self.sources = list(self.cfg.sources) or list(DEFAULT_SOURCES)
        self.t = 0

    def is_dark(self, t: int) -> bool:
        every = int(self.cfg.dark_every)
        length = int(self.cfg.dark_length)
        if every <= 0 or length <= 0:
            return False
        return (t % every) >= (every - length)

    def frame_at(self, t: int) -> np.ndarray:
        N = self.size
        if self.is_dark(t):
            return black_frame(N)
        E = np.full((N, N), float(self.cfg.background), dtype=float)
        for s in self.sources:
            kind = s.get("kind", "moving_peak_2d")
            if kind == "moving_peak_2d":
                amp = float(s.get("amp", 1.0))
                x = (float(s.get("start_x", N // 2)) + float(s.get("speed_x", 0.0)) * N * t) % N
                y = (float(s.get("start_y", N // 2)) + float(s.get("speed_y", 0.0)) * N * t) % N
                E += _gauss_2d(N, N, x, y, amp, float(s.get("width_x", 4.0)), float(s.get("width_y", 4.0)))
            elif kind == "moving_bar":
                amp = float(s.get("amp", 1.0))
                x = (float(s.get("start", N // 2)) + float(s.get("speed", 0.0)) * N * t) % N
                w = max(1e-9, float(s.get("width", 4.0)))
                d = _ring_dist(N, np.arange(N, dtype=float), x)
                E += amp * np.exp(-(d * d) / (2.0 * w * w))[None, :]
        if self.cfg.noise_sigma > 0.0:
            E += self.rng.normal(0.0, float(self.cfg.noise_sigma), size=E.shape)
        return np.clip(E, 0.0, 1.0).astype(np.float32)

    def next_frame(self) -> np.ndarray:
        frame = self.frame_at(self.t)
        self.t += 1
        return frame
