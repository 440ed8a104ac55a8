# psicortex/snapshot.py
"""
Memory store export/import.

Snapshot shape (JSON-friendly, keys as exchanged with the UI and save files):
    {"attractorMemory": [N*N floats], "memoryStrength": [N*N floats], "timestamp": int}

Import validates everything before writing, so a rejected snapshot leaves the store
untouched. Both calls must run between ticks.
"""
from __future__ import annotations
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from .errors import SnapshotError
from .field import Field

logger = logging.getLogger(__name__)

MEMORY_KEY = "attractorMemory"
STRENGTH_KEY = "memoryStrength"
TIMESTAMP_KEY = "timestamp"


def export_snapshot(fld: Field, timestamp: Optional[int] = None) -> Dict[str, Any]:
    ts = int(time.time() * 1000) if timestamp is None else int(timestamp)
    return {
        MEMORY_KEY: fld.attractor_memory.ravel().tolist(),
        STRENGTH_KEY: fld.memory_strength.ravel().tolist(),
        TIMESTAMP_KEY: ts,
    }


def _as_layer(snapshot: Dict[str, Any], key: str, n_cells: int) -> np.ndarray:
    if key not in snapshot:
        raise SnapshotError(f"snapshot is missing '{key}'")
    try:
        raw = np.asarray(snapshot[key])
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"'{key}' is not a numeric array ({e})") from e
    # ints and floats only; strings, bools and objects are rejected
    if raw.dtype.kind not in "iuf":
        raise SnapshotError(f"'{key}' is not a numeric array (dtype {raw.dtype})")
    arr = raw.astype(np.float64).ravel()
    if arr.size != n_cells:
        raise SnapshotError(f"'{key}' has {arr.size} elements, expected {n_cells}")
    if not np.all(np.isfinite(arr)):
        raise SnapshotError(f"'{key}' contains NaN or infinite values")
    return arr


def import_snapshot(fld: Field, snapshot: Dict[str, Any]) -> None:
    """Overwrite attractor_memory and memory_strength atomically (both or neither)."""
    if not isinstance(snapshot, dict):
        raise SnapshotError(f"snapshot must be a mapping, got {type(snapshot).__name__}")
    n_cells = fld.size * fld.size
    mem = _as_layer(snapshot, MEMORY_KEY, n_cells)
    strength = _as_layer(snapshot, STRENGTH_KEY, n_cells)

    fld.attractor_memory[...] = np.clip(mem, 0.0, 1.0).reshape(fld.shape)
    fld.memory_strength[...] = np.clip(strength, 0.0, 1.0).reshape(fld.shape)
    logger.info("memory snapshot imported (timestamp=%s)", snapshot.get(TIMESTAMP_KEY))


def save_snapshot(path: Union[str, Path], snapshot: Dict[str, Any]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w") as f:
        json.dump(snapshot, f)
    logger.info("memory snapshot saved to %s", p)
    return p


def load_snapshot(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    try:
        with open(p, "r") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise SnapshotError(f"snapshot file not found: {p}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"snapshot file is not valid JSON: {p} ({e})") from e
    if not isinstance(data, dict):
        raise SnapshotError("snapshot file must hold a JSON object")
    return data


def loads_snapshot(text: Union[str, bytes]) -> Dict[str, Any]:
    """Parse snapshot JSON received from an upload widget."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotError(f"snapshot is not valid JSON ({e})") from e
    if not isinstance(data, dict):
        raise SnapshotError("snapshot must be a JSON object")
    return data
