# psicortex/config.py
from __future__ import annotations
import json
import os
from dataclasses import dataclass, field as dc_field, is_dataclass, asdict
from typing import Any, Dict, List, Optional

from .errors import ConfigError


# ---------- helpers ----------
def _safe_get(d: Dict[str, Any], k: str, default):
    return default if not isinstance(d, dict) else default if d.get(k) is None else d.get(k)


def config_to_dict(cfg_obj: Any) -> Dict[str, Any]:
    """Accept a dict, a dataclass (nested ok), or an object with to_dict/as_dict/dict/toJSON."""
    if cfg_obj is None:
        return {}
    if isinstance(cfg_obj, dict):
        return cfg_obj
    if is_dataclass(cfg_obj) and not isinstance(cfg_obj, type):
        return asdict(cfg_obj)
    for attr in ("to_dict", "as_dict", "dict", "toJSON"):
        if hasattr(cfg_obj, attr) and callable(getattr(cfg_obj, attr)):
            try:
                out = getattr(cfg_obj, attr)()
            except TypeError:
                continue
            if isinstance(out, dict):
                return out
    if hasattr(cfg_obj, "__dict__") and isinstance(cfg_obj.__dict__, dict):
        out = {k: v for k, v in cfg_obj.__dict__.items() if not k.startswith("_")}
        if out:
            return out
    raise ConfigError(
        "Engine expected a dict-like config. Got type "
        f"{type(cfg_obj).__name__} without a supported to_dict/as_dict."
    )


# ---------- config blocks ----------
@dataclass
class FieldCfg:
    size: int = 256

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FieldCfg":
        return cls(size=int(_safe_get(d, "size", cls.size)))


@dataclass
class ModeCfg:
    dark_threshold: float = 0.1   # mean luminance below this => DREAMING
    dream_ramp: float = 0.02      # added to dream_intensity per dreaming tick
    wake_decay: float = 0.95      # dream_intensity multiplier per awake tick

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModeCfg":
        return cls(
            dark_threshold=float(_safe_get(d, "dark_threshold", cls.dark_threshold)),
            dream_ramp=float(_safe_get(d, "dream_ramp", cls.dream_ramp)),
            wake_decay=float(_safe_get(d, "wake_decay", cls.wake_decay)),
        )


@dataclass
class MemoryCfg:
    activity_threshold: float = 0.01
    strength_gain: float = 0.01
    learning_rate: float = 0.05
    strength_decay: float = 0.995
    forget_floor: float = 0.1
    forget_decay: float = 0.999

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MemoryCfg":
        return cls(
            activity_threshold=float(_safe_get(d, "activity_threshold", cls.activity_threshold)),
            strength_gain=float(_safe_get(d, "strength_gain", cls.strength_gain)),
            learning_rate=float(_safe_get(d, "learning_rate", cls.learning_rate)),
            strength_decay=float(_safe_get(d, "strength_decay", cls.strength_decay)),
            forget_floor=float(_safe_get(d, "forget_floor", cls.forget_floor)),
            forget_decay=float(_safe_get(d, "forget_decay", cls.forget_decay)),
        )


@dataclass
class DreamCfg:
    strength_floor: float = 0.05  # cells below this strength are never perturbed
    amplitude: float = 0.02
    spatial_freq: float = 0.05
    jitter: float = 0.1           # noise on the dream-blended current field

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DreamCfg":
        return cls(
            strength_floor=float(_safe_get(d, "strength_floor", cls.strength_floor)),
            amplitude=float(_safe_get(d, "amplitude", cls.amplitude)),
            spatial_freq=float(_safe_get(d, "spatial_freq", cls.spatial_freq)),
            jitter=float(_safe_get(d, "jitter", cls.jitter)),
        )


@dataclass
class ScoutCfg:
    count: int = 4000
    margin: float = 5.0
    history_len: int = 8
    gradient_gain: float = 5.0
    cluster_gain: float = 2.0
    explore_noise: float = 1.0
    dream_noise_boost: float = 2.0
    dream_stimulus_noise: float = 0.05
    drift_gain: float = 0.5
    velocity_damping: float = 0.8
    force_scale: float = 0.1
    energy_decay: float = 0.99

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScoutCfg":
        kw = {}
        for name, default in asdict(cls()).items():
            kw[name] = type(default)(_safe_get(d, name, default))
        return cls(**kw)


@dataclass
class AggregatorCfg:
    deposit: float = 0.1

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AggregatorCfg":
        return cls(deposit=float(_safe_get(d, "deposit", cls.deposit)))


@dataclass
class SourceCfg:
    """Synthetic frame source (used when no camera is attached)."""
    noise_sigma: float = 0.02
    background: float = 0.25
    dark_every: int = 0     # 0 = never go dark
    dark_length: int = 0
    sources: List[Dict[str, Any]] = dc_field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceCfg":
        return cls(
            noise_sigma=float(_safe_get(d, "noise_sigma", 0.02)),
            background=float(_safe_get(d, "background", 0.25)),
            dark_every=int(_safe_get(d, "dark_every", 0)),
            dark_length=int(_safe_get(d, "dark_length", 0)),
            sources=list(_safe_get(d, "sources", [])),
        )


@dataclass
class SimConfig:
    seed: int = 0
    log_every: int = 60
    field: FieldCfg = dc_field(default_factory=FieldCfg)
    mode: ModeCfg = dc_field(default_factory=ModeCfg)
    memory: MemoryCfg = dc_field(default_factory=MemoryCfg)
    dream: DreamCfg = dc_field(default_factory=DreamCfg)
    scouts: ScoutCfg = dc_field(default_factory=ScoutCfg)
    aggregator: AggregatorCfg = dc_field(default_factory=AggregatorCfg)
    source: SourceCfg = dc_field(default_factory=SourceCfg)

    @classmethod
    def from_dict(cls, cfg: Any) -> "SimConfig":
        if isinstance(cfg, SimConfig):
            return cfg
        d = config_to_dict(cfg)
        out = cls(
            seed=int(_safe_get(d, "seed", 0)),
            log_every=int(_safe_get(d, "log_every", 60)),
            field=FieldCfg.from_dict(d.get("field", {})),
            mode=ModeCfg.from_dict(d.get("mode", {})),
            memory=MemoryCfg.from_dict(d.get("memory", {})),
            dream=DreamCfg.from_dict(d.get("dream", {})),
            scouts=ScoutCfg.from_dict(d.get("scouts", {})),
            aggregator=AggregatorCfg.from_dict(d.get("aggregator", {})),
            source=SourceCfg.from_dict(d.get("source", {})),
        )
        out.validate()
        return out

    def validate(self) -> None:
        N = self.field.size
        if N < 8:
            raise ConfigError(f"field.size must be >= 8, got {N}")
        if self.scouts.count < 1:
            raise ConfigError(f"scouts.count must be >= 1, got {self.scouts.count}")
        if not (0.0 <= self.scouts.margin < N / 2.0):
            raise ConfigError(f"scouts.margin must lie in [0, {N / 2.0}), got {self.scouts.margin}")
        if self.scouts.history_len < 1:
            raise ConfigError("scouts.history_len must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------- defaults.json ----------
REQUIRED_KEYS = ["seed", "field", "mode", "memory", "dream", "scouts", "aggregator"]


def load_defaults(path: str = "defaults.json") -> Dict[str, Any]:
    """Strict JSON (no comments). Raises ConfigError with the parser message."""
    if not os.path.exists(path):
        raise ConfigError(f"{path} not found in project root.")
    try:
        with open(path, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Failed to parse {path} as strict JSON. Remove any // or /* */ comments. ({e})"
        ) from e


def find_missing(cfg: Dict[str, Any]) -> List[str]:
    missing: List[str] = [k for k in REQUIRED_KEYS if k not in cfg]
    fld = cfg.get("field")
    if not isinstance(fld, dict) or "size" not in fld:
        missing.append("field.size")
    sc = cfg.get("scouts")
    if not isinstance(sc, dict) or "count" not in sc:
        missing.append("scouts.count")
    return missing


def load_config(path: Optional[str] = None) -> SimConfig:
    if path is None:
        return SimConfig()
    return SimConfig.from_dict(load_defaults(path))
