# psicortex/engine.py
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import numpy as np

from . import attractors
from . import dream
from . import memory
from . import snapshot as snap
from .config import SimConfig
from .field import Field, load_frame, make_field, update_features, validate_frame
from .frames import SyntheticSource
from .metrics import collect, format_for_log
from .mode import ModeState, frame_strength, update_mode
from .scouts import ScoutPopulation, create_population, update_scouts

logger = logging.getLogger(__name__)


# ---------- State ----------
@dataclass
class SimState:
    cfg: SimConfig
    field: Field
    mode: ModeState
    scouts: ScoutPopulation
    rng: np.random.Generator
    tick: int = 0
    frames_rejected: int = 0


def new_state(cfg: SimConfig) -> SimState:
    rng = np.random.default_rng(int(cfg.seed))
    N = int(cfg.field.size)
    return SimState(
        cfg=cfg,
        field=make_field(N),
        mode=ModeState(),
        scouts=create_population(cfg.scouts.count, N, rng, cfg.scouts),
        rng=rng,
    )


# ---------- Engine ----------
class Engine:
    """
    One psi field, one scout population, one memory store.

    Each tick runs to completion in a fixed order:
      mode -> (dream generate + blend | load frame) -> features -> scouts
      -> attractor aggregation -> memory reinforcement.
    Scouts only ever read the field as it stood after the feature pass.
    """
    def __init__(self, cfg: Any = None):
        self.cfg = SimConfig.from_dict(cfg if cfg is not None else {})
        self.state = new_state(self.cfg)
        self._running = False

    # convenience accessors
    @property
    def field(self) -> Field:
        return self.state.field

    @property
    def scouts(self) -> ScoutPopulation:
        return self.state.scouts

    @property
    def mode(self) -> ModeState:
        return self.state.mode

    @property
    def tick_count(self) -> int:
        return self.state.tick

    # ---------- One simulation step ----------
    def step(self, frame: Any = None, now: Optional[float] = None) -> SimState:
        st = self.state
        cfg = self.cfg
        fld = st.field
        t = time.time() if now is None else float(now)

        lum = validate_frame(frame, fld.size)
        if lum is None:
            st.frames_rejected += 1
            logger.debug("tick %d: frame missing or invalid, keeping previous input", st.tick)
            strength = st.mode.visual_input_strength
        else:
            strength = frame_strength(lum)

        update_mode(st.mode, strength, cfg.mode)

        if st.mode.is_dreaming:
            dream.generate(fld, st.mode, t, cfg.dream)
            dream.blend_current(fld, st.mode, st.rng, cfg.dream)
            update_features(fld)
        elif lum is not None:
            load_frame(fld, lum)
            update_features(fld)

        update_scouts(st.scouts, fld, st.mode, t, st.rng, cfg.scouts, tick=st.tick)
        attractors.rebuild_attractor_field(fld, st.scouts, cfg.aggregator)
        memory.reinforce(fld, cfg.memory)

        st.tick += 1
        return st

    # ---------- run control ----------
    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        logger.info("simulation started at tick %d", self.state.tick)

    def stop(self) -> None:
        self._running = False
        logger.info("simulation paused at tick %d", self.state.tick)

    def tick(self, frame: Any = None, now: Optional[float] = None) -> bool:
        """Step only while running. Returns whether a step happened."""
        if not self._running:
            return False
        self.step(frame, now)
        return True

    def reset(self) -> None:
        """Back to the state of a freshly built engine (same seed); run flag is kept."""
        self.state = new_state(self.cfg)
        logger.info("simulation reset (seed=%d, N=%d, scouts=%d)",
                    self.cfg.seed, self.cfg.field.size, self.cfg.scouts.count)

    # ---------- memory store ----------
    def export_snapshot(self, timestamp: Optional[int] = None) -> Dict[str, Any]:
        return snap.export_snapshot(self.state.field, timestamp)

    def import_snapshot(self, snapshot: Dict[str, Any]) -> None:
        snap.import_snapshot(self.state.field, snapshot)

    def save_memory(self, path: str):
        return snap.save_snapshot(path, self.export_snapshot())

    def load_memory(self, path: str) -> None:
        self.import_snapshot(snap.load_snapshot(path))

    # ---------- Optional: log metrics every N ticks ----------
    def maybe_log_metrics(self, every: int = 60) -> Optional[str]:
        if every <= 0 or self.state.tick == 0 or (self.state.tick % every) != 0:
            return None
        line = format_for_log([collect(self.state)])
        logger.info("%s", line)
        return line


FrameSource = Union[SyntheticSource, Callable[[int], Any]]


def _next_frame(source: FrameSource, i: int) -> Any:
    if isinstance(source, SyntheticSource):
        return source.next_frame()
    return source(i)


# Convenience runner (headless; the dashboard drives Engine directly)
def run(cfg: Any, source: Optional[FrameSource] = None, ticks: int = 600,
        on_frame: Optional[Callable[[int, SimState], None]] = None) -> Engine:
    """
    Step a fresh engine `ticks` times. `source` is a SyntheticSource, a callable
    tick -> frame, or None (a synthetic source built from cfg.source).
    """
    eng = Engine(cfg)
    if source is None:
        source = SyntheticSource(eng.cfg.field.size, eng.cfg.source, seed=eng.cfg.seed)
    for i in range(int(ticks)):
        st = eng.step(_next_frame(source, i), now=float(i) / 60.0)
        if on_frame is not None:
            on_frame(st.tick, st)
        eng.maybe_log_metrics(eng.cfg.log_every)
    return eng
