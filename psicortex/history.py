# psicortex/history.py
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List


@dataclass
class History:
    # time axis
    t: List[int] = field(default_factory=list)

    # population
    active_scouts: List[int] = field(default_factory=list)
    clusters:      List[int] = field(default_factory=list)
    coherence:     List[float] = field(default_factory=list)
    mean_activation: List[float] = field(default_factory=list)

    # fields
    field_energy:  List[float] = field(default_factory=list)   # sum of attractor_field
    input_strength: List[float] = field(default_factory=list)

    # memory / mode
    memory_mean:     List[float] = field(default_factory=list)
    strength_mean:   List[float] = field(default_factory=list)
    memory_coverage: List[float] = field(default_factory=list)
    dream_intensity: List[float] = field(default_factory=list)
    dreaming:        List[bool] = field(default_factory=list)

    max_len: int = 2000

    def record(self, row: Dict[str, Any]) -> None:
        """Append one metrics row (see metrics.collect); keeps the last max_len entries."""
        self.t.append(int(row.get("tick", len(self.t))))
        for f in fields(self):
            if f.name in ("t", "max_len"):
                continue
            getattr(self, f.name).append(row.get(f.name, 0))
        excess = len(self.t) - self.max_len
        if excess > 0:
            for f in fields(self):
                if f.name != "max_len":
                    del getattr(self, f.name)[:excess]

    def __len__(self) -> int:
        return len(self.t)

    def clear(self) -> None:
        for f in fields(self):
            if f.name != "max_len":
                getattr(self, f.name).clear()
