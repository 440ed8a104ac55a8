# psicortex/errors.py
from __future__ import annotations


class PsiCortexError(Exception):
    """Base class for errors raised by the simulation core."""


class ConfigError(PsiCortexError, ValueError):
    """defaults.json missing, unparseable, or holding values the engine cannot run with."""


class SnapshotError(PsiCortexError, ValueError):
    """A memory snapshot was rejected; the memory store was left unchanged."""
