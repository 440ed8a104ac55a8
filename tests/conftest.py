import numpy as np
import pytest

from psicortex.config import SimConfig


def small_config(**over):
    """32x32 grid with a few hundred scouts; everything else at defaults."""
    d = {
        "seed": 7,
        "field": {"size": 32},
        "scouts": {"count": 240, "margin": 5.0},
        "source": {"noise_sigma": 0.0, "dark_every": 0, "dark_length": 0},
    }
    d.update(over)
    return d


@pytest.fixture
def cfg_dict():
    return small_config()


@pytest.fixture
def cfg(cfg_dict):
    return SimConfig.from_dict(cfg_dict)


@pytest.fixture
def rng():
    return np.random.default_rng(123)
