import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from immersed_layers.core.grid import CartesianGrid
from immersed_layers.core.bodies import BodyList, Circle
from immersed_layers.core.config import ProblemConfig
from immersed_layers.operators.surface import GridOperators
from immersed_layers.algorithm.neumann import NeumannPoissonCache


def circle_cache(h: float, lim: float = 2.0, config: ProblemConfig = ProblemConfig()) -> NeumannPoissonCache:
    grid = CartesianGrid.from_limits((-lim, lim), (-lim, lim), h)
    return NeumannPoissonCache.from_bodies(grid, BodyList([Circle(1.0, 1.4 * h)]), config)


def translating_data(cache: NeumannPoissonCache):
    """vn+ = n_x, vn- = 0 (unit potential of a translating body)."""
    vnplus = cache.ops.zeros_surface()
    vnminus = cache.ops.zeros_surface()
    vnplus[:] = cache.ops.normals()[:, 0]
    return vnplus, vnminus


@pytest.fixture
def grid():
    return CartesianGrid.from_limits((-2.0, 2.0), (-2.0, 2.0), 0.08)


@pytest.fixture
def circle_ops(grid):
    surface = BodyList([Circle(1.0, 1.4 * grid.h)]).surface()
    return GridOperators(grid, surface)


@pytest.fixture(scope="module")
def coarse_cache():
    return circle_cache(0.08)


@pytest.fixture(scope="module")
def medium_cache():
    return circle_cache(0.04)


@pytest.fixture(scope="module")
def fine_cache():
    return circle_cache(0.02)
