"""
Core: problem definition (grid, bodies, surface points, configuration, errors).
"""

from .grid import CartesianGrid, GRID_KINDS
from .bodies import (
    Body,
    Circle,
    Ellipse,
    Rectangle,
    Square,
    Polygon,
    BodyList,
    RigidTransform,
    RigidTransformList,
    SurfacePoints,
    sample_polygon,
)
from .config import ProblemConfig
from .errors import (
    ImmersedLayersError,
    ConfigurationError,
    DimensionMismatch,
    NumericalFailure,
)

__all__ = [
    "CartesianGrid",
    "GRID_KINDS",
    "Body",
    "Circle",
    "Ellipse",
    "Rectangle",
    "Square",
    "Polygon",
    "BodyList",
    "RigidTransform",
    "RigidTransformList",
    "SurfacePoints",
    "sample_polygon",
    "ProblemConfig",
    "ImmersedLayersError",
    "ConfigurationError",
    "DimensionMismatch",
    "NumericalFailure",
]
