"""
Algorithms: saddle-point solve, post-processing, grid refinement checks.
"""

from .neumann import (
    NeumannPoissonCache,
    solve,
    normal_derivative_limits,
    added_mass,
    schur_residual,
)

from .grid_refinement import (
    refine_grid,
    surface_l2_norm,
    surface_l2_rel_error,
    grid_l2_norm,
)

__all__ = [
    # neumann.py
    "NeumannPoissonCache",
    "solve",
    "normal_derivative_limits",
    "added_mass",
    "schur_residual",
    # grid_refinement.py
    "refine_grid",
    "surface_l2_norm",
    "surface_l2_rel_error",
    "grid_l2_norm",
]
