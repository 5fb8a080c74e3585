"""
Immersed-layer solver for the Neumann Poisson problem on a Cartesian grid.

We keep three sibling subpackages:
- core: grid, bodies + surface points, configuration, errors
- operators: kernels, sparse assembly, Laplacian inverses, Schur complement
- algorithm: saddle-point solve, post-processing, grid refinement helpers
"""

__all__ = ["core", "operators", "algorithm", "diagnostics"]
