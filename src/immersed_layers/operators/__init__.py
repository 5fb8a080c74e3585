"""
Operators: discretization/assembly + Laplacian inverses + Schur complement.

Public API:
- GridOperators (surface/grid primitives for one geometry)
- SchurComplement, build_schur_complement
- Laplacian inverses: make_laplacian_inverse, Dirichlet/Unbounded variants
"""

# Assembly
from .assemble import (
    gradient_matrix,
    divergence_matrix,
    rot_matrix,
    curl_matrix,
    laplacian_matrix,
    interpolation_matrix,
)
from .kernels import get_kernel, roma, peskin4, yang3

# Laplacian inverses
from .lgf import lgf_table, lgf_kernel
from .solve import (
    LaplacianInverse,
    DirichletLaplacianInverse,
    UnboundedLaplacianInverse,
    make_laplacian_inverse,
    compute_residual,
    residual_norms,
)

# Surface operators
from .surface import GridOperators
from .schur import SchurComplement, build_schur_complement

__all__ = [
    # Assembly
    "gradient_matrix",
    "divergence_matrix",
    "rot_matrix",
    "curl_matrix",
    "laplacian_matrix",
    "interpolation_matrix",
    "get_kernel",
    "roma",
    "yang3",
    "peskin4",

    # Laplacian inverses
    "lgf_table",
    "lgf_kernel",
    "LaplacianInverse",
    "DirichletLaplacianInverse",
    "UnboundedLaplacianInverse",
    "make_laplacian_inverse",
    "compute_residual",
    "residual_norms",

    # Surface operators
    "GridOperators",
    "SchurComplement",
    "build_schur_complement",
]
