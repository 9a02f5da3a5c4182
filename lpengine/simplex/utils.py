"""
Numerical helpers for basis factorization.

The revised simplex solver keeps an explicit basis inverse and refreshes it
from the basis columns every few pivots. These helpers degrade gracefully
when the basis matrix is nearly singular instead of raising mid-solve.
"""

from __future__ import annotations

import numpy as np


def stable_solve(matrix: np.ndarray, rhs: np.ndarray, reg: float = 1e-12) -> np.ndarray:
    """
    Solve ``A x = b`` with simple regularization fallbacks.

    Tries ``np.linalg.solve`` first, then retries with ``reg`` added to the
    diagonal, and finally falls back to a least-squares solve.
    """
    try:
        return np.linalg.solve(matrix, rhs)
    except np.linalg.LinAlgError:
        if reg > 0.0:
            try:
                return np.linalg.solve(matrix + reg * np.eye(matrix.shape[0]), rhs)
            except np.linalg.LinAlgError:
                pass
    sol, *_ = np.linalg.lstsq(matrix, rhs, rcond=None)
    return sol


def basis_inverse(basis_matrix: np.ndarray) -> np.ndarray:
    """Inverse of a square basis matrix via :func:`stable_solve`."""
    return stable_solve(basis_matrix, np.eye(basis_matrix.shape[0]))


def inverse_residual(basis_matrix: np.ndarray, inverse: np.ndarray) -> float:
    """Max-norm of ``inverse @ basis_matrix - I``."""
    if basis_matrix.size == 0:
        return 0.0
    return float(np.max(np.abs(inverse @ basis_matrix - np.eye(basis_matrix.shape[0]))))
