"""
Revised simplex method.

Instead of carrying the whole tableau, the solver keeps the original
constraint matrix ``A``, the right-hand side ``b``, the ordered basic column
indices and an explicit basis inverse ``B^-1``. Each iteration

1. prices out: ``y = c_B B^-1`` and ``r_j = c_j - y A_j`` (``c`` in the
   objective-row convention, so a negative ``r_j`` is improving);
2. picks the entering column with the same rule as the tableau solver;
3. forms the pivot column ``d = B^-1 A_j`` and runs the identical ratio test;
4. updates ``[B^-1 | x_B]`` with exactly the row operations a tableau pivot
   applies to those rows (product-form update).

Every ``refactor_every`` updates ``B^-1`` is recomputed from the basis
columns to shed accumulated rounding error.
"""

from __future__ import annotations

import math

import numpy as np

from ..errors import InvalidPivotError
from ..logging import get_logger
from .base import SimplexSolverBase
from .canonical import CanonicalForm
from .tableau import RHS, PivotRecord, Tableau, TableauStatus
from .utils import basis_inverse, inverse_residual

__all__ = ["RevisedSimplexSolver"]

logger = get_logger(__name__)


class _RevisedEngine:
    """Basis engine holding ``A``, ``b``, the basis indices and ``B^-1``."""

    def __init__(self, canonical: CanonicalForm, tol: float, refactor_every: int) -> None:
        initial = canonical.tableau
        self._tol = tol
        self._refactor_every = refactor_every
        self._columns = list(initial.variable_columns)
        self._a = np.array(initial.matrix[1:, :-1], dtype=float)
        self._b = np.array(initial.matrix[1:, -1], dtype=float)
        self._basis_idx = [initial.column_index(name) for name in initial.basis]
        self._cost = np.zeros(len(self._columns))
        self._iteration = initial.iteration
        self._status = TableauStatus.CONTINUING
        self._updates = 0
        self._refactor()

    # -- read access ---------------------------------------------------
    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._columns)

    @property
    def basis(self) -> tuple[str, ...]:
        return tuple(self._columns[j] for j in self._basis_idx)

    @property
    def n_rows(self) -> int:
        return len(self._basis_idx)

    def prices(self) -> np.ndarray:
        """Simplex multipliers ``y = c_B B^-1``."""
        return self._cost[self._basis_idx] @ self._b_inv

    def reduced_costs(self) -> np.ndarray:
        reduced = self._cost - self.prices() @ self._a
        reduced[self._basis_idx] = 0.0
        return reduced

    def column_entries(self, column: int) -> np.ndarray:
        return self._b_inv @ self._a[:, column]

    def row_entries(self, row: int) -> np.ndarray:
        return self._b_inv[row - 1] @ self._a

    def basic_values(self) -> np.ndarray:
        return self._x_b.copy()

    # -- updates ---------------------------------------------------------
    def set_costs(self, costs: np.ndarray) -> None:
        self._cost = -np.asarray(costs, dtype=float)

    def pivot(self, row: int, column: int) -> PivotRecord:
        if not 1 <= row <= self.n_rows:
            raise InvalidPivotError(f"pivot row must be in [1, {self.n_rows}], got {row}.")
        if not 0 <= column < len(self._columns):
            raise InvalidPivotError(f"pivot column must be in [0, {len(self._columns) - 1}], got {column}.")
        d = self.column_entries(column)
        r = row - 1
        element = float(d[r])
        if not math.isfinite(element) or abs(element) <= self._tol:
            raise InvalidPivotError(
                f"pivot element {element:.3e} at ({row}, {column}) is below tolerance {self._tol:.1e}."
            )
        aug = np.column_stack([self._b_inv, self._x_b])
        aug[r] /= element
        factors = d.copy()
        factors[r] = 0.0
        aug -= np.outer(factors, aug[r])
        self._b_inv, self._x_b = aug[:, :-1], aug[:, -1].copy()

        leaving = self._columns[self._basis_idx[r]]
        self._basis_idx[r] = column
        self._iteration += 1
        self._updates += 1
        if self._refactor_every and self._updates % self._refactor_every == 0:
            self._refactor()
        return PivotRecord(row, column, element, self._columns[column], leaving, self._iteration)

    def _refactor(self) -> None:
        basis_matrix = self._a[:, self._basis_idx]
        self._b_inv = basis_inverse(basis_matrix)
        self._x_b = self._b_inv @ self._b
        residual = inverse_residual(basis_matrix, self._b_inv)
        if residual > 1e-8:
            logger.warning("Basis inverse residual %.2e after refactorization", residual)

    def drop_row(self, row: int) -> None:
        r = row - 1
        self._a = np.delete(self._a, r, axis=0)
        self._b = np.delete(self._b, r)
        del self._basis_idx[r]
        self._refactor()

    def drop_columns(self, names: set[str]) -> None:
        names = set(names) - {RHS}
        basic = [self._columns[j] for j in self._basis_idx if self._columns[j] in names]
        if basic:
            raise InvalidPivotError(f"cannot drop basic column(s): {', '.join(sorted(basic))}.")
        keep = [j for j, name in enumerate(self._columns) if name not in names]
        remap = {old: new for new, old in enumerate(keep)}
        self._a = self._a[:, keep]
        self._cost = self._cost[keep]
        self._columns = [self._columns[j] for j in keep]
        self._basis_idx = [remap[j] for j in self._basis_idx]

    def mark(self, status: TableauStatus) -> None:
        self._status = status

    # -- reporting -------------------------------------------------------
    def snapshot(self) -> Tableau:
        """Tableau equivalent of the current basis (``B^-1 [A | b]``)."""
        body = self._b_inv @ np.column_stack([self._a, self._b])
        row0 = np.append(self.reduced_costs(), -self._cost[self._basis_idx] @ self._x_b)
        matrix = np.vstack([row0, body])
        tableau = Tableau(matrix, self._columns + [RHS], self.basis, self._iteration, self._status, self._tol)
        return tableau.snapshot()

    def details(self, column: int, reduced_costs: np.ndarray) -> dict:
        """Price-out data for the pivot about to be made on ``column``."""
        basis = self.basis
        return {
            "reduced_costs": {
                name: float(value)
                for name, value in zip(self._columns, reduced_costs)
                if name not in basis
            },
            "prices": tuple(float(v) for v in self.prices()),
            "pivot_column": tuple(float(v) for v in self.column_entries(column)),
            "basis_before": basis,
            "basic_values": tuple(float(v) for v in self._x_b),
        }


class RevisedSimplexSolver(SimplexSolverBase):
    """
    Two-phase revised simplex method.

    Produces the same pivots, objective and solution as
    :class:`~lpengine.simplex.primal.PrimalSimplexSolver` for the same model
    and configuration. Iteration records add the price-out details (reduced
    costs of the non-basic columns before the pivot, the pivot column
    ``B^-1 A_j``, and the basis before and after).

    Args:
        config: Solver configuration. ``refactor_every`` controls how often
            the basis inverse is recomputed from scratch.
    """

    name = "revised_simplex"

    def _make_engine(self, canonical: CanonicalForm) -> _RevisedEngine:
        return _RevisedEngine(canonical, self.config.tolerance, self.config.refactor_every)
