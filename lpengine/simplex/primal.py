"""
Primal simplex on a full tableau.

Example:
    >>> from lpengine.model import Model
    >>> model = Model.from_dense("max", [3, 2], [[1, 1], [2, 1]], ["<=", "<="], [4, 6])
    >>> result = PrimalSimplexSolver().solve(model)
    >>> result.objective, dict(result.solution)
    (10.0, {'x1': 2.0, 'x2': 2.0})
"""

from __future__ import annotations

import numpy as np

from .base import SimplexSolverBase
from .canonical import CanonicalForm
from .tableau import PivotRecord, RHS, Tableau, TableauStatus

__all__ = ["PrimalSimplexSolver"]


class _TableauEngine:
    """Basis engine backed by a dense :class:`Tableau`."""

    def __init__(self, canonical: CanonicalForm) -> None:
        self.tableau = canonical.tableau.copy()

    @property
    def columns(self) -> tuple[str, ...]:
        return self.tableau.variable_columns

    @property
    def basis(self) -> tuple[str, ...]:
        return self.tableau.basis

    @property
    def n_rows(self) -> int:
        return self.tableau.n_constraints

    def set_costs(self, costs: np.ndarray) -> None:
        row = np.zeros(self.tableau.n_columns)
        row[:-1] = -np.asarray(costs, dtype=float)
        self.tableau = self.tableau.with_objective(row)

    def reduced_costs(self) -> np.ndarray:
        return self.tableau.reduced_costs

    def column_entries(self, column: int) -> np.ndarray:
        return self.tableau.column(column)

    def row_entries(self, row: int) -> np.ndarray:
        return self.tableau.matrix[row, :-1].copy()

    def basic_values(self) -> np.ndarray:
        return self.tableau.rhs

    def pivot(self, row: int, column: int) -> PivotRecord:
        return self.tableau.pivot(row, column)

    def drop_row(self, row: int) -> None:
        self.tableau = self.tableau.drop_row(row)

    def drop_columns(self, names: set[str]) -> None:
        self.tableau = self.tableau.drop_columns(names - {RHS})

    def mark(self, status: TableauStatus) -> None:
        self.tableau.mark(status)

    def snapshot(self) -> Tableau:
        return self.tableau.snapshot()

    def details(self, column: int, reduced_costs: np.ndarray) -> dict:
        return {}


class PrimalSimplexSolver(SimplexSolverBase):
    """
    Two-phase primal simplex method on a dense tableau.

    Every pivot goes through :meth:`Tableau.pivot`, and each iteration record
    holds the ratio test that chose the leaving row and (by default) a
    snapshot of the tableau after the pivot.

    Args:
        config: Solver configuration.
    """

    name = "primal_simplex"

    def _make_engine(self, canonical: CanonicalForm) -> _TableauEngine:
        return _TableauEngine(canonical)
