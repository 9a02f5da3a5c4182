"""
Simplex tableau and pivot primitives.

Layout: row 0 is the objective row in maximization-normalized form (a
maximize objective ``c`` is stored as ``-c``), rows ``1..m`` are constraint
rows, and the last column is the right-hand side. Column names run parallel
to the matrix columns (the last is ``"RHS"``), and ``basis[i]`` names the
variable that is basic in row ``i + 1``.

The selection rules are plain functions over numpy arrays
(:func:`select_entering`, :func:`minimum_ratio`, :func:`build_ratio_test`) so
that the tableau and the revised solver make exactly the same choices.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

import numpy as np

from ..config import PivotRule
from ..core import PIVOT_TOL
from ..errors import InvalidPivotError

__all__ = [
    "RHS",
    "TableauStatus",
    "PivotRecord",
    "RatioTestEntry",
    "RatioTest",
    "Tableau",
    "dantzig_entering",
    "bland_entering",
    "select_entering",
    "minimum_ratio",
    "build_ratio_test",
]

RHS = "RHS"

# Ratios closer than this are treated as tied (smallest row wins)
_RATIO_TIE_TOL = 1e-9


class TableauStatus(Enum):
    """Single, mutually exclusive state of a tableau or iteration."""

    CONTINUING = "continuing"
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    ERROR = "error"


@dataclass(frozen=True)
class PivotRecord:
    """One performed pivot. ``row`` is a tableau row (1-based over constraints)."""

    row: int
    column: int
    element: float
    entering: str
    leaving: str
    iteration: int


@dataclass(frozen=True)
class RatioTestEntry:
    """Ratio-test line for one constraint row."""

    row: int
    basic_variable: str
    rhs: float
    column_value: float
    ratio: Optional[float]
    eligible: bool
    note: str = ""


@dataclass(frozen=True)
class RatioTest:
    """
    Full ratio test for an entering column.

    Attributes:
        column: Entering column index.
        column_name: Entering variable.
        entries: One entry per constraint row.
        row: Winning tableau row, or None when no row is eligible
            (unbounded direction).
        ratio: Minimum ratio, or None.
        tied_rows: Rows whose ratio ties the minimum, smallest first.
    """

    column: int
    column_name: str
    entries: tuple[RatioTestEntry, ...]
    row: Optional[int]
    ratio: Optional[float]
    tied_rows: tuple[int, ...] = ()

    @property
    def unbounded(self) -> bool:
        return self.row is None

    @property
    def degenerate(self) -> bool:
        """A zero-length step: the pivot will not change the objective."""
        return self.ratio is not None and self.ratio <= _RATIO_TIE_TOL


def _candidates(reduced_costs: np.ndarray, tol: float, eligible: Optional[np.ndarray]) -> np.ndarray:
    mask = reduced_costs < -tol
    if eligible is not None:
        mask &= eligible
    return np.flatnonzero(mask)


def dantzig_entering(
    reduced_costs: np.ndarray, tol: float = PIVOT_TOL, eligible: Optional[np.ndarray] = None
) -> Optional[int]:
    """Column with the most negative reduced cost (lowest index on ties), or None."""
    candidates = _candidates(reduced_costs, tol, eligible)
    if candidates.size == 0:
        return None
    return int(candidates[np.argmin(reduced_costs[candidates])])


def bland_entering(
    reduced_costs: np.ndarray, tol: float = PIVOT_TOL, eligible: Optional[np.ndarray] = None
) -> Optional[int]:
    """Lowest-index column with a negative reduced cost, or None."""
    candidates = _candidates(reduced_costs, tol, eligible)
    if candidates.size == 0:
        return None
    return int(candidates[0])


def select_entering(
    reduced_costs: np.ndarray,
    rule: PivotRule = PivotRule.DANTZIG,
    tol: float = PIVOT_TOL,
    eligible: Optional[np.ndarray] = None,
) -> Optional[int]:
    """Apply ``rule`` to ``reduced_costs``. None means the basis is optimal."""
    if rule is PivotRule.BLAND:
        return bland_entering(reduced_costs, tol, eligible)
    return dantzig_entering(reduced_costs, tol, eligible)


def minimum_ratio(
    rhs: np.ndarray, column: np.ndarray, tol: float = PIVOT_TOL
) -> tuple[Optional[int], Optional[float], tuple[int, ...]]:
    """
    Minimum-ratio test over rows with a positive column entry.

    Args:
        rhs: Current basic values, one per constraint row.
        column: Entering column restricted to the constraint rows.
        tol: Entries at or below this are not eligible.

    Returns:
        ``(index, ratio, ties)`` with ``index`` 0-based into ``rhs``. ``index``
        and ``ratio`` are None when no entry is positive. Ties within 1e-9 go
        to the smallest index; ``ties`` lists all tied indices.
    """
    best: Optional[int] = None
    best_ratio = math.inf
    ratios = {}
    for i in range(len(rhs)):
        if column[i] <= tol:
            continue
        # Basic values that drifted a hair below zero count as zero
        value = rhs[i] if rhs[i] > 0.0 or rhs[i] < -tol else 0.0
        ratio = value / column[i]
        ratios[i] = ratio
        if best is None or ratio < best_ratio - _RATIO_TIE_TOL:
            best, best_ratio = i, ratio
    if best is None:
        return None, None, ()
    ties = tuple(i for i, r in ratios.items() if abs(r - best_ratio) <= _RATIO_TIE_TOL)
    return best, float(best_ratio), ties


def build_ratio_test(
    rhs: np.ndarray,
    column: np.ndarray,
    basis: Sequence[str],
    column_index: int,
    column_name: str,
    tol: float = PIVOT_TOL,
) -> RatioTest:
    """Run :func:`minimum_ratio` and record every row's contribution.

    Row numbers in the result are tableau rows (constraint ``i`` is row
    ``i + 1``).
    """
    index, ratio, ties = minimum_ratio(rhs, column, tol)
    entries = []
    for i in range(len(rhs)):
        coef = float(column[i])
        if coef > tol:
            value = float(rhs[i]) if rhs[i] > 0.0 or rhs[i] < -tol else 0.0
            entries.append(
                RatioTestEntry(
                    i + 1, basis[i], float(rhs[i]), coef, value / coef, True,
                    "minimum ratio" if i == index else "",
                )
            )
        else:
            note = "zero coefficient - not eligible" if abs(coef) <= tol else "negative coefficient - not eligible"
            entries.append(RatioTestEntry(i + 1, basis[i], float(rhs[i]), coef, None, False, note))
    return RatioTest(
        column=column_index,
        column_name=column_name,
        entries=tuple(entries),
        row=None if index is None else index + 1,
        ratio=ratio,
        tied_rows=tuple(i + 1 for i in ties),
    )


class Tableau:
    """
    Dense simplex tableau.

    :meth:`pivot` is the only operation that changes the matrix; the status
    tag is set by the owning solver through :meth:`mark`. Snapshots taken
    with :meth:`snapshot` are read-only and refuse to pivot.

    Args:
        matrix: ``(m + 1, n + 1)`` array.
        columns: ``n + 1`` column names, the last being ``"RHS"``.
        basis: ``m`` basic variable names.
        iteration: Initial pivot counter.
        status: Initial status.
        tol: Zero threshold and minimum pivot magnitude.
    """

    def __init__(
        self,
        matrix: np.ndarray,
        columns: Sequence[str],
        basis: Sequence[str],
        iteration: int = 0,
        status: TableauStatus = TableauStatus.CONTINUING,
        tol: float = PIVOT_TOL,
    ) -> None:
        data = np.array(matrix, dtype=float)
        if data.ndim != 2 or data.shape[0] < 1 or data.shape[1] < 2:
            raise ValueError(f"tableau matrix must be 2-D with at least 2 columns, got shape {data.shape}.")
        if len(columns) != data.shape[1]:
            raise ValueError(
                f"columns has {len(columns)} names but the matrix has {data.shape[1]} columns."
            )
        if len(basis) != data.shape[0] - 1:
            raise ValueError(
                f"basis has {len(basis)} names but the matrix has {data.shape[0] - 1} constraint rows."
            )
        self._matrix = data
        self._columns = tuple(columns)
        self._basis = list(basis)
        self._index = {name: j for j, name in enumerate(self._columns)}
        self._iteration = int(iteration)
        self._status = status
        self._tol = float(tol)
        self._frozen = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def matrix(self) -> np.ndarray:
        """Read-only view of the full matrix."""
        view = self._matrix.view()
        view.flags.writeable = False
        return view

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def variable_columns(self) -> tuple[str, ...]:
        """Column names without the RHS column."""
        return self._columns[:-1]

    @property
    def basis(self) -> tuple[str, ...]:
        return tuple(self._basis)

    @property
    def nonbasic(self) -> tuple[str, ...]:
        basic = set(self._basis)
        return tuple(name for name in self.variable_columns if name not in basic)

    @property
    def rows(self) -> int:
        return self._matrix.shape[0]

    @property
    def n_columns(self) -> int:
        return self._matrix.shape[1]

    @property
    def n_constraints(self) -> int:
        return self._matrix.shape[0] - 1

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def status(self) -> TableauStatus:
        return self._status

    @property
    def tol(self) -> float:
        return self._tol

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def objective_value(self) -> float:
        """RHS of the objective row (the maximization-normalized value)."""
        return float(self._matrix[0, -1])

    @property
    def reduced_costs(self) -> np.ndarray:
        return self._matrix[0, :-1].copy()

    @property
    def rhs(self) -> np.ndarray:
        """Basic values, one per constraint row."""
        return self._matrix[1:, -1].copy()

    def column_index(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"unknown tableau column {name!r}") from None

    def column(self, index: int) -> np.ndarray:
        """Constraint-row entries of column ``index``."""
        return self._matrix[1:, index].copy()

    def basic_row(self, name: str) -> Optional[int]:
        """Tableau row where ``name`` is basic, or None."""
        try:
            return self._basis.index(name) + 1
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def mark(self, status: TableauStatus) -> None:
        """Set the status tag."""
        if self._frozen:
            raise InvalidPivotError("cannot change the status of a read-only tableau snapshot")
        self._status = status

    def pivot(self, row: int, column: int) -> PivotRecord:
        """
        Pivot on ``(row, column)``.

        The pivot row is divided by the pivot element, the column is
        eliminated from every other row (objective row included), and the
        entering variable replaces the basic variable of ``row``.

        Raises:
            InvalidPivotError: If ``row`` is not a constraint row, ``column``
                is the RHS or out of range, the element is within tolerance
                of zero, or the tableau is a read-only snapshot.
        """
        if self._frozen:
            raise InvalidPivotError("cannot pivot a read-only tableau snapshot")
        if not 1 <= row < self.rows:
            raise InvalidPivotError(f"pivot row must be in [1, {self.rows - 1}], got {row}.")
        if not 0 <= column < self.n_columns - 1:
            raise InvalidPivotError(
                f"pivot column must be in [0, {self.n_columns - 2}], got {column}."
            )
        element = float(self._matrix[row, column])
        if not math.isfinite(element) or abs(element) <= self._tol:
            raise InvalidPivotError(
                f"pivot element {element:.3e} at ({row}, {column}) is below tolerance {self._tol:.1e}."
            )

        m = self._matrix
        m[row] /= element
        factors = m[:, column].copy()
        factors[row] = 0.0
        m -= np.outer(factors, m[row])
        m[:, column] = 0.0
        m[row, column] = 1.0

        leaving = self._basis[row - 1]
        entering = self._columns[column]
        self._basis[row - 1] = entering
        self._iteration += 1
        return PivotRecord(row, column, element, entering, leaving, self._iteration)

    # ------------------------------------------------------------------
    # Selection and checks
    # ------------------------------------------------------------------
    def select_entering_column(
        self, rule: PivotRule = PivotRule.DANTZIG, eligible: Optional[np.ndarray] = None
    ) -> Optional[int]:
        """Entering column under ``rule``, or None when the objective row is optimal."""
        return select_entering(self._matrix[0, :-1], rule, self._tol, eligible)

    def ratio_test(self, column: int) -> RatioTest:
        return build_ratio_test(
            self._matrix[1:, -1], self._matrix[1:, column], self._basis,
            column, self._columns[column], self._tol,
        )

    def select_leaving_row(self, column: int) -> Optional[int]:
        """Winning tableau row of the ratio test, or None if ``column`` is unbounded."""
        index, _, _ = minimum_ratio(self._matrix[1:, -1], self._matrix[1:, column], self._tol)
        return None if index is None else index + 1

    def is_optimal(self, eligible: Optional[np.ndarray] = None) -> bool:
        return self.select_entering_column(PivotRule.DANTZIG, eligible) is None

    def is_unbounded_column(self, column: int) -> bool:
        return bool(np.all(self._matrix[1:, column] <= self._tol))

    def is_primal_feasible(self) -> bool:
        return bool(np.all(self._matrix[1:, -1] >= -self._tol))

    def check_feasibility(self) -> TableauStatus:
        """INFEASIBLE when a row with negative RHS has no negative coefficient.

        Such a row reads ``sum(a_j x_j) = b`` with ``b < 0`` and every
        ``a_j >= 0``, which no non-negative ``x`` satisfies. Otherwise
        CONTINUING.
        """
        for i in range(1, self.rows):
            if self._matrix[i, -1] < -self._tol and np.all(self._matrix[i, :-1] >= -self._tol):
                return TableauStatus.INFEASIBLE
        return TableauStatus.CONTINUING

    def extract_solution(self) -> dict[str, float]:
        """Value of every non-RHS column: basic from the RHS, others 0."""
        values = {name: 0.0 for name in self.variable_columns}
        for i, name in enumerate(self._basis):
            value = float(self._matrix[i + 1, -1])
            values[name] = 0.0 if abs(value) <= self._tol else value
        return values

    # ------------------------------------------------------------------
    # Derived tableaus
    # ------------------------------------------------------------------
    def copy(self) -> "Tableau":
        """Mutable deep copy."""
        return Tableau(self._matrix, self._columns, self._basis, self._iteration, self._status, self._tol)

    def snapshot(self) -> "Tableau":
        """Read-only deep copy for audit trails."""
        clone = self.copy()
        clone._matrix.flags.writeable = False
        clone._frozen = True
        return clone

    def drop_columns(self, names: Iterable[str]) -> "Tableau":
        """New tableau without the named columns, none of which may be basic."""
        names = set(names)
        basic = names.intersection(self._basis)
        if basic:
            raise InvalidPivotError(f"cannot drop basic column(s): {', '.join(sorted(basic))}.")
        keep = [j for j, name in enumerate(self._columns) if name not in names or name == RHS]
        return Tableau(
            self._matrix[:, keep], [self._columns[j] for j in keep], self._basis,
            self._iteration, self._status, self._tol,
        )

    def drop_row(self, row: int) -> "Tableau":
        """New tableau without constraint row ``row``."""
        if not 1 <= row < self.rows:
            raise InvalidPivotError(f"row must be in [1, {self.rows - 1}], got {row}.")
        basis = self._basis[: row - 1] + self._basis[row:]
        return Tableau(
            np.delete(self._matrix, row, axis=0), self._columns, basis,
            self._iteration, self._status, self._tol,
        )

    def with_objective(self, coefficients: np.ndarray) -> "Tableau":
        """
        New tableau whose objective row is ``coefficients`` priced out.

        Args:
            coefficients: Objective row (length ``n_columns``, RHS last) in the
                maximization-normalized convention, before pricing out.
        """
        row0 = np.array(coefficients, dtype=float)
        if row0.shape != (self.n_columns,):
            raise ValueError(f"objective row must have length {self.n_columns}, got {row0.shape}.")
        for i, name in enumerate(self._basis):
            j = self._index[name]
            if row0[j] != 0.0:
                row0 = row0 - row0[j] * self._matrix[i + 1]
        matrix = self._matrix.copy()
        matrix[0] = row0
        return Tableau(matrix, self._columns, self._basis, self._iteration, self._status, self._tol)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def validate(self, basis_tol: float = 1e-6) -> list[str]:
        """Structural and numerical consistency checks.

        Returns:
            Human-readable problems; empty when the tableau is sound.
        """
        errors = []
        if self._columns[-1] != RHS:
            errors.append(f"last column must be {RHS!r}, got {self._columns[-1]!r}")
        if len(set(self._columns)) != len(self._columns):
            errors.append("duplicate column names")
        if len(set(self._basis)) != len(self._basis):
            errors.append("duplicate basic variables")
        if not np.all(np.isfinite(self._matrix)):
            errors.append("matrix contains NaN or infinite entries")
        for i, name in enumerate(self._basis):
            if name not in self._index or name == RHS:
                errors.append(f"basic variable {name!r} in row {i + 1} is not a column")
                continue
            col = self._matrix[1:, self._index[name]]
            unit = np.zeros(self.n_constraints)
            unit[i] = 1.0
            if np.max(np.abs(col - unit)) > basis_tol:
                errors.append(f"column {name!r} is not a unit vector for row {i + 1}")
            if abs(self._matrix[0, self._index[name]]) > basis_tol:
                errors.append(f"basic column {name!r} has a nonzero objective entry")
        return errors

    def format(self, precision: int = 3) -> str:
        """Fixed-width text rendering with a Basis column and a Z row."""
        labels = ["Z"] + list(self._basis)
        label_width = max(len("Basis"), *(len(label) for label in labels))
        width = max(precision + 7, *(len(name) for name in self._columns))
        header = f"{'Basis':<{label_width}} | " + " ".join(f"{name:>{width}}" for name in self._columns)
        lines = [header, "-" * len(header)]
        for label, row in zip(labels, self._matrix):
            cells = " ".join(f"{value:>{width}.{precision}f}" for value in row)
            lines.append(f"{label:<{label_width}} | {cells}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Tableau(rows={self.rows}, columns={self.n_columns}, iteration={self._iteration}, "
            f"status={self._status.value})"
        )
