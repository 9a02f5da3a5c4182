"""
Two-phase simplex driver shared by the primal and revised solvers.

The driver owns the control flow: phase selection, entering and leaving
choices, cycling detection, iteration records and result assembly. The
concrete solvers only supply a *basis engine* that answers questions about
the current basis (reduced costs, pivot column, basic values) and performs
pivots. Because both engines are driven by the same selection functions, the
two solvers take exactly the same pivot path.
"""

from __future__ import annotations

import time
from typing import Optional, Protocol

import numpy as np

from ..config import PivotRule, SimplexConfig
from ..core import SolverResult, SolverStatus
from ..diagnostics.core import assert_valid_tableau
from ..diagnostics.debug_mode import is_debug_enabled
from ..errors import (
    InfeasibleError,
    MaxIterationsReached,
    NumericalInstabilityError,
    UnboundedError,
)
from ..logging import get_logger
from ..model import Model
from .canonical import CanonicalForm, CanonicalFormBuilder
from .iteration import SimplexIteration
from .tableau import PivotRecord, Tableau, TableauStatus, build_ratio_test, select_entering

__all__ = ["BasisEngine", "SimplexSolverBase"]

logger = get_logger(__name__)

_TABLEAU_STATUS = {
    SolverStatus.OPTIMAL: TableauStatus.OPTIMAL,
    SolverStatus.INFEASIBLE: TableauStatus.INFEASIBLE,
    SolverStatus.UNBOUNDED: TableauStatus.UNBOUNDED,
    SolverStatus.MAX_ITER: TableauStatus.CONTINUING,
    SolverStatus.NUMERICAL_ERROR: TableauStatus.ERROR,
}


class BasisEngine(Protocol):
    """Operations the driver needs from a basis representation."""

    @property
    def columns(self) -> tuple[str, ...]: ...

    @property
    def basis(self) -> tuple[str, ...]: ...

    @property
    def n_rows(self) -> int: ...

    def set_costs(self, costs: np.ndarray) -> None: ...

    def reduced_costs(self) -> np.ndarray: ...

    def column_entries(self, column: int) -> np.ndarray: ...

    def row_entries(self, row: int) -> np.ndarray: ...

    def basic_values(self) -> np.ndarray: ...

    def pivot(self, row: int, column: int) -> PivotRecord: ...

    def drop_row(self, row: int) -> None: ...

    def drop_columns(self, names: set[str]) -> None: ...

    def mark(self, status: TableauStatus) -> None: ...

    def snapshot(self) -> Tableau: ...

    def details(self, column: int, reduced_costs: np.ndarray) -> dict: ...


class _SolveState:
    """Mutable bookkeeping for a single solve."""

    def __init__(self, canonical: CanonicalForm, start: float) -> None:
        self.canonical = canonical
        self.start = start
        self.records: list[SimplexIteration] = []
        self.warnings: list[str] = []
        self.pivots = 0
        self.degenerate = 0
        self.phase = 1 if canonical.needs_phase_one else 2
        self.seen: set[frozenset[str]] = set()

    def elapsed(self) -> float:
        return time.perf_counter() - self.start


class SimplexSolverBase:
    """
    Common solve loop for simplex variants.

    Subclasses implement :meth:`_make_engine`.

    Args:
        config: Solver configuration. Defaults to :class:`SimplexConfig()`.
    """

    name = "simplex"

    def __init__(self, config: Optional[SimplexConfig] = None) -> None:
        self.config = config or SimplexConfig()
        self._builder = CanonicalFormBuilder(tol=self.config.tolerance)

    def _make_engine(self, canonical: CanonicalForm) -> BasisEngine:
        raise NotImplementedError

    # ------------------------------------------------------------------
    def solve(self, model: Model) -> SolverResult:
        """
        Solve the LP ``model``.

        Integer and binary restrictions are relaxed (binary variables keep
        their ``<= 1`` bound) and a warning is recorded.

        Returns:
            A :class:`SolverResult` with status OPTIMAL, INFEASIBLE,
            UNBOUNDED, MAX_ITER or NUMERICAL_ERROR.

        Raises:
            ModelError: If the model is malformed.
            InvalidPivotError: If a pivot is attempted on a numerically zero
                element.
        """
        start = time.perf_counter()
        relaxed_warning = None
        if model.has_integer_variables:
            relaxed_warning = (
                f"Integer restrictions on {', '.join(model.integer_variables)} ignored; "
                "solved the LP relaxation."
            )
            model = model.relaxation()

        canonical = self._builder.build(model)
        state = _SolveState(canonical, start)
        if relaxed_warning:
            state.warnings.append(relaxed_warning)
        engine = self._make_engine(canonical)
        logger.debug("%s: solving %s", self.name, model.name or "model")

        status = SolverStatus.OPTIMAL
        message = "Optimal solution found."
        try:
            if canonical.needs_phase_one:
                self._phase_one(engine, state)
            state.phase = 2
            state.seen.clear()
            costs = canonical.column_costs
            engine.set_costs(np.array([costs[name] for name in engine.columns]))
            self._iterate(engine, state)
        except InfeasibleError as exc:
            status, message = SolverStatus.INFEASIBLE, str(exc)
        except UnboundedError as exc:
            status, message = SolverStatus.UNBOUNDED, str(exc)
        except MaxIterationsReached as exc:
            status, message = SolverStatus.MAX_ITER, str(exc)
            state.warnings.append(message)
        except NumericalInstabilityError as exc:
            status, message = SolverStatus.NUMERICAL_ERROR, str(exc)
            state.warnings.append(message)
            if self.config.pivot_rule is PivotRule.DANTZIG:
                state.warnings.append("Consider PivotRule.BLAND for degenerate problems.")

        if state.degenerate:
            state.warnings.append(
                f"{state.degenerate} degenerate pivot(s); ratio-test ties were broken by smallest row index."
            )

        engine.mark(_TABLEAU_STATUS[status])
        column_values = self._column_values(engine)
        objective: Optional[float] = None
        solution: dict[str, float] = {}
        # A Phase 1 basis is not feasible for the model, so only Phase 2 points are reported
        if status is SolverStatus.OPTIMAL or (status is SolverStatus.MAX_ITER and state.phase == 2):
            solution = canonical.to_model_solution(column_values)
            objective = model.objective_value(solution)

        state.records.append(
            SimplexIteration(
                index=len(state.records),
                phase=state.phase,
                status=_TABLEAU_STATUS[status],
                objective=canonical.objective_value(column_values),
                tableau=engine.snapshot() if self.config.record_tableaus else None,
                elapsed=state.elapsed(),
                description=message,
            )
        )
        log = logger.warning if status in (SolverStatus.MAX_ITER, SolverStatus.NUMERICAL_ERROR) else logger.info
        log("%s: %s after %d pivot(s)%s", self.name, status.value, state.pivots,
            f", z = {objective:.6g}" if objective is not None else "")
        return SolverResult(
            algorithm=self.name,
            status=status,
            objective=objective,
            solution=solution,
            iterations=tuple(state.records),
            initial_tableau=canonical.tableau,
            final_tableau=engine.snapshot(),
            canonical_form=canonical,
            proven_optimal=status is SolverStatus.OPTIMAL,
            warnings=tuple(state.warnings),
            message=message,
            elapsed=state.elapsed(),
        )

    # ------------------------------------------------------------------
    @staticmethod
    def _column_values(engine: BasisEngine) -> dict[str, float]:
        values = {name: 0.0 for name in engine.columns}
        for name, value in zip(engine.basis, engine.basic_values()):
            values[name] = float(value)
        return values

    def _phase_one(self, engine: BasisEngine, state: _SolveState) -> None:
        canonical = state.canonical
        artificials = set(canonical.artificial_columns)
        logger.debug("%s: phase 1 with artificials %s", self.name, ", ".join(canonical.artificial_columns))
        engine.set_costs(np.array([-1.0 if name in artificials else 0.0 for name in engine.columns]))
        self._iterate(engine, state)

        residual = sum(
            value for name, value in zip(engine.basis, engine.basic_values()) if name in artificials
        )
        if residual > self.config.phase_one_tolerance:
            raise InfeasibleError(
                f"Phase 1 ended with artificial sum {residual:.3e} > "
                f"{self.config.phase_one_tolerance:.1e}; the problem is infeasible."
            )

        tol = self.config.tolerance
        row = 1
        while row <= engine.n_rows:
            leaving = engine.basis[row - 1]
            if leaving not in artificials:
                row += 1
                continue
            entries = engine.row_entries(row)
            candidates = [
                j for j, name in enumerate(engine.columns)
                if name not in artificials and abs(entries[j]) > tol
            ]
            if candidates:
                column = candidates[0]
                details = engine.details(column, engine.reduced_costs())
                record = engine.pivot(row, column)
                state.pivots += 1
                self._record(engine, state, record, None, details,
                             f"Artificial {leaving} driven out of the basis at zero level.")
                row += 1
            else:
                constraint = canonical.row_constraints[canonical.tableau.basis.index(leaving)]
                engine.drop_row(row)
                state.warnings.append(f"Constraint {constraint} is redundant and was removed.")
                logger.debug("%s: dropped redundant row of %s", self.name, constraint)
        engine.drop_columns(artificials)

    def _iterate(self, engine: BasisEngine, state: _SolveState) -> None:
        config = self.config
        state.seen.add(frozenset(engine.basis))
        while True:
            reduced = engine.reduced_costs()
            column = select_entering(reduced, config.pivot_rule, config.tolerance)
            if column is None:
                return
            if state.pivots >= config.max_iterations:
                raise MaxIterationsReached(
                    f"Iteration limit of {config.max_iterations} reached in phase {state.phase}."
                )
            name = engine.columns[column]
            ratio = build_ratio_test(
                engine.basic_values(), engine.column_entries(column), engine.basis,
                column, name, config.tolerance,
            )
            if ratio.unbounded:
                if state.phase == 1:
                    raise NumericalInstabilityError(
                        f"Phase 1 objective unbounded along {name}; the tableau is corrupted."
                    )
                raise UnboundedError(f"Objective is unbounded: {name} can increase without limit.", column=name)
            if ratio.degenerate:
                state.degenerate += 1

            details = engine.details(column, reduced)
            record = engine.pivot(ratio.row, column)
            state.pivots += 1
            self._record(engine, state, record, ratio, details, "")

            if self._feasibility_status(engine) is TableauStatus.INFEASIBLE:
                raise InfeasibleError(
                    "A row with negative right-hand side has no coefficient able to restore feasibility."
                )
            key = frozenset(engine.basis)
            if config.detect_cycling and key in state.seen:
                raise NumericalInstabilityError(
                    f"Basis {{{', '.join(sorted(key))}}} repeated at iteration {record.iteration}; "
                    "the pivot sequence is cycling."
                )
            state.seen.add(key)

    def _feasibility_status(self, engine: BasisEngine) -> TableauStatus:
        tol = self.config.tolerance
        values = engine.basic_values()
        for i in np.flatnonzero(values < -tol):
            if np.all(engine.row_entries(int(i) + 1) >= -tol):
                return TableauStatus.INFEASIBLE
        return TableauStatus.CONTINUING

    def _record(self, engine, state, record, ratio, details, description) -> None:
        snapshot = None
        if self.config.record_tableaus or is_debug_enabled():
            snapshot = engine.snapshot()
        if is_debug_enabled():
            assert_valid_tableau(snapshot)
        values = self._column_values(engine)
        logger.debug(
            "%s: iteration %d, %s enters, %s leaves (element %.6g)",
            self.name, record.iteration, record.entering, record.leaving, record.element,
        )
        state.records.append(
            SimplexIteration(
                index=len(state.records),
                phase=state.phase,
                status=TableauStatus.CONTINUING,
                objective=state.canonical.objective_value(values),
                entering=record.entering,
                leaving=record.leaving,
                pivot=record,
                ratio_test=ratio,
                tableau=snapshot if self.config.record_tableaus else None,
                elapsed=state.elapsed(),
                description=description or f"{record.entering} enters the basis, {record.leaving} leaves.",
                details=dict(details, basis_after=engine.basis) if details else {},
            )
        )

