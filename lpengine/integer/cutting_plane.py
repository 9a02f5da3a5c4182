"""
Gomory cutting planes.

Each pass solves the LP relaxation of the model plus every cut accepted so
far. When an integer variable is basic at a fractional value, its row

    x_B + sum_j a_j x_j = b,    f0 = b - floor(b) > 0

yields a cut that the current LP point violates:

* if every nonbasic entry belongs to an integer-valued column, the
  Chvatal-Gomory cut ``x_B + sum_j floor(a_j) x_j <= floor(b)``;
* otherwise the mixed-integer Gomory cut ``sum_j g_j x_j >= 1`` with
  ``g_j = f_j / f0`` (integer column, ``f_j <= f0``),
  ``(1 - f_j) / (1 - f0)`` (integer column, ``f_j > f0``),
  ``a_j / f0`` (continuous column, ``a_j > 0``) and
  ``-a_j / (1 - f0)`` (continuous column, ``a_j < 0``).

Slack and surplus columns are substituted back through their defining rows
and split columns are folded into their variable, so every cut is stated
over model variables and can be appended to the model as an ordinary
constraint.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Optional

from ..config import CuttingPlaneConfig
from ..core import (
    FEASIBILITY_TOL,
    SolverResult,
    SolverStatus,
    fractional_part,
    freeze_mapping,
    is_integral_value,
)
from ..errors import NotApplicableError
from ..logging import get_logger
from ..model import Constraint, Model, Relation
from ..simplex.canonical import CanonicalForm
from ..simplex.tableau import Tableau
from .branch_and_bound import make_lp_solver, optimality_gap, round_integers
from .solution import IntegerSolution

__all__ = [
    "CutType",
    "CuttingPlane",
    "CuttingPlaneIteration",
    "CuttingPlaneSolver",
    "gomory_cut",
    "mixed_gomory_cut",
]

logger = get_logger(__name__)

_COEF_TOL = 1e-9


class CutType(Enum):
    GOMORY = "gomory"
    MIXED = "mixed"


@dataclass(frozen=True)
class CuttingPlane:
    """
    A valid inequality ``sum(coefficients[v] * v) <relation> rhs``.

    Attributes:
        id: 1-based generation order within a solve.
        coefficients: Model variable to coefficient.
        relation: ``<=`` for Chvatal-Gomory cuts, ``>=`` for mixed-integer
            Gomory cuts.
        rhs: Right-hand side.
        source: Basic variable whose tableau row produced the cut.
        violation: Signed violation at the LP solution that produced the cut.
        iteration: LP pass that produced the cut.
        row_coefficients: Fractional form over tableau columns,
            ``sum(f_j * x_j) >= row_rhs``.
        row_rhs: Fractional part of the source row's RHS.
        cut_type: Family of the cut.
    """

    id: int
    coefficients: Mapping[str, float] = field(hash=False)
    relation: Relation = Relation.LE
    rhs: float = 0.0
    source: str = ""
    violation: float = 0.0
    iteration: int = 0
    row_coefficients: Mapping[str, float] = field(default_factory=dict, hash=False)
    row_rhs: float = 0.0
    cut_type: CutType = CutType.GOMORY

    def __post_init__(self) -> None:
        object.__setattr__(self, "coefficients", freeze_mapping(self.coefficients))
        object.__setattr__(self, "row_coefficients", freeze_mapping(self.row_coefficients))

    @property
    def name(self) -> str:
        return f"cut{self.id}"

    def evaluate(self, values: Mapping[str, float]) -> float:
        """Left-hand side at ``values``."""
        return sum(coef * values.get(var, 0.0) for var, coef in self.coefficients.items())

    def violation_at(self, values: Mapping[str, float]) -> float:
        """Signed violation: positive when violated, negative when satisfied."""
        lhs = self.evaluate(values)
        if self.relation is Relation.LE:
            return lhs - self.rhs
        if self.relation is Relation.GE:
            return self.rhs - lhs
        return abs(lhs - self.rhs)

    def is_violated_by(self, values: Mapping[str, float], tol: float = FEASIBILITY_TOL) -> bool:
        return self.violation_at(values) > tol

    def is_satisfied_by(self, values: Mapping[str, float], tol: float = FEASIBILITY_TOL) -> bool:
        return not self.is_violated_by(values, tol)

    def to_constraint(self) -> Constraint:
        return Constraint(self.name, dict(self.coefficients), self.relation, self.rhs)

    def format(self, precision: int = 3) -> str:
        terms = []
        for var, coef in self.coefficients.items():
            if abs(coef) <= _COEF_TOL:
                continue
            sign = "-" if coef < 0 else ("+" if terms else "")
            terms.append(f"{sign}{abs(coef):.{precision}f}{var}")
        lhs = " ".join(terms) if terms else "0"
        return f"{self.name}: {lhs} {self.relation.value} {self.rhs:.{precision}f} (from {self.source})"


@dataclass(frozen=True)
class CuttingPlaneIteration:
    """One LP pass of the cutting-plane loop."""

    index: int
    status: SolverStatus
    objective: Optional[float] = None
    solution: Mapping[str, float] = field(default_factory=dict, hash=False)
    fractional: Mapping[str, float] = field(default_factory=dict, hash=False)
    cuts_added: tuple[int, ...] = ()
    cuts_rejected: int = 0
    lp_pivots: int = 0
    tableau: Optional[Tableau] = None
    note: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "solution", freeze_mapping(self.solution))
        object.__setattr__(self, "fractional", freeze_mapping(self.fractional))

    def summary(self) -> str:
        z = f"z = {self.objective:.6g}" if self.objective is not None else "no LP optimum"
        cuts = f", added cut(s) {', '.join(map(str, self.cuts_added))}" if self.cuts_added else ""
        note = f" ({self.note})" if self.note else ""
        return f"pass {self.index}: {self.status.value}, {z}{cuts}{note}"


def _snap_floor(value: float, tol: float) -> float:
    nearest = round(value)
    if abs(value - nearest) <= tol:
        return float(nearest)
    return float(math.floor(value))


def _integral_columns(canonical: CanonicalForm, integer_names, tol: float) -> set[str]:
    """Columns guaranteed to take integer values at every integer-feasible point."""
    integral = {
        mapping.columns[0]
        for name, mapping in canonical.variable_map.items()
        if name in integer_names and len(mapping.columns) == 1
    }
    for column, definition in canonical.slack_definitions.items():
        if not is_integral_value(definition.rhs, tol):
            continue
        if all(col in integral and is_integral_value(a, tol) for col, a in definition.coefficients.items()):
            integral.add(column)
    return integral


def _to_model_terms(column_cut: Mapping[str, float], canonical: CanonicalForm, tol: float):
    """
    Rewrite ``sum(coef * column)`` over model variables.

    Returns:
        ``(coefficients, constant)`` with the same value as
        ``constant + sum(coefficients[v] * v)``, or None when the terms of a
        split variable are not proportional to its column signs.
    """
    by_column: dict[str, float] = {}
    constant = 0.0
    for column, coef in column_cut.items():
        definition = canonical.slack_definitions.get(column)
        if definition is None:
            by_column[column] = by_column.get(column, 0.0) + coef
            continue
        expr, const = definition.expression()
        for col, a in expr.items():
            by_column[col] = by_column.get(col, 0.0) + coef * a
        constant += coef * const

    coefficients: dict[str, float] = {}
    for name, mapping in canonical.variable_map.items():
        # x = sum(sign * column), so the terms fold into k * x when every column carries k * sign
        scaled = [by_column.pop(col, 0.0) * sign for col, sign in zip(mapping.columns, mapping.signs)]
        if max(scaled) - min(scaled) > tol:
            return None
        if abs(scaled[0]) > tol:
            coefficients[name] = scaled[0]
    if any(abs(coef) > tol for coef in by_column.values()):
        return None
    return coefficients, constant


def gomory_cut(
    tableau: Tableau,
    canonical: CanonicalForm,
    row: int,
    integral: set[str],
    tol: float = 1e-9,
) -> Optional[tuple[dict[str, float], float, dict[str, float], float]]:
    """
    Chvatal-Gomory cut from tableau ``row`` (1-based).

    Returns:
        ``(coefficients, rhs, row_coefficients, f0)`` with the ``<=`` cut over
        model variables, or None when the row has a nonbasic nonzero entry in
        a column that is not integer-valued.
    """
    matrix = tableau.matrix
    basic = tableau.basis[row - 1]
    b = float(matrix[row, -1])
    column_cut = {basic: 1.0}
    row_coefficients = {}
    for j, name in enumerate(tableau.variable_columns):
        if name == basic:
            continue
        a = float(matrix[row, j])
        if abs(a) <= tol:
            continue
        if name not in integral:
            return None
        floor_a = _snap_floor(a, tol)
        frac = a - floor_a
        if frac > tol:
            row_coefficients[name] = frac
        if floor_a != 0.0:
            column_cut[name] = floor_a
    rhs = _snap_floor(b, tol)
    f0 = b - rhs

    terms = _to_model_terms(column_cut, canonical, tol)
    if terms is None:
        return None
    coefficients, constant = terms
    return coefficients, rhs - constant, row_coefficients, f0


def mixed_gomory_cut(
    tableau: Tableau,
    canonical: CanonicalForm,
    row: int,
    integral: set[str],
    tol: float = 1e-9,
) -> Optional[tuple[dict[str, float], float, dict[str, float], float]]:
    """
    Mixed-integer Gomory cut from tableau ``row`` (1-based).

    Columns outside ``integral`` are treated as continuous.

    Returns:
        ``(coefficients, rhs, row_coefficients, f0)`` with the ``>=`` cut over
        model variables and ``row_coefficients`` scaled so that
        ``sum(row_coefficients[j] * x_j) >= f0``. None when the row RHS is
        integral or the cut cannot be stated over model variables.
    """
    matrix = tableau.matrix
    basic = tableau.basis[row - 1]
    b = float(matrix[row, -1])
    f0 = b - _snap_floor(b, tol)
    if f0 <= tol or f0 >= 1.0 - tol:
        return None
    column_cut = {}
    for j, name in enumerate(tableau.variable_columns):
        if name == basic:
            continue
        a = float(matrix[row, j])
        if abs(a) <= tol:
            continue
        if name in integral:
            frac = a - _snap_floor(a, tol)
            g = frac / f0 if frac <= f0 else (1.0 - frac) / (1.0 - f0)
        else:
            g = a / f0 if a > 0.0 else -a / (1.0 - f0)
        if g > tol:
            column_cut[name] = g

    terms = _to_model_terms(column_cut, canonical, tol)
    if terms is None:
        return None
    coefficients, constant = terms
    row_coefficients = {name: g * f0 for name, g in column_cut.items()}
    return coefficients, 1.0 - constant, row_coefficients, f0


class CuttingPlaneSolver:
    """
    Pure cutting-plane method with Gomory cuts.

    Args:
        config: Iteration and stagnation ceilings, cut acceptance thresholds
            and the LP solver used for each pass.
    """

    name = "cutting_plane"

    def __init__(self, config: Optional[CuttingPlaneConfig] = None) -> None:
        self.config = config or CuttingPlaneConfig()
        self._lp = make_lp_solver(self.config.lp_algorithm, self.config.simplex)

    def solve(self, model: Model) -> SolverResult:
        """
        Solve the integer program ``model``.

        Returns:
            SolverResult with one :class:`CuttingPlaneIteration` per LP pass
            and the accepted cuts in ``cuts``. Status is OPTIMAL when an LP
            optimum is integral (or its bound meets the rounded incumbent),
            STALLED when no valid cut exists or the objective stagnates, and
            MAX_ITER at the pass ceiling.

        Raises:
            NotApplicableError: If the model has no integer or binary
                variables.
        """
        if not model.has_integer_variables:
            raise NotApplicableError(
                "Model has no integer or binary variables; use a simplex solver.",
                recommended="primal_simplex",
            )
        start = time.perf_counter()
        cfg = self.config
        tol = cfg.integrality_tolerance
        relaxed = model.relaxation()
        integer_names = model.integer_variables
        cuts: list[CuttingPlane] = []
        records: list[CuttingPlaneIteration] = []
        warnings: list[str] = []
        first_lp: Optional[SolverResult] = None
        last_lp: Optional[SolverResult] = None
        incumbent: Optional[IntegerSolution] = None
        root_bound: Optional[float] = None
        previous: Optional[float] = None
        stagnant = 0
        status = SolverStatus.MAX_ITER
        message = f"Iteration limit of {cfg.max_iterations} reached without an integral LP optimum."

        for k in range(1, cfg.max_iterations + 1):
            working = relaxed.with_constraints(cut.to_constraint() for cut in cuts)
            lp = self._lp.solve(working)
            if first_lp is None:
                first_lp = lp
            if lp.status is not SolverStatus.OPTIMAL:
                records.append(CuttingPlaneIteration(k, lp.status, lp_pivots=lp.pivot_count, note=lp.message))
                status, message = self._lp_failure(lp, bool(cuts))
                if status is not SolverStatus.INFEASIBLE:
                    warnings.extend(lp.warnings)
                break
            last_lp = lp
            if root_bound is None:
                root_bound = lp.objective
            fractional = {
                name: fractional_part(lp.solution.get(name, 0.0), tol)
                for name in integer_names
                if not is_integral_value(lp.solution.get(name, 0.0), tol)
            }
            snapshot = lp.final_tableau if cfg.simplex.record_tableaus else None

            if not fractional:
                values = round_integers(lp.solution, integer_names, tol)
                incumbent = IntegerSolution(values, model.objective_value(values), True, None, self.name)
                records.append(CuttingPlaneIteration(
                    k, SolverStatus.OPTIMAL, lp.objective, lp.solution, lp_pivots=lp.pivot_count,
                    tableau=snapshot, note="integral LP optimum",
                ))
                status = SolverStatus.OPTIMAL
                message = f"Integral LP optimum after {k} pass(es) and {len(cuts)} cut(s)."
                break

            if cfg.rounding_heuristic:
                candidate = self._round(model, lp.solution, integer_names, tol)
                if candidate is not None and candidate.is_better_than(incumbent, model.sense, tol):
                    incumbent = candidate
                    logger.debug("%s: rounding incumbent z = %.6g", self.name, candidate.objective)

            if incumbent is not None and not model.is_better(lp.objective, incumbent.objective, tol):
                records.append(CuttingPlaneIteration(
                    k, SolverStatus.OPTIMAL, lp.objective, lp.solution, fractional, lp_pivots=lp.pivot_count,
                    tableau=snapshot, note="LP bound meets the incumbent",
                ))
                status = SolverStatus.OPTIMAL
                message = f"LP bound meets the rounded incumbent after {k} pass(es) and {len(cuts)} cut(s)."
                break

            if previous is not None and abs(lp.objective - previous) < cfg.stagnation_tolerance:
                stagnant += 1
            else:
                stagnant = 0
            previous = lp.objective
            if stagnant >= cfg.stagnation_limit:
                records.append(CuttingPlaneIteration(
                    k, SolverStatus.STALLED, lp.objective, lp.solution, fractional, lp_pivots=lp.pivot_count,
                    tableau=snapshot, note="objective stagnated",
                ))
                status = SolverStatus.STALLED
                message = f"Objective moved less than {cfg.stagnation_tolerance:g} for {stagnant} pass(es)."
                break

            accepted, rejected = self._generate(lp, integer_names, fractional, cuts, k)
            records.append(CuttingPlaneIteration(
                k, SolverStatus.OPTIMAL if accepted else SolverStatus.STALLED, lp.objective, lp.solution,
                fractional, tuple(cut.id for cut in accepted), rejected, lp.pivot_count, snapshot,
                note="" if accepted else "no valid cut",
            ))
            if not accepted:
                status = SolverStatus.STALLED
                message = "No valid Gomory cut could be derived from the LP optimum."
                break
            cuts.extend(accepted)
            for cut in accepted:
                logger.debug("%s: pass %d added %s", self.name, k, cut.format())

        return self._result(model, status, message, records, cuts, first_lp, last_lp, incumbent,
                            root_bound, warnings, start)

    # ------------------------------------------------------------------
    @staticmethod
    def _lp_failure(lp: SolverResult, has_cuts: bool) -> tuple[SolverStatus, str]:
        if lp.status is SolverStatus.INFEASIBLE:
            if has_cuts:
                return SolverStatus.INFEASIBLE, "The cuts left no feasible point; no integer solution exists."
            return SolverStatus.INFEASIBLE, "LP relaxation is infeasible; no integer solution exists."
        if lp.status is SolverStatus.UNBOUNDED:
            return SolverStatus.UNBOUNDED, "LP relaxation is unbounded; the integer program is unbounded or infeasible."
        return lp.status, f"LP pass ended with {lp.status.value}: {lp.message}"

    @staticmethod
    def _round(model: Model, values, integer_names, tol: float) -> Optional[IntegerSolution]:
        for rounder in (round, lambda v: math.floor(v + tol)):
            candidate = dict(values)
            for name in integer_names:
                candidate[name] = float(rounder(values.get(name, 0.0)))
            if model.is_feasible(candidate):
                return IntegerSolution(candidate, model.objective_value(candidate), True, None, "rounding")
        return None

    def _generate(self, lp: SolverResult, integer_names, fractional, existing, iteration):
        """Derive, validate and rank cuts from the LP optimum in ``lp``."""
        cfg = self.config
        tableau = lp.final_tableau
        canonical = lp.canonical_form
        integral = _integral_columns(canonical, set(integer_names), cfg.integrality_tolerance)
        rows = [
            (abs(fractional[name] - 0.5), row, name)
            for name in fractional
            for row in [tableau.basic_row(name)]
            if row is not None
        ]
        rows.sort()

        accepted: list[CuttingPlane] = []
        rejected = 0
        seen = {self._key(cut) for cut in existing}
        for _, row, name in rows:
            if len(accepted) >= cfg.max_cuts_per_iteration:
                break
            cut_type, relation = CutType.GOMORY, Relation.LE
            derived = gomory_cut(tableau, canonical, row, integral, _COEF_TOL)
            if derived is None:
                cut_type, relation = CutType.MIXED, Relation.GE
                derived = mixed_gomory_cut(tableau, canonical, row, integral, _COEF_TOL)
            if derived is None:
                rejected += 1
                logger.debug("%s: no cut can be stated from the row of %s", self.name, name)
                continue
            coefficients, rhs, row_coefficients, f0 = derived
            cut = CuttingPlane(
                id=len(existing) + len(accepted) + 1,
                coefficients=coefficients,
                relation=relation,
                rhs=rhs,
                source=name,
                iteration=iteration,
                row_coefficients=row_coefficients,
                row_rhs=f0,
                cut_type=cut_type,
            )
            cut = replace(cut, violation=cut.violation_at(lp.solution))
            reason = self._reject_reason(cut, f0, seen)
            if reason:
                rejected += 1
                logger.debug("%s: discarded cut from %s: %s", self.name, name, reason)
                continue
            seen.add(self._key(cut))
            accepted.append(cut)
        if rejected and not accepted:
            logger.warning("%s: all %d candidate cut(s) rejected at pass %d", self.name, rejected, iteration)
        return accepted, rejected

    def _reject_reason(self, cut: CuttingPlane, f0: float, seen) -> str:
        cfg = self.config
        if not any(abs(coef) > _COEF_TOL for coef in cut.coefficients.values()):
            return "all coefficients vanish"
        if not cfg.min_fraction <= f0 <= 1.0 - cfg.min_fraction:
            return f"RHS fraction {f0:.3g} outside [{cfg.min_fraction:g}, {1.0 - cfg.min_fraction:g}]"
        largest = max(abs(coef) for coef in cut.coefficients.values())
        if largest > cfg.max_coefficient:
            return f"coefficient magnitude {largest:.3g} exceeds {cfg.max_coefficient:g}"
        if cut.violation <= cfg.violation_tolerance:
            return f"violation {cut.violation:.3g} too small"
        if self._key(cut) in seen:
            return "duplicate of an existing cut"
        return ""

    @staticmethod
    def _key(cut: CuttingPlane):
        terms = tuple(sorted((var, round(coef, 9)) for var, coef in cut.coefficients.items()))
        return terms, cut.relation, round(cut.rhs, 9)

    def _result(self, model, status, message, records, cuts, first_lp, last_lp, incumbent,
                root_bound, warnings, start) -> SolverResult:
        gap: Optional[float] = None
        if status is SolverStatus.OPTIMAL:
            gap = 0.0
        elif incumbent is not None and last_lp is not None:
            gap = optimality_gap(last_lp.objective, incumbent.objective)
        if status not in (SolverStatus.OPTIMAL, SolverStatus.INFEASIBLE, SolverStatus.UNBOUNDED):
            warnings.append(message if incumbent is None else f"{message} Best rounded solution reported.")
            logger.warning("%s: %s", self.name, message)
        else:
            logger.info("%s: %s after %d pass(es), %d cut(s)", self.name, status.value, len(records), len(cuts))
        final_lp = last_lp or first_lp
        if status in (SolverStatus.INFEASIBLE, SolverStatus.UNBOUNDED):
            incumbent = None
        return SolverResult(
            algorithm=self.name,
            status=status,
            objective=incumbent.objective if incumbent is not None else None,
            solution=dict(incumbent.values) if incumbent is not None else {},
            iterations=tuple(records),
            initial_tableau=first_lp.initial_tableau if first_lp is not None else None,
            final_tableau=final_lp.final_tableau if final_lp is not None else None,
            canonical_form=final_lp.canonical_form if final_lp is not None else None,
            cuts=tuple(cuts),
            incumbent=incumbent,
            root_bound=root_bound,
            optimality_gap=gap,
            proven_optimal=status is SolverStatus.OPTIMAL,
            warnings=tuple(warnings),
            message=message,
            elapsed=time.perf_counter() - start,
        )
