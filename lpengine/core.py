"""
Shared tolerances, status codes and the solver result record.

Every solver in the package returns a :class:`SolverResult`. The record is
frozen and its containers are tuples or read-only mappings, so a caller may
inspect it (for replay, tree display or sensitivity analysis) while another
solve is running.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .errors import (
    InfeasibleError,
    LimitReached,
    MaxIterationsReached,
    MaxNodesReached,
    NumericalInstabilityError,
    UnboundedError,
)

if TYPE_CHECKING:
    from .integer.cutting_plane import CuttingPlane
    from .integer.node import BranchNode
    from .integer.solution import IntegerSolution
    from .simplex.canonical import CanonicalForm
    from .simplex.tableau import Tableau

__all__ = [
    "PIVOT_TOL",
    "INTEGRALITY_TOL",
    "FEASIBILITY_TOL",
    "PHASE_ONE_TOL",
    "SolverStatus",
    "SolverResult",
    "freeze_mapping",
    "fractional_part",
    "is_integral_value",
]

# Smallest admissible pivot element and the zero threshold for tableau entries
PIVOT_TOL = 1e-10
# Distance from the nearest integer that still counts as integral
INTEGRALITY_TOL = 1e-6
# Constraint violation accepted when checking a reported solution
FEASIBILITY_TOL = 1e-7
# A Phase 1 optimum above this leaves the problem infeasible
PHASE_ONE_TOL = 1e-7


class SolverStatus(Enum):
    """Terminal status of a solve."""

    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    MAX_ITER = "max_iter"
    MAX_NODES = "max_nodes"
    STALLED = "stalled"
    NUMERICAL_ERROR = "numerical_error"

    @property
    def is_soft_limit(self) -> bool:
        """True for statuses that stop early but may still carry a solution."""
        return self in (SolverStatus.MAX_ITER, SolverStatus.MAX_NODES, SolverStatus.STALLED)


def freeze_mapping(values: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Return a read-only copy of ``values`` (an empty mapping for None)."""
    return MappingProxyType(dict(values or {}))


def fractional_part(value: float, tol: float = INTEGRALITY_TOL) -> float:
    """Fractional part of ``value`` in ``[0, 1)``, snapping near-integers to 0."""
    nearest = round(value)
    if abs(value - nearest) <= tol:
        return 0.0
    return value - math.floor(value)


def is_integral_value(value: float, tol: float = INTEGRALITY_TOL) -> bool:
    """True when ``value`` is within ``tol`` of an integer."""
    return abs(value - round(value)) <= tol


@dataclass(frozen=True)
class SolverResult:
    """
    Immutable outcome of a single solve.

    Attributes:
        algorithm: Name of the solver that produced the result.
        status: Terminal status.
        objective: Objective value in the model's own sense, or None when no
            solution is available.
        solution: Model variable name to value. Empty when no point was found.
        iterations: Ordered iteration records. Simplex solvers store one
            :class:`~lpengine.simplex.iteration.SimplexIteration` per pivot plus
            a terminal record; the cutting-plane solver stores one record per
            LP pass. Branch-and-bound stores the root relaxation's log.
        initial_tableau: Read-only snapshot of the first tableau.
        final_tableau: Read-only snapshot of the last tableau (for integer
            solvers, the LP tableau that produced the reported solution).
        canonical_form: Column bookkeeping for ``final_tableau``.
        nodes: Branch-and-bound node arena, indexed by node id.
        cuts: Cuts added by the cutting-plane solver, in generation order.
        incumbent: Best integer solution found by an integer solver.
        root_bound: Objective of the root LP relaxation (integer solvers).
        optimality_gap: Relative gap between best bound and incumbent.
        proven_optimal: True only when optimality was proven.
        warnings: Human-readable warnings accumulated during the solve.
        message: Short description of the outcome or the error.
        elapsed: Wall-clock seconds spent in the solve.
    """

    algorithm: str
    status: SolverStatus
    objective: Optional[float] = None
    solution: Mapping[str, float] = field(default_factory=dict)
    iterations: tuple[Any, ...] = ()
    initial_tableau: Optional["Tableau"] = None
    final_tableau: Optional["Tableau"] = None
    canonical_form: Optional["CanonicalForm"] = None
    nodes: tuple["BranchNode", ...] = ()
    cuts: tuple["CuttingPlane", ...] = ()
    incumbent: Optional["IntegerSolution"] = None
    root_bound: Optional[float] = None
    optimality_gap: Optional[float] = None
    proven_optimal: bool = False
    warnings: tuple[str, ...] = ()
    message: str = ""
    elapsed: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "solution", freeze_mapping(self.solution))
        object.__setattr__(self, "iterations", tuple(self.iterations))
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "cuts", tuple(self.cuts))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        if self.proven_optimal and self.status is not SolverStatus.OPTIMAL:
            raise ValueError(
                f"proven_optimal requires status OPTIMAL, got {self.status.value}."
            )

    @property
    def success(self) -> bool:
        """True when the result carries a usable solution.

        That is the case for an optimal solve and for a soft limit that still
        found a feasible point. Use :attr:`proven_optimal` to tell them apart.
        """
        if self.status is SolverStatus.OPTIMAL:
            return True
        return self.status.is_soft_limit and bool(self.solution)

    @property
    def iteration_count(self) -> int:
        """Number of iteration records."""
        return len(self.iterations)

    @property
    def pivot_count(self) -> int:
        """Number of pivots recorded in the iteration log."""
        return sum(1 for record in self.iterations if getattr(record, "pivot", None) is not None)

    @property
    def nodes_processed(self) -> int:
        """Number of branch-and-bound nodes that left the active state."""
        from .integer.node import NodeStatus

        return sum(1 for node in self.nodes if node.status is not NodeStatus.ACTIVE)

    @property
    def nodes_fathomed(self) -> int:
        """Number of branch-and-bound nodes fathomed for any reason."""
        return sum(1 for node in self.nodes if node.is_fathomed)

    def value(self, name: str) -> float:
        """Return the value of variable ``name`` in the reported solution.

        Raises:
            KeyError: If the result has no value for ``name``.
        """
        try:
            return self.solution[name]
        except KeyError:
            raise KeyError(f"no value for variable {name!r} in {self.status.value} result") from None

    def raise_for_status(self) -> "SolverResult":
        """Raise the exception matching a non-optimal status.

        Returns:
            ``self`` when the status is OPTIMAL, so calls can be chained.

        Raises:
            InfeasibleError, UnboundedError, MaxIterationsReached,
            MaxNodesReached, LimitReached, NumericalInstabilityError.
        """
        message = self.message or f"{self.algorithm} finished with status {self.status.value}"
        if self.status is SolverStatus.OPTIMAL:
            return self
        if self.status is SolverStatus.INFEASIBLE:
            raise InfeasibleError(message)
        if self.status is SolverStatus.UNBOUNDED:
            raise UnboundedError(message)
        if self.status is SolverStatus.MAX_ITER:
            raise MaxIterationsReached(message)
        if self.status is SolverStatus.MAX_NODES:
            raise MaxNodesReached(message)
        if self.status is SolverStatus.STALLED:
            raise LimitReached(message)
        raise NumericalInstabilityError(message)

    def validate(self) -> list[str]:
        """Return a list of internal-consistency problems (empty when sound)."""
        errors = []
        if self.status is SolverStatus.OPTIMAL:
            if self.objective is None:
                errors.append("optimal result has no objective value")
            if not self.solution:
                errors.append("optimal result has no solution")
        if self.objective is not None and not math.isfinite(self.objective):
            errors.append(f"objective is not finite: {self.objective}")
        for name, value in self.solution.items():
            if not math.isfinite(value):
                errors.append(f"value of {name} is not finite: {value}")
        if self.optimality_gap is not None and self.optimality_gap < 0.0:
            errors.append(f"optimality gap is negative: {self.optimality_gap}")
        if self.elapsed < 0.0:
            errors.append(f"elapsed time is negative: {self.elapsed}")
        return errors
