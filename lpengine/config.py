"""Solver configuration dataclasses.

Each solver accepts an optional config object; omitting it gives the
defaults below. All configs are frozen and validate themselves on
construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .core import FEASIBILITY_TOL, INTEGRALITY_TOL, PHASE_ONE_TOL, PIVOT_TOL

__all__ = [
    "PivotRule",
    "SimplexConfig",
    "BranchAndBoundConfig",
    "KnapsackConfig",
    "CuttingPlaneConfig",
]


class PivotRule(Enum):
    """Entering-column selection rule.

    ``DANTZIG`` picks the most negative reduced cost. ``BLAND`` picks the
    lowest-index column with a negative reduced cost and, together with the
    smallest-row tie-break of the ratio test, never cycles. Both simplex
    solvers apply the same rule so their pivot sequences stay identical.
    """

    DANTZIG = "dantzig"
    BLAND = "bland"


@dataclass(frozen=True)
class SimplexConfig:
    """
    Configuration for the primal and revised simplex solvers.

    Args:
        max_iterations: Pivot ceiling across both phases.
        tolerance: Magnitude below which tableau entries count as zero. Also
            the minimum admissible pivot element.
        phase_one_tolerance: A Phase 1 optimum (sum of artificials) above this
            value makes the problem infeasible.
        pivot_rule: Entering-column rule.
        record_tableaus: Store a tableau snapshot in every iteration record.
        detect_cycling: Stop with a numerical error when a basis repeats.
        refactor_every: Revised simplex recomputes the basis inverse from
            scratch after this many product-form updates. ``0`` disables it.
    """

    max_iterations: int = 1000
    tolerance: float = PIVOT_TOL
    phase_one_tolerance: float = PHASE_ONE_TOL
    pivot_rule: PivotRule = PivotRule.DANTZIG
    record_tableaus: bool = True
    detect_cycling: bool = True
    refactor_every: int = 50

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}.")
        if not 0.0 < self.tolerance < 1e-3:
            raise ValueError(f"tolerance must be in (0, 1e-3), got {self.tolerance}.")
        if self.phase_one_tolerance <= 0.0:
            raise ValueError(
                f"phase_one_tolerance must be positive, got {self.phase_one_tolerance}."
            )
        if not isinstance(self.pivot_rule, PivotRule):
            raise ValueError(f"pivot_rule must be a PivotRule, got {self.pivot_rule!r}.")
        if self.refactor_every < 0:
            raise ValueError(f"refactor_every must be >= 0, got {self.refactor_every}.")


@dataclass(frozen=True)
class BranchAndBoundConfig:
    """
    Configuration for the general branch-and-bound solver.

    Args:
        max_nodes: Ceiling on the number of nodes created (root included).
        integrality_tolerance: Distance to the nearest integer below which a
            value counts as integral.
        bound_tolerance: A node whose bound does not beat the incumbent by more
            than this is fathomed.
        lp_algorithm: ``"primal_simplex"`` or ``"revised_simplex"`` for node
            relaxations.
        simplex: Configuration passed to the node LP solver.
    """

    max_nodes: int = 1000
    integrality_tolerance: float = INTEGRALITY_TOL
    bound_tolerance: float = INTEGRALITY_TOL
    lp_algorithm: str = "primal_simplex"
    simplex: SimplexConfig = field(default_factory=lambda: SimplexConfig(record_tableaus=False))

    def __post_init__(self) -> None:
        if self.max_nodes < 1:
            raise ValueError(f"max_nodes must be >= 1, got {self.max_nodes}.")
        if not 0.0 < self.integrality_tolerance < 0.5:
            raise ValueError(
                "integrality_tolerance must be in (0, 0.5), "
                f"got {self.integrality_tolerance}."
            )
        if self.bound_tolerance < 0.0:
            raise ValueError(f"bound_tolerance must be >= 0, got {self.bound_tolerance}.")
        if self.lp_algorithm not in ("primal_simplex", "revised_simplex"):
            raise ValueError(
                "lp_algorithm must be 'primal_simplex' or 'revised_simplex', "
                f"got {self.lp_algorithm!r}."
            )


@dataclass(frozen=True)
class KnapsackConfig:
    """
    Configuration for the 0-1 knapsack branch-and-bound solver.

    Args:
        max_nodes: Ceiling on the number of nodes created.
        tolerance: Slack used in capacity and bound comparisons.
    """

    max_nodes: int = 10_000
    tolerance: float = 1e-9

    def __post_init__(self) -> None:
        if self.max_nodes < 1:
            raise ValueError(f"max_nodes must be >= 1, got {self.max_nodes}.")
        if self.tolerance < 0.0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}.")


@dataclass(frozen=True)
class CuttingPlaneConfig:
    """
    Configuration for the Gomory cutting-plane solver.

    Args:
        max_iterations: Ceiling on LP passes.
        max_cuts_per_iteration: Accepted cuts added per pass.
        stagnation_limit: Consecutive passes with objective change below
            ``stagnation_tolerance`` before giving up.
        stagnation_tolerance: Minimum objective movement that counts as
            progress.
        min_fraction: Source rows whose RHS fractional part lies outside
            ``[min_fraction, 1 - min_fraction]`` do not produce cuts.
        violation_tolerance: A cut must be violated by more than this at the
            current LP point.
        max_coefficient: Cuts with a larger absolute coefficient are rejected.
        integrality_tolerance: As in :class:`BranchAndBoundConfig`.
        rounding_heuristic: Try rounding each LP point to an integer-feasible
            incumbent.
        lp_algorithm: Simplex variant used for every pass.
        simplex: Configuration passed to the LP solver.
    """

    max_iterations: int = 100
    max_cuts_per_iteration: int = 2
    stagnation_limit: int = 10
    stagnation_tolerance: float = 1e-9
    min_fraction: float = 0.01
    violation_tolerance: float = FEASIBILITY_TOL
    max_coefficient: float = 1e6
    integrality_tolerance: float = INTEGRALITY_TOL
    rounding_heuristic: bool = True
    lp_algorithm: str = "primal_simplex"
    simplex: SimplexConfig = field(default_factory=lambda: SimplexConfig(record_tableaus=False))

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}.")
        if self.max_cuts_per_iteration < 1:
            raise ValueError(
                f"max_cuts_per_iteration must be >= 1, got {self.max_cuts_per_iteration}."
            )
        if self.stagnation_limit < 1:
            raise ValueError(f"stagnation_limit must be >= 1, got {self.stagnation_limit}.")
        if not 0.0 <= self.min_fraction < 0.5:
            raise ValueError(f"min_fraction must be in [0, 0.5), got {self.min_fraction}.")
        if self.violation_tolerance < 0.0:
            raise ValueError(
                f"violation_tolerance must be >= 0, got {self.violation_tolerance}."
            )
        if self.max_coefficient <= 0.0:
            raise ValueError(f"max_coefficient must be positive, got {self.max_coefficient}.")
        if not 0.0 < self.integrality_tolerance < 0.5:
            raise ValueError(
                "integrality_tolerance must be in (0, 0.5), "
                f"got {self.integrality_tolerance}."
            )
        if self.lp_algorithm not in ("primal_simplex", "revised_simplex"):
            raise ValueError(
                "lp_algorithm must be 'primal_simplex' or 'revised_simplex', "
                f"got {self.lp_algorithm!r}."
            )
