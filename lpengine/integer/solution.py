"""Integer solution record shared by the integer solvers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ..core import INTEGRALITY_TOL, freeze_mapping, is_integral_value
from ..model import Sense

__all__ = ["IntegerSolution"]


@dataclass(frozen=True)
class IntegerSolution:
    """
    Candidate or incumbent integer solution.

    Attributes:
        values: Variable name to value.
        objective: Objective value in the model's sense.
        feasible: Whether every constraint is satisfied.
        node_id: Branch-and-bound node that produced it, if any.
        source: How it was found (``"branch_and_bound"``, ``"knapsack"``,
            ``"cutting_plane"``, ``"rounding"``).
    """

    values: Mapping[str, float] = field(hash=False)
    objective: float
    feasible: bool = True
    node_id: Optional[int] = None
    source: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", freeze_mapping(self.values))

    def is_better_than(
        self, other: Optional["IntegerSolution"], sense: Sense, tol: float = INTEGRALITY_TOL
    ) -> bool:
        """True when this solution improves on ``other`` by more than ``tol``.

        Infeasible solutions never beat feasible ones; anything beats None.
        """
        if other is None:
            return True
        if self.feasible != other.feasible:
            return self.feasible
        if sense is Sense.MAXIMIZE:
            return self.objective > other.objective + tol
        return self.objective < other.objective - tol

    def non_integral(self, names: Iterable[str], tol: float = INTEGRALITY_TOL) -> dict[str, float]:
        """Variables among ``names`` whose values are fractional."""
        return {
            name: self.values.get(name, 0.0)
            for name in names
            if not is_integral_value(self.values.get(name, 0.0), tol)
        }

    def is_integral(self, names: Iterable[str], tol: float = INTEGRALITY_TOL) -> bool:
        return not self.non_integral(names, tol)

    def format(self, precision: int = 4) -> str:
        values = ", ".join(f"{name} = {value:.{precision}g}" for name, value in self.values.items())
        origin = f" at node {self.node_id}" if self.node_id is not None else ""
        flag = "" if self.feasible else " (infeasible)"
        return f"z = {self.objective:.{precision}g}{origin}{flag}: {values}"
