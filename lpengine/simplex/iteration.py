"""Iteration records for step-by-step replay of a simplex solve."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core import freeze_mapping
from .tableau import PivotRecord, RatioTest, Tableau, TableauStatus

__all__ = ["SimplexIteration"]


@dataclass(frozen=True)
class SimplexIteration:
    """
    One step of a simplex solve.

    A pivot step carries ``pivot`` and ``ratio_test``. The last record of
    each solve is a terminal step without a pivot whose ``status`` states the
    outcome.

    Attributes:
        index: Position in the log (0-based).
        phase: 1 while driving out artificials, 2 on the true objective.
        status: State after this step.
        objective: Model objective (model sense) at the basic solution after
            the step.
        entering: Entering variable, if any.
        leaving: Leaving variable, if any.
        pivot: Pivot performed in this step.
        ratio_test: Ratio test that chose the leaving row.
        tableau: Read-only tableau after the step (None when recording is
            disabled).
        elapsed: Seconds since the solve started.
        description: One-line human-readable account of the step.
        details: Solver-specific extras (the revised solver stores reduced
            costs, the pivot column and the basis before and after).
    """

    index: int
    phase: int
    status: TableauStatus
    objective: float
    entering: Optional[str] = None
    leaving: Optional[str] = None
    pivot: Optional[PivotRecord] = None
    ratio_test: Optional[RatioTest] = None
    tableau: Optional[Tableau] = None
    elapsed: float = 0.0
    description: str = ""
    details: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", freeze_mapping(self.details))

    @property
    def is_pivot(self) -> bool:
        return self.pivot is not None

    @property
    def degenerate(self) -> bool:
        return self.ratio_test is not None and self.ratio_test.degenerate

    def summary(self) -> str:
        if self.pivot is None:
            return f"[{self.index}] phase {self.phase}: {self.status.value}, z = {self.objective:.6g}. {self.description}".rstrip()
        return (
            f"[{self.index}] phase {self.phase}: {self.entering} enters, {self.leaving} leaves "
            f"(pivot {self.pivot.element:.6g} at row {self.pivot.row}), z = {self.objective:.6g}"
        )
