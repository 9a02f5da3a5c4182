"""Simplex machinery: canonical form, tableau, primal and revised solvers."""

from .canonical import CanonicalForm, CanonicalFormBuilder, ColumnMapping, SlackDefinition
from .iteration import SimplexIteration
from .primal import PrimalSimplexSolver
from .reference import SCIPY_AVAILABLE, reference_solve
from .revised import RevisedSimplexSolver
from .tableau import (
    RHS,
    PivotRecord,
    RatioTest,
    RatioTestEntry,
    Tableau,
    TableauStatus,
    bland_entering,
    build_ratio_test,
    dantzig_entering,
    minimum_ratio,
    select_entering,
)

__all__ = [
    "CanonicalForm",
    "CanonicalFormBuilder",
    "ColumnMapping",
    "SlackDefinition",
    "Tableau",
    "TableauStatus",
    "PivotRecord",
    "RatioTest",
    "RatioTestEntry",
    "RHS",
    "dantzig_entering",
    "bland_entering",
    "select_entering",
    "minimum_ratio",
    "build_ratio_test",
    "SimplexIteration",
    "PrimalSimplexSolver",
    "RevisedSimplexSolver",
    "SCIPY_AVAILABLE",
    "reference_solve",
]
