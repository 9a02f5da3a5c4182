"""Exception hierarchy for lpengine.

Structural problems (malformed models, impossible pivots, mismatched
algorithms) are raised directly. Infeasibility, unboundedness and soft limits
are normally reported through :class:`lpengine.core.SolverResult` statuses;
the matching exceptions are raised only by the internal pivot loop and by
:meth:`SolverResult.raise_for_status`.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "LPEngineError",
    "ModelError",
    "InvalidPivotError",
    "InfeasibleError",
    "UnboundedError",
    "NumericalInstabilityError",
    "LimitReached",
    "MaxIterationsReached",
    "MaxNodesReached",
    "NotApplicableError",
]


class LPEngineError(Exception):
    """Base class for every error raised by lpengine."""


class ModelError(LPEngineError, ValueError):
    """The model is malformed (unknown variables, empty, non-finite data)."""


class InvalidPivotError(LPEngineError, ValueError):
    """A pivot position is out of range or its element is numerically zero."""


class InfeasibleError(LPEngineError):
    """No point satisfies every constraint."""


class UnboundedError(LPEngineError):
    """The objective improves without limit along some direction."""

    def __init__(self, message: str, column: Optional[str] = None) -> None:
        super().__init__(message)
        self.column = column


class NumericalInstabilityError(LPEngineError, ArithmeticError):
    """Near-zero pivots, a corrupted tableau, or cycling under degeneracy."""


class LimitReached(LPEngineError):
    """A cooperative iteration or node ceiling stopped the solve."""


class MaxIterationsReached(LimitReached):
    """The iteration ceiling was hit before optimality was proven."""


class MaxNodesReached(LimitReached):
    """The branch-and-bound node ceiling was hit before the tree was closed."""


class NotApplicableError(LPEngineError, ValueError):
    """The requested algorithm cannot solve the given model.

    Attributes:
        recommended: Name of an algorithm that does apply, when one is known.
    """

    def __init__(self, message: str, recommended: Optional[str] = None) -> None:
        super().__init__(message)
        self.recommended = recommended
