"""Algorithm selection by name."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from .config import BranchAndBoundConfig, CuttingPlaneConfig, KnapsackConfig, SimplexConfig
from .core import SolverResult
from .errors import NotApplicableError
from .integer import BranchAndBoundSolver, CuttingPlaneSolver, KnapsackBranchAndBound, KnapsackInstance
from .logging import get_logger
from .model import Model
from .simplex import PrimalSimplexSolver, RevisedSimplexSolver

__all__ = ["Algorithm", "create_solver", "solve", "recommend_algorithm"]

logger = get_logger(__name__)


class Algorithm(str, Enum):
    PRIMAL_SIMPLEX = "primal_simplex"
    REVISED_SIMPLEX = "revised_simplex"
    BRANCH_AND_BOUND = "branch_and_bound"
    KNAPSACK = "knapsack"
    CUTTING_PLANE = "cutting_plane"


_CONFIG_TYPES = {
    Algorithm.PRIMAL_SIMPLEX: SimplexConfig,
    Algorithm.REVISED_SIMPLEX: SimplexConfig,
    Algorithm.BRANCH_AND_BOUND: BranchAndBoundConfig,
    Algorithm.KNAPSACK: KnapsackConfig,
    Algorithm.CUTTING_PLANE: CuttingPlaneConfig,
}


def _parse(name: Union[Algorithm, str]) -> Algorithm:
    if isinstance(name, Algorithm):
        return name
    key = str(name).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return Algorithm(key)
    except ValueError:
        supported = [a.value for a in Algorithm]
        raise NotApplicableError(
            f"Unsupported algorithm name '{name}'. Supported names: {supported}"
        ) from None


def create_solver(name: Union[Algorithm, str], config: Optional[Any] = None):
    """
    Create a solver from its name.

    Args:
        name: One of ``"primal_simplex"``, ``"revised_simplex"``,
            ``"branch_and_bound"``, ``"knapsack"``, ``"cutting_plane"``
            (case-insensitive, dashes allowed).
        config: Configuration dataclass matching the algorithm, or None for
            defaults.

    Returns:
        A solver exposing ``solve(model) -> SolverResult``.

    Raises:
        NotApplicableError: If the name is not supported.
        ValueError: If ``config`` has the wrong type for the algorithm.
    """
    algorithm = _parse(name)
    expected = _CONFIG_TYPES[algorithm]
    if config is not None and not isinstance(config, expected):
        raise ValueError(
            f"{algorithm.value} expects a {expected.__name__}, got {type(config).__name__}."
        )

    if algorithm is Algorithm.PRIMAL_SIMPLEX:
        return PrimalSimplexSolver(config)
    elif algorithm is Algorithm.REVISED_SIMPLEX:
        return RevisedSimplexSolver(config)
    elif algorithm is Algorithm.BRANCH_AND_BOUND:
        return BranchAndBoundSolver(config)
    elif algorithm is Algorithm.KNAPSACK:
        return KnapsackBranchAndBound(config)
    else:
        return CuttingPlaneSolver(config)


def recommend_algorithm(model: Model) -> Algorithm:
    """Knapsack for 0-1 knapsack models, branch-and-bound for other integer
    programs and the primal simplex for pure LPs."""
    if not model.has_integer_variables:
        return Algorithm.PRIMAL_SIMPLEX
    if not KnapsackInstance.check(model):
        return Algorithm.KNAPSACK
    return Algorithm.BRANCH_AND_BOUND


def solve(
    model: Model,
    algorithm: Union[Algorithm, str] = Algorithm.PRIMAL_SIMPLEX,
    config: Optional[Any] = None,
) -> SolverResult:
    """
    Solve ``model`` with the named algorithm.

    Raises:
        NotApplicableError: If the algorithm name is unknown or the algorithm
            does not apply to the model (for example the knapsack solver on a
            model with several constraints). The error's ``recommended``
            attribute names an algorithm that does apply.
    """
    solver = create_solver(algorithm, config)
    logger.debug("Solving %s with %s", model.name or "model", solver.name)
    try:
        return solver.solve(model)
    except NotApplicableError as exc:
        if exc.recommended is None:
            exc.recommended = recommend_algorithm(model).value
        raise
