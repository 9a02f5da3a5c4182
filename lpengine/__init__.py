"""lpengine - linear and integer programming with replayable simplex logs."""

__version__ = "0.1.0"

# Configuration
from .config import (
    BranchAndBoundConfig,
    CuttingPlaneConfig,
    KnapsackConfig,
    PivotRule,
    SimplexConfig,
)

# Results and tolerances
from .core import (
    FEASIBILITY_TOL,
    INTEGRALITY_TOL,
    PHASE_ONE_TOL,
    PIVOT_TOL,
    SolverResult,
    SolverStatus,
)

# Diagnostics
from .diagnostics import (
    assert_feasible,
    assert_integral,
    constraint_residuals,
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

# Errors
from .errors import (
    InfeasibleError,
    InvalidPivotError,
    LimitReached,
    LPEngineError,
    MaxIterationsReached,
    MaxNodesReached,
    ModelError,
    NotApplicableError,
    NumericalInstabilityError,
    UnboundedError,
)

# Integer programming
from .integer import (
    BranchAndBoundSolver,
    BranchNode,
    CuttingPlane,
    CuttingPlaneSolver,
    IntegerSolution,
    KnapsackBranchAndBound,
    NodeStatus,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level, solver_trace

# Problem description
from .model import Constraint, Model, Relation, Sense, SignRestriction, Variable

# Reports
from .report import format_node_tree, print_result_summary, result_summary

# Linear programming
from .simplex import (
    CanonicalForm,
    CanonicalFormBuilder,
    PrimalSimplexSolver,
    RevisedSimplexSolver,
    Tableau,
    reference_solve,
)

# Algorithm selection
from .solvers import Algorithm, create_solver, recommend_algorithm, solve

__all__ = [
    "__version__",
    # Model
    "Sense",
    "Relation",
    "SignRestriction",
    "Variable",
    "Constraint",
    "Model",
    # Config
    "PivotRule",
    "SimplexConfig",
    "BranchAndBoundConfig",
    "KnapsackConfig",
    "CuttingPlaneConfig",
    # Results
    "SolverStatus",
    "SolverResult",
    "PIVOT_TOL",
    "INTEGRALITY_TOL",
    "FEASIBILITY_TOL",
    "PHASE_ONE_TOL",
    # Errors
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
    # LP
    "CanonicalForm",
    "CanonicalFormBuilder",
    "Tableau",
    "PrimalSimplexSolver",
    "RevisedSimplexSolver",
    "reference_solve",
    # IP
    "BranchAndBoundSolver",
    "KnapsackBranchAndBound",
    "CuttingPlaneSolver",
    "CuttingPlane",
    "BranchNode",
    "NodeStatus",
    "IntegerSolution",
    # Selection
    "Algorithm",
    "create_solver",
    "solve",
    "recommend_algorithm",
    # Reports
    "result_summary",
    "print_result_summary",
    "format_node_tree",
    # Diagnostics
    "constraint_residuals",
    "assert_feasible",
    "assert_integral",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
    "solver_trace",
]
