"""
Reference solves through SciPy's HiGHS interface.

Used to cross-check the tableau-based solvers. SciPy is optional; when it is
missing :func:`reference_solve` returns a NUMERICAL_ERROR result explaining
why.
"""

from __future__ import annotations

import time
from typing import Optional

import numpy as np

from ..core import SolverResult, SolverStatus
from ..model import Model, Relation, Sense, SignRestriction

try:
    from scipy.optimize import Bounds, LinearConstraint, linprog as _scipy_linprog, milp as _scipy_milp

    SCIPY_AVAILABLE = True
except Exception:  # pragma: no cover - SciPy is optional
    SCIPY_AVAILABLE = False
    _scipy_linprog = None
    _scipy_milp = None

__all__ = ["SCIPY_AVAILABLE", "reference_solve"]

_BOUNDS = {
    SignRestriction.NON_NEGATIVE: (0.0, np.inf),
    SignRestriction.NON_POSITIVE: (-np.inf, 0.0),
    SignRestriction.UNRESTRICTED: (-np.inf, np.inf),
    SignRestriction.INTEGER: (0.0, np.inf),
    SignRestriction.BINARY: (0.0, 1.0),
}

# scipy status code -> SolverStatus (linprog and milp share the first five)
_STATUS = {
    0: SolverStatus.OPTIMAL,
    1: SolverStatus.MAX_ITER,
    2: SolverStatus.INFEASIBLE,
    3: SolverStatus.UNBOUNDED,
    4: SolverStatus.NUMERICAL_ERROR,
}


def _arrays(model: Model):
    names = model.variable_names
    c = np.array([model.variables[name].coefficient for name in names])
    if model.sense is Sense.MAXIMIZE:
        c = -c
    a_ub, b_ub, a_eq, b_eq = [], [], [], []
    for con in model.constraints:
        row = np.array([con.coefficient(name) for name in names])
        if con.relation is Relation.LE:
            a_ub.append(row)
            b_ub.append(con.rhs)
        elif con.relation is Relation.GE:
            a_ub.append(-row)
            b_ub.append(-con.rhs)
        else:
            a_eq.append(row)
            b_eq.append(con.rhs)
    bounds = [_BOUNDS[model.variables[name].restriction] for name in names]
    return names, c, a_ub, b_ub, a_eq, b_eq, bounds


def reference_solve(model: Model, integer: Optional[bool] = None, time_limit: float = 60.0) -> SolverResult:
    """
    Solve ``model`` with HiGHS.

    Args:
        model: Model to solve.
        integer: Enforce integrality with ``scipy.optimize.milp``. Defaults to
            ``model.has_integer_variables``. When False, the LP relaxation is
            solved with ``linprog``.
        time_limit: Seconds allowed for the MILP solve.

    Returns:
        SolverResult with ``algorithm="scipy_highs"``. Iteration log, tableaus
        and node tree are empty.
    """
    if not SCIPY_AVAILABLE:  # pragma: no cover - depends on SciPy
        return SolverResult(
            algorithm="scipy_highs",
            status=SolverStatus.NUMERICAL_ERROR,
            message="SciPy is not available",
        )
    if integer is None:
        integer = model.has_integer_variables
    start = time.perf_counter()
    names, c, a_ub, b_ub, a_eq, b_eq, bounds = _arrays(model)

    if integer:
        constraints = []
        if a_ub:
            constraints.append(LinearConstraint(np.array(a_ub), -np.inf, np.array(b_ub)))
        if a_eq:
            constraints.append(LinearConstraint(np.array(a_eq), np.array(b_eq), np.array(b_eq)))
        lower, upper = zip(*bounds)
        integrality = np.array([1 if model.variables[name].is_integral else 0 for name in names])
        res = _scipy_milp(
            c=c,
            constraints=constraints or None,
            integrality=integrality,
            bounds=Bounds(np.array(lower), np.array(upper)),
            options={"time_limit": time_limit},
        )
    else:
        res = _scipy_linprog(
            c=c,
            A_ub=np.array(a_ub) if a_ub else None,
            b_ub=np.array(b_ub) if b_ub else None,
            A_eq=np.array(a_eq) if a_eq else None,
            b_eq=np.array(b_eq) if b_eq else None,
            bounds=bounds,
            method="highs",
        )

    status = _STATUS.get(res.status, SolverStatus.NUMERICAL_ERROR)
    solution = {}
    objective = None
    if status is SolverStatus.OPTIMAL and res.x is not None:
        solution = {name: float(value) for name, value in zip(names, res.x)}
        objective = model.objective_value(solution)
    return SolverResult(
        algorithm="scipy_highs",
        status=status,
        objective=objective,
        solution=solution,
        proven_optimal=status is SolverStatus.OPTIMAL,
        message=str(res.message),
        elapsed=time.perf_counter() - start,
    )
