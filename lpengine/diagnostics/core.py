"""Feasibility and consistency checks for models, solutions and tableaus."""

from __future__ import annotations

from typing import Iterable, Mapping, TYPE_CHECKING

from ..core import FEASIBILITY_TOL, INTEGRALITY_TOL, is_integral_value
from ..errors import NumericalInstabilityError
from ..model import Model, Relation

if TYPE_CHECKING:
    from ..simplex.tableau import Tableau


def constraint_residuals(model: Model, values: Mapping[str, float]) -> dict[str, float]:
    """
    Signed slack of every constraint at ``values``.

    Parameters
    ----------
    model:
        Model whose constraints are evaluated.
    values:
        Variable name to value; missing names count as 0.

    Returns
    -------
    dict[str, float]
        Constraint name to slack. ``<=`` rows give ``rhs - lhs`` and ``>=``
        rows ``lhs - rhs`` so that a negative value means violated; ``=`` rows
        give ``rhs - lhs``, which must be zero.
    """
    residuals = {}
    for con in model.constraints:
        lhs = con.evaluate(values)
        if con.relation is Relation.GE:
            residuals[con.name] = lhs - con.rhs
        else:
            residuals[con.name] = con.rhs - lhs
    return residuals


def max_violation(model: Model, values: Mapping[str, float]) -> float:
    """Largest constraint violation at ``values`` (0 when feasible)."""
    return max((con.violation(values) for con in model.constraints), default=0.0)


def is_integral_solution(
    values: Mapping[str, float], names: Iterable[str], atol: float = INTEGRALITY_TOL
) -> bool:
    return all(is_integral_value(values.get(name, 0.0), atol) for name in names)


def assert_feasible(model: Model, values: Mapping[str, float], atol: float = FEASIBILITY_TOL) -> None:
    """
    Assert that ``values`` satisfies every constraint and sign restriction.

    Raises
    ------
    ValueError
        Listing the violated constraints and variables.
    """
    violated = model.violated_constraints(values, atol)
    if violated:
        raise ValueError(
            f"Solution violates {len(violated)} constraint(s) or bound(s): {', '.join(violated)}."
        )


def assert_integral(
    values: Mapping[str, float], names: Iterable[str], atol: float = INTEGRALITY_TOL
) -> None:
    """
    Assert that every variable in ``names`` takes an integral value.

    Raises
    ------
    ValueError
        Listing the fractional variables and their values.
    """
    fractional = [
        f"{name}={values.get(name, 0.0):.6g}"
        for name in names
        if not is_integral_value(values.get(name, 0.0), atol)
    ]
    if fractional:
        raise ValueError(f"Non-integral values: {', '.join(fractional)}.")


def assert_valid_tableau(tableau: "Tableau") -> None:
    """
    Assert that ``tableau`` passes :meth:`Tableau.validate`.

    Raises
    ------
    NumericalInstabilityError
        If the tableau is structurally or numerically inconsistent.
    """
    errors = tableau.validate()
    if errors:
        raise NumericalInstabilityError(
            f"Tableau failed validation at iteration {tableau.iteration}: {'; '.join(errors)}."
        )
