"""
Canonical-form construction.

Turns a :class:`~lpengine.model.Model` into an initial simplex tableau in
which every column is non-negative, every row is an equality, and every row
has a starting basic variable:

* ``<=`` rows get a slack ``s<k>`` (coefficient +1);
* ``>=`` rows get a surplus ``e<k>`` (coefficient -1) and an artificial
  ``a<k>`` (+1);
* ``=`` rows get an artificial ``a<k>``;
* rows with a negative right-hand side are multiplied by -1 first;
* a non-positive variable ``x`` becomes the column ``x_neg`` with
  ``x = -x_neg``;
* an unrestricted variable ``x`` becomes ``x_pos - x_neg``.

Columns are ordered structural (by variable index), slack, surplus,
artificial, then ``RHS``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

import numpy as np

from ..core import PIVOT_TOL, freeze_mapping
from ..errors import ModelError
from ..logging import get_logger
from ..model import Model, Relation, Sense, SignRestriction
from .tableau import RHS, Tableau

__all__ = ["ColumnMapping", "SlackDefinition", "CanonicalForm", "CanonicalFormBuilder"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class ColumnMapping:
    """How a model variable is recovered from canonical columns.

    ``value = sum(sign * column_value for column, sign in zip(columns, signs))``
    """

    variable: str
    columns: tuple[str, ...]
    signs: tuple[float, ...]

    def value(self, column_values: Mapping[str, float]) -> float:
        return sum(sign * column_values.get(col, 0.0) for col, sign in zip(self.columns, self.signs))


@dataclass(frozen=True)
class SlackDefinition:
    """
    A slack or surplus column expressed through structural columns.

    For a slack, ``column = rhs - sum(a_j x_j)``; for a surplus,
    ``column = sum(a_j x_j) - rhs``. The row is taken after any negation for a
    negative right-hand side.
    """

    column: str
    constraint: str
    coefficients: Mapping[str, float] = field(hash=False)
    rhs: float = 0.0
    sign: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "coefficients", freeze_mapping(self.coefficients))

    def expression(self) -> tuple[dict[str, float], float]:
        """``(coefficients, constant)`` with ``column = constant + sum(coef * x)``."""
        coeffs = {col: -self.sign * a for col, a in self.coefficients.items() if a != 0.0}
        return coeffs, self.sign * self.rhs


@dataclass(frozen=True, eq=False)
class CanonicalForm:
    """
    Initial tableau plus the bookkeeping needed to interpret it.

    Attributes:
        model: Source model.
        tableau: Read-only initial tableau (row 0 holds the true objective).
        costs: Maximization-normalized objective coefficient of every
            non-RHS column (0 for slack, surplus and artificial columns).
        variable_map: Model variable to its canonical columns.
        structural_columns: Columns that stand for model variables.
        slack_columns: Slack columns, in row order.
        surplus_columns: Surplus columns, in row order.
        artificial_columns: Artificial columns, in row order.
        slack_definitions: Slack or surplus column to its definition.
        row_constraints: Constraint name of each tableau row ``1..m``.
        negated_constraints: Constraints multiplied by -1.
        steps: Human-readable description of every transformation.
    """

    model: Model
    tableau: Tableau
    costs: np.ndarray
    variable_map: Mapping[str, ColumnMapping]
    structural_columns: tuple[str, ...]
    slack_columns: tuple[str, ...]
    surplus_columns: tuple[str, ...]
    artificial_columns: tuple[str, ...]
    slack_definitions: Mapping[str, SlackDefinition]
    row_constraints: tuple[str, ...]
    negated_constraints: tuple[str, ...] = ()
    steps: tuple[str, ...] = ()

    @property
    def sense(self) -> Sense:
        return self.model.sense

    @property
    def needs_phase_one(self) -> bool:
        return bool(self.artificial_columns)

    @property
    def column_costs(self) -> Mapping[str, float]:
        return {name: float(c) for name, c in zip(self.tableau.variable_columns, self.costs)}

    def to_model_solution(self, column_values: Mapping[str, float], tol: float = PIVOT_TOL) -> dict[str, float]:
        """Map canonical column values back to model variables."""
        values = {}
        for var in self.model.ordered_variables:
            value = self.variable_map[var.name].value(column_values)
            values[var.name] = 0.0 if abs(value) <= tol else value
        return values

    def objective_value(self, column_values: Mapping[str, float]) -> float:
        """Model objective (in the model's sense) at canonical column values."""
        return self.model.objective_value(self.to_model_solution(column_values))

    def format_steps(self) -> str:
        return "\n".join(f"{k + 1}. {step}" for k, step in enumerate(self.steps))


def _unique(base: str, taken: set[str]) -> str:
    name = base
    k = 2
    while name in taken:
        name = f"{base}_{k}"
        k += 1
    taken.add(name)
    return name


class CanonicalFormBuilder:
    """Build :class:`CanonicalForm` objects.

    Args:
        tol: Zero threshold stored on the produced tableau.
    """

    def __init__(self, tol: float = PIVOT_TOL) -> None:
        self.tol = tol

    def build(self, model: Model) -> CanonicalForm:
        """
        Transform ``model`` into canonical form.

        Raises:
            ModelError: If the model has no variables, no constraints, or a
                constraint references an unknown variable.
        """
        if model.n_variables == 0:
            raise ModelError("Model has no variables.")
        if model.n_constraints == 0:
            raise ModelError("Model has no constraints.")
        for con in model.constraints:
            unknown = [v for v in con.coefficients if v not in model.variables]
            if unknown:
                raise ModelError(
                    f"Constraint {con.name} references unknown variable(s): {', '.join(unknown)}."
                )

        taken = set(model.variables) | {RHS}
        steps = []
        sense_sign = 1.0 if model.sense is Sense.MAXIMIZE else -1.0
        if model.sense is Sense.MINIMIZE:
            steps.append("Objective negated: minimize z is solved as maximize -z.")

        variable_map: dict[str, ColumnMapping] = {}
        structural: list[str] = []
        structural_costs: list[float] = []
        for var in model.ordered_variables:
            if var.restriction is SignRestriction.NON_POSITIVE:
                col = _unique(f"{var.name}_neg", taken)
                mapping = ColumnMapping(var.name, (col,), (-1.0,))
                steps.append(f"{var.name} <= 0 substituted by {var.name} = -{col} with {col} >= 0.")
            elif var.restriction is SignRestriction.UNRESTRICTED:
                pos = _unique(f"{var.name}_pos", taken)
                neg = _unique(f"{var.name}_neg", taken)
                mapping = ColumnMapping(var.name, (pos, neg), (1.0, -1.0))
                steps.append(f"{var.name} unrestricted: substituted by {pos} - {neg} with both >= 0.")
            else:
                mapping = ColumnMapping(var.name, (var.name,), (1.0,))
                if var.is_integral:
                    steps.append(
                        f"{var.name} ({var.restriction.name.lower()}) kept as a non-negative column; "
                        "integrality is left to the integer solvers."
                    )
            variable_map[var.name] = mapping
            for col, sign in zip(mapping.columns, mapping.signs):
                structural.append(col)
                structural_costs.append(sense_sign * sign * var.coefficient)

        rows: list[dict[str, float]] = []
        rhs: list[float] = []
        relations: list[Relation] = []
        negated = []
        for con in model.constraints:
            row = {}
            for var_name, coef in con.coefficients.items():
                mapping = variable_map[var_name]
                for col, sign in zip(mapping.columns, mapping.signs):
                    row[col] = row.get(col, 0.0) + sign * coef
            b = con.rhs
            relation = con.relation
            if b < 0.0:
                row = {col: -a for col, a in row.items()}
                b = -b
                relation = relation.flipped()
                negated.append(con.name)
                steps.append(
                    f"Constraint {con.name} multiplied by -1 (negative right-hand side); "
                    f"relation is now {relation.value}."
                )
            rows.append(row)
            rhs.append(b)
            relations.append(relation)

        slacks, surpluses, artificials = [], [], []
        # per row: (slack or surplus column, artificial column)
        row_extras: list[tuple[Optional[str], Optional[str]]] = []
        slack_definitions: dict[str, SlackDefinition] = {}
        for con, row, b, relation in zip(model.constraints, rows, rhs, relations):
            if relation is Relation.LE:
                s = _unique(f"s{len(slacks) + 1}", taken)
                slacks.append(s)
                slack_definitions[s] = SlackDefinition(s, con.name, row, b, 1.0)
                row_extras.append((s, None))
                steps.append(f"Constraint {con.name} (<=): added slack {s}.")
            elif relation is Relation.GE:
                e = _unique(f"e{len(surpluses) + 1}", taken)
                a = _unique(f"a{len(artificials) + 1}", taken)
                surpluses.append(e)
                artificials.append(a)
                slack_definitions[e] = SlackDefinition(e, con.name, row, b, -1.0)
                row_extras.append((e, a))
                steps.append(f"Constraint {con.name} (>=): subtracted surplus {e}, added artificial {a}.")
            else:
                a = _unique(f"a{len(artificials) + 1}", taken)
                artificials.append(a)
                row_extras.append((None, a))
                steps.append(f"Constraint {con.name} (=): added artificial {a}.")

        columns = structural + slacks + surpluses + artificials + [RHS]
        index = {name: j for j, name in enumerate(columns)}
        m, n = len(rows), len(columns)
        matrix = np.zeros((m + 1, n))
        matrix[0, : len(structural)] = -np.asarray(structural_costs)
        basis = []
        for i, (row, b, (extra, art)) in enumerate(zip(rows, rhs, row_extras), start=1):
            for col, a in row.items():
                matrix[i, index[col]] = a
            matrix[i, -1] = b
            if extra is not None:
                matrix[i, index[extra]] = slack_definitions[extra].sign
            if art is not None:
                matrix[i, index[art]] = 1.0
            basis.append(art if art is not None else extra)

        costs = np.zeros(n - 1)
        costs[: len(structural)] = structural_costs
        costs.flags.writeable = False

        tableau = Tableau(matrix, columns, basis, tol=self.tol).snapshot()
        logger.debug(
            "Canonical form of %s: %d rows, %d columns (%d slack, %d surplus, %d artificial)",
            model.name or "model", m, n - 1, len(slacks), len(surpluses), len(artificials),
        )
        return CanonicalForm(
            model=model,
            tableau=tableau,
            costs=costs,
            variable_map=freeze_mapping(variable_map),
            structural_columns=tuple(structural),
            slack_columns=tuple(slacks),
            surplus_columns=tuple(surpluses),
            artificial_columns=tuple(artificials),
            slack_definitions=freeze_mapping(slack_definitions),
            row_constraints=tuple(con.name for con in model.constraints),
            negated_constraints=tuple(negated),
            steps=tuple(steps),
        )
