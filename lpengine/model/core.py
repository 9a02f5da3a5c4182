"""
Algebraic model of a linear or integer program.

A :class:`Model` is an objective sense, a set of named :class:`Variable`
objects and an ordered tuple of :class:`Constraint` objects. Models are
frozen: branch-and-bound and cutting-plane solvers derive new models with
:meth:`Model.relaxation` and :meth:`Model.with_constraints` rather than
editing one in place.

Example:
    >>> model = Model.from_dense(
    ...     "max", c=[3.0, 2.0], a_mat=[[1.0, 1.0], [2.0, 1.0]],
    ...     relations=["<=", "<="], b_vec=[4.0, 6.0],
    ... )
    >>> model.objective_value({"x1": 2.0, "x2": 2.0})
    10.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence, Union

from ..core import FEASIBILITY_TOL, freeze_mapping
from ..errors import ModelError

__all__ = [
    "Sense",
    "Relation",
    "SignRestriction",
    "Variable",
    "Constraint",
    "Model",
]


class Sense(Enum):
    """Objective direction."""

    MAXIMIZE = "max"
    MINIMIZE = "min"

    @classmethod
    def parse(cls, value: Union["Sense", str]) -> "Sense":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in ("max", "maximize", "maximise"):
            return cls.MAXIMIZE
        if key in ("min", "minimize", "minimise"):
            return cls.MINIMIZE
        raise ModelError(f"Unknown objective sense {value!r}; expected 'max' or 'min'.")


class Relation(Enum):
    """Constraint relation."""

    LE = "<="
    EQ = "="
    GE = ">="

    @classmethod
    def parse(cls, value: Union["Relation", str]) -> "Relation":
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        aliases = {"<=": cls.LE, "=<": cls.LE, "≤": cls.LE, "=": cls.EQ, "==": cls.EQ,
                   ">=": cls.GE, "=>": cls.GE, "≥": cls.GE}
        if key not in aliases:
            raise ModelError(f"Unknown constraint relation {value!r}.")
        return aliases[key]

    def flipped(self) -> "Relation":
        """Relation after multiplying both sides by -1."""
        if self is Relation.LE:
            return Relation.GE
        if self is Relation.GE:
            return Relation.LE
        return self

    def holds(self, lhs: float, rhs: float, tol: float = FEASIBILITY_TOL) -> bool:
        if self is Relation.LE:
            return lhs <= rhs + tol
        if self is Relation.GE:
            return lhs >= rhs - tol
        return abs(lhs - rhs) <= tol


class SignRestriction(Enum):
    """Domain restriction of a variable."""

    NON_NEGATIVE = "+"
    NON_POSITIVE = "-"
    UNRESTRICTED = "urs"
    INTEGER = "int"
    BINARY = "bin"

    @property
    def is_integral(self) -> bool:
        return self in (SignRestriction.INTEGER, SignRestriction.BINARY)


@dataclass(frozen=True)
class Variable:
    """
    Decision variable.

    Attributes:
        name: Unique key within the model.
        coefficient: Objective coefficient.
        restriction: Sign or integrality restriction. Integer and binary
            variables are non-negative.
        index: Stable ordinal that fixes the canonical column order.
    """

    name: str
    coefficient: float = 0.0
    restriction: SignRestriction = SignRestriction.NON_NEGATIVE
    index: int = 0

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ModelError(f"Variable name must be a non-empty string, got {self.name!r}.")
        if not math.isfinite(self.coefficient):
            raise ModelError(
                f"Objective coefficient of {self.name} must be finite, got {self.coefficient}."
            )
        object.__setattr__(self, "coefficient", float(self.coefficient))

    @property
    def is_integral(self) -> bool:
        return self.restriction.is_integral

    def admits(self, value: float, tol: float = FEASIBILITY_TOL) -> bool:
        """True when ``value`` respects this variable's sign restriction."""
        if self.restriction is SignRestriction.UNRESTRICTED:
            return True
        if self.restriction is SignRestriction.NON_POSITIVE:
            return value <= tol
        if self.restriction is SignRestriction.BINARY:
            return -tol <= value <= 1.0 + tol
        return value >= -tol


@dataclass(frozen=True)
class Constraint:
    """
    Linear constraint ``sum(coefficients[v] * v) <relation> rhs``.

    Attributes:
        name: Label used in logs, reports and tableau bookkeeping.
        coefficients: Variable name to coefficient. Absent names have
            coefficient 0.
        relation: ``<=``, ``=`` or ``>=``.
        rhs: Right-hand side.
    """

    name: str
    coefficients: Mapping[str, float] = field(hash=False)
    relation: Relation = Relation.LE
    rhs: float = 0.0

    def __post_init__(self) -> None:
        coeffs = {}
        for var, value in dict(self.coefficients).items():
            if not math.isfinite(value):
                raise ModelError(
                    f"Coefficient of {var} in constraint {self.name} must be finite, got {value}."
                )
            coeffs[var] = float(value)
        if not math.isfinite(self.rhs):
            raise ModelError(f"RHS of constraint {self.name} must be finite, got {self.rhs}.")
        object.__setattr__(self, "coefficients", freeze_mapping(coeffs))
        object.__setattr__(self, "relation", Relation.parse(self.relation))
        object.__setattr__(self, "rhs", float(self.rhs))

    def coefficient(self, name: str) -> float:
        return self.coefficients.get(name, 0.0)

    def evaluate(self, values: Mapping[str, float]) -> float:
        """Left-hand side at ``values`` (missing variables count as 0)."""
        return sum(coef * values.get(var, 0.0) for var, coef in self.coefficients.items())

    def violation(self, values: Mapping[str, float]) -> float:
        """Amount by which ``values`` violate the constraint (0 when satisfied)."""
        lhs = self.evaluate(values)
        if self.relation is Relation.LE:
            return max(0.0, lhs - self.rhs)
        if self.relation is Relation.GE:
            return max(0.0, self.rhs - lhs)
        return abs(lhs - self.rhs)

    def is_satisfied(self, values: Mapping[str, float], tol: float = FEASIBILITY_TOL) -> bool:
        return self.relation.holds(self.evaluate(values), self.rhs, tol)

    def format(self, order: Optional[Sequence[str]] = None) -> str:
        """Render as ``name: 2 x1 - x2 <= 4``."""
        names = list(order) if order is not None else list(self.coefficients)
        terms = [(var, self.coefficients[var]) for var in names if var in self.coefficients]
        return f"{self.name}: {_format_linear(terms)} {self.relation.value} {_format_number(self.rhs)}"


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _format_linear(terms: Sequence[tuple[str, float]]) -> str:
    parts = []
    for var, coef in terms:
        if coef == 0.0:
            continue
        sign = "-" if coef < 0 else "+"
        magnitude = abs(coef)
        text = var if magnitude == 1.0 else f"{_format_number(magnitude)} {var}"
        if not parts:
            parts.append(text if sign == "+" else f"-{text}")
        else:
            parts.append(f"{sign} {text}")
    return " ".join(parts) if parts else "0"


@dataclass(frozen=True)
class Model:
    """
    Linear or integer program.

    Attributes:
        sense: Maximize or minimize.
        variables: Variable name to :class:`Variable`.
        constraints: Ordered constraints.
        name: Optional label.

    Raises:
        ModelError: If a constraint references an unknown variable, a variable
            is stored under a different key than its name, or constraint names
            repeat.
    """

    sense: Sense
    variables: Mapping[str, Variable] = field(hash=False)
    constraints: tuple[Constraint, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "sense", Sense.parse(self.sense))
        variables = dict(self.variables)
        for key, var in variables.items():
            if key != var.name:
                raise ModelError(f"Variable stored under {key!r} is named {var.name!r}.")
        constraints = tuple(self.constraints)
        seen = set()
        for con in constraints:
            if con.name in seen:
                raise ModelError(f"Duplicate constraint name {con.name!r}.")
            seen.add(con.name)
            unknown = [var for var in con.coefficients if var not in variables]
            if unknown:
                raise ModelError(
                    f"Constraint {con.name} references unknown variable(s): {', '.join(unknown)}."
                )
        object.__setattr__(self, "variables", freeze_mapping(variables))
        object.__setattr__(self, "constraints", constraints)

    @classmethod
    def create(
        cls,
        sense: Union[Sense, str],
        variables: Iterable[Variable],
        constraints: Iterable[Constraint] = (),
        name: str = "",
    ) -> "Model":
        """Build a model from sequences, rejecting duplicate variable names."""
        mapping: dict[str, Variable] = {}
        for var in variables:
            if var.name in mapping:
                raise ModelError(f"Duplicate variable name {var.name!r}.")
            mapping[var.name] = var
        return cls(sense=Sense.parse(sense), variables=mapping, constraints=tuple(constraints), name=name)

    @classmethod
    def from_dense(
        cls,
        sense: Union[Sense, str],
        c: Sequence[float],
        a_mat: Sequence[Sequence[float]],
        relations: Sequence[Union[Relation, str]],
        b_vec: Sequence[float],
        restrictions: Optional[Sequence[Union[SignRestriction, str]]] = None,
        names: Optional[Sequence[str]] = None,
        name: str = "",
    ) -> "Model":
        """
        Build a model from dense arrays.

        Args:
            sense: ``"max"`` or ``"min"``.
            c: Objective coefficients, one per variable.
            a_mat: Constraint rows.
            relations: One relation per row.
            b_vec: Right-hand sides.
            restrictions: Per-variable restriction (enum or its value, e.g.
                ``"bin"``). Defaults to non-negative.
            names: Variable names. Defaults to ``x1, x2, ...``.
            name: Model label.
        """
        n = len(c)
        if names is None:
            names = [f"x{j + 1}" for j in range(n)]
        if restrictions is None:
            restrictions = [SignRestriction.NON_NEGATIVE] * n
        if len(names) != n or len(restrictions) != n:
            raise ModelError(
                f"names ({len(names)}) and restrictions ({len(restrictions)}) "
                f"must match the objective length ({n})."
            )
        if not (len(a_mat) == len(relations) == len(b_vec)):
            raise ModelError(
                f"a_mat ({len(a_mat)}), relations ({len(relations)}) and b_vec "
                f"({len(b_vec)}) must have the same number of rows."
            )
        variables = [
            Variable(str(names[j]), float(c[j]), SignRestriction(restrictions[j]), index=j)
            for j in range(n)
        ]
        constraints = []
        for i, row in enumerate(a_mat):
            if len(row) != n:
                raise ModelError(f"Row {i + 1} has {len(row)} entries, expected {n}.")
            coeffs = {str(names[j]): float(row[j]) for j in range(n) if row[j] != 0}
            constraints.append(Constraint(f"c{i + 1}", coeffs, Relation.parse(relations[i]), float(b_vec[i])))
        return cls.create(sense, variables, constraints, name=name)

    @property
    def ordered_variables(self) -> tuple[Variable, ...]:
        """Variables sorted by index (ties by name)."""
        return tuple(sorted(self.variables.values(), key=lambda v: (v.index, v.name)))

    @property
    def variable_names(self) -> tuple[str, ...]:
        return tuple(v.name for v in self.ordered_variables)

    @property
    def integer_variables(self) -> tuple[str, ...]:
        """Names of integer and binary variables in column order."""
        return tuple(v.name for v in self.ordered_variables if v.is_integral)

    @property
    def binary_variables(self) -> tuple[str, ...]:
        return tuple(
            v.name for v in self.ordered_variables if v.restriction is SignRestriction.BINARY
        )

    @property
    def has_integer_variables(self) -> bool:
        return any(v.is_integral for v in self.variables.values())

    @property
    def n_variables(self) -> int:
        return len(self.variables)

    @property
    def n_constraints(self) -> int:
        return len(self.constraints)

    def objective_value(self, values: Mapping[str, float]) -> float:
        return sum(var.coefficient * values.get(name, 0.0) for name, var in self.variables.items())

    def is_better(self, candidate: float, reference: Optional[float], tol: float = 0.0) -> bool:
        """True when ``candidate`` improves on ``reference`` by more than ``tol``."""
        if reference is None:
            return True
        if self.sense is Sense.MAXIMIZE:
            return candidate > reference + tol
        return candidate < reference - tol

    def violated_constraints(
        self, values: Mapping[str, float], tol: float = FEASIBILITY_TOL
    ) -> list[str]:
        """Names of violated constraints and of variables outside their domain."""
        violated = [con.name for con in self.constraints if not con.is_satisfied(values, tol)]
        for var in self.ordered_variables:
            value = values.get(var.name, 0.0)
            if not var.admits(value, tol):
                violated.append(var.name)
        return violated

    def is_feasible(self, values: Mapping[str, float], tol: float = FEASIBILITY_TOL) -> bool:
        """Feasibility of ``values`` ignoring integrality."""
        return not self.violated_constraints(values, tol)

    def relaxation(self) -> "Model":
        """
        LP relaxation: integer and binary variables become non-negative.

        Each binary variable ``b`` gains an upper-bound constraint
        ``b <= 1`` named ``bin_b`` (with a numeric suffix if that name is
        taken).
        """
        variables = {}
        for name, var in self.variables.items():
            if var.is_integral:
                var = Variable(var.name, var.coefficient, SignRestriction.NON_NEGATIVE, var.index)
            variables[name] = var
        taken = {con.name for con in self.constraints}
        bounds = []
        for name in self.binary_variables:
            label = _unique_name(f"bin_{name}", taken)
            taken.add(label)
            bounds.append(Constraint(label, {name: 1.0}, Relation.LE, 1.0))
        return Model(self.sense, variables, self.constraints + tuple(bounds), self.name)

    def with_constraints(self, extra: Iterable[Constraint]) -> "Model":
        """New model with ``extra`` appended to the constraints."""
        extra = tuple(extra)
        if not extra:
            return self
        return Model(self.sense, self.variables, self.constraints + extra, self.name)

    def format_objective(self) -> str:
        terms = [(v.name, v.coefficient) for v in self.ordered_variables]
        return f"{self.sense.value} z = {_format_linear(terms)}"

    def format(self) -> str:
        """Multi-line text rendering of the model."""
        order = self.variable_names
        lines = [self.format_objective(), "subject to"]
        lines.extend(f"  {con.format(order)}" for con in self.constraints)
        groups: dict[SignRestriction, list[str]] = {}
        for var in self.ordered_variables:
            groups.setdefault(var.restriction, []).append(var.name)
        labels = {
            SignRestriction.NON_NEGATIVE: ">= 0",
            SignRestriction.NON_POSITIVE: "<= 0",
            SignRestriction.UNRESTRICTED: "free",
            SignRestriction.INTEGER: "integer",
            SignRestriction.BINARY: "binary",
        }
        for restriction, names in groups.items():
            lines.append(f"  {', '.join(names)} {labels[restriction]}")
        return "\n".join(lines)


def _unique_name(base: str, taken: Iterable[str]) -> str:
    taken = set(taken)
    if base not in taken:
        return base
    k = 2
    while f"{base}_{k}" in taken:
        k += 1
    return f"{base}_{k}"
