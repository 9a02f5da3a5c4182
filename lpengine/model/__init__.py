"""Problem description: variables, constraints and models."""

from .core import Constraint, Model, Relation, Sense, SignRestriction, Variable

__all__ = [
    "Sense",
    "Relation",
    "SignRestriction",
    "Variable",
    "Constraint",
    "Model",
]
