"""Diagnostics and debugging utilities for lpengine."""

from .core import (
    assert_feasible,
    assert_integral,
    assert_valid_tableau,
    constraint_residuals,
    is_integral_solution,
    max_violation,
)
from .debug_mode import (
    debug_context,
    is_debug_enabled,
    reset_debug_from_env,
    set_debug_enabled,
)

__all__ = [
    "constraint_residuals",
    "max_violation",
    "is_integral_solution",
    "assert_feasible",
    "assert_integral",
    "assert_valid_tableau",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "reset_debug_from_env",
]
