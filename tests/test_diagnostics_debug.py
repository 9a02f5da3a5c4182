"""Tests for debug mode functionality."""

import numpy as np
import pytest

from lpengine.diagnostics import (
    assert_valid_tableau,
    debug_context,
    is_debug_enabled,
    reset_debug_from_env,
    set_debug_enabled,
)
from lpengine.errors import NumericalInstabilityError
from lpengine.model import Model
from lpengine.simplex import PrimalSimplexSolver, RevisedSimplexSolver, Tableau


def test_debug_mode_toggle_and_context() -> None:
    original = is_debug_enabled()

    try:
        set_debug_enabled(False)
        assert not is_debug_enabled()

        with debug_context(True):
            assert is_debug_enabled()

        assert not is_debug_enabled()

        set_debug_enabled(True)
        with debug_context(False):
            assert not is_debug_enabled()
        assert is_debug_enabled()
    finally:
        set_debug_enabled(original)


def test_debug_context_nested() -> None:
    original = is_debug_enabled()

    try:
        set_debug_enabled(False)
        with debug_context(True):
            assert is_debug_enabled()
            with debug_context(False):
                assert not is_debug_enabled()
            assert is_debug_enabled()
        assert not is_debug_enabled()
    finally:
        set_debug_enabled(original)


@pytest.mark.parametrize("solver_cls", [PrimalSimplexSolver, RevisedSimplexSolver])
def test_solvers_validate_every_pivot_in_debug_mode(solver_cls, textbook_lp: Model) -> None:
    """A sound solve passes the per-pivot tableau validation."""
    with debug_context(True):
        result = solver_cls().solve(textbook_lp)
    assert result.objective == pytest.approx(10.0)


def test_assert_valid_tableau_rejects_broken_basis() -> None:
    # x1 is declared basic in row 1 but its column is not a unit vector
    matrix = np.array([[0.0, -1.0, 0.0], [2.0, 1.0, 4.0]])
    tableau = Tableau(matrix, ["x1", "x2", "RHS"], ["x1"])
    with pytest.raises(NumericalInstabilityError, match="not a unit vector"):
        assert_valid_tableau(tableau)


def test_debug_context_restores_state_on_error() -> None:
    original = is_debug_enabled()

    try:
        set_debug_enabled(False)
        with pytest.raises(RuntimeError):
            with debug_context(True):
                raise RuntimeError("boom")
        assert not is_debug_enabled()
    finally:
        set_debug_enabled(original)


@pytest.mark.parametrize("value, expected", [("1", True), ("On", True), (" yes ", True), ("0", False), ("", False)])
def test_reset_debug_from_env(value, expected) -> None:
    original = is_debug_enabled()

    try:
        assert reset_debug_from_env({"LPENGINE_DEBUG": value}) is expected
        assert is_debug_enabled() is expected
        assert reset_debug_from_env({}) is False
    finally:
        set_debug_enabled(original)
