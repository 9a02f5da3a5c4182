"""Tests for algorithm selection by name."""

from __future__ import annotations

import pytest

from lpengine import (
    Algorithm,
    BranchAndBoundConfig,
    BranchAndBoundSolver,
    CuttingPlaneSolver,
    KnapsackBranchAndBound,
    NotApplicableError,
    PrimalSimplexSolver,
    RevisedSimplexSolver,
    SimplexConfig,
    SolverStatus,
    create_solver,
    recommend_algorithm,
    solve,
)


@pytest.mark.parametrize(
    "name, solver_type",
    [
        ("primal_simplex", PrimalSimplexSolver),
        ("revised_simplex", RevisedSimplexSolver),
        ("branch_and_bound", BranchAndBoundSolver),
        ("knapsack", KnapsackBranchAndBound),
        ("cutting_plane", CuttingPlaneSolver),
    ],
)
def test_create_solver_by_name(name, solver_type) -> None:
    """Test that every supported name maps to its solver."""
    solver = create_solver(name)
    assert isinstance(solver, solver_type)
    assert solver.name == name


def test_create_solver_normalizes_names() -> None:
    """Test case-insensitive names with dashes or spaces."""
    assert isinstance(create_solver("Revised-Simplex"), RevisedSimplexSolver)
    assert isinstance(create_solver("branch and bound"), BranchAndBoundSolver)
    assert isinstance(create_solver(Algorithm.KNAPSACK), KnapsackBranchAndBound)


def test_create_solver_passes_config() -> None:
    """Test that the config reaches the solver."""
    config = SimplexConfig(max_iterations=7)
    assert create_solver("primal_simplex", config).config is config


def test_create_solver_invalid_name_raises() -> None:
    """Test that an unknown name raises NotApplicableError."""
    with pytest.raises(NotApplicableError, match="Unsupported algorithm name"):
        create_solver("interior_point")


def test_create_solver_wrong_config_type_raises() -> None:
    """Test that a config for another algorithm is rejected."""
    with pytest.raises(ValueError, match="expects a SimplexConfig"):
        create_solver("primal_simplex", BranchAndBoundConfig())


def test_recommend_algorithm(textbook_lp, knapsack_model, small_ip) -> None:
    """Test the recommended algorithm for each kind of model."""
    assert recommend_algorithm(textbook_lp) is Algorithm.PRIMAL_SIMPLEX
    assert recommend_algorithm(knapsack_model) is Algorithm.KNAPSACK
    assert recommend_algorithm(small_ip) is Algorithm.BRANCH_AND_BOUND


def test_solve_defaults_to_primal_simplex(textbook_lp) -> None:
    """Test the default algorithm of solve()."""
    result = solve(textbook_lp)
    assert result.algorithm == "primal_simplex"
    assert result.objective == pytest.approx(10.0)


@pytest.mark.parametrize("algorithm", ["branch_and_bound", "knapsack", "cutting_plane"])
def test_solve_knapsack_with_integer_algorithms(knapsack_model, algorithm) -> None:
    """Test that all integer algorithms agree on the knapsack optimum."""
    result = solve(knapsack_model, algorithm)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(15.0)


def test_solve_knapsack_on_general_model_recommends_branch_and_bound(small_ip) -> None:
    """Test that a mismatched algorithm carries a recommendation."""
    with pytest.raises(NotApplicableError) as info:
        solve(small_ip, "knapsack")
    assert info.value.recommended == "branch_and_bound"


def test_solve_integer_algorithm_on_lp_recommends_simplex(textbook_lp) -> None:
    """Test that integer algorithms refuse pure LPs."""
    with pytest.raises(NotApplicableError) as info:
        solve(textbook_lp, Algorithm.CUTTING_PLANE)
    assert info.value.recommended == "primal_simplex"
