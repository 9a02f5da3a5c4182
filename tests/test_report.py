"""Tests for result summaries and text rendering."""

import io

from lpengine import (
    BranchAndBoundSolver,
    CuttingPlaneSolver,
    PrimalSimplexSolver,
    SolverResult,
    SolverStatus,
)
from lpengine.report import (
    format_iterations,
    format_node_tree,
    print_result_summary,
    result_summary,
)


def test_result_summary_lp(textbook_lp):
    """Test summary of a pure LP solve."""
    result = PrimalSimplexSolver().solve(textbook_lp)
    summary = result_summary(result, textbook_lp)

    assert summary["algorithm"] == "primal_simplex"
    assert summary["status"] == "optimal"
    assert summary["success"] is True
    assert summary["proven_optimal"] is True
    assert abs(summary["objective"] - 10.0) < 1e-9
    assert summary["iterations"] == 3
    assert summary["pivots"] == 2
    assert summary["nodes"] == 0
    assert summary["node_status_counts"] == {}
    assert summary["cuts"] == 0
    assert summary["root_bound"] is None
    assert summary["integer_variables"] == []
    assert summary["warnings"] == []


def test_result_summary_branch_and_bound(small_ip):
    """Test summary of an integer solve."""
    result = BranchAndBoundSolver().solve(small_ip)
    summary = result_summary(result, small_ip)

    assert summary["nodes"] == len(result.nodes)
    assert sum(summary["node_status_counts"].values()) == len(result.nodes)
    assert summary["node_status_counts"]["completed"] >= 1
    assert summary["integer_variables"] == ["x1", "x2"]
    assert abs(summary["root_bound"] - 21.0) < 1e-9
    assert summary["optimality_gap"] == 0.0


def test_result_summary_without_model():
    """Test summary of an empty failure result."""
    result = SolverResult(algorithm="primal_simplex", status=SolverStatus.INFEASIBLE, message="infeasible")
    summary = result_summary(result)

    assert summary["success"] is False
    assert summary["objective"] is None
    assert summary["solution"] == {}
    assert summary["integer_variables"] == []


def test_format_iterations(textbook_lp):
    """Test one line per iteration record."""
    result = PrimalSimplexSolver().solve(textbook_lp)
    lines = format_iterations(result).splitlines()

    assert len(lines) == 3
    assert lines[0].startswith("[0] phase 2: x1 enters, s2 leaves")
    assert "optimal" in lines[-1]


def test_format_node_tree(small_ip):
    """Test the indented tree rendering."""
    result = BranchAndBoundSolver().solve(small_ip)
    lines = format_node_tree(result).splitlines()

    assert len(lines) == len(result.nodes)
    assert lines[0].startswith("#0 [root]")
    assert lines[1].startswith("  #1 [x2 <= 1]")
    assert all(line.startswith("  ") for line in lines[1:])


def test_format_node_tree_empty(textbook_lp):
    """Test that results without nodes render as empty text."""
    assert format_node_tree(PrimalSimplexSolver().solve(textbook_lp)) == ""


def test_print_result_summary(small_ip):
    """Test printing a summary."""
    result = BranchAndBoundSolver().solve(small_ip)
    output = io.StringIO()
    print_result_summary(result, file=output, model=small_ip)

    output_str = output.getvalue()
    assert "Solver Summary" in output_str
    assert "=" * 50 in output_str
    assert "Algorithm: branch_and_bound" in output_str
    assert "Status: optimal" in output_str
    assert "Objective: 20" in output_str
    assert "Nodes:" in output_str
    assert "Root Bound: 21" in output_str
    assert "Integer Variables: x1, x2" in output_str
    assert "Solution:" in output_str


def test_print_result_summary_lists_cuts(knapsack_model):
    """Test that cutting-plane summaries list their cuts."""
    result = CuttingPlaneSolver().solve(knapsack_model)
    output = io.StringIO()
    print_result_summary(result, file=output)

    output_str = output.getvalue()
    assert "Cuts:" in output_str
    assert "cut1:" in output_str
    assert "(from x5)" in output_str
