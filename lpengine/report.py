"""Result summary and text rendering utilities.

This module turns a :class:`~lpengine.core.SolverResult` into a plain
dictionary or human-readable text: the headline numbers, the pivot log, the
branch-and-bound tree and the cut list.
"""

from __future__ import annotations

import sys
from collections import Counter
from typing import IO, Any, Dict, Optional

from .core import SolverResult
from .model import Model

__all__ = ["result_summary", "print_result_summary", "format_node_tree", "format_iterations"]


def result_summary(result: SolverResult, model: Optional[Model] = None) -> Dict[str, Any]:
    """
    Generate a summary dictionary for a solve.

    Parameters
    ----------
    result:
        Result to summarize.
    model:
        Model that was solved. Only used to list its integer variables.

    Returns
    -------
    Dict[str, Any]
        Dictionary containing:
        - algorithm: str
        - status: str
        - success: bool
        - proven_optimal: bool
        - objective: float or None
        - solution: Dict[str, float]
        - iterations: int
        - pivots: int
        - nodes: int
        - node_status_counts: Dict[str, int]
        - cuts: int
        - root_bound: float or None
        - optimality_gap: float or None
        - integer_variables: list of str
        - warnings: list of str
        - elapsed: float
    """
    integer_variables = list(model.integer_variables) if model is not None else []

    return {
        "algorithm": result.algorithm,
        "status": result.status.value,
        "success": result.success,
        "proven_optimal": result.proven_optimal,
        "objective": result.objective,
        "solution": dict(result.solution),
        "iterations": result.iteration_count,
        "pivots": result.pivot_count,
        "nodes": len(result.nodes),
        "node_status_counts": dict(Counter(node.status.value for node in result.nodes)),
        "cuts": len(result.cuts),
        "root_bound": result.root_bound,
        "optimality_gap": result.optimality_gap,
        "integer_variables": integer_variables,
        "warnings": list(result.warnings),
        "elapsed": result.elapsed,
    }


def format_iterations(result: SolverResult) -> str:
    """One line per iteration record (pivot or cutting-plane pass)."""
    return "\n".join(record.summary() for record in result.iterations)


def format_node_tree(result: SolverResult, indent: str = "  ") -> str:
    """
    Render the branch-and-bound tree of ``result`` as indented text.

    Children are listed under their parent in creation order. Returns an
    empty string for results without nodes.
    """
    if not result.nodes:
        return ""
    nodes = result.nodes
    lines = []
    stack = [(nodes[0].id, 0)]
    while stack:
        node_id, level = stack.pop()
        node = nodes[node_id]
        lines.append(f"{indent * level}{node.label()}")
        for child in reversed(node.children):
            stack.append((child, level + 1))
    return "\n".join(lines)


def print_result_summary(
    result: SolverResult,
    file: Optional[IO[str]] = None,
    model: Optional[Model] = None,
) -> None:
    """
    Pretty-print a result summary to stdout or a file.

    This is a utility function for human-readable output, so it uses print()
    intentionally. For programmatic access, use result_summary() instead.

    Parameters
    ----------
    result:
        Result to summarize.
    file:
        File-like object to write to. If None, writes to sys.stdout.
    model:
        Optional source model, see result_summary().
    """
    if file is None:
        file = sys.stdout

    summary = result_summary(result, model)

    print("Solver Summary", file=file)
    print("=" * 50, file=file)
    print(f"Algorithm: {summary['algorithm']}", file=file)
    print(f"Status: {summary['status']}", file=file)
    print(f"Proven Optimal: {summary['proven_optimal']}", file=file)
    if summary["objective"] is not None:
        print(f"Objective: {summary['objective']:.6g}", file=file)
    print(f"Iterations: {summary['iterations']} ({summary['pivots']} pivots)", file=file)
    if summary["nodes"]:
        print(f"Nodes: {summary['nodes']}", file=file)
        for status, count in sorted(summary["node_status_counts"].items()):
            print(f"  {status}: {count}", file=file)
    if summary["cuts"]:
        print(f"Cuts: {summary['cuts']}", file=file)
    if summary["root_bound"] is not None:
        print(f"Root Bound: {summary['root_bound']:.6g}", file=file)
    if summary["optimality_gap"] is not None:
        print(f"Optimality Gap: {summary['optimality_gap']:.4g}", file=file)
    if summary["integer_variables"]:
        print(f"Integer Variables: {', '.join(summary['integer_variables'])}", file=file)
    if summary["solution"]:
        print("\nSolution:", file=file)
        for name, value in summary["solution"].items():
            print(f"  {name} = {value:.6g}", file=file)
    if result.cuts:
        print("\nCuts:", file=file)
        for cut in result.cuts:
            print(f"  {cut.format()}", file=file)
    if summary["warnings"]:
        print("\nWarnings:", file=file)
        for warning in summary["warnings"]:
            print(f"  {warning}", file=file)
    if result.message:
        print(f"\n{result.message}", file=file)
