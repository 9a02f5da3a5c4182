"""
Branch-and-bound for general integer and mixed-integer programs.

The root node is the LP relaxation of the model (integer and binary
restrictions dropped, binary variables bounded by 1). Every node solves its
own relaxation from scratch with the branch constraints collected along its
path, so no simplex state is shared between nodes. Nodes are explored
best-first by relaxation bound.

Node outcomes, in the order they are checked:

1. the relaxation is infeasible: ``FATHOMED_BY_INFEASIBILITY``;
2. every integer variable is integral: ``FATHOMED_BY_INTEGRALITY`` and the
   solution becomes a candidate incumbent;
3. the bound cannot beat the incumbent: ``FATHOMED_BY_BOUND``;
4. otherwise the node branches on the variable whose fractional part is
   closest to 0.5 (``x <= floor(v)`` / ``x >= ceil(v)``) and is marked
   ``COMPLETED``.

Outcomes 1 and 2 are settled as soon as the node relaxation is solved, so
only fractional nodes wait in the queue. A relaxation that stops on an
iteration limit or numerical trouble leaves its node ``COMPLETED`` with a
note and a warning.
"""

from __future__ import annotations

import heapq
import math
import time
from typing import Optional

from ..config import BranchAndBoundConfig, SimplexConfig
from ..core import SolverResult, SolverStatus, fractional_part, is_integral_value
from ..errors import NotApplicableError
from ..logging import get_logger
from ..model import Model, Relation, Sense
from ..simplex import PrimalSimplexSolver, RevisedSimplexSolver
from ..simplex.base import SimplexSolverBase
from .node import BranchDecision, BranchDirection, NodeStatus, NodeTree
from .solution import IntegerSolution

__all__ = ["BranchAndBoundSolver", "make_lp_solver", "optimality_gap", "round_integers"]

logger = get_logger(__name__)


def make_lp_solver(name: str, config: Optional[SimplexConfig] = None) -> SimplexSolverBase:
    """LP solver used for relaxations (``"primal_simplex"`` or ``"revised_simplex"``)."""
    if name == "revised_simplex":
        return RevisedSimplexSolver(config)
    if name == "primal_simplex":
        return PrimalSimplexSolver(config)
    raise ValueError(f"Unsupported LP algorithm {name!r}; expected 'primal_simplex' or 'revised_simplex'.")


def optimality_gap(bound: Optional[float], incumbent: Optional[float]) -> Optional[float]:
    """``|bound - incumbent| / |incumbent|``; None without an incumbent.

    A zero incumbent gives 0 when the bound matches it and ``inf`` otherwise.
    """
    if incumbent is None or bound is None:
        return None
    diff = abs(bound - incumbent)
    if incumbent == 0.0:
        return 0.0 if diff <= 1e-12 else math.inf
    return diff / abs(incumbent)


def round_integers(values, names, tol: float) -> dict[str, float]:
    """Copy of ``values`` with near-integral entries of ``names`` snapped."""
    rounded = dict(values)
    for name in names:
        value = rounded.get(name, 0.0)
        if is_integral_value(value, tol):
            rounded[name] = float(round(value))
    return rounded


class BranchAndBoundSolver:
    """
    Best-first branch-and-bound.

    Args:
        config: Node ceiling, tolerances and the LP solver used for
            relaxations.

    Example:
        >>> model = Model.from_dense("max", [5, 4], [[6, 4], [1, 2]], ["<=", "<="], [24, 6],
        ...                          restrictions=["int", "int"])
        >>> BranchAndBoundSolver().solve(model).objective
        20.0
    """

    name = "branch_and_bound"

    def __init__(self, config: Optional[BranchAndBoundConfig] = None) -> None:
        self.config = config or BranchAndBoundConfig()
        self._lp = make_lp_solver(self.config.lp_algorithm, self.config.simplex)

    def solve(self, model: Model) -> SolverResult:
        """
        Solve the integer program ``model``.

        Returns:
            SolverResult with the node arena in ``nodes``. Status is OPTIMAL
            when the tree closed with an incumbent, INFEASIBLE when it closed
            without one, UNBOUNDED when the root relaxation is unbounded, and
            MAX_NODES when the node ceiling stopped the search.

        Raises:
            NotApplicableError: If the model has no integer or binary
                variables.
            ModelError: If the model is malformed.
        """
        if not model.has_integer_variables:
            raise NotApplicableError(
                "Model has no integer or binary variables; use a simplex solver.",
                recommended="primal_simplex",
            )
        start = time.perf_counter()
        cfg = self.config
        sense = model.sense
        relaxed = model.relaxation()
        integer_names = model.integer_variables
        tree = NodeTree()
        warnings: list[str] = []
        failures: list[SolverStatus] = []

        root = tree.add_root()
        root_lp = self._evaluate(tree, root.id, relaxed, warnings, failures)
        if root_lp.status is SolverStatus.UNBOUNDED:
            message = "LP relaxation is unbounded; the integer program is unbounded or infeasible."
            tree.update(root.id, status=NodeStatus.COMPLETED, note="relaxation unbounded")
            return self._result(model, SolverStatus.UNBOUNDED, tree, root_lp, None, None, None,
                                None, warnings, message, start)
        root_bound = tree.root.bound

        heap: list[tuple[float, int]] = []
        incumbent: Optional[IntegerSolution] = None
        incumbent_lp: Optional[SolverResult] = None

        def admit(node_id: int, lp: SolverResult) -> None:
            # Integral nodes never enter the queue
            nonlocal incumbent, incumbent_lp
            candidate = self._settle(tree, node_id, model)
            if candidate is not None:
                if candidate.is_better_than(incumbent, sense, cfg.bound_tolerance):
                    incumbent, incumbent_lp = candidate, lp
                    logger.info("%s: new incumbent z = %.6g at node %d", self.name, candidate.objective, node_id)
            elif tree[node_id].status is NodeStatus.ACTIVE:
                heapq.heappush(heap, (self._priority(sense, tree[node_id].bound), node_id))

        admit(root.id, root_lp)
        limit_hit = False
        while heap:
            _, node_id = heapq.heappop(heap)
            node = tree[node_id]

            if incumbent is not None and not model.is_better(node.bound, incumbent.objective, cfg.bound_tolerance):
                tree.update(
                    node_id, status=NodeStatus.FATHOMED_BY_BOUND,
                    note=f"bound {node.bound:.6g} cannot beat incumbent {incumbent.objective:.6g}",
                )
                continue

            if len(tree) + 2 > cfg.max_nodes:
                limit_hit = True
                heapq.heappush(heap, (self._priority(sense, node.bound), node_id))
                break

            fractional = {
                name: fractional_part(node.solution.get(name, 0.0), cfg.integrality_tolerance)
                for name in integer_names
                if not is_integral_value(node.solution.get(name, 0.0), cfg.integrality_tolerance)
            }
            var = min(fractional, key=lambda name: abs(fractional[name] - 0.5))
            value = node.solution[var]
            tree.update(node_id, status=NodeStatus.COMPLETED, note=f"branched on {var} = {value:.6g}")
            logger.debug("%s: node %d branches on %s = %.6g", self.name, node_id, var, value)
            for decision in (
                BranchDecision(var, Relation.LE, float(math.floor(value)), BranchDirection.DOWN),
                BranchDecision(var, Relation.GE, float(math.ceil(value)), BranchDirection.UP),
            ):
                child = tree.add_child(node_id, decision)
                admit(child.id, self._evaluate(tree, child.id, relaxed, warnings, failures))

        gap: Optional[float] = 0.0 if incumbent is not None else None
        if limit_hit:
            open_bounds = [tree[node_id].bound for _, node_id in heap]
            best_bound = max(open_bounds) if sense is Sense.MAXIMIZE else min(open_bounds)
            if incumbent is not None:
                best_bound = best_bound if model.is_better(best_bound, incumbent.objective) else incumbent.objective
            gap = optimality_gap(best_bound, incumbent.objective if incumbent else None)
            status = SolverStatus.MAX_NODES
            message = f"Node limit of {cfg.max_nodes} reached; the incumbent is not proven optimal."
            if gap is not None:
                message += f" Optimality gap {gap:.4g}."
            warnings.append(message)
        elif failures:
            status = SolverStatus.MAX_ITER if SolverStatus.MAX_ITER in failures else SolverStatus.NUMERICAL_ERROR
            message = f"{len(failures)} node relaxation(s) failed; the incumbent is not proven optimal."
            gap = None
        elif incumbent is None:
            status = SolverStatus.INFEASIBLE
            message = "No integer-feasible solution exists."
        else:
            status = SolverStatus.OPTIMAL
            message = f"Optimal integer solution found after {len(tree)} node(s)."

        final_lp = incumbent_lp or root_lp
        return self._result(model, status, tree, root_lp, final_lp, incumbent, root_bound, gap,
                            warnings, message, start)

    # ------------------------------------------------------------------
    @staticmethod
    def _priority(sense: Sense, bound: float) -> float:
        return -bound if sense is Sense.MAXIMIZE else bound

    def _evaluate(self, tree, node_id, relaxed, warnings, failures) -> SolverResult:
        """Solve the relaxation of ``node_id`` and record the outcome on the node."""
        decisions = tree.decisions(node_id)
        node_model = relaxed.with_constraints(
            decision.to_constraint(f"branch{k + 1}") for k, decision in enumerate(decisions)
        )
        result = self._lp.solve(node_model)
        if result.status is SolverStatus.OPTIMAL:
            tree.update(node_id, bound=result.objective, solution=result.solution,
                        lp_iterations=result.pivot_count)
        elif result.status is SolverStatus.INFEASIBLE:
            tree.update(node_id, status=NodeStatus.FATHOMED_BY_INFEASIBILITY,
                        lp_iterations=result.pivot_count, note="relaxation infeasible")
        elif result.status is SolverStatus.UNBOUNDED and node_id != 0:
            tree.update(node_id, status=NodeStatus.FATHOMED_BY_INFEASIBILITY,
                        lp_iterations=result.pivot_count, note="relaxation unbounded")
            warnings.append(f"Node {node_id} relaxation is unbounded; fathomed.")
        elif result.status is not SolverStatus.UNBOUNDED:
            # Not proven infeasible: the node is closed unexplored
            tree.update(node_id, status=NodeStatus.COMPLETED,
                        lp_iterations=result.pivot_count, note=f"relaxation {result.status.value}")
            warnings.append(f"Node {node_id} relaxation ended with {result.status.value}: {result.message}")
            failures.append(result.status)
        logger.debug("%s: %s", self.name, tree[node_id].label())
        return result

    def _settle(self, tree, node_id, model) -> Optional[IntegerSolution]:
        """Fathom ``node_id`` by integrality when its relaxation is integral.

        Returns:
            The candidate solution, or None when the node is not an open
            integral node.
        """
        node = tree[node_id]
        tol = self.config.integrality_tolerance
        names = model.integer_variables
        if node.status is not NodeStatus.ACTIVE:
            return None
        if not all(is_integral_value(node.solution.get(name, 0.0), tol) for name in names):
            return None
        values = round_integers(node.solution, names, tol)
        candidate = IntegerSolution(values, model.objective_value(values), True, node_id, self.name)
        tree.update(node_id, status=NodeStatus.FATHOMED_BY_INTEGRALITY, note="integral relaxation")
        tree.propagate_incumbent(node_id, candidate, model.sense)
        return candidate

    def _result(self, model, status, tree, root_lp, final_lp, incumbent, root_bound, gap,
                warnings, message, start) -> SolverResult:
        solution = dict(incumbent.values) if incumbent is not None else {}
        final_lp = final_lp or root_lp
        return SolverResult(
            algorithm=self.name,
            status=status,
            objective=incumbent.objective if incumbent is not None else None,
            solution=solution,
            iterations=root_lp.iterations,
            initial_tableau=root_lp.initial_tableau,
            final_tableau=final_lp.final_tableau,
            canonical_form=final_lp.canonical_form,
            nodes=tree.nodes,
            incumbent=incumbent,
            root_bound=root_bound,
            optimality_gap=gap,
            proven_optimal=status is SolverStatus.OPTIMAL,
            warnings=tuple(root_lp.warnings) + tuple(warnings),
            message=message,
            elapsed=time.perf_counter() - start,
        )
