"""
Branch-and-bound specialised for the 0-1 knapsack problem.

A model qualifies when it maximizes over binary variables subject to exactly
one ``<=`` constraint with non-negative weights and capacity. Items are
ranked by value/weight and the tree decides them in that order (include,
then exclude). A node's bound is the value of its included items plus the
greedy fractional fill of the remaining capacity, which is the LP relaxation
value of the node.
"""

from __future__ import annotations

import heapq
import math
import time
from dataclasses import dataclass
from typing import Optional

from ..config import KnapsackConfig
from ..core import SolverResult, SolverStatus
from ..errors import NotApplicableError
from ..logging import get_logger
from ..model import Model, Relation, Sense, SignRestriction
from .branch_and_bound import optimality_gap
from .node import BranchDecision, BranchDirection, NodeStatus, NodeTree
from .solution import IntegerSolution

__all__ = ["KnapsackItem", "KnapsackInstance", "KnapsackBranchAndBound"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class KnapsackItem:
    """One binary variable seen as an item."""

    name: str
    value: float
    weight: float
    index: int = 0

    @property
    def efficiency(self) -> float:
        """Value per unit weight (``inf`` for a free item with positive value)."""
        if self.weight > 0.0:
            return self.value / self.weight
        if self.value > 0.0:
            return math.inf
        return 0.0 if self.value == 0.0 else -math.inf


@dataclass(frozen=True)
class KnapsackInstance:
    """
    Items ranked by efficiency (descending, ties by column order) and the
    capacity of the single constraint.
    """

    items: tuple[KnapsackItem, ...]
    capacity: float
    constraint: str = ""

    @staticmethod
    def check(model: Model) -> list[str]:
        """Reasons why ``model`` is not a 0-1 knapsack (empty when it is)."""
        reasons = []
        if model.sense is not Sense.MAXIMIZE:
            reasons.append("objective must be maximized")
        if model.n_constraints != 1:
            reasons.append(f"exactly one constraint required, found {model.n_constraints}")
        else:
            con = model.constraints[0]
            if con.relation is not Relation.LE:
                reasons.append(f"constraint relation must be <=, found {con.relation.value}")
            negative = [name for name, coef in con.coefficients.items() if coef < 0.0]
            if negative:
                reasons.append(f"negative weights on {', '.join(negative)}")
            if con.rhs < 0.0:
                reasons.append(f"capacity must be non-negative, found {con.rhs:g}")
        not_binary = [v.name for v in model.ordered_variables if v.restriction is not SignRestriction.BINARY]
        if not_binary:
            reasons.append(f"all variables must be binary; not binary: {', '.join(not_binary)}")
        if model.n_variables == 0:
            reasons.append("model has no variables")
        return reasons

    @classmethod
    def from_model(cls, model: Model) -> "KnapsackInstance":
        """
        Extract the instance from ``model``.

        Raises:
            NotApplicableError: If the model is not a 0-1 knapsack; the
                error recommends ``"branch_and_bound"``.
        """
        reasons = cls.check(model)
        if reasons:
            raise NotApplicableError(
                "Knapsack solver does not apply: " + "; ".join(reasons) + ".",
                recommended="branch_and_bound",
            )
        con = model.constraints[0]
        items = [
            KnapsackItem(var.name, var.coefficient, con.coefficient(var.name), k)
            for k, var in enumerate(model.ordered_variables)
        ]
        items.sort(key=lambda item: (-item.efficiency, item.index))
        return cls(tuple(items), con.rhs, con.name)

    def upper_bound(self, level: int, value: float, remaining: float) -> tuple[float, dict[str, float]]:
        """
        Fractional-knapsack bound for a node that decided ``items[:level]``.

        Returns:
            ``(bound, fill)`` where ``fill`` maps the undecided items used by
            the greedy fill to their (possibly fractional) amount.
        """
        bound = value
        fill = {}
        for item in self.items[level:]:
            if item.value <= 0.0:
                continue
            if item.weight <= remaining:
                fill[item.name] = 1.0
                bound += item.value
                remaining -= item.weight
            else:
                fraction = remaining / item.weight
                if fraction > 0.0:
                    fill[item.name] = fraction
                    bound += fraction * item.value
                break
        return bound, fill

    def format(self) -> str:
        lines = [f"capacity {self.capacity:g}"]
        for rank, item in enumerate(self.items, start=1):
            lines.append(
                f"{rank:>3}. {item.name}: value {item.value:g}, weight {item.weight:g}, "
                f"ratio {item.efficiency:.4g}"
            )
        return "\n".join(lines)


@dataclass(frozen=True)
class _Partial:
    level: int
    value: float
    weight: float
    chosen: frozenset


class KnapsackBranchAndBound:
    """
    Best-first include/exclude branch-and-bound for 0-1 knapsack models.

    Args:
        config: Node ceiling and comparison tolerance.
    """

    name = "knapsack"

    def __init__(self, config: Optional[KnapsackConfig] = None) -> None:
        self.config = config or KnapsackConfig()

    def solve(self, model: Model) -> SolverResult:
        """
        Solve the knapsack ``model``.

        Raises:
            NotApplicableError: If ``model`` is not a 0-1 knapsack.
        """
        instance = KnapsackInstance.from_model(model)
        start = time.perf_counter()
        cfg = self.config
        tol = cfg.tolerance
        items = instance.items
        tree = NodeTree()
        partials: dict[int, _Partial] = {}

        root = tree.add_root()
        partials[root.id] = _Partial(0, 0.0, 0.0, frozenset())
        self._evaluate(tree, instance, partials, root.id)
        root_bound = tree.root.bound
        heap: list[tuple[float, int]] = []
        incumbent: Optional[IntegerSolution] = None

        def admit(node_id: int) -> None:
            # Fully decided leaves never enter the queue
            nonlocal incumbent
            part = partials[node_id]
            if part.level < len(items):
                heapq.heappush(heap, (-tree[node_id].bound, node_id))
                return
            values = {name: (1.0 if name in part.chosen else 0.0) for name in model.variable_names}
            candidate = IntegerSolution(values, model.objective_value(values), True, node_id, self.name)
            tree.update(node_id, status=NodeStatus.FATHOMED_BY_INTEGRALITY, note="all items decided")
            tree.propagate_incumbent(node_id, candidate, Sense.MAXIMIZE)
            if candidate.is_better_than(incumbent, Sense.MAXIMIZE, tol):
                incumbent = candidate
                logger.debug("%s: incumbent %.6g at node %d", self.name, candidate.objective, node_id)

        admit(root.id)
        limit_hit = False
        while heap:
            _, node_id = heapq.heappop(heap)
            node = tree[node_id]
            part = partials[node_id]

            if incumbent is not None and node.bound <= incumbent.objective + tol:
                tree.update(
                    node_id, status=NodeStatus.FATHOMED_BY_BOUND,
                    note=f"bound {node.bound:.6g} <= incumbent {incumbent.objective:.6g}",
                )
                continue

            if len(tree) + 2 > cfg.max_nodes:
                limit_hit = True
                heapq.heappush(heap, (-node.bound, node_id))
                break

            item = items[part.level]
            tree.update(node_id, status=NodeStatus.COMPLETED, note=f"decide {item.name}")

            include = tree.add_child(node_id, BranchDecision(item.name, Relation.EQ, 1.0, BranchDirection.UP))
            if part.weight + item.weight <= instance.capacity + tol:
                partials[include.id] = _Partial(
                    part.level + 1, part.value + item.value, part.weight + item.weight,
                    part.chosen | {item.name},
                )
                self._evaluate(tree, instance, partials, include.id)
                admit(include.id)
            else:
                tree.update(include.id, status=NodeStatus.FATHOMED_BY_INFEASIBILITY,
                            note=f"{item.name} exceeds remaining capacity")

            exclude = tree.add_child(node_id, BranchDecision(item.name, Relation.EQ, 0.0, BranchDirection.DOWN))
            partials[exclude.id] = _Partial(part.level + 1, part.value, part.weight, part.chosen)
            self._evaluate(tree, instance, partials, exclude.id)
            admit(exclude.id)

        gap: Optional[float] = 0.0 if incumbent is not None else None
        warnings = []
        if limit_hit:
            best_bound = max(-priority for priority, _ in heap)
            if incumbent is not None:
                best_bound = max(best_bound, incumbent.objective)
            gap = optimality_gap(best_bound, incumbent.objective if incumbent else None)
            status = SolverStatus.MAX_NODES
            message = f"Node limit of {cfg.max_nodes} reached; the incumbent is not proven optimal."
            warnings.append(message)
        else:
            # The empty selection is always feasible, so a closed tree has an incumbent
            status = SolverStatus.OPTIMAL
            message = f"Optimal selection found after {len(tree)} node(s)."
        logger.info("%s: %s, %d node(s)", self.name, status.value, len(tree))

        return SolverResult(
            algorithm=self.name,
            status=status,
            objective=incumbent.objective if incumbent is not None else None,
            solution=dict(incumbent.values) if incumbent is not None else {},
            nodes=tree.nodes,
            incumbent=incumbent,
            root_bound=root_bound,
            optimality_gap=gap,
            proven_optimal=status is SolverStatus.OPTIMAL,
            warnings=tuple(warnings),
            message=message,
            elapsed=time.perf_counter() - start,
        )

    @staticmethod
    def _evaluate(tree: NodeTree, instance: KnapsackInstance, partials, node_id: int) -> None:
        part = partials[node_id]
        bound, fill = instance.upper_bound(part.level, part.value, instance.capacity - part.weight)
        solution = {item.name: 0.0 for item in instance.items}
        solution.update({name: 1.0 for name in part.chosen})
        solution.update(fill)
        tree.update(node_id, bound=bound, solution=solution)
