"""
Branch-and-bound nodes and the node arena.

Nodes are frozen records stored in a flat :class:`NodeTree`. Parent and
child links are integer ids into that arena; a status change replaces the
stored record rather than mutating it, so node objects handed out earlier
never change underneath their holder.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Mapping, Optional

from ..core import freeze_mapping
from ..model import Constraint, Relation, Sense
from .solution import IntegerSolution

__all__ = ["NodeStatus", "BranchDirection", "BranchDecision", "BranchNode", "NodeTree"]


class NodeStatus(Enum):
    """Lifecycle state of a node."""

    ACTIVE = "active"
    FATHOMED_BY_BOUND = "fathomed_by_bound"
    FATHOMED_BY_INFEASIBILITY = "fathomed_by_infeasibility"
    FATHOMED_BY_INTEGRALITY = "fathomed_by_integrality"
    COMPLETED = "completed"

    @property
    def is_fathomed(self) -> bool:
        return self in (
            NodeStatus.FATHOMED_BY_BOUND,
            NodeStatus.FATHOMED_BY_INFEASIBILITY,
            NodeStatus.FATHOMED_BY_INTEGRALITY,
        )


class BranchDirection(Enum):
    DOWN = "down"
    UP = "up"


@dataclass(frozen=True)
class BranchDecision:
    """The restriction that created a node from its parent.

    ``x <= 2`` is ``BranchDecision("x", Relation.LE, 2.0, BranchDirection.DOWN)``.
    Knapsack nodes fix an item with ``Relation.EQ`` and value 1 (include) or
    0 (exclude).
    """

    variable: str
    relation: Relation
    value: float
    direction: BranchDirection

    def to_constraint(self, name: Optional[str] = None) -> Constraint:
        return Constraint(name or self.label(), {self.variable: 1.0}, self.relation, self.value)

    def label(self) -> str:
        value = int(self.value) if float(self.value).is_integer() else self.value
        return f"{self.variable} {self.relation.value} {value}"


@dataclass(frozen=True)
class BranchNode:
    """
    One node of a branch-and-bound tree.

    Attributes:
        id: Index into the owning :class:`NodeTree`.
        parent: Parent id, None for the root.
        depth: Distance from the root.
        status: Lifecycle state.
        bound: Objective of the node relaxation, None until evaluated or when
            the relaxation is infeasible.
        solution: Relaxation solution.
        decision: Branch that created the node (None for the root).
        children: Child ids in creation order.
        incumbent: Best integer solution found at or below this node.
        lp_iterations: Pivots spent on the node relaxation.
        note: Short explanation of the node's outcome.
    """

    id: int
    parent: Optional[int]
    depth: int
    status: NodeStatus = NodeStatus.ACTIVE
    bound: Optional[float] = None
    solution: Mapping[str, float] = field(default_factory=dict, hash=False)
    decision: Optional[BranchDecision] = None
    children: tuple[int, ...] = ()
    incumbent: Optional[IntegerSolution] = None
    lp_iterations: int = 0
    note: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "solution", freeze_mapping(self.solution))
        object.__setattr__(self, "children", tuple(self.children))

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_fathomed(self) -> bool:
        return self.status.is_fathomed

    def label(self) -> str:
        """One-line description used in text trees and logs."""
        branch = self.decision.label() if self.decision else "root"
        bound = f"{self.bound:.4g}" if self.bound is not None else "-"
        text = f"#{self.id} [{branch}] bound={bound} {self.status.value}"
        return f"{text} ({self.note})" if self.note else text


class NodeTree:
    """Flat arena of :class:`BranchNode` records owned by one solve."""

    def __init__(self) -> None:
        self._nodes: list[BranchNode] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[BranchNode]:
        return iter(self._nodes)

    def __getitem__(self, node_id: int) -> BranchNode:
        return self._nodes[node_id]

    @property
    def nodes(self) -> tuple[BranchNode, ...]:
        return tuple(self._nodes)

    @property
    def root(self) -> BranchNode:
        return self._nodes[0]

    def add_root(self) -> BranchNode:
        if self._nodes:
            raise ValueError("tree already has a root")
        node = BranchNode(id=0, parent=None, depth=0)
        self._nodes.append(node)
        return node

    def add_child(self, parent_id: int, decision: BranchDecision) -> BranchNode:
        parent = self._nodes[parent_id]
        node = BranchNode(id=len(self._nodes), parent=parent_id, depth=parent.depth + 1, decision=decision)
        self._nodes.append(node)
        self._nodes[parent_id] = replace(parent, children=parent.children + (node.id,))
        return node

    def update(self, node_id: int, **changes) -> BranchNode:
        """Replace node ``node_id`` with a copy carrying ``changes``."""
        node = replace(self._nodes[node_id], **changes)
        self._nodes[node_id] = node
        return node

    def path(self, node_id: int) -> list[BranchNode]:
        """Nodes from the root down to ``node_id``."""
        path = []
        current: Optional[int] = node_id
        while current is not None:
            node = self._nodes[current]
            path.append(node)
            current = node.parent
        return path[::-1]

    def decisions(self, node_id: int) -> list[BranchDecision]:
        """Branch decisions accumulated along the path to ``node_id``."""
        return [node.decision for node in self.path(node_id) if node.decision is not None]

    def active(self) -> list[BranchNode]:
        return [node for node in self._nodes if node.status is NodeStatus.ACTIVE]

    def propagate_incumbent(self, node_id: int, solution: IntegerSolution, sense: Sense) -> None:
        """Record ``solution`` on ``node_id`` and every ancestor it improves."""
        for node in self.path(node_id):
            if solution.is_better_than(node.incumbent, sense, tol=0.0):
                self.update(node.id, incumbent=solution)
