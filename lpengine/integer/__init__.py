"""Integer programming: branch-and-bound, knapsack and cutting planes."""

from .branch_and_bound import BranchAndBoundSolver, make_lp_solver, optimality_gap
from .cutting_plane import (
    CutType,
    CuttingPlane,
    CuttingPlaneIteration,
    CuttingPlaneSolver,
    gomory_cut,
    mixed_gomory_cut,
)
from .knapsack import KnapsackBranchAndBound, KnapsackInstance, KnapsackItem
from .node import BranchDecision, BranchDirection, BranchNode, NodeStatus, NodeTree
from .solution import IntegerSolution

__all__ = [
    "BranchAndBoundSolver",
    "make_lp_solver",
    "optimality_gap",
    "KnapsackBranchAndBound",
    "KnapsackInstance",
    "KnapsackItem",
    "CuttingPlaneSolver",
    "CuttingPlane",
    "CuttingPlaneIteration",
    "CutType",
    "gomory_cut",
    "mixed_gomory_cut",
    "BranchNode",
    "BranchDecision",
    "BranchDirection",
    "NodeStatus",
    "NodeTree",
    "IntegerSolution",
]
