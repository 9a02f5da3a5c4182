import pytest

from lpengine.config import BranchAndBoundConfig, SimplexConfig
from lpengine.core import SolverStatus, is_integral_value
from lpengine.errors import NotApplicableError
from lpengine.integer import BranchAndBoundSolver, NodeStatus, make_lp_solver, optimality_gap
from lpengine.model import Model


def test_small_integer_program(small_ip):
    result = BranchAndBoundSolver().solve(small_ip)
    assert result.status is SolverStatus.OPTIMAL
    assert result.proven_optimal
    assert result.objective == pytest.approx(20.0)
    assert small_ip.is_feasible(result.solution)
    assert all(float(v).is_integer() for v in result.solution.values())
    assert result.root_bound == pytest.approx(21.0)
    assert result.optimality_gap == 0.0
    assert result.incumbent.source == "branch_and_bound"
    assert len(result.nodes) > 1
    assert result.nodes[0].status is NodeStatus.COMPLETED
    assert result.nodes_processed == len(result.nodes)


def test_every_node_is_closed(small_ip):
    result = BranchAndBoundSolver().solve(small_ip)
    for node in result.nodes:
        assert node.status is not NodeStatus.ACTIVE
        if node.status is NodeStatus.COMPLETED:
            assert len(node.children) == 2
        else:
            assert node.children == ()


def test_minimization_bound_is_below_incumbent():
    model = Model.from_dense("min", [3, 2], [[1, 1]], [">="], [3.5], restrictions=["int", "int"])
    result = BranchAndBoundSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(8.0)
    assert result.root_bound == pytest.approx(7.0)
    assert result.objective >= result.root_bound


def test_infeasible_integer_program():
    model = Model.from_dense("max", [1], [[2]], ["="], [1], restrictions=["int"])
    result = BranchAndBoundSolver().solve(model)
    assert result.status is SolverStatus.INFEASIBLE
    assert result.objective is None
    assert result.incumbent is None
    assert all(node.is_fathomed or node.status is NodeStatus.COMPLETED for node in result.nodes)


def test_root_infeasible():
    model = Model.from_dense("max", [1], [[1], [1]], ["<=", ">="], [1, 2], restrictions=["int"])
    result = BranchAndBoundSolver().solve(model)
    assert result.status is SolverStatus.INFEASIBLE
    assert len(result.nodes) == 1
    assert result.nodes[0].status is NodeStatus.FATHOMED_BY_INFEASIBILITY
    assert result.root_bound is None


def test_unbounded_relaxation():
    model = Model.from_dense("max", [1, 1], [[1, -1]], ["<="], [1.5], restrictions=["int", "int"])
    result = BranchAndBoundSolver().solve(model)
    assert result.status is SolverStatus.UNBOUNDED
    assert result.objective is None
    assert len(result.nodes) == 1


def test_node_limit(small_ip):
    result = BranchAndBoundSolver(BranchAndBoundConfig(max_nodes=1)).solve(small_ip)
    assert result.status is SolverStatus.MAX_NODES
    assert not result.proven_optimal
    assert not result.success
    assert result.optimality_gap is None
    assert any("Node limit of 1" in warning for warning in result.warnings)


def test_knapsack_by_branch_and_bound(knapsack_model):
    result = BranchAndBoundSolver().solve(knapsack_model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(15.0)
    assert result.root_bound == pytest.approx(15.4)
    assert len(result.nodes) > 1
    for value in result.solution.values():
        assert min(abs(value), abs(value - 1.0)) <= 1e-6


def test_revised_lp_gives_same_tree(small_ip):
    primal = BranchAndBoundSolver().solve(small_ip)
    revised = BranchAndBoundSolver(BranchAndBoundConfig(lp_algorithm="revised_simplex")).solve(small_ip)
    assert revised.objective == pytest.approx(primal.objective)
    assert len(revised.nodes) == len(primal.nodes)


def test_lp_model_is_rejected(textbook_lp):
    with pytest.raises(NotApplicableError) as info:
        BranchAndBoundSolver().solve(textbook_lp)
    assert info.value.recommended == "primal_simplex"


def test_result_carries_root_log_and_final_tableau(small_ip):
    result = BranchAndBoundSolver().solve(small_ip)
    assert result.pivot_count > 0
    assert result.initial_tableau is not None
    assert result.final_tableau is not None
    assert result.canonical_form is not None


def test_make_lp_solver():
    assert make_lp_solver("revised_simplex", SimplexConfig()).name == "revised_simplex"
    assert make_lp_solver("primal_simplex").name == "primal_simplex"
    with pytest.raises(ValueError):
        make_lp_solver("dual_simplex")


@pytest.mark.parametrize(
    "bound, incumbent, expected",
    [(21.0, 20.0, 0.05), (20.0, 20.0, 0.0), (7.0, 8.0, 0.125), (0.0, 0.0, 0.0)],
)
def test_optimality_gap(bound, incumbent, expected):
    assert optimality_gap(bound, incumbent) == pytest.approx(expected)


def test_optimality_gap_edge_cases():
    assert optimality_gap(None, 3.0) is None
    assert optimality_gap(1.0, None) is None
    assert optimality_gap(1.0, 0.0) == float("inf")


def test_node_limit_reports_incumbent_and_gap(small_ip):
    # root, then x2 <= 1 (bound 62/3) and x2 >= 2 (integral, z = 18); the limit stops the next branch
    result = BranchAndBoundSolver(BranchAndBoundConfig(max_nodes=4)).solve(small_ip)
    assert result.status is SolverStatus.MAX_NODES
    assert result.success
    assert not result.proven_optimal
    assert result.objective == pytest.approx(18.0)
    assert small_ip.is_feasible(result.solution)
    assert result.optimality_gap == pytest.approx((62.0 / 3.0 - 18.0) / 18.0)
    assert 0.0 <= result.optimality_gap
    assert result.nodes[2].status is NodeStatus.FATHOMED_BY_INTEGRALITY
    assert result.nodes[0].incumbent.objective == pytest.approx(18.0)
    assert result.validate() == []


@pytest.mark.parametrize("fixture_name", ["small_ip", "knapsack_model"])
def test_node_limit_never_drops_integral_nodes(fixture_name, request):
    model = request.getfixturevalue(fixture_name)
    full = BranchAndBoundSolver().solve(model)
    for max_nodes in range(3, len(full.nodes)):
        result = BranchAndBoundSolver(BranchAndBoundConfig(max_nodes=max_nodes)).solve(model)
        assert len(result.nodes) <= max_nodes
        for node in result.nodes:
            if node.status is NodeStatus.ACTIVE:
                assert not all(is_integral_value(node.solution[name]) for name in model.integer_variables)
        integral = [node for node in result.nodes if node.status is NodeStatus.FATHOMED_BY_INTEGRALITY]
        if integral:
            assert result.success
            assert result.objective == pytest.approx(max(node.bound for node in integral))
            assert result.objective <= full.objective + 1e-9


def test_failed_node_relaxation_is_not_reported_infeasible(small_ip):
    config = BranchAndBoundConfig(simplex=SimplexConfig(max_iterations=1, record_tableaus=False))
    result = BranchAndBoundSolver(config).solve(small_ip)
    assert result.status is SolverStatus.MAX_ITER
    assert not result.proven_optimal
    assert result.objective is None
    root = result.nodes[0]
    assert root.status is NodeStatus.COMPLETED
    assert root.note == "relaxation max_iter"
    assert any("relaxation ended with max_iter" in warning for warning in result.warnings)
