import pytest

from lpengine.config import CuttingPlaneConfig
from lpengine.core import SolverStatus
from lpengine.errors import NotApplicableError
from lpengine.integer import CutType, CuttingPlane, CuttingPlaneSolver, gomory_cut, mixed_gomory_cut
from lpengine.model import Model, Relation
from lpengine.simplex import PrimalSimplexSolver


def test_knapsack_by_cutting_planes(knapsack_model):
    result = CuttingPlaneSolver().solve(knapsack_model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(15.0)
    assert result.root_bound == pytest.approx(15.4)
    assert result.iteration_count > 1
    assert len(result.cuts) >= 1
    assert knapsack_model.is_feasible(result.solution)


def test_first_knapsack_cut(knapsack_model):
    result = CuttingPlaneSolver().solve(knapsack_model)
    first = result.cuts[0]
    assert first.name == "cut1"
    assert first.source == "x5"
    assert first.iteration == 1
    assert first.relation is Relation.LE
    assert dict(first.coefficients) == pytest.approx(
        {"x1": 1.0, "x2": 1.0, "x3": 1.0, "x4": 2.0, "x5": 1.0, "x6": 1.0}
    )
    assert first.rhs == pytest.approx(5.0)
    assert first.violation == pytest.approx(0.2)
    assert first.row_rhs == pytest.approx(0.2)


def test_cuts_separate_their_pass_and_keep_integer_points(knapsack_model):
    result = CuttingPlaneSolver().solve(knapsack_model)
    passes = {record.index: record for record in result.iterations}
    for cut in result.cuts:
        assert cut.is_violated_by(passes[cut.iteration].solution)
        assert cut.is_satisfied_by(result.solution)


def test_iteration_records(knapsack_model):
    result = CuttingPlaneSolver().solve(knapsack_model)
    first = result.iterations[0]
    assert first.index == 1
    assert first.objective == pytest.approx(15.4)
    assert first.cuts_added == (1,)
    assert first.fractional == pytest.approx({"x5": 0.2})
    assert first.summary().startswith("pass 1: optimal, z = 15.4, added cut(s) 1")


def test_small_integer_program_cuts(small_ip):
    result = CuttingPlaneSolver().solve(small_ip)
    first, second = result.cuts[:2]
    assert dict(first.coefficients) == pytest.approx({"x1": 6.0, "x2": 5.0})
    assert first.rhs == pytest.approx(25.0)
    assert first.violation == pytest.approx(0.5)
    assert dict(second.coefficients) == pytest.approx({"x1": 7.0, "x2": 5.0})
    assert second.rhs == pytest.approx(28.0)
    for cut in result.cuts:
        assert cut.is_satisfied_by({"x1": 4.0, "x2": 0.0})
        assert cut.is_satisfied_by({"x1": 3.0, "x2": 1.0})


def test_small_integer_program_result(small_ip):
    result = CuttingPlaneSolver().solve(small_ip)
    assert result.status is SolverStatus.OPTIMAL
    assert result.proven_optimal
    assert result.objective == pytest.approx(20.0)
    assert result.root_bound == pytest.approx(21.0)
    assert small_ip.is_feasible(result.solution)
    assert result.optimality_gap == 0.0
    assert all(cut.cut_type is CutType.GOMORY for cut in result.cuts)


def test_pass_limit_reports_the_rounded_incumbent(small_ip):
    result = CuttingPlaneSolver(CuttingPlaneConfig(max_iterations=1)).solve(small_ip)
    assert result.status is SolverStatus.MAX_ITER
    assert not result.proven_optimal
    assert result.success
    assert result.objective == pytest.approx(19.0)
    assert result.incumbent.source == "rounding"
    assert result.optimality_gap == pytest.approx(2.0 / 19.0)
    assert any("Best rounded solution reported" in warning for warning in result.warnings)


def test_rounding_can_be_disabled(small_ip):
    config = CuttingPlaneConfig(max_iterations=1, rounding_heuristic=False)
    result = CuttingPlaneSolver(config).solve(small_ip)
    assert result.status is SolverStatus.MAX_ITER
    assert result.objective is None
    assert not result.success


def test_cuts_prove_infeasibility():
    model = Model.from_dense("max", [1], [[2]], ["="], [1], restrictions=["int"])
    result = CuttingPlaneSolver().solve(model)
    assert result.status is SolverStatus.INFEASIBLE
    assert result.objective is None
    assert len(result.cuts) == 1
    assert "cuts left no feasible point" in result.message


def test_unbounded_relaxation():
    model = Model.from_dense("max", [1, 1], [[1, -1]], ["<="], [1.5], restrictions=["int", "int"])
    result = CuttingPlaneSolver().solve(model)
    assert result.status is SolverStatus.UNBOUNDED
    assert result.cuts == ()


def test_integral_relaxation_needs_no_cuts():
    model = Model.from_dense("max", [1, 1], [[1, 0], [0, 1]], ["<=", "<="], [2, 3], restrictions=["int", "int"])
    result = CuttingPlaneSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(5.0)
    assert result.cuts == ()
    assert result.iteration_count == 1


def test_lp_model_is_rejected(textbook_lp):
    with pytest.raises(NotApplicableError) as info:
        CuttingPlaneSolver().solve(textbook_lp)
    assert info.value.recommended == "primal_simplex"


def test_gomory_cut_from_tableau_row(small_ip):
    lp = PrimalSimplexSolver().solve(small_ip.relaxation())
    tableau = lp.final_tableau
    row = tableau.basic_row("x2")
    coefficients, rhs, row_coefficients, f0 = gomory_cut(
        tableau, lp.canonical_form, row, {"x1", "x2", "s1", "s2"}
    )
    assert coefficients == pytest.approx({"x1": 6.0, "x2": 5.0})
    assert rhs == pytest.approx(25.0)
    assert row_coefficients == pytest.approx({"s1": 0.875, "s2": 0.75})
    assert f0 == pytest.approx(0.5)

    assert gomory_cut(tableau, lp.canonical_form, row, {"x1", "x2", "s2"}) is None


def test_cutting_plane_record():
    cut = CuttingPlane(3, {"x1": 6.0, "x2": -5.0}, rhs=25.0, source="x2")
    assert cut.name == "cut3"
    assert cut.evaluate({"x1": 5.0, "x2": 1.0}) == pytest.approx(25.0)
    assert cut.violation_at({"x1": 5.0, "x2": 0.0}) == pytest.approx(5.0)
    assert cut.is_satisfied_by({"x1": 0.0})
    assert cut.format() == "cut3: 6.000x1 -5.000x2 <= 25.000 (from x2)"
    constraint = cut.to_constraint()
    assert constraint.name == "cut3"
    assert dict(constraint.coefficients) == {"x1": 6.0, "x2": -5.0}


def test_rejected_cuts_stall_with_rounded_solution(knapsack_model):
    # the only fractional row has RHS fraction 0.2, outside [0.45, 0.55]
    result = CuttingPlaneSolver(CuttingPlaneConfig(min_fraction=0.45)).solve(knapsack_model)
    assert result.status is SolverStatus.STALLED
    assert not result.proven_optimal
    assert result.success
    assert result.cuts == ()
    assert result.objective == pytest.approx(15.0)
    assert result.iterations[-1].cuts_rejected == 1
    assert result.iterations[-1].note == "no valid cut"
    assert any("No valid Gomory cut" in warning for warning in result.warnings)


def test_objective_stagnation_stalls(small_ip):
    # pass 2 moves the bound from 21 to 62/3, well inside the tolerance
    config = CuttingPlaneConfig(stagnation_limit=1, stagnation_tolerance=10.0)
    result = CuttingPlaneSolver(config).solve(small_ip)
    assert result.status is SolverStatus.STALLED
    assert not result.proven_optimal
    assert result.iteration_count == 2
    assert len(result.cuts) == 1
    assert result.iterations[-1].note == "objective stagnated"
    assert result.objective == pytest.approx(19.0)
    assert result.optimality_gap == pytest.approx((62.0 / 3.0 - 19.0) / 19.0)
    assert any("Objective moved less than 10" in warning for warning in result.warnings)


@pytest.mark.parametrize("restriction, coefficient", [("+", 1.0), ("-", -1.0)])
def test_mixed_integer_cut_closes_continuous_model(restriction, coefficient):
    model = Model.from_dense(
        "max", [1, 0], [[2, coefficient]], ["<="], [3], restrictions=["int", restriction]
    )
    result = CuttingPlaneSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(1.0)
    (cut,) = result.cuts
    assert cut.cut_type is CutType.MIXED
    assert cut.relation is Relation.GE
    assert dict(cut.coefficients) == pytest.approx({"x1": -2.0})
    assert cut.rhs == pytest.approx(-2.0)
    assert cut.violation == pytest.approx(1.0)
    assert cut.is_satisfied_by(result.solution)
    assert model.is_feasible(result.solution)


def test_mixed_gomory_cut_from_tableau_row():
    model = Model.from_dense("max", [1, 0], [[2, 1]], ["<="], [3], restrictions=["int", "+"])
    lp = PrimalSimplexSolver().solve(model.relaxation())
    tableau = lp.final_tableau
    row = tableau.basic_row("x1")
    assert gomory_cut(tableau, lp.canonical_form, row, {"x1"}) is None
    coefficients, rhs, row_coefficients, f0 = mixed_gomory_cut(tableau, lp.canonical_form, row, {"x1"})
    assert coefficients == pytest.approx({"x1": -2.0})
    assert rhs == pytest.approx(-2.0)
    assert row_coefficients == pytest.approx({"x2": 0.5, "s1": 0.5})
    assert f0 == pytest.approx(0.5)
