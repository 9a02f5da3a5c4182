import pytest

from lpengine.config import PivotRule, SimplexConfig
from lpengine.core import SolverStatus
from lpengine.errors import InfeasibleError, UnboundedError
from lpengine.model import Constraint, Model, SignRestriction, Variable
from lpengine.simplex import PrimalSimplexSolver, TableauStatus


def test_textbook_lp(textbook_lp):
    result = PrimalSimplexSolver().solve(textbook_lp)
    assert result.status is SolverStatus.OPTIMAL
    assert result.proven_optimal
    assert result.objective == pytest.approx(10.0)
    assert dict(result.solution) == pytest.approx({"x1": 2.0, "x2": 2.0})
    assert result.pivot_count == 2
    assert result.iteration_count == 3
    assert [r.entering for r in result.iterations if r.is_pivot] == ["x1", "x2"]
    assert [r.leaving for r in result.iterations if r.is_pivot] == ["s2", "s1"]
    assert result.final_tableau.basis == ("x2", "x1")
    assert result.final_tableau.status is TableauStatus.OPTIMAL
    assert result.initial_tableau.basis == ("s1", "s2")
    assert result.validate() == []
    assert result.warnings == ()


def test_iteration_records_carry_tableaus_and_ratio_tests(textbook_lp):
    result = PrimalSimplexSolver().solve(textbook_lp)
    first = result.iterations[0]
    assert first.phase == 2
    assert first.tableau is not None and first.tableau.is_frozen
    assert first.ratio_test.row == 2
    assert first.objective == pytest.approx(9.0)
    assert "x1 enters" in first.summary()
    assert result.iterations[-1].status is TableauStatus.OPTIMAL


def test_recording_can_be_disabled(textbook_lp):
    result = PrimalSimplexSolver(SimplexConfig(record_tableaus=False)).solve(textbook_lp)
    assert all(record.tableau is None for record in result.iterations)
    assert result.final_tableau is not None


def test_phase_one_minimization(phase_one_lp):
    result = PrimalSimplexSolver().solve(phase_one_lp)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(9.0)
    assert result.solution["x1"] == pytest.approx(3.0)
    assert result.solution["x2"] == pytest.approx(1.0)
    assert any(record.phase == 1 for record in result.iterations)
    assert not any(name.startswith("a") for name in result.final_tableau.columns)


def test_equality_constraint():
    model = Model.from_dense("max", [1, 2], [[1, 1], [1, 0]], ["=", "<="], [3, 2])
    result = PrimalSimplexSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(6.0)
    assert dict(result.solution) == pytest.approx({"x1": 0.0, "x2": 3.0})


def test_infeasible_lp():
    model = Model.from_dense("max", [1], [[1], [1]], ["<=", ">="], [1, 2])
    result = PrimalSimplexSolver().solve(model)
    assert result.status is SolverStatus.INFEASIBLE
    assert result.objective is None
    assert dict(result.solution) == {}
    assert not result.success
    assert "infeasible" in result.message
    with pytest.raises(InfeasibleError):
        result.raise_for_status()


def test_unbounded_lp():
    model = Model.from_dense("max", [1, 1], [[1, -1]], ["<="], [1])
    result = PrimalSimplexSolver().solve(model)
    assert result.status is SolverStatus.UNBOUNDED
    assert result.objective is None
    assert "x2" in result.message
    with pytest.raises(UnboundedError):
        result.raise_for_status()


def test_redundant_equality_is_dropped():
    model = Model.from_dense("max", [1, 1], [[1, 1], [2, 2], [1, 0]], ["=", "=", "<="], [2, 4, 1])
    result = PrimalSimplexSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(2.0)
    assert any("redundant" in warning for warning in result.warnings)
    assert result.final_tableau.n_constraints == 2


def test_iteration_limit_keeps_the_phase_two_point(textbook_lp):
    result = PrimalSimplexSolver(SimplexConfig(max_iterations=1)).solve(textbook_lp)
    assert result.status is SolverStatus.MAX_ITER
    assert not result.proven_optimal
    assert result.success
    assert result.objective == pytest.approx(9.0)
    assert any("Iteration limit" in warning for warning in result.warnings)


def test_bland_rule_solves_beale_example(beale_lp):
    result = PrimalSimplexSolver(SimplexConfig(pivot_rule=PivotRule.BLAND)).solve(beale_lp)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(1.25)
    assert beale_lp.is_feasible(result.solution)


def test_dantzig_rule_on_beale_example_never_loops(beale_lp):
    result = PrimalSimplexSolver().solve(beale_lp)
    assert result.status in (SolverStatus.OPTIMAL, SolverStatus.NUMERICAL_ERROR)
    if result.status is SolverStatus.NUMERICAL_ERROR:
        assert "cycling" in result.message
        assert any("BLAND" in warning for warning in result.warnings)
    else:
        assert result.objective == pytest.approx(1.25)


def test_integer_restrictions_are_relaxed_with_a_warning(small_ip):
    result = PrimalSimplexSolver().solve(small_ip)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(21.0)
    assert dict(result.solution) == pytest.approx({"x1": 3.0, "x2": 1.5})
    assert "Integer restrictions on x1, x2 ignored" in result.warnings[0]


def test_non_positive_variable():
    model = Model.create(
        "min",
        [Variable("x1", 1.0, SignRestriction.NON_POSITIVE)],
        [Constraint("c1", {"x1": 1.0}, ">=", -5.0)],
    )
    result = PrimalSimplexSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(-5.0)
    assert result.value("x1") == pytest.approx(-5.0)


def test_unrestricted_variable():
    model = Model.create(
        "min",
        [Variable("x1", 1.0, SignRestriction.UNRESTRICTED, 0), Variable("x2", 1.0, index=1)],
        [Constraint("c1", {"x1": 1.0}, ">=", -3.0), Constraint("c2", {"x2": 1.0}, ">=", 1.0)],
    )
    result = PrimalSimplexSolver().solve(model)
    assert result.status is SolverStatus.OPTIMAL
    assert result.objective == pytest.approx(-2.0)
    assert dict(result.solution) == pytest.approx({"x1": -3.0, "x2": 1.0})
