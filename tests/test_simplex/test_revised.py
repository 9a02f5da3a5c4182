import numpy as np
import pytest

from lpengine.config import PivotRule, SimplexConfig
from lpengine.core import SolverStatus
from lpengine.model import Model
from lpengine.simplex import PrimalSimplexSolver, RevisedSimplexSolver


def _pivot_path(result):
    return [(r.entering, r.leaving) for r in result.iterations if r.is_pivot]


@pytest.mark.parametrize("fixture", ["textbook_lp", "phase_one_lp", "small_ip"])
def test_revised_matches_primal(fixture, request):
    model = request.getfixturevalue(fixture)
    primal = PrimalSimplexSolver().solve(model)
    revised = RevisedSimplexSolver().solve(model)
    assert revised.status is primal.status is SolverStatus.OPTIMAL
    assert revised.objective == pytest.approx(primal.objective)
    assert dict(revised.solution) == pytest.approx(dict(primal.solution))
    assert revised.pivot_count == primal.pivot_count
    assert _pivot_path(revised) == _pivot_path(primal)
    assert revised.algorithm == "revised_simplex"


def test_revised_with_bland_on_beale(beale_lp):
    config = SimplexConfig(pivot_rule=PivotRule.BLAND)
    primal = PrimalSimplexSolver(config).solve(beale_lp)
    revised = RevisedSimplexSolver(config).solve(beale_lp)
    assert revised.objective == pytest.approx(1.25)
    assert _pivot_path(revised) == _pivot_path(primal)


def test_revised_records_price_out_details(textbook_lp):
    result = RevisedSimplexSolver().solve(textbook_lp)
    first = result.iterations[0]
    assert set(first.details) == {
        "reduced_costs", "prices", "pivot_column", "basis_before", "basic_values", "basis_after",
    }
    assert first.details["basis_before"] == ("s1", "s2")
    assert first.details["basis_after"] == ("s1", "x1")
    assert first.details["reduced_costs"] == pytest.approx({"x1": -3.0, "x2": -2.0})
    assert first.details["pivot_column"] == pytest.approx((1.0, 2.0))


def test_primal_records_have_no_details(textbook_lp):
    result = PrimalSimplexSolver().solve(textbook_lp)
    assert all(dict(record.details) == {} for record in result.iterations)


def test_revised_final_tableau_matches_primal(textbook_lp):
    primal = PrimalSimplexSolver().solve(textbook_lp)
    revised = RevisedSimplexSolver().solve(textbook_lp)
    assert revised.final_tableau.basis == primal.final_tableau.basis
    np.testing.assert_allclose(revised.final_tableau.matrix, primal.final_tableau.matrix, atol=1e-9)


def test_revised_detects_infeasible_and_unbounded():
    infeasible = Model.from_dense("max", [1], [[1], [1]], ["<=", ">="], [1, 2])
    unbounded = Model.from_dense("max", [1, 1], [[1, -1]], ["<="], [1])
    assert RevisedSimplexSolver().solve(infeasible).status is SolverStatus.INFEASIBLE
    assert RevisedSimplexSolver().solve(unbounded).status is SolverStatus.UNBOUNDED


def test_frequent_refactorization_gives_same_answer(phase_one_lp):
    result = RevisedSimplexSolver(SimplexConfig(refactor_every=1)).solve(phase_one_lp)
    assert result.objective == pytest.approx(9.0)
