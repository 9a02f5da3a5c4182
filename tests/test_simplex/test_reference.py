import pytest

pytest.importorskip("scipy")

from lpengine.core import SolverStatus  # noqa: E402
from lpengine.integer import BranchAndBoundSolver  # noqa: E402
from lpengine.model import Model  # noqa: E402
from lpengine.simplex import PrimalSimplexSolver, reference_solve  # noqa: E402


def test_reference_matches_lp_optimum(textbook_lp, phase_one_lp):
    for model in (textbook_lp, phase_one_lp):
        ours = PrimalSimplexSolver().solve(model)
        ref = reference_solve(model)
        assert ref.status is SolverStatus.OPTIMAL
        assert ref.algorithm == "scipy_highs"
        assert ours.objective == pytest.approx(ref.objective, abs=1e-7)


def test_reference_integer_and_relaxation(small_ip):
    assert reference_solve(small_ip).objective == pytest.approx(20.0)
    assert reference_solve(small_ip, integer=False).objective == pytest.approx(21.0)


def test_reference_statuses():
    infeasible = Model.from_dense("max", [1], [[1], [1]], ["<=", ">="], [1, 2])
    unbounded = Model.from_dense("max", [1, 1], [[1, -1]], ["<="], [1])
    assert reference_solve(infeasible).status is SolverStatus.INFEASIBLE
    assert reference_solve(unbounded).status is SolverStatus.UNBOUNDED


def test_random_lps_agree_with_reference(rng):
    for _ in range(10):
        n, m = 4, 3
        c = rng.integers(1, 10, size=n)
        a = rng.integers(1, 10, size=(m, n))
        b = rng.integers(10, 50, size=m)
        model = Model.from_dense("max", c.tolist(), a.tolist(), ["<="] * m, b.tolist())
        ours = PrimalSimplexSolver().solve(model)
        ref = reference_solve(model)
        assert ours.objective == pytest.approx(ref.objective, rel=1e-7, abs=1e-7)


def test_random_integer_programs_agree_with_reference(rng):
    for _ in range(5):
        n, m = 3, 2
        c = rng.integers(1, 10, size=n)
        a = rng.integers(1, 10, size=(m, n))
        b = rng.integers(10, 30, size=m)
        model = Model.from_dense(
            "max", c.tolist(), a.tolist(), ["<="] * m, b.tolist(), restrictions=["int"] * n
        )
        ours = BranchAndBoundSolver().solve(model)
        ref = reference_solve(model)
        assert ours.objective == pytest.approx(ref.objective, abs=1e-6)
