"""Pytest configuration and shared fixtures for lpengine tests.

This module provides:
- A deterministic numpy RNG fixture
- Small reference models used across the simplex and integer tests
"""

import os

import numpy as np
import pytest

from lpengine.model import Model


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture
def textbook_lp() -> Model:
    """max 3x1 + 2x2; x1 + x2 <= 4; 2x1 + x2 <= 6 (optimum x = (2, 2), z = 10)."""
    return Model.from_dense("max", [3, 2], [[1, 1], [2, 1]], ["<=", "<="], [4, 6], name="textbook")


@pytest.fixture
def knapsack_model() -> Model:
    """Six-item 0-1 knapsack with capacity 40 (optimum 15, LP bound 15.4)."""
    return Model.from_dense(
        "max",
        [2, 3, 3, 5, 2, 4],
        [[11, 8, 6, 14, 10, 10]],
        ["<="],
        [40],
        restrictions=["bin"] * 6,
        name="knapsack",
    )


@pytest.fixture
def small_ip() -> Model:
    """max 5x1 + 4x2; 6x1 + 4x2 <= 24; x1 + 2x2 <= 6; integer (optimum 20)."""
    return Model.from_dense(
        "max", [5, 4], [[6, 4], [1, 2]], ["<=", "<="], [24, 6], restrictions=["int", "int"], name="small_ip"
    )


@pytest.fixture
def beale_lp() -> Model:
    """Beale's degenerate LP, which cycles under the textbook Dantzig rule (optimum 1.25)."""
    return Model.from_dense(
        "max",
        [0.75, -20, 0.5, -6],
        [[0.25, -8, -1, 9], [0.5, -12, -0.5, 3], [0, 0, 1, 0]],
        ["<=", "<=", "<="],
        [0, 0, 1],
        name="beale",
    )


@pytest.fixture
def phase_one_lp() -> Model:
    """min 2x1 + 3x2; x1 + x2 >= 4; x1 + 3x2 >= 6 (optimum x = (3, 1), z = 9)."""
    return Model.from_dense("min", [2, 3], [[1, 1], [1, 3]], [">=", ">="], [4, 6], name="phase_one")
