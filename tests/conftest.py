"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from tdcm import estimate_tdcm, simulate_tdcm


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(42)


@pytest.fixture
def q_matrix():
    """Per-occasion Q-matrix (5 items, 2 attributes)."""
    return np.array(
        [
            [1, 0],
            [0, 1],
            [1, 1],
            [1, 0],
            [0, 1],
        ]
    )


@pytest.fixture
def q_matrix_four():
    """Per-occasion Q-matrix (8 items, 4 attributes)."""
    return np.array(
        [
            [1, 0, 0, 0],
            [0, 1, 0, 0],
            [0, 0, 1, 0],
            [0, 0, 0, 1],
            [1, 1, 0, 0],
            [0, 0, 1, 1],
            [1, 0, 1, 0],
            [0, 1, 0, 1],
        ]
    )


@pytest.fixture(scope="session")
def tdcm_data():
    """Two time points, two attributes, no forgetting of attribute 2."""
    q = np.array([[1, 0], [0, 1], [1, 1], [1, 0], [0, 1]])
    responses, profiles = simulate_tdcm(
        q,
        num_time_points=2,
        n_persons=400,
        initial_mastery=[0.4, 0.3],
        gain=[0.5, 0.4],
        loss=[0.1, 0.0],
        seed=7,
        return_profiles=True,
    )
    return {
        "responses": responses,
        "profiles": profiles,
        "q_matrix": q,
        "n_persons": 400,
        "n_items": 5,
        "n_attrs": 2,
    }


@pytest.fixture(scope="session")
def invariant_model(tdcm_data):
    """LCDM with item parameters tied over time."""
    return estimate_tdcm(
        tdcm_data["responses"],
        tdcm_data["q_matrix"],
        num_time_points=2,
        invariance=True,
        max_iter=1000,
        tol=1e-4,
    )


@pytest.fixture(scope="session")
def free_model(tdcm_data):
    """LCDM with time-specific item parameters."""
    return estimate_tdcm(
        tdcm_data["responses"],
        tdcm_data["q_matrix"],
        num_time_points=2,
        invariance=False,
        max_iter=1000,
        tol=1e-4,
    )


@pytest.fixture(scope="session")
def four_attribute_data():
    """Two time points, four attributes (8 items per occasion)."""
    q = np.array(
        [
            [1, 0, 0, 0],
            [0, 1, 0, 0],
            [0, 0, 1, 0],
            [0, 0, 0, 1],
            [1, 1, 0, 0],
            [0, 0, 1, 1],
            [1, 0, 1, 0],
            [0, 1, 0, 1],
        ]
    )
    responses = simulate_tdcm(q, num_time_points=2, n_persons=500, seed=11)
    return {"responses": responses, "q_matrix": q}


@pytest.fixture(scope="session")
def four_attribute_model(four_attribute_data):
    """CRUM fit of the four-attribute data."""
    return estimate_tdcm(
        four_attribute_data["responses"],
        four_attribute_data["q_matrix"],
        num_time_points=2,
        rule="CRUM",
        max_iter=200,
        tol=1e-4,
    )


@pytest.fixture(scope="session")
def twenty_item_model():
    """Invariant LCDM fit with four attributes and ten items per occasion."""
    q = np.array(
        [
            [1, 0, 0, 0],
            [0, 1, 0, 0],
            [0, 0, 1, 0],
            [0, 0, 0, 1],
            [1, 1, 0, 0],
            [0, 0, 1, 1],
            [1, 0, 1, 0],
            [0, 1, 0, 1],
            [1, 0, 0, 0],
            [0, 0, 1, 0],
        ]
    )
    responses = simulate_tdcm(q, num_time_points=2, n_persons=600, seed=5)
    return estimate_tdcm(responses, q, num_time_points=2, rule="LCDM", max_iter=300)
