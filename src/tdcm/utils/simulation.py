"""Data simulation utilities for longitudinal diagnostic models."""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import NDArray

from tdcm.qmatrix import validate_q_matrix


def _per_attribute(value: float | NDArray, n_attributes: int, name: str) -> NDArray[np.float64]:
    values = np.broadcast_to(np.asarray(value, dtype=np.float64), (n_attributes,)).copy()
    if np.any((values < 0) | (values > 1)):
        raise ValueError(f"{name} must lie in [0, 1]")
    return values


def simulate_tdcm(
    q_matrix: NDArray[np.int_],
    num_time_points: int = 2,
    n_persons: int = 500,
    initial_mastery: float | NDArray[np.float64] = 0.4,
    gain: float | NDArray[np.float64] = 0.5,
    loss: float | NDArray[np.float64] = 0.05,
    guess: float = 0.15,
    slip: float = 0.1,
    rule: Literal["DINA", "ACDM"] = "ACDM",
    seed: int | None = None,
    return_profiles: bool = False,
) -> NDArray[np.int_] | tuple[NDArray[np.int_], NDArray[np.int_]]:
    """Simulate responses from a transition diagnostic model.

    Attribute mastery follows a first-order Markov chain over time points:
    a non-master gains an attribute with probability ``gain`` and a master
    loses it with probability ``loss``. The same items are administered at
    every time point.

    Parameters
    ----------
    q_matrix : ndarray of shape (n_items, n_attributes)
        Q-matrix of one occasion.
    num_time_points : int, default=2
        Number of time points.
    n_persons : int, default=500
        Number of examinees.
    initial_mastery : float or ndarray, default=0.4
        Mastery probability of each attribute at time 1.
    gain : float or ndarray, default=0.5
        Probability of a 0->1 transition between consecutive time points.
    loss : float or ndarray, default=0.05
        Probability of a 1->0 transition between consecutive time points.
    guess : float, default=0.15
        Success probability of examinees mastering no required attribute.
    slip : float, default=0.1
        Failure probability of examinees mastering every required attribute.
    rule : {'DINA', 'ACDM'}, default='ACDM'
        'DINA' gives ``1 - slip`` only when all required attributes are
        mastered; 'ACDM' raises the success probability linearly with the
        share of required attributes mastered.
    seed : int, optional
        Random seed for reproducibility.
    return_profiles : bool, default=False
        Also return the simulated attribute profiles.

    Returns
    -------
    responses : ndarray of shape (n_persons, T * n_items)
        Simulated responses, time points in consecutive column blocks.
    profiles : ndarray of shape (n_persons, T * n_attributes)
        Attribute profiles, returned when ``return_profiles`` is True.

    Examples
    --------
    >>> q = np.array([[1, 0], [0, 1], [1, 1]])
    >>> responses = simulate_tdcm(q, num_time_points=2, n_persons=100, seed=42)
    >>> responses.shape
    (100, 6)
    """
    q = validate_q_matrix(q_matrix)
    if num_time_points < 1:
        raise ValueError(f"num_time_points must be at least 1, got {num_time_points}")
    if n_persons < 1:
        raise ValueError(f"n_persons must be at least 1, got {n_persons}")
    if not 0 <= guess < 1 - slip <= 1:
        raise ValueError("guess and slip must satisfy 0 <= guess < 1 - slip")
    if rule not in ("DINA", "ACDM"):
        raise ValueError(f"Unknown rule: {rule!r}. Choose from: DINA, ACDM")

    rng = np.random.default_rng(seed)
    n_items, n_attributes = q.shape

    start = _per_attribute(initial_mastery, n_attributes, "initial_mastery")
    p_gain = _per_attribute(gain, n_attributes, "gain")
    p_loss = _per_attribute(loss, n_attributes, "loss")

    profiles = np.empty((n_persons, num_time_points * n_attributes), dtype=np.int_)
    state = (rng.random((n_persons, n_attributes)) < start).astype(np.int_)
    profiles[:, :n_attributes] = state

    for t in range(1, num_time_points):
        u = rng.random((n_persons, n_attributes))
        state = np.where(state == 1, u >= p_loss, u < p_gain).astype(np.int_)
        profiles[:, t * n_attributes : (t + 1) * n_attributes] = state

    n_required = q.sum(axis=1)
    responses = np.empty((n_persons, num_time_points * n_items), dtype=np.int_)

    for t in range(num_time_points):
        alpha = profiles[:, t * n_attributes : (t + 1) * n_attributes]
        mastered = alpha @ q.T

        if rule == "DINA":
            share = (mastered == n_required[None, :]).astype(np.float64)
        else:
            share = mastered / n_required[None, :]

        prob = guess + (1 - slip - guess) * share
        responses[:, t * n_items : (t + 1) * n_items] = (
            rng.random((n_persons, n_items)) < prob
        ).astype(np.int_)

    if return_profiles:
        return responses, profiles
    return responses
