"""Reliability of estimated attribute transitions.

For every attribute and compared time pair each profile falls into one of
four transition cells (``0->0``, ``0->1``, ``1->0``, ``1->1``). An
examinee's transition posterior is the posterior mass in each cell.

Metrics (one row per attribute and time pair):

* ``pt bis``: mean over cells with a non-degenerate base rate of
  ``sd(p_k) / sqrt(pi_k (1 - pi_k))``, the correlation between the true cell
  indicator and the cell posterior under a calibrated posterior.
* ``info gain``: ``1 - mean_i H(p_i) / H(pi)`` with ``H`` the entropy of the
  four-cell distribution.
* ``polychor``: tetrachoric correlation of the expected earlier by later
  mastery table; NaN when a cell is empty.
* ``ave max tr``: mean of each examinee's largest cell posterior.
* ``P(t>.6)`` .. ``P(t>.9)``: share of examinees whose largest cell
  posterior exceeds the threshold.
* ``wt pt bis`` and ``wt info gain``: per-cell point-biserial and binary
  information gain averaged with the model base rate of each cell as
  weight.

``pi`` is the estimated base rate (mean cell posterior); ``0 log 0 = 0``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from tdcm.constants import (
    PROB_EPSILON,
    RELIABILITY_THRESHOLDS,
    REPORT_DIGITS,
    TRANSITION_CELLS,
)
from tdcm.utils.correlation import tetrachoric

RELIABILITY_COLUMNS = (
    "pt bis",
    "info gain",
    "polychor",
    "ave max tr",
    *(f"P(t>{str(t)[1:]})" for t in RELIABILITY_THRESHOLDS),
    "wt pt bis",
    "wt info gain",
)


@dataclass(frozen=True, eq=False)
class TransitionReliability:
    """Transition reliability metrics and transition posteriors.

    Attributes
    ----------
    metrics : ndarray of shape (n_slices, 10)
        Metrics in the order of ``RELIABILITY_COLUMNS``.
    transition_posteriors : ndarray of shape (n_persons, 4, n_slices)
        Posterior mass of each transition cell.
    most_likely_transitions : ndarray of shape (n_persons, n_slices)
        Index into ``TRANSITION_CELLS`` of the most likely cell.
    """

    metrics: NDArray[np.float64]
    transition_posteriors: NDArray[np.float64]
    most_likely_transitions: NDArray[np.int_]

    @property
    def most_likely_labels(self) -> NDArray[np.str_]:
        return np.asarray(TRANSITION_CELLS)[self.most_likely_transitions]


def _plogp(p: NDArray[np.float64]) -> NDArray[np.float64]:
    p = np.asarray(p, dtype=np.float64)
    safe = np.where(p > 0, p, 1.0)
    return np.where(p > 0, p * np.log(safe), 0.0)


def _entropy(p: NDArray[np.float64], axis: int = -1) -> NDArray[np.float64]:
    return -np.sum(_plogp(p), axis=axis)


def _binary_entropy(p: NDArray[np.float64]) -> NDArray[np.float64]:
    return -(_plogp(p) + _plogp(1.0 - np.asarray(p)))


def transition_cell_index(
    patterns: NDArray[np.int_],
    attribute: int,
    earlier: int,
    later: int,
    n_attributes: int,
) -> NDArray[np.int_]:
    """Transition cell (0-3) of every profile for one attribute and time pair."""
    patterns = np.asarray(patterns, dtype=np.int_)
    e = patterns[:, earlier * n_attributes + attribute]
    l_ = patterns[:, later * n_attributes + attribute]
    return 2 * e + l_


def transition_posteriors(
    posterior: NDArray[np.float64],
    patterns: NDArray[np.int_],
    pairs: Sequence[tuple[int, int]],
    n_attributes: int,
) -> NDArray[np.float64]:
    """Posterior mass of every transition cell.

    Returns
    -------
    ndarray of shape (n_persons, 4, n_attributes * n_pairs)
    """
    posterior = np.asarray(posterior, dtype=np.float64)
    result = np.zeros((posterior.shape[0], 4, n_attributes * len(pairs)))

    for j in range(n_attributes):
        for p, (earlier, later) in enumerate(pairs):
            cell = transition_cell_index(patterns, j, earlier, later, n_attributes)
            onehot = np.eye(4)[cell]
            result[:, :, j * len(pairs) + p] = posterior @ onehot

    return result


def _slice_metrics(
    cell_post: NDArray[np.float64],
    true_rates: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Reliability metrics of one attribute and time pair."""
    n_persons = cell_post.shape[0]
    est_rates = cell_post.mean(axis=0)
    row = np.full(len(RELIABILITY_COLUMNS), np.nan)

    # Point-biserial per cell
    spread = est_rates * (1.0 - est_rates)
    present = spread > PROB_EPSILON
    pt_bis = np.full(4, np.nan)
    if n_persons > 1:
        sd = cell_post.std(axis=0)
        pt_bis[present] = np.minimum(sd[present] / np.sqrt(spread[present]), 1.0)
    if np.any(~np.isnan(pt_bis)):
        row[0] = np.nanmean(pt_bis)

    base_entropy = _entropy(est_rates)
    if base_entropy > PROB_EPSILON:
        row[1] = 1.0 - _entropy(cell_post, axis=1).mean() / base_entropy

    # Expected earlier x later mastery table
    row[2] = tetrachoric(n_persons * est_rates.reshape(2, 2))

    max_post = cell_post.max(axis=1)
    row[3] = max_post.mean()
    for t, threshold in enumerate(RELIABILITY_THRESHOLDS):
        row[4 + t] = np.mean(max_post > threshold)

    weights = np.asarray(true_rates, dtype=np.float64)
    valid = ~np.isnan(pt_bis) & (weights > 0)
    if np.any(valid):
        row[8] = np.sum(weights[valid] * pt_bis[valid]) / np.sum(weights[valid])

    binary_base = _binary_entropy(est_rates)
    gains = np.full(4, np.nan)
    has_entropy = binary_base > PROB_EPSILON
    gains[has_entropy] = 1.0 - (
        _binary_entropy(cell_post[:, has_entropy]).mean(axis=0) / binary_base[has_entropy]
    )
    valid = has_entropy & (weights > 0)
    if np.any(valid):
        row[9] = np.sum(weights[valid] * gains[valid]) / np.sum(weights[valid])

    return row


def transition_reliability(
    posterior: NDArray[np.float64],
    patterns: NDArray[np.int_],
    base_rates: NDArray[np.float64],
    pairs: Sequence[tuple[int, int]],
    n_attributes: int,
    digits: int = REPORT_DIGITS,
) -> TransitionReliability:
    """Reliability of the transitions of every attribute and time pair.

    Parameters
    ----------
    posterior : ndarray of shape (n_persons, n_profiles)
        Posterior profile probabilities.
    patterns : ndarray of shape (n_profiles, n_attributes * T)
        Attribute profiles.
    base_rates : ndarray of shape (n_profiles,)
        Model base rates of the profiles (the "true" base rates).
    pairs : sequence of (int, int)
        Compared time pairs (0-based).
    n_attributes : int
        Attributes per time point.
    digits : int
        Rounding of the metrics.

    Returns
    -------
    TransitionReliability
    """
    posts = transition_posteriors(posterior, patterns, pairs, n_attributes)
    base_rates = np.asarray(base_rates, dtype=np.float64)
    metrics = np.full((posts.shape[2], len(RELIABILITY_COLUMNS)), np.nan)

    for j in range(n_attributes):
        for p, (earlier, later) in enumerate(pairs):
            k = j * len(pairs) + p
            cell = transition_cell_index(patterns, j, earlier, later, n_attributes)
            true_rates = np.bincount(cell, weights=base_rates, minlength=4)
            metrics[k] = _slice_metrics(posts[:, :, k], true_rates)

    return TransitionReliability(
        metrics=np.round(metrics, digits),
        transition_posteriors=np.round(posts, digits),
        most_likely_transitions=posts.argmax(axis=1).astype(np.int_),
    )
