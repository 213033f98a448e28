"""Marginal attribute posteriors and mastery classification."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from tdcm.constants import REPORT_DIGITS


def marginal_posteriors(
    posterior: NDArray[np.float64],
    patterns: NDArray[np.int_],
) -> NDArray[np.float64]:
    """Posterior probability of mastering each attribute at each time point.

    Parameters
    ----------
    posterior : ndarray of shape (n_persons, n_profiles)
        Posterior profile probabilities.
    patterns : ndarray of shape (n_profiles, n_attributes * T)
        Attribute profiles matching the posterior columns.

    Returns
    -------
    ndarray of shape (n_persons, n_attributes * T)
        Unrounded marginal mastery probabilities.
    """
    posterior = np.asarray(posterior, dtype=np.float64)
    patterns = np.asarray(patterns, dtype=np.float64)
    if posterior.shape[1] != patterns.shape[0]:
        raise ValueError(
            f"posterior has {posterior.shape[1]} columns but there are "
            f"{patterns.shape[0]} attribute profiles"
        )
    return posterior @ patterns


def attribute_posteriors(
    posterior: NDArray[np.float64],
    patterns: NDArray[np.int_],
    digits: int = REPORT_DIGITS,
) -> NDArray[np.float64]:
    """Marginal mastery probabilities rounded for reporting."""
    return np.round(np.clip(marginal_posteriors(posterior, patterns), 0.0, 1.0), digits)


def classify(
    probabilities: NDArray[np.float64],
    threshold: float = 0.5,
) -> NDArray[np.int_]:
    """Classify mastery from posterior probabilities.

    An examinee masters an attribute when the probability is strictly
    greater than ``threshold``; a probability equal to the threshold is
    classified as non-mastery.

    Parameters
    ----------
    probabilities : ndarray
        Mastery probabilities.
    threshold : float, default=0.5
        Cut point in the open interval (0, 1).

    Returns
    -------
    ndarray of int
        0/1 classifications with the shape of ``probabilities``.
    """
    if not 0.0 < threshold < 1.0:
        raise ValueError(f"classification_threshold must lie in (0, 1), got {threshold}")
    return (np.asarray(probabilities) > threshold).astype(np.int_)
