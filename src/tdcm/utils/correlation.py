"""Tetrachoric correlations for binary attribute indicators."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats
from scipy.optimize import brentq

from tdcm.constants import PROB_EPSILON

RHO_BOUND = 0.9999


def tetrachoric(table: NDArray[np.float64]) -> float:
    """Tetrachoric correlation of a 2x2 table.

    Parameters
    ----------
    table : array-like of shape (2, 2)
        Counts or proportions; rows are the first variable (0, 1) and
        columns the second.

    Returns
    -------
    float
        Correlation of the underlying bivariate normal variables, or NaN
        when a cell is empty.
    """
    table = np.asarray(table, dtype=np.float64)
    if table.shape != (2, 2):
        raise ValueError(f"table must be 2x2, got shape {table.shape}")

    total = table.sum()
    if total <= 0 or np.any(table / total < PROB_EPSILON):
        return np.nan

    props = table / total
    tau_row = stats.norm.ppf(props[0].sum())
    tau_col = stats.norm.ppf(props[:, 0].sum())
    p00 = props[0, 0]

    def gap(rho: float) -> float:
        cov = [[1.0, rho], [rho, 1.0]]
        return float(
            stats.multivariate_normal.cdf([tau_row, tau_col], mean=[0.0, 0.0], cov=cov)
            - p00
        )

    low, high = gap(-RHO_BOUND), gap(RHO_BOUND)
    if low >= 0:
        return -RHO_BOUND
    if high <= 0:
        return RHO_BOUND

    return float(brentq(gap, -RHO_BOUND, RHO_BOUND, xtol=1e-8))


def tetrachoric_matrix(
    base_rates: NDArray[np.float64],
    patterns: NDArray[np.int_],
) -> NDArray[np.float64]:
    """Tetrachoric correlations between all attribute columns.

    The 2x2 table of two columns is the profile base-rate mass in each
    combination of their indicators.

    Parameters
    ----------
    base_rates : ndarray of shape (n_profiles,)
        Profile probabilities.
    patterns : ndarray of shape (n_profiles, n_columns)
        Attribute profiles.

    Returns
    -------
    ndarray of shape (n_columns, n_columns)
        Symmetric correlation matrix with a unit diagonal. Pairs with an
        empty cell are NaN.
    """
    base_rates = np.asarray(base_rates, dtype=np.float64)
    patterns = np.asarray(patterns, dtype=np.int_)
    n_cols = patterns.shape[1]
    corr = np.eye(n_cols)

    for a in range(n_cols):
        for b in range(a + 1, n_cols):
            table = np.array(
                [
                    [
                        base_rates[(patterns[:, a] == x) & (patterns[:, b] == y)].sum()
                        for y in (0, 1)
                    ]
                    for x in (0, 1)
                ]
            )
            corr[a, b] = corr[b, a] = tetrachoric(table)

    return corr
