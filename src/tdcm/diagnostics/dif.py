"""Wald tests for differential item functioning in G-DINA models.

Works on a multiple-group fit with group-specific item parameters. For each
item the coefficients of consecutive groups are contrasted and tested jointly
with a Wald statistic on ``p (G - 1)`` degrees of freedom, where ``p`` is the
number of item coefficients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from tdcm.utils.stats import holm_adjust

if TYPE_CHECKING:
    import pandas as pd

    from tdcm.results.fit_result import GDINAFitResult


@dataclass
class DifResult:
    """Wald DIF statistics.

    Attributes
    ----------
    statistics : pandas.DataFrame
        One row per item: ``X2``, ``df``, ``p``, Holm-adjusted ``p_holm``,
        unsigned area ``UA`` (two groups only) and ``wRMSD``.
    coef : pandas.DataFrame
        One row per item coefficient with estimates and standard errors per
        group.
    delta : list of ndarray
        Coefficients of every item, shape (n_groups, n_params).
    item_probabilities : list of list of ndarray
        ``item_probabilities[g][j]`` holds the response probabilities of the
        latent groups of item ``j`` in group ``g``.
    """

    statistics: pd.DataFrame
    coef: pd.DataFrame
    delta: list[NDArray[np.float64]]
    item_probabilities: list[list[NDArray[np.float64]]]


def _latent_group_weights(fit: GDINAFitResult, item_idx: int) -> NDArray[np.float64]:
    """Pooled probability of every latent group of an item."""
    model = fit.model
    index = model.latent_group_index(fit.attribute_patterns)[item_idx]
    pooled = fit.posterior.mean(axis=0)
    n_lat = 2 ** len(model.required_attributes(item_idx))
    return np.bincount(index, weights=pooled, minlength=n_lat)


def wald_statistic(
    estimates: NDArray[np.float64],
    covariance: NDArray[np.float64],
    contrast: NDArray[np.float64],
) -> float:
    """Wald statistic ``(C b)' (C V C')^+ (C b)``."""
    diff = contrast @ estimates
    middle = contrast @ covariance @ contrast.T
    return float(diff @ np.linalg.pinv(middle) @ diff)


def gdina_dif(fit: GDINAFitResult) -> DifResult:
    """Test every item for differential functioning across groups.

    Parameters
    ----------
    fit : GDINAFitResult
        Multiple-group fit with group-specific item parameters.

    Returns
    -------
    DifResult

    Raises
    ------
    ValueError
        If the fit has a single group or shared item parameters.
    """
    import pandas as pd

    model = fit.model
    if model.n_groups < 2 or model.group_invariance:
        raise ValueError(
            "DIF tests need a multiple-group fit with group-specific item parameters"
        )

    n_groups = model.n_groups
    layout = model.layout
    delta = model.delta
    probs = model.latent_group_probabilities()
    group_weights = np.array([np.mean(fit.groups == g) for g in range(n_groups)])

    stat_records = []
    coef_records = []
    deltas = []

    for j in range(model.n_items):
        slices = [model.block_slice(g, j) for g in range(n_groups)]
        rows = np.concatenate([np.arange(s.start, s.stop) for s in slices])
        n_par = slices[0].stop - slices[0].start

        estimates = delta[rows]
        covariance = fit.covariance[np.ix_(rows, rows)]
        contrast = np.zeros((n_par * (n_groups - 1), n_par * n_groups))
        for g in range(n_groups - 1):
            block = slice(g * n_par, (g + 1) * n_par)
            contrast[block, g * n_par : (g + 1) * n_par] = np.eye(n_par)
            contrast[block, (g + 1) * n_par : (g + 2) * n_par] = -np.eye(n_par)

        x2 = wald_statistic(estimates, covariance, contrast)
        df = n_par * (n_groups - 1)

        weights = _latent_group_weights(fit, j)
        item_probs = np.vstack([probs[g][j] for g in range(n_groups)])
        mean_prob = group_weights @ item_probs
        wrmsd = np.sqrt(
            np.sum(group_weights[:, None] * weights[None, :] * (item_probs - mean_prob) ** 2)
        )
        ua = (
            float(np.sum(weights * np.abs(item_probs[0] - item_probs[1])))
            if n_groups == 2
            else np.nan
        )

        stat_records.append(
            {
                "item": model.item_names[j],
                "X2": x2,
                "df": df,
                "p": float(stats.chi2.sf(x2, df)),
                "UA": ua,
                "wRMSD": float(wrmsd),
            }
        )

        deltas.append(estimates.reshape(n_groups, n_par))
        for k, row in enumerate(range(slices[0].start, slices[0].stop)):
            record = {
                "item": model.item_names[j],
                "item_number": j + 1,
                "parameter": layout.label[row],
                "type": layout.parameter_type(row),
                "rule": model.rules[j],
                "attributes": layout.attributes[row],
            }
            for g, s in enumerate(slices):
                label = fit.group_labels[g]
                record[f"est_{label}"] = float(delta[s.start + k])
                record[f"se_{label}"] = float(fit.standard_errors[s.start + k])
            coef_records.append(record)

    statistics = pd.DataFrame(stat_records)
    statistics["p_holm"] = holm_adjust(statistics["p"].to_numpy(dtype=np.float64))

    return DifResult(
        statistics=statistics,
        coef=pd.DataFrame(coef_records),
        delta=deltas,
        item_probabilities=probs,
    )
