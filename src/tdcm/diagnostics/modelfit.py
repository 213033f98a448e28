"""Absolute model fit from observed and model-implied item pair statistics.

For every pair of items the observed correlation and 2x2 response table are
compared with their expectations under the fitted model, computed from each
examinee's posterior profile distribution.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from tdcm.constants import PROB_EPSILON

if TYPE_CHECKING:
    import pandas as pd

    from tdcm.results.fit_result import GDINAFitResult


@dataclass
class ModelFitReport:
    """Model fit statistics.

    Attributes
    ----------
    statistics : dict
        ``MADcor``, ``SRMSR``, ``MADRESIDCOV`` (x100), ``MX2`` and the
        maximum item-pair ``X2`` with its p-value and Holm-adjusted p-value.
    item_pairs : pandas.DataFrame
        One row per item pair: observed and expected correlation, their
        difference, ``X2`` and p-value.
    item_rmsea : ndarray
        Item RMSEA per item-parameter block and item.
    mean_rmsea : float
        Mean item RMSEA.
    log_likelihood, deviance, aic, bic, caic : float
        Likelihood and information criteria.
    n_parameters : int
        Number of estimated parameters.
    """

    statistics: dict[str, float]
    item_pairs: pd.DataFrame
    item_rmsea: NDArray[np.float64]
    mean_rmsea: float
    log_likelihood: float
    deviance: float
    aic: float
    bic: float
    caic: float
    n_parameters: int

    def to_dict(self) -> dict[str, float]:
        return {
            **self.statistics,
            "mean_rmsea": self.mean_rmsea,
            "loglike": self.log_likelihood,
            "deviance": self.deviance,
            "AIC": self.aic,
            "BIC": self.bic,
            "CAIC": self.caic,
            "Npars": self.n_parameters,
        }


def _pair_expectations(
    fit: GDINAFitResult,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Expected item means per person and expected joint success per pair.

    Returns
    -------
    means : ndarray of shape (n_persons, n_items)
    joint : ndarray of shape (n_persons, n_items, n_items)
    """
    model = fit.model
    probs = model.probability(fit.attribute_patterns)
    n_persons, n_items = fit.responses.shape

    means = np.empty((n_persons, n_items))
    joint = np.empty((n_persons, n_items, n_items))

    blocks = (
        [np.arange(n_persons)]
        if model.group_invariance
        else [np.where(fit.groups == g)[0] for g in range(model.n_groups)]
    )
    for block, rows in enumerate(blocks):
        post = fit.posterior[rows]
        p = probs[block]
        means[rows] = post @ p.T
        for j in range(n_items):
            joint[rows, j] = post @ (p[j][None, :] * p).T

    return means, joint


def model_fit(fit: GDINAFitResult) -> ModelFitReport:
    """Compute the model fit report of a fitted G-DINA model.

    Parameters
    ----------
    fit : GDINAFitResult
        Fitted model.

    Returns
    -------
    ModelFitReport
    """
    import pandas as pd

    from tdcm.utils.stats import holm_adjust

    responses = fit.responses
    valid = responses >= 0
    x = np.where(valid, responses, 0).astype(np.float64)
    means, joint = _pair_expectations(fit)
    n_items = responses.shape[1]

    records = []
    for j, k in combinations(range(n_items), 2):
        both = valid[:, j] & valid[:, k]
        n = int(both.sum())
        record = {
            "item1": fit.model.item_names[j],
            "item2": fit.model.item_names[k],
            "obs": np.nan,
            "exp": np.nan,
            "diff": np.nan,
            "residcov": np.nan,
            "X2": np.nan,
            "p": np.nan,
        }
        if n < 2:
            records.append(record)
            continue

        xj, xk = x[both, j], x[both, k]
        mj, mk = means[both, j].mean(), means[both, k].mean()
        mjk = joint[both, j, k].mean()

        with np.errstate(divide="ignore", invalid="ignore"):
            obs_cov = np.mean(xj * xk) - xj.mean() * xk.mean()
            obs_cor = obs_cov / np.sqrt(xj.var() * xk.var())
            exp_cov = mjk - mj * mk
            exp_cor = exp_cov / np.sqrt(mj * (1 - mj) * mk * (1 - mk))

        observed = np.array(
            [
                [np.sum((1 - xj) * (1 - xk)), np.sum((1 - xj) * xk)],
                [np.sum(xj * (1 - xk)), np.sum(xj * xk)],
            ]
        )
        expected = n * np.array(
            [[1 - mj - mk + mjk, mk - mjk], [mj - mjk, mjk]]
        )
        expected = np.maximum(expected, PROB_EPSILON)
        x2 = float(np.sum((observed - expected) ** 2 / expected))

        record.update(
            obs=float(obs_cor),
            exp=float(exp_cor),
            diff=float(obs_cor - exp_cor),
            residcov=float(obs_cov - exp_cov),
            X2=x2,
            p=float(stats.chi2.sf(x2, df=1)),
        )
        records.append(record)

    item_pairs = pd.DataFrame(records)
    diffs = item_pairs["diff"].to_numpy(dtype=np.float64)
    x2 = item_pairs["X2"].to_numpy(dtype=np.float64)
    p = item_pairs["p"].to_numpy(dtype=np.float64)

    statistics = {
        "MADcor": float(np.nanmean(np.abs(diffs))) if len(diffs) else np.nan,
        "SRMSR": float(np.sqrt(np.nanmean(diffs**2))) if len(diffs) else np.nan,
        "MADRESIDCOV": float(
            100 * np.nanmean(np.abs(item_pairs["residcov"].to_numpy(dtype=np.float64)))
        )
        if len(diffs)
        else np.nan,
        "MX2": float(np.nanmean(x2)) if len(x2) else np.nan,
        "maxX2": np.nan,
        "p_maxX2": np.nan,
        "p_holm_maxX2": np.nan,
    }
    if len(x2) and np.any(~np.isnan(x2)):
        worst = int(np.nanargmax(x2))
        statistics["maxX2"] = float(x2[worst])
        statistics["p_maxX2"] = float(p[worst])
        statistics["p_holm_maxX2"] = float(holm_adjust(p)[worst])
        item_pairs["p_holm"] = holm_adjust(p)

    return ModelFitReport(
        statistics=statistics,
        item_pairs=item_pairs,
        item_rmsea=fit.item_rmsea,
        mean_rmsea=fit.mean_rmsea,
        log_likelihood=fit.log_likelihood,
        deviance=fit.deviance,
        aic=fit.aic,
        bic=fit.bic,
        caic=fit.caic,
        n_parameters=fit.n_parameters,
    )
