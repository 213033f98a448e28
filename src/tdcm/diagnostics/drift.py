"""Item parameter drift across the time points of a TDCM.

The responses of every occasion are stacked into one long data set in which
the time point plays the role of a group. A multiple-group G-DINA model with
time-specific item parameters is fitted and each item is tested for
differential functioning across time with a Wald test.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from tdcm._core import emit
from tdcm._fitting import run_gdina
from tdcm.diagnostics.dif import gdina_dif
from tdcm.utils.data import reshape_to_long

if TYPE_CHECKING:
    import pandas as pd

    from tdcm.results.fit_result import GDINAFitResult
    from tdcm.results.tdcm_result import TDCMFitResult


@dataclass
class IpdResult:
    """Result of item parameter drift analysis.

    Attributes
    ----------
    statistics : pandas.DataFrame
        Per-item Wald statistic ``X2``, degrees of freedom, p-value,
        Holm-adjusted p-value, unsigned area ``UA`` (two time points only)
        and ``wRMSD``.
    coef : pandas.DataFrame
        Item coefficients with estimates and standard errors per time point
        (``est_Time1``, ``se_Time1``, ...).
    estimates : list of ndarray
        Coefficients of every item, shape (num_time_points, n_params).
    item_probabilities : dict
        ``item_probabilities["Time t"][j]`` holds the latent-group response
        probabilities of item ``j`` at time ``t``.
    fit : GDINAFitResult
        The multiple-group refit.
    """

    statistics: pd.DataFrame
    coef: pd.DataFrame
    estimates: list[NDArray[np.float64]]
    item_probabilities: dict[str, list[NDArray[np.float64]]]
    fit: GDINAFitResult

    @property
    def p_values(self) -> NDArray[np.float64]:
        return self.statistics["p_holm"].to_numpy(dtype=np.float64)

    def flagged_items(self, alpha: float = 0.05) -> list[int]:
        """Items (numbered from 1) with a Holm-adjusted p-value below ``alpha``."""
        return [int(j) + 1 for j in np.where(self.p_values < alpha)[0]]


def assess_drift(
    model: TDCMFitResult,
    max_iter: int = 1000,
    tol: float = 1e-4,
) -> IpdResult:
    """Test the items of a single-group TDCM for drift over time.

    Parameters
    ----------
    model : TDCMFitResult
        Model from :func:`estimate_tdcm` with a single Q-matrix.
    max_iter : int, default=1000
        Maximum EM iterations of the refit.
    tol : float, default=1e-4
        Convergence tolerance of the refit.

    Returns
    -------
    IpdResult

    Raises
    ------
    ValueError
        If the model uses several Q-matrices or several groups, or has a
        single time point.
    """
    if model.num_q_matrices > 1:
        raise ValueError("item parameter drift needs a model with a single Q-matrix")
    if model.multigroup and model.n_groups > 1:
        raise ValueError("item parameter drift needs a single-group model")
    if model.num_time_points < 2:
        raise ValueError("item parameter drift needs at least two time points")

    n_time = model.num_time_points
    n_persons = model.n_persons
    per_occasion = model.items_per_occasion[0]
    labels = [f"Time{t + 1}" for t in range(n_time)]

    emit(model.verbose, "Refitting the model with time-specific item parameters...")

    long_responses = reshape_to_long(model.responses, model.items_per_occasion)
    groups = np.repeat(np.arange(n_time), n_persons)

    fit = run_gdina(
        long_responses,
        model.q_matrix,
        model.fitter_rules[:per_occasion],
        model.link,
        model.n_attributes,
        groups=groups,
        group_labels=labels,
        group_invariance=False,
        max_iter=max_iter,
        tol=tol,
    )

    dif = gdina_dif(fit)
    coef = dif.coef.copy()
    coef.insert(0, "link", model.link)

    return IpdResult(
        statistics=dif.statistics,
        coef=coef,
        estimates=dif.delta,
        item_probabilities={
            f"Time {t + 1}": dif.item_probabilities[t] for t in range(n_time)
        },
        fit=fit,
    )
