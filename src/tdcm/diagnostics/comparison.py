"""Comparison of nested TDCMs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from scipy import stats

if TYPE_CHECKING:
    from tdcm.results.tdcm_result import TDCMFitResult


@dataclass(frozen=True)
class ModelComparison:
    """Result of comparing a constrained model with a more general one.

    Attributes
    ----------
    aic_diff : float
        AIC of the constrained model minus AIC of the general model.
    bic_diff : float
        BIC of the constrained model minus BIC of the general model.
    chi2 : float
        Likelihood ratio statistic ``-2 (LL_constrained - LL_general)``.
    df : int
        Difference in the number of parameters.
    p_value : float
        Upper tail probability of ``chi2`` on ``df`` degrees of freedom.
    """

    aic_diff: float
    bic_diff: float
    chi2: float
    df: int
    p_value: float

    def preferred(self, alpha: float = 0.05) -> str:
        """Which model the likelihood ratio test prefers."""
        return "general" if self.p_value < alpha else "constrained"

    def to_dict(self) -> dict[str, float]:
        return {
            "aic_diff": self.aic_diff,
            "bic_diff": self.bic_diff,
            "chi2": self.chi2,
            "df": self.df,
            "p_value": self.p_value,
        }


def compare(model_a: TDCMFitResult, model_b: TDCMFitResult) -> ModelComparison:
    """Likelihood ratio test for nested TDCMs.

    Parameters
    ----------
    model_a : TDCMFitResult
        More constrained model (for example with time invariance).
    model_b : TDCMFitResult
        Less constrained model fitted to the same responses.

    Returns
    -------
    ModelComparison

    Raises
    ------
    ValueError
        If the models are not nested: ``model_a`` must have fewer parameters
        and a log-likelihood no larger than ``model_b``.
    """
    ll_a = model_a.log_likelihood
    ll_b = model_b.log_likelihood

    if model_a.n_persons != model_b.n_persons:
        raise ValueError(
            f"models were fitted to different samples ({model_a.n_persons} and "
            f"{model_b.n_persons} examinees)"
        )

    df = model_b.n_parameters - model_a.n_parameters
    if df <= 0:
        raise ValueError(
            f"model_a must be the constrained model with fewer parameters: "
            f"model_a={model_a.n_parameters}, model_b={model_b.n_parameters}"
        )

    chi2 = -2 * (ll_a - ll_b)
    if chi2 < -0.001:
        raise ValueError(
            f"Models may not be nested: constrained LL ({ll_a:.4f}) > "
            f"general LL ({ll_b:.4f})"
        )
    chi2 = max(chi2, 0.0)

    return ModelComparison(
        aic_diff=model_a.aic - model_b.aic,
        bic_diff=model_a.bic - model_b.bic,
        chi2=chi2,
        df=df,
        p_value=float(stats.chi2.sf(chi2, df)),
    )
