"""Result container for G-DINA model fitting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    import pandas as pd

    from tdcm.models.gdina import GDINA


@dataclass
class GDINAFitResult:
    """Container for G-DINA model fitting results.

    Parameters
    ----------
    model : GDINA
        The fitted model; ``model.delta`` holds the item coefficients.
    responses : NDArray
        Validated responses (n_persons, n_items), missing coded as -1.
    groups : NDArray
        Group code of every examinee.
    group_labels : list of str
        Label of each group code.
    attribute_patterns : NDArray
        Skill space used for estimation (n_profiles, n_attributes).
    posterior : NDArray
        Posterior profile probabilities (n_persons, n_profiles).
    class_probabilities : NDArray
        Estimated profile base rates per group (n_groups, n_profiles).
    design_matrix : NDArray
        Constraint matrix with ``delta = W @ free_parameters``.
    free_parameters : NDArray
        Unconstrained parameter estimates.
    covariance : NDArray
        Covariance matrix of the item coefficients.
    standard_errors : NDArray
        Standard errors of the item coefficients in layout order.
    item_rmsea : NDArray
        Item RMSEA per item-parameter block and item.
    log_likelihood : float
        Final marginal log-likelihood.
    aic, bic, caic : float
        Information criteria.
    n_parameters : int
        Free item parameters plus free profile base rates.
    n_observations : int
        Number of examinees.
    n_iterations : int
        EM iterations run.
    converged : bool
        Whether the EM algorithm converged.

    Examples
    --------
    >>> result = fit_gdina(responses, q_matrix)
    >>> print(result.summary())
    >>> params = result.coef()
    """

    model: Any  # GDINA
    responses: NDArray[np.int_]
    groups: NDArray[np.int_]
    group_labels: list[str]
    attribute_patterns: NDArray[np.int_]
    posterior: NDArray[np.float64]
    class_probabilities: NDArray[np.float64]
    design_matrix: NDArray[np.float64]
    free_parameters: NDArray[np.float64]
    covariance: NDArray[np.float64]
    standard_errors: NDArray[np.float64]
    item_rmsea: NDArray[np.float64]
    log_likelihood: float
    aic: float
    bic: float
    caic: float
    n_parameters: int
    n_observations: int
    n_iterations: int
    converged: bool
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def deviance(self) -> float:
        return -2.0 * self.log_likelihood

    @property
    def n_groups(self) -> int:
        return self.class_probabilities.shape[0]

    @property
    def delta(self) -> NDArray[np.float64]:
        """Item coefficients in layout order."""
        return self.model.delta

    @property
    def mean_rmsea(self) -> float:
        return float(np.mean(self.item_rmsea))

    @property
    def attribute_probabilities(self) -> NDArray[np.float64]:
        """Marginal mastery base rates per group (n_groups, n_attributes)."""
        return self.class_probabilities @ self.attribute_patterns

    def item_probabilities(self) -> list[list[NDArray[np.float64]]]:
        """Response probability of every latent group, per block and item."""
        return self.model.latent_group_probabilities()

    def summary(self) -> str:
        """Generate a formatted summary of the results.

        Returns
        -------
        str
            Formatted summary string.
        """
        lines = []
        width = 80

        lines.append("=" * width)
        lines.append(f"{'G-DINA Model Results':^{width}}")
        lines.append("=" * width)

        lines.append(
            f"No. Items:          {self.model.n_items:<20} "
            f"Log-Likelihood:    {self.log_likelihood:>12.4f}"
        )
        lines.append(
            f"No. Attributes:     {self.model.n_attributes:<20} "
            f"Deviance:          {self.deviance:>12.4f}"
        )
        lines.append(
            f"No. Profiles:       {self.attribute_patterns.shape[0]:<20} "
            f"AIC:               {self.aic:>12.4f}"
        )
        lines.append(
            f"No. Groups:         {self.n_groups:<20} "
            f"BIC:               {self.bic:>12.4f}"
        )
        lines.append(
            f"No. Persons:        {self.n_observations:<20} "
            f"No. Parameters:    {self.n_parameters:>12}"
        )
        lines.append(
            f"Converged:          {str(self.converged):<20} "
            f"Iterations:        {self.n_iterations:>12}"
        )
        lines.append(f"Mean item RMSEA:    {self.mean_rmsea:<20.4f}")
        lines.append("-" * width)

        lines.append(
            f"{'Item':<10} {'Group':<8} {'Parameter':<16} "
            f"{'Estimate':>10} {'Std.Err':>10}"
        )
        lines.append("-" * width)

        layout = self.model.layout
        delta = self.model.delta
        for row in range(layout.n_coefficients):
            group = layout.group[row]
            group_label = "all" if group < 0 else self.group_labels[group]
            lines.append(
                f"{self.model.item_names[layout.item[row]]:<10} {group_label:<8} "
                f"{layout.label[row]:<16} {delta[row]:>10.4f} "
                f"{self.standard_errors[row]:>10.4f}"
            )

        lines.append("=" * width)
        return "\n".join(lines)

    def coef(self) -> pd.DataFrame:
        """Return item coefficients with standard errors as a DataFrame.

        Returns
        -------
        pandas.DataFrame
            One row per coefficient.
        """
        import pandas as pd

        layout = self.model.layout
        return pd.DataFrame(
            {
                "item": [self.model.item_names[j] for j in layout.item],
                "group": [
                    "all" if g < 0 else self.group_labels[g] for g in layout.group
                ],
                "parameter": layout.label,
                "type": [layout.parameter_type(r) for r in range(layout.n_coefficients)],
                "attributes": layout.attributes,
                "estimate": self.model.delta,
                "se": self.standard_errors,
            }
        )

    def fit_statistics(self) -> dict[str, float]:
        """Return fit statistics as a dictionary."""
        return {
            "log_likelihood": self.log_likelihood,
            "deviance": self.deviance,
            "aic": self.aic,
            "bic": self.bic,
            "caic": self.caic,
            "n_parameters": self.n_parameters,
            "n_observations": self.n_observations,
            "mean_rmsea": self.mean_rmsea,
            "converged": self.converged,
            "n_iterations": self.n_iterations,
        }

    def __repr__(self) -> str:
        return (
            f"GDINAFitResult(n_items={self.model.n_items}, "
            f"LL={self.log_likelihood:.2f}, "
            f"converged={self.converged})"
        )
