"""Container for TDCM summaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from tdcm.constants import TRANSITION_CELLS

if TYPE_CHECKING:
    import pandas as pd

    from tdcm.diagnostics.modelfit import ModelFitReport


@dataclass(frozen=True, eq=False)
class SummaryResult:
    """Results derived from a fitted TDCM.

    Per-group quantities (growth, growth effects, transition probabilities,
    reliability and attribute correlations) carry a leading group axis when
    the model was estimated with :func:`estimate_multigroup_tdcm`.

    Attributes
    ----------
    item_parameters : pandas.DataFrame
        Item coefficients, one row per item (and group).
    growth : ndarray of shape ([G,] A, T)
        Mastery proportion of every attribute at every time point.
    growth_effects : ndarray of shape ([G,] A * P, 5)
        Earlier and later proportion, growth, odds ratio and Cohen's h.
    transition_probabilities : ndarray of shape ([G,] 2, 2, A * P)
        Row-normalized transition tables (earlier state in rows).
    posterior_probabilities : ndarray of shape (N, A * T)
        Marginal mastery probabilities, rounded to 3 decimals.
    classifications : ndarray of shape (N, A * T)
        0/1 mastery classifications.
    reliability : ndarray of shape ([G,] A * P, 10)
        Transition reliability metrics.
    transition_posteriors : ndarray of shape (N, 4, A * P)
        Posterior mass of the cells ``0->0``, ``0->1``, ``1->0``, ``1->1``.
    most_likely_transitions : ndarray of shape (N, A * P)
        Index of the most likely transition cell.
    attribute_correlations : ndarray of shape ([G,] A * T, A * T)
        Tetrachoric correlations of the attribute indicators.
    model_fit : ModelFitReport
        Absolute fit statistics.
    transition_option : int
        Time pairing used (1 first-to-last, 2 first-to-each, 3 successive).
    classification_threshold : float
        Cut point of the classifications.
    attribute_labels : list of str
        Column labels of the posterior probabilities (``T1A1``, ...).
    attribute_names : list of str
        Names of the attributes.
    transition_labels : list of str
        Labels of the transition slices.
    time_pairs : list of (int, int)
        Compared time pairs (0-based).
    group_names : list of str
        Names of the groups.
    multigroup : bool
        Whether per-group quantities have a leading group axis.
    """

    item_parameters: pd.DataFrame
    growth: NDArray[np.float64]
    growth_effects: NDArray[np.float64]
    transition_probabilities: NDArray[np.float64]
    posterior_probabilities: NDArray[np.float64]
    classifications: NDArray[np.int_]
    reliability: NDArray[np.float64]
    transition_posteriors: NDArray[np.float64]
    most_likely_transitions: NDArray[np.int_]
    attribute_correlations: NDArray[np.float64]
    model_fit: ModelFitReport
    transition_option: int
    classification_threshold: float
    attribute_labels: list[str]
    attribute_names: list[str]
    transition_labels: list[str]
    time_pairs: list[tuple[int, int]]
    group_names: list[str]
    multigroup: bool = False

    @property
    def n_groups(self) -> int:
        return len(self.group_names)

    def _group_index(self, group: int | str | None) -> int | None:
        if not self.multigroup:
            return None
        if group is None:
            raise ValueError("group is required for a multigroup summary")
        if isinstance(group, str):
            try:
                return self.group_names.index(group)
            except ValueError:
                raise ValueError(f"Unknown group name: {group}")
        return int(group)

    def _select(self, values: NDArray, group: int | str | None) -> NDArray:
        g = self._group_index(group)
        return values if g is None else values[g]

    def growth_frame(self, group: int | str | None = None) -> pd.DataFrame:
        """Growth table as a DataFrame (attributes by time points)."""
        import pandas as pd

        growth = self._select(self.growth, group)
        return pd.DataFrame(
            growth,
            index=self.attribute_names,
            columns=[f"T{t + 1}[1]" for t in range(growth.shape[1])],
        )

    def growth_effects_frame(self, group: int | str | None = None) -> pd.DataFrame:
        import pandas as pd

        from tdcm.summary.growth import GROWTH_EFFECT_COLUMNS

        return pd.DataFrame(
            self._select(self.growth_effects, group),
            index=self.transition_labels,
            columns=list(GROWTH_EFFECT_COLUMNS),
        )

    def transition_frame(self, slice_index: int, group: int | str | None = None) -> pd.DataFrame:
        """One 2x2 transition table with labelled rows and columns."""
        import pandas as pd

        trans = self._select(self.transition_probabilities, group)
        earlier, later = self.time_pairs[slice_index % len(self.time_pairs)]
        return pd.DataFrame(
            trans[:, :, slice_index],
            index=[f"T{earlier + 1} [0]", f"T{earlier + 1} [1]"],
            columns=[f"T{later + 1} [0]", f"T{later + 1} [1]"],
        )

    def reliability_frame(self, group: int | str | None = None) -> pd.DataFrame:
        import pandas as pd

        from tdcm.summary.reliability import RELIABILITY_COLUMNS

        return pd.DataFrame(
            self._select(self.reliability, group),
            index=self.transition_labels,
            columns=list(RELIABILITY_COLUMNS),
        )

    def posterior_frame(self) -> pd.DataFrame:
        import pandas as pd

        return pd.DataFrame(self.posterior_probabilities, columns=self.attribute_labels)

    def classification_frame(self) -> pd.DataFrame:
        import pandas as pd

        return pd.DataFrame(self.classifications, columns=self.attribute_labels)

    def most_likely_frame(self) -> pd.DataFrame:
        """Most likely transition cell of every examinee, as labels."""
        import pandas as pd

        cells = np.asarray(TRANSITION_CELLS)[self.most_likely_transitions]
        return pd.DataFrame(cells, columns=self.transition_labels)

    def summary(self) -> str:
        """Generate a formatted text report."""
        lines = []
        width = 80
        options = {1: "first to last", 2: "first to each", 3: "successive"}

        lines.append("=" * width)
        lines.append(f"{'TDCM Summary':^{width}}")
        lines.append("=" * width)
        lines.append(
            f"Transition option:  {self.transition_option} "
            f"({options[self.transition_option]})"
        )
        lines.append(f"Classification threshold: {self.classification_threshold}")
        fit = self.model_fit
        lines.append(
            f"Log-Likelihood: {fit.log_likelihood:.4f}   AIC: {fit.aic:.4f}   "
            f"BIC: {fit.bic:.4f}   Npars: {fit.n_parameters}"
        )
        lines.append(
            f"SRMSR: {fit.statistics['SRMSR']:.4f}   "
            f"Mean item RMSEA: {fit.mean_rmsea:.4f}"
        )

        groups = list(range(self.n_groups)) if self.multigroup else [None]
        for g in groups:
            if g is not None:
                lines.append("-" * width)
                lines.append(f"{self.group_names[g]}")
            lines.append("-" * width)
            lines.append("Growth")
            lines.append(self.growth_frame(g).to_string())
            lines.append("")
            lines.append("Growth effects")
            lines.append(self.growth_effects_frame(g).to_string())
            lines.append("")
            lines.append("Transition probabilities")
            for k, label in enumerate(self.transition_labels):
                lines.append(label)
                lines.append(self.transition_frame(k, g).to_string())
            lines.append("")
            lines.append("Transition reliability")
            lines.append(self.reliability_frame(g).to_string())

        lines.append("=" * width)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SummaryResult(option={self.transition_option}, "
            f"n_groups={self.n_groups}, n_persons={self.posterior_probabilities.shape[0]})"
        )
