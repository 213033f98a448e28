"""Summaries of a fitted TDCM."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from tdcm._core import Reporter, emit
from tdcm.constants import REPORT_DIGITS
from tdcm.diagnostics.modelfit import model_fit
from tdcm.qmatrix import attribute_labels
from tdcm.results.summary_result import SummaryResult
from tdcm.results.tdcm_result import TDCMFitResult
from tdcm.summary.growth import (
    attribute_names_or_default,
    growth_effects,
    growth_table,
    transition_labels,
    transition_pairs,
    transition_table,
)
from tdcm.summary.parameters import item_parameter_table
from tdcm.summary.posterior import attribute_posteriors, classify
from tdcm.summary.reliability import RELIABILITY_COLUMNS, transition_reliability
from tdcm.typing import TransitionOption
from tdcm.utils.correlation import tetrachoric_matrix


def summarize(
    model: TDCMFitResult,
    transition_option: TransitionOption = 1,
    classification_threshold: float = 0.5,
    attribute_names: Sequence[str] | None = None,
    group_names: Sequence[str] | None = None,
    verbose: Reporter | None = None,
) -> SummaryResult:
    """Summarize a fitted TDCM.

    Parameters
    ----------
    model : TDCMFitResult
        Result of :func:`estimate_tdcm` or :func:`estimate_multigroup_tdcm`.
    transition_option : {1, 2, 3}, default=1
        1 compares the first and last time points, 2 the first with every
        later time point, 3 consecutive time points.
    classification_threshold : float, default=0.5
        Mastery cut point in (0, 1); probabilities equal to the cut point
        are classified as non-mastery.
    attribute_names : sequence of str, optional
        Names of the attributes; ignored unless one per attribute.
    group_names : sequence of str, optional
        Names of the groups; ignored unless one per group.
    verbose : bool or callable, optional
        Report progress. Defaults to the setting used for estimation.

    Returns
    -------
    SummaryResult
        Fresh summary; the model is not modified.

    Raises
    ------
    ValueError
        If ``transition_option`` or ``classification_threshold`` is invalid.
    """
    if not 0.0 < classification_threshold < 1.0:
        raise ValueError(
            f"classification_threshold must lie in (0, 1), got {classification_threshold}"
        )
    n_time = model.num_time_points
    pairs = transition_pairs(n_time, transition_option)
    verbose = model.verbose if verbose is None else verbose

    emit(verbose, "Summarizing results...")

    n_attrs = model.n_attributes
    patterns = model.attribute_patterns
    posterior = model.posterior
    class_probs = model.class_probabilities

    posteriors = attribute_posteriors(posterior, patterns)
    classifications = classify(posteriors, classification_threshold)
    names = attribute_names_or_default(n_attrs, attribute_names)
    slice_labels = transition_labels(pairs, n_attrs, names)

    n_groups = class_probs.shape[0]
    if group_names is not None and len(group_names) == n_groups:
        groups = [str(name) for name in group_names]
    else:
        groups = [f"Group {g + 1}" for g in range(n_groups)]

    n_slices = n_attrs * len(pairs)
    growth = np.empty((n_groups, n_attrs, n_time))
    effects = np.empty((n_groups, n_slices, 5))
    trans = np.empty((n_groups, 2, 2, n_slices))
    reliability = np.empty((n_groups, n_slices, len(RELIABILITY_COLUMNS)))
    correlations = np.empty((n_groups, n_attrs * n_time, n_attrs * n_time))
    trans_posts = np.zeros((posterior.shape[0], 4, n_slices))
    most_likely = np.zeros((posterior.shape[0], n_slices), dtype=np.int_)

    for g in range(n_groups):
        rates = class_probs[g]
        members = np.where(model.groups == g)[0]

        growth[g] = growth_table(rates, patterns, n_attrs)
        effects[g] = growth_effects(rates, patterns, n_attrs, pairs)
        trans[g] = transition_table(rates, patterns, n_attrs, pairs)
        correlations[g] = np.round(tetrachoric_matrix(rates, patterns), REPORT_DIGITS)

        rel = transition_reliability(posterior[members], patterns, rates, pairs, n_attrs)
        reliability[g] = rel.metrics
        trans_posts[members] = rel.transition_posteriors
        most_likely[members] = rel.most_likely_transitions

    def per_group(values: np.ndarray) -> np.ndarray:
        return values if model.multigroup else values[0]

    report = model_fit(model.fit)
    parameters = item_parameter_table(model.fit)

    emit(verbose, "Routine finished. Check results.")

    return SummaryResult(
        item_parameters=parameters,
        growth=per_group(growth),
        growth_effects=per_group(effects),
        transition_probabilities=per_group(trans),
        posterior_probabilities=posteriors,
        classifications=classifications,
        reliability=per_group(reliability),
        transition_posteriors=trans_posts,
        most_likely_transitions=most_likely,
        attribute_correlations=per_group(correlations),
        model_fit=report,
        transition_option=int(transition_option),
        classification_threshold=float(classification_threshold),
        attribute_labels=attribute_labels(n_attrs, n_time),
        attribute_names=names,
        transition_labels=slice_labels,
        time_pairs=pairs,
        group_names=groups,
        multigroup=model.multigroup,
    )
