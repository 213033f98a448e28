"""Calls into the G-DINA fitter shared by the estimation functions."""

from __future__ import annotations

import warnings
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from tdcm._core import Reporter, emit
from tdcm.estimation.em import GDINAEstimator
from tdcm.exceptions import ConvergenceWarning
from tdcm.models.gdina import GDINA
from tdcm.results.fit_result import GDINAFitResult
from tdcm.skillspace import reduce_skill_space
from tdcm.typing import ForgetPolicy, LinkFunction


def run_gdina(
    responses: NDArray[np.int_],
    stacked_q: NDArray[np.int_],
    rules: Sequence[str],
    link: LinkFunction,
    attributes_per_occasion: int,
    groups: NDArray[np.int_] | None = None,
    group_labels: list[str] | None = None,
    group_invariance: bool = True,
    design_matrix: NDArray[np.float64] | None = None,
    skill_space: NDArray[np.int_] | None = None,
    max_iter: int = 1000,
    tol: float = 1e-4,
    verbose: Reporter = False,
) -> GDINAFitResult:
    """Fit a G-DINA model with convergence warnings silenced.

    Non-convergence is reported through ``converged`` on the result.
    """
    n_groups = 1 if group_labels is None else len(group_labels)
    model = GDINA(
        q_matrix=stacked_q,
        rules=list(rules),
        link=link,
        n_groups=n_groups,
        group_invariance=group_invariance,
        attributes_per_occasion=attributes_per_occasion,
    )
    estimator = GDINAEstimator(max_iter=max_iter, tol=tol, verbose=verbose)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        return estimator.fit(
            model,
            responses,
            groups=groups,
            skill_space=skill_space,
            design_matrix=design_matrix,
            group_labels=group_labels,
        )


def run_base_fit(
    responses: NDArray[np.int_],
    stacked_q: NDArray[np.int_],
    rules: Sequence[str],
    attributes_per_occasion: int,
    groups: NDArray[np.int_] | None = None,
    group_labels: list[str] | None = None,
    group_invariance: bool = True,
    verbose: Reporter = False,
) -> GDINAFitResult:
    """One EM iteration under the logit link.

    Only the skill space and the coefficient layout of the result are used.
    """
    emit(verbose, "Running the base model to learn the parameter layout...")
    return run_gdina(
        responses,
        stacked_q,
        rules,
        "logit",
        attributes_per_occasion,
        groups=groups,
        group_labels=group_labels,
        group_invariance=group_invariance,
        max_iter=1,
    )


def constrained_skill_space(
    base: GDINAFitResult,
    no_forget_attributes: Sequence[int],
    n_attributes: int,
    num_time_points: int,
    forget_policy: ForgetPolicy,
) -> NDArray[np.int_]:
    """Skill space of the base fit without forgetting profiles."""
    return reduce_skill_space(
        base.attribute_patterns,
        no_forget_attributes,
        n_attributes,
        num_time_points,
        forget_policy,
    )


def normalize_attributes(no_forget_attributes, n_attributes: int) -> tuple[int, ...]:
    """Sorted no-forgetting attribute numbers, checked against ``1..n_attributes``."""
    if no_forget_attributes is None:
        return ()
    if np.isscalar(no_forget_attributes):
        attributes = (int(no_forget_attributes),)
    else:
        attributes = tuple(sorted(set(int(a) for a in no_forget_attributes)))

    bad = [a for a in attributes if a < 1 or a > n_attributes]
    if bad:
        raise ValueError(
            f"no_forget_attributes {bad} out of range; attributes are numbered "
            f"1 to {n_attributes}"
        )
    return attributes


FORGET_POLICIES = ("first_last", "successive")


def check_forget_policy(forget_policy: str) -> None:
    if forget_policy not in FORGET_POLICIES:
        raise ValueError(
            f"Unknown forget_policy: {forget_policy!r}. "
            f"Choose from: {', '.join(FORGET_POLICIES)}"
        )
