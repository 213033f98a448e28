"""Estimation of the multigroup transition diagnostic classification model.

Four cases cross item-parameter sharing between groups with invariance over
time:

====  ================  ===============  =====================================
Case  group_invariance  time_invariance  Item parameters
====  ================  ===============  =====================================
1     True              True             shared by groups, tied over time
2     True              False            shared by groups, free over time
3     False             True             per group, tied over time in a group
4     False             False            per group, free over time
====  ================  ===============  =====================================

Each group has its own attribute profile distribution in every case.
"""

from __future__ import annotations

from collections.abc import Sequence

from numpy.typing import NDArray

from tdcm._core import Reporter, emit
from tdcm._fitting import (
    check_forget_policy,
    constrained_skill_space,
    normalize_attributes,
    run_base_fit,
    run_gdina,
)
from tdcm.design import full_invariance_design
from tdcm.exceptions import DimensionMismatchError
from tdcm.qmatrix import items_per_time_point, stack_q_matrix, validate_q_matrix
from tdcm.results.tdcm_result import TDCMFitResult
from tdcm.rules import check_link, translate_rules
from tdcm.typing import ForgetPolicy, LinkFunction
from tdcm.utils.data import encode_groups, validate_responses


def invariance_case(group_invariance: bool, time_invariance: bool) -> int:
    """Number (1-4) of the invariance case."""
    if group_invariance:
        return 1 if time_invariance else 2
    return 3 if time_invariance else 4


def estimate_multigroup_tdcm(
    responses: NDArray | Sequence,
    q_matrix: NDArray | Sequence,
    num_time_points: int,
    groups: NDArray | Sequence,
    rule: str | Sequence[str] = "LCDM",
    link: LinkFunction = "logit",
    no_forget_attributes: Sequence[int] | int | None = None,
    group_invariance: bool = True,
    time_invariance: bool = True,
    forget_policy: ForgetPolicy = "first_last",
    max_iter: int = 1000,
    tol: float = 1e-4,
    verbose: Reporter = False,
) -> TDCMFitResult:
    """Estimate a TDCM with several examinee groups.

    Parameters
    ----------
    responses : array-like of shape (n_persons, T * n_items)
        Binary responses, time points in consecutive column blocks.
    q_matrix : array-like of shape (n_items, n_attributes)
        Q-matrix of one occasion.
    num_time_points : int
        Number of time points.
    groups : array-like of shape (n_persons,)
        Group label of every examinee. Labels are sorted to define the group
        order.
    rule : str or sequence of str, default='LCDM'
        Condensation rule (see :func:`estimate_tdcm`).
    link : {'logit', 'identity', 'log'}, default='logit'
        Link function.
    no_forget_attributes : int or sequence of int, optional
        Attributes (numbered from 1) whose mastery may not be lost.
    group_invariance : bool, default=True
        Share item parameters between groups.
    time_invariance : bool, default=True
        Tie item parameters over time.
    forget_policy : {'first_last', 'successive'}, default='first_last'
        Time pairs covered by the no-forgetting constraint.
    max_iter : int, default=1000
        Maximum EM iterations of the final fit.
    tol : float, default=1e-4
        Convergence tolerance of the final fit.
    verbose : bool or callable, default=False
        Report progress.

    Returns
    -------
    TDCMFitResult
        The fitted model with ``multigroup=True``.

    Raises
    ------
    DimensionMismatchError
        If ``groups`` does not have one label per response row, or the
        responses and Q-matrix disagree.
    """
    link = check_link(link)
    check_forget_policy(forget_policy)

    emit(verbose, "Preparing data for estimate_multigroup_tdcm()...")

    responses = validate_responses(responses)
    n_persons, n_cols = responses.shape
    q = validate_q_matrix(q_matrix)
    per_occasion = items_per_time_point(n_cols, num_time_points)
    if q.shape[0] != per_occasion:
        raise DimensionMismatchError(
            f"q_matrix has {q.shape[0]} rows but responses have {per_occasion} "
            f"items per time point ({n_cols} items over {num_time_points} time points)"
        )

    codes, labels = encode_groups(groups, n_persons)
    stacked_q = stack_q_matrix(q, num_time_points)
    counts = [per_occasion] * num_time_points
    rules = translate_rules(rule, n_cols, counts)
    n_attributes = q.shape[1]
    attributes = normalize_attributes(no_forget_attributes, n_attributes)
    case = invariance_case(group_invariance, time_invariance)

    emit(
        verbose,
        f"Estimating the multigroup TDCM (case {case}, {len(labels)} groups). "
        "This may take a few minutes...",
    )

    base = run_base_fit(
        responses,
        stacked_q,
        rules,
        n_attributes,
        groups=codes,
        group_labels=labels,
        group_invariance=group_invariance,
        verbose=verbose,
    )
    skill_space = base.attribute_patterns
    if attributes:
        skill_space = constrained_skill_space(
            base, attributes, n_attributes, num_time_points, forget_policy
        )

    design = None
    if time_invariance and num_time_points > 1:
        design = full_invariance_design(base.model.layout, num_time_points, counts)

    emit(verbose, "Fitting the constrained model...")
    fit = run_gdina(
        responses,
        stacked_q,
        rules,
        link,
        n_attributes,
        groups=codes,
        group_labels=labels,
        group_invariance=group_invariance,
        design_matrix=design,
        skill_space=skill_space,
        max_iter=max_iter,
        tol=tol,
        verbose=verbose,
    )

    emit(
        verbose,
        "Done estimating the multigroup TDCM. Use summarize() to display results.",
    )

    return TDCMFitResult(
        fit=fit,
        responses=responses,
        q_matrix=q,
        stacked_q_matrix=stacked_q,
        num_time_points=num_time_points,
        n_attributes=n_attributes,
        items_per_occasion=tuple(counts),
        rule=rule if isinstance(rule, str) else tuple(rule),
        fitter_rules=tuple(rules),
        link=link,
        invariance=bool(time_invariance),
        no_forget_attributes=attributes,
        forget_policy=forget_policy,
        skill_space=skill_space,
        design_matrix=design,
        group_invariance=bool(group_invariance) or len(labels) == 1,
        multigroup=True,
        verbose=verbose,
    )
