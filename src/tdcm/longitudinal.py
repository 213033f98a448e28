"""Estimation of the single-group transition diagnostic classification model."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from tdcm._core import Reporter, emit
from tdcm._fitting import (
    check_forget_policy,
    constrained_skill_space,
    normalize_attributes,
    run_base_fit,
    run_gdina,
)
from tdcm.design import anchor_design, full_invariance_design, normalize_anchors
from tdcm.exceptions import DimensionMismatchError
from tdcm.qmatrix import (
    items_per_time_point,
    split_q_matrix,
    stack_q_matrices,
    stack_q_matrix,
    validate_q_matrix,
)
from tdcm.results.tdcm_result import TDCMFitResult
from tdcm.rules import check_link, translate_rules
from tdcm.typing import ForgetPolicy, LinkFunction
from tdcm.utils.data import validate_responses


def estimate_tdcm(
    responses: NDArray | Sequence,
    q_matrix: NDArray | Sequence,
    num_time_points: int,
    invariance: bool = True,
    rule: str | Sequence[str] = "LCDM",
    link: LinkFunction = "logit",
    num_q_matrices: int = 1,
    items_per_occasion: Sequence[int] | None = None,
    anchors: Sequence | None = None,
    no_forget_attributes: Sequence[int] | int | None = None,
    forget_policy: ForgetPolicy = "first_last",
    max_iter: int = 1000,
    tol: float = 1e-4,
    verbose: Reporter = False,
) -> TDCMFitResult:
    """Estimate a transition diagnostic classification model.

    Parameters
    ----------
    responses : array-like of shape (n_persons, total_items)
        Binary responses with the items of each time point in consecutive
        columns (time 1 first). Missing responses are coded -1 or NaN.
    q_matrix : array-like or list of array-like
        Q-matrix of one occasion (n_items, n_attributes). With several
        Q-matrices, either a list with one matrix per time point or the
        occasion matrices written one below the other.
    num_time_points : int
        Number of time points.
    invariance : bool, default=True
        Constrain item parameters to be equal over time. Only used with a
        single Q-matrix; with several Q-matrices use ``anchors``.
    rule : str or sequence of str, default='LCDM'
        Condensation rule: 'LCDM', 'DINA', 'DINO', 'CRUM', 'RRUM' or
        'LCDM1' .. 'LCDM10'. A sequence gives one rule per item of an
        occasion or per stacked item.
    link : {'logit', 'identity', 'log'}, default='logit'
        Link function of the item response functions.
    num_q_matrices : int, default=1
        Number of occasion-specific Q-matrices. Must equal
        ``num_time_points`` when greater than 1.
    items_per_occasion : sequence of int, optional
        Items at each time point. Required when several Q-matrices are given
        as one combined matrix.
    anchors : sequence, optional
        Anchor items as ``(reference, linked)`` pairs of stacked item numbers
        (numbered from 1), or a flat sequence of such numbers. The linked
        item shares the parameters of the reference item.
    no_forget_attributes : int or sequence of int, optional
        Attributes (numbered from 1) whose mastery may not be lost over time.
    forget_policy : {'first_last', 'successive'}, default='first_last'
        Compare time 1 with the last time point, or every consecutive pair,
        when removing forgetting profiles.
    max_iter : int, default=1000
        Maximum EM iterations of the final fit.
    tol : float, default=1e-4
        Convergence tolerance of the final fit.
    verbose : bool or callable, default=False
        Report progress; a callable receives the messages instead.

    Returns
    -------
    TDCMFitResult
        The fitted model. Non-convergence is reported by ``converged``.

    Raises
    ------
    DimensionMismatchError
        If the responses, Q-matrices and item counts disagree.
    ValueError
        If a rule, link, option or constraint is invalid.

    Examples
    --------
    >>> model = estimate_tdcm(responses, q_matrix, num_time_points=2)
    >>> results = summarize(model, transition_option=1)
    """
    link = check_link(link)
    check_forget_policy(forget_policy)
    if num_time_points < 1:
        raise ValueError(f"num_time_points must be at least 1, got {num_time_points}")

    emit(verbose, "Preparing data for estimate_tdcm()...")

    responses = validate_responses(responses)
    n_cols = responses.shape[1]

    multi_q = (
        isinstance(q_matrix, (list, tuple)) and np.ndim(q_matrix[0]) == 2
    ) or num_q_matrices > 1

    if multi_q:
        occasion_qs, counts = _occasion_q_matrices(
            q_matrix, num_time_points, num_q_matrices, items_per_occasion
        )
        stacked_q = stack_q_matrices(occasion_qs)
        original_q = np.vstack(occasion_qs)
        n_q = num_time_points
    else:
        original_q = validate_q_matrix(q_matrix)
        per_occasion = items_per_time_point(n_cols, num_time_points)
        if original_q.shape[0] != per_occasion:
            raise DimensionMismatchError(
                f"q_matrix has {original_q.shape[0]} rows but responses have "
                f"{per_occasion} items per time point ({n_cols} items over "
                f"{num_time_points} time points)"
            )
        counts = [per_occasion] * num_time_points
        stacked_q = stack_q_matrix(original_q, num_time_points)
        n_q = 1

    n_items = stacked_q.shape[0]
    n_attributes = original_q.shape[1]
    if n_items != n_cols:
        raise DimensionMismatchError(
            f"the Q-matrices describe {n_items} items but responses have {n_cols} columns"
        )
    rules = translate_rules(rule, n_items, counts)
    attributes = normalize_attributes(no_forget_attributes, n_attributes)
    anchor_pairs = normalize_anchors(anchors, n_items)

    if anchor_pairs and invariance and not multi_q:
        raise ValueError(
            "anchors tie selected items over time; use them with invariance=False "
            "(invariance=True already ties every item)"
        )

    emit(
        verbose,
        "Estimating the TDCM in estimate_tdcm(). Depending on model complexity, "
        "estimation time may vary...",
    )

    base = run_base_fit(
        responses, stacked_q, rules, n_attributes, verbose=verbose
    )
    skill_space = base.attribute_patterns
    if attributes:
        skill_space = constrained_skill_space(
            base, attributes, n_attributes, num_time_points, forget_policy
        )

    design = None
    if anchor_pairs:
        design = anchor_design(base.model.layout, anchor_pairs)
    elif invariance and not multi_q and num_time_points > 1:
        design = full_invariance_design(base.model.layout, num_time_points, counts)

    emit(verbose, "Fitting the constrained model...")
    fit = run_gdina(
        responses,
        stacked_q,
        rules,
        link,
        n_attributes,
        design_matrix=design,
        skill_space=skill_space,
        max_iter=max_iter,
        tol=tol,
        verbose=verbose,
    )

    emit(verbose, "TDCM estimation complete. Use summarize() to display results.")

    return TDCMFitResult(
        fit=fit,
        responses=responses,
        q_matrix=original_q,
        stacked_q_matrix=stacked_q,
        num_time_points=num_time_points,
        n_attributes=n_attributes,
        items_per_occasion=tuple(counts),
        rule=rule if isinstance(rule, str) else tuple(rule),
        fitter_rules=tuple(rules),
        link=link,
        invariance=bool(invariance) and not multi_q,
        num_q_matrices=n_q,
        anchors=anchor_pairs,
        no_forget_attributes=attributes,
        forget_policy=forget_policy,
        skill_space=skill_space,
        design_matrix=design,
        verbose=verbose,
    )


def _occasion_q_matrices(
    q_matrix: NDArray | Sequence,
    num_time_points: int,
    num_q_matrices: int,
    items_per_occasion: Sequence[int] | None,
) -> tuple[list[NDArray[np.int_]], list[int]]:
    """Validate the occasion Q-matrices of a multi-Q design."""
    if num_q_matrices > 1 and num_q_matrices != num_time_points:
        raise DimensionMismatchError(
            f"num_q_matrices ({num_q_matrices}) must equal num_time_points "
            f"({num_time_points})"
        )

    if isinstance(q_matrix, (list, tuple)) and np.ndim(q_matrix[0]) == 2:
        occasion_qs = [
            validate_q_matrix(q, name=f"q_matrix[{t}]") for t, q in enumerate(q_matrix)
        ]
        if len(occasion_qs) != num_time_points:
            raise DimensionMismatchError(
                f"{len(occasion_qs)} Q-matrices given for {num_time_points} time points"
            )
        counts = [q.shape[0] for q in occasion_qs]
        if items_per_occasion is not None and list(items_per_occasion) != counts:
            raise DimensionMismatchError(
                f"items_per_occasion {list(items_per_occasion)} does not match the "
                f"Q-matrix row counts {counts}"
            )
        return occasion_qs, counts

    if items_per_occasion is None:
        raise DimensionMismatchError(
            "items_per_occasion is required when several Q-matrices are given as "
            "one combined matrix"
        )
    if len(items_per_occasion) != num_time_points:
        raise DimensionMismatchError(
            f"items_per_occasion has {len(items_per_occasion)} entries, expected "
            f"{num_time_points} (one per time point)"
        )

    combined = validate_q_matrix(q_matrix)
    occasion_qs = split_q_matrix(combined, items_per_occasion)
    return occasion_qs, [int(c) for c in items_per_occasion]

