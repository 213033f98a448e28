"""Data validation and preprocessing utilities."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from tdcm.exceptions import DimensionMismatchError


def validate_responses(
    responses: NDArray | list,
    n_items: int | None = None,
    allow_missing: bool = True,
    missing_code: int = -1,
) -> NDArray[np.int_]:
    """Validate and preprocess a binary response matrix.

    Parameters
    ----------
    responses : array-like of shape (n_persons, n_items)
        Response matrix to validate. NaN entries are treated as missing.
    n_items : int, optional
        Expected number of items. If provided, validates column count.
    allow_missing : bool, default=True
        Whether to allow missing values.
    missing_code : int, default=-1
        Value used to code missing responses.

    Returns
    -------
    ndarray of shape (n_persons, n_items)
        Validated response matrix with integer dtype.

    Raises
    ------
    ValueError
        If responses are invalid (wrong shape, non-binary, etc.).
    DimensionMismatchError
        If the number of columns differs from ``n_items``.

    Examples
    --------
    >>> responses = [[1, 0, 1], [0, 1, 0]]
    >>> validated = validate_responses(responses, n_items=3)
    >>> print(validated.dtype)
    int64
    """
    responses = np.asarray(responses, dtype=np.float64)

    if responses.ndim != 2:
        raise ValueError(f"responses must be 2D array, got {responses.ndim}D")

    n_persons, n_cols = responses.shape

    if n_persons == 0:
        raise ValueError("responses cannot be empty")

    if n_items is not None and n_cols != n_items:
        raise DimensionMismatchError(
            f"responses has {n_cols} items, expected {n_items}"
        )

    missing = np.isnan(responses) | (responses == missing_code)
    if not allow_missing and np.any(missing):
        raise ValueError("responses contains missing values (missing data not allowed)")

    observed = responses[~missing]
    if not np.all(np.isin(observed, (0, 1))):
        raise ValueError(
            f"responses must be binary (0/1), with missing coded as {missing_code} or NaN"
        )

    return np.where(missing, -1, responses).astype(np.int_)


def encode_groups(
    groups: NDArray | Sequence,
    n_persons: int,
) -> tuple[NDArray[np.int_], list[str]]:
    """Encode group labels as consecutive integer codes.

    Parameters
    ----------
    groups : array-like of shape (n_persons,)
        Group label of every examinee (numbers or strings).
    n_persons : int
        Number of response rows.

    Returns
    -------
    codes : ndarray of int
        Code ``0 .. G-1`` of every examinee, in sorted label order.
    labels : list of str
        Label of each code.
    """
    groups = np.asarray(groups)
    if groups.ndim != 1 or groups.shape[0] != n_persons:
        raise DimensionMismatchError(
            f"groups has length {groups.size}, expected {n_persons} "
            "(one label per response row)"
        )

    values, codes = np.unique(groups, return_inverse=True)
    return codes.astype(np.int_), [str(v) for v in values]


def reshape_to_long(
    responses: NDArray[np.int_],
    items_per_occasion: Sequence[int],
) -> NDArray[np.int_]:
    """Stack the occasions of wide longitudinal data on top of each other.

    Parameters
    ----------
    responses : ndarray of shape (n_persons, T * n_items)
        Wide responses, time points side by side.
    items_per_occasion : sequence of int
        Items per time point; all counts must be equal.

    Returns
    -------
    ndarray of shape (T * n_persons, n_items)
        Long responses, all persons at time 1 first.
    """
    counts = list(items_per_occasion)
    if len(set(counts)) != 1:
        raise DimensionMismatchError(
            f"occasions must have equal item counts to be stacked, got {counts}"
        )

    n_items = counts[0]
    return np.vstack(
        [responses[:, t * n_items : (t + 1) * n_items] for t in range(len(counts))]
    )
