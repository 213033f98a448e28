"""Construction of the time-expanded (stacked) Q-matrix.

A TDCM measures the same ``A`` attributes at ``T`` occasions. The stacked
Q-matrix treats each attribute at each occasion as its own latent variable:
item ``i`` administered at time ``t`` may only load on the attribute columns
of time ``t``, so the stacked matrix is block diagonal.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from tdcm.exceptions import DimensionMismatchError


def validate_q_matrix(q_matrix: NDArray | Sequence, name: str = "q_matrix") -> NDArray[np.int_]:
    """Validate a Q-matrix and return it as an integer array.

    Parameters
    ----------
    q_matrix : array-like of shape (n_items, n_attributes)
        Binary item-by-attribute matrix.
    name : str
        Argument name used in error messages.

    Returns
    -------
    ndarray of shape (n_items, n_attributes)
        Validated Q-matrix.

    Raises
    ------
    ValueError
        If the matrix is not 2D, not binary, or has an item measuring no
        attribute.
    """
    q = np.asarray(q_matrix)

    if q.ndim != 2:
        raise ValueError(f"{name} must be 2D, got {q.ndim}D")
    if q.shape[0] == 0 or q.shape[1] == 0:
        raise ValueError(f"{name} cannot be empty, got shape {q.shape}")
    if not np.all(np.isin(q, (0, 1))):
        raise ValueError(f"{name} must contain only 0 and 1")

    q = q.astype(np.int_)
    empty_rows = np.where(q.sum(axis=1) == 0)[0]
    if len(empty_rows) > 0:
        raise ValueError(
            f"{name} rows {(empty_rows + 1).tolist()} measure no attribute"
        )

    return q


def stack_q_matrix(
    q_matrix: NDArray[np.int_],
    num_time_points: int,
) -> NDArray[np.int_]:
    """Stack one per-occasion Q-matrix over all time points.

    Parameters
    ----------
    q_matrix : ndarray of shape (n_items, n_attributes)
        Q-matrix of a single occasion.
    num_time_points : int
        Number of time points ``T``.

    Returns
    -------
    ndarray of shape (T * n_items, T * n_attributes)
        Block-diagonal stacked Q-matrix.

    Examples
    --------
    >>> stack_q_matrix(np.array([[1, 0], [1, 1]]), 2)
    array([[1, 0, 0, 0],
           [1, 1, 0, 0],
           [0, 0, 1, 0],
           [0, 0, 1, 1]])
    """
    if num_time_points < 1:
        raise ValueError(f"num_time_points must be at least 1, got {num_time_points}")

    q = np.asarray(q_matrix, dtype=np.int_)
    return np.kron(np.eye(num_time_points, dtype=np.int_), q)


def stack_q_matrices(
    q_matrices: Sequence[NDArray[np.int_]],
) -> NDArray[np.int_]:
    """Stack occasion-specific Q-matrices into one block-diagonal matrix.

    Parameters
    ----------
    q_matrices : sequence of ndarray
        One Q-matrix per time point. All must have the same number of
        attribute columns; item counts may differ.

    Returns
    -------
    ndarray of shape (sum(n_items_t), T * n_attributes)
        Stacked Q-matrix.
    """
    blocks = [np.asarray(q, dtype=np.int_) for q in q_matrices]
    widths = {b.shape[1] for b in blocks}
    if len(widths) != 1:
        raise DimensionMismatchError(
            f"Q-matrices must measure the same number of attributes, got widths "
            f"{[b.shape[1] for b in blocks]}"
        )

    n_attrs = blocks[0].shape[1]
    n_time = len(blocks)
    stacked = np.zeros((sum(b.shape[0] for b in blocks), n_attrs * n_time), dtype=np.int_)

    row = 0
    for t, block in enumerate(blocks):
        stacked[row : row + block.shape[0], t * n_attrs : (t + 1) * n_attrs] = block
        row += block.shape[0]

    return stacked


def split_q_matrix(
    q_matrix: NDArray[np.int_],
    items_per_occasion: Sequence[int],
) -> list[NDArray[np.int_]]:
    """Split a combined (all occasions, one above the other) Q-matrix.

    Parameters
    ----------
    q_matrix : ndarray of shape (total_items, n_attributes)
        Occasion Q-matrices written one below the other.
    items_per_occasion : sequence of int
        Number of items at each time point.

    Returns
    -------
    list of ndarray
        One Q-matrix per time point.
    """
    counts = [int(c) for c in items_per_occasion]
    if any(c < 1 for c in counts):
        raise DimensionMismatchError(
            f"items_per_occasion must be positive, got {counts}"
        )
    if sum(counts) != q_matrix.shape[0]:
        raise DimensionMismatchError(
            f"items_per_occasion sums to {sum(counts)} but the Q-matrix has "
            f"{q_matrix.shape[0]} rows"
        )

    offsets = np.concatenate([[0], np.cumsum(counts)])
    return [q_matrix[offsets[t] : offsets[t + 1]] for t in range(len(counts))]


def items_per_time_point(n_items: int, num_time_points: int) -> int:
    """Number of items per occasion for a single-Q design.

    Raises
    ------
    DimensionMismatchError
        If the items cannot be split evenly over the time points.
    """
    if num_time_points < 1:
        raise ValueError(f"num_time_points must be at least 1, got {num_time_points}")
    if n_items % num_time_points != 0:
        raise DimensionMismatchError(
            f"responses has {n_items} items, which is not divisible by "
            f"num_time_points ({num_time_points})"
        )
    return n_items // num_time_points


def occasion_of_items(items_per_occasion: Sequence[int]) -> NDArray[np.int_]:
    """Time point index (0-based) of every stacked item."""
    return np.repeat(np.arange(len(items_per_occasion)), items_per_occasion)


def attribute_labels(n_attributes: int, num_time_points: int) -> list[str]:
    """Column labels of the stacked attribute space (``T1A1``, ``T1A2``, ...)."""
    return [
        f"T{t + 1}A{a + 1}"
        for t in range(num_time_points)
        for a in range(n_attributes)
    ]
