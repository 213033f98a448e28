"""Linear constraint (design) matrices for measurement invariance.

A design matrix ``W`` of shape ``(n_coefficients, n_free)`` maps free
parameters ``theta`` to the full item coefficient vector ``delta = W @ theta``.
Each row of ``W`` is a unit vector, so every coefficient equals exactly one
free parameter and tied coefficients share a column.

Coefficients are identified by ``(group, item, parameter index)`` through the
:class:`~tdcm.models.gdina.ParameterLayout` of the fitted model rather than by
position, so the builders do not depend on the fitter's row order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np
from numpy.typing import NDArray

from tdcm.exceptions import AnchorLookupError, DimensionMismatchError
from tdcm.models.gdina import ParameterLayout
from tdcm.qmatrix import occasion_of_items


def full_invariance_design(
    layout: ParameterLayout,
    num_time_points: int,
    items_per_occasion: Sequence[int] | None = None,
) -> NDArray[np.float64]:
    """Tie every item coefficient to the same coefficient at time 1.

    Item ``i`` of occasion ``t`` shares its parameters with item ``i`` of the
    first occasion. When item parameters are group specific the ties are made
    within each group.

    Parameters
    ----------
    layout : ParameterLayout
        Coefficient layout of the unconstrained model.
    num_time_points : int
        Number of time points.
    items_per_occasion : sequence of int, optional
        Item counts per time point. Defaults to an even split of the items.

    Returns
    -------
    ndarray of shape (n_coefficients, n_coefficients / T)
        Design matrix. For a single group this is ``T`` stacked identity
        blocks.

    Raises
    ------
    DimensionMismatchError
        If the occasions have different item counts or an item has a
        different number of parameters than its time-1 counterpart.
    """
    n_items = int(layout.item.max()) + 1
    counts = _resolve_counts(n_items, num_time_points, items_per_occasion)
    if len(set(counts)) != 1:
        raise DimensionMismatchError(
            f"full invariance needs the same number of items at every time point, "
            f"got {counts}"
        )

    per_occasion = counts[0]
    occasion = occasion_of_items(counts)
    within = np.arange(n_items) % per_occasion

    columns: dict[tuple[int, int, int], int] = {}
    for row in range(layout.n_coefficients):
        if occasion[layout.item[row]] == 0:
            key = (int(layout.group[row]), int(within[layout.item[row]]), int(layout.index[row]))
            columns[key] = len(columns)

    design = np.zeros((layout.n_coefficients, len(columns)))
    for row in range(layout.n_coefficients):
        item = int(layout.item[row])
        key = (int(layout.group[row]), int(within[item]), int(layout.index[row]))
        if key not in columns:
            raise DimensionMismatchError(
                f"item {item + 1} has more parameters than item {within[item] + 1} "
                "at time 1; items must have the same parameters at every time point"
            )
        design[row, columns[key]] = 1.0

    counts_per_column = design.sum(axis=0)
    short = np.where(counts_per_column != num_time_points)[0]
    if len(short) > 0:
        raise DimensionMismatchError(
            "items must have the same parameters at every time point; "
            f"{len(short)} time-1 coefficients are missing at later time points"
        )

    return design


def anchor_design(
    layout: ParameterLayout,
    anchors: Iterable[Sequence[int]],
) -> NDArray[np.float64]:
    """Tie anchor items to their reference items.

    Parameters
    ----------
    layout : ParameterLayout
        Coefficient layout of the unconstrained model.
    anchors : iterable of (int, int)
        Pairs ``(reference, linked)`` of stacked item numbers (numbered from
        1). The linked item takes the parameters of the reference item.
        Chains such as ``(1, 6), (6, 11)`` tie all three items to item 1.

    Returns
    -------
    ndarray of shape (n_coefficients, n_free)
        Identity matrix whose linked rows copy their reference rows, with
        the linked columns removed.

    Raises
    ------
    AnchorLookupError
        If an anchor item has no coefficients in the layout.
    DimensionMismatchError
        If anchored items have different numbers of parameters.
    ValueError
        If an anchor pair is malformed or the anchors form a cycle.
    """
    parents = _anchor_parents(anchors)
    n_coef = layout.n_coefficients
    design = np.eye(n_coef)

    present = set(int(j) for j in np.unique(layout.item))
    for item in sorted(set(parents) | set(parents.values())):
        if item not in present:
            raise AnchorLookupError(
                f"anchor item {item + 1} not found among the {len(present)} "
                "items of the coefficient table"
            )

    dropped: list[int] = []
    for group in np.unique(layout.group):
        for linked in sorted(parents):
            root = _find_root(parents, linked)
            linked_rows = layout.rows(linked, int(group))
            root_rows = layout.rows(root, int(group))
            if len(linked_rows) != len(root_rows):
                raise DimensionMismatchError(
                    f"anchor item {linked + 1} has {len(linked_rows)} parameters but "
                    f"its reference item {root + 1} has {len(root_rows)}"
                )
            design[linked_rows] = np.eye(n_coef)[root_rows]
            dropped.extend(linked_rows.tolist())

    keep = np.setdiff1d(np.arange(n_coef), dropped)
    return design[:, keep]


def normalize_anchors(
    anchors: Sequence | None,
    n_items: int | None = None,
) -> tuple[tuple[int, int], ...]:
    """Return anchors as ``(reference, linked)`` pairs.

    Accepts a sequence of pairs or a flat sequence ``[ref1, linked1, ref2,
    linked2, ...]``. With ``n_items`` every item number must lie in
    ``1..n_items``.
    """
    if anchors is None:
        return ()
    values = list(anchors)
    if not values:
        return ()

    if all(np.ndim(v) == 0 for v in values):
        if len(values) % 2 != 0:
            raise ValueError(
                f"a flat anchor list needs an even number of item numbers, got {len(values)}"
            )
        pairs = [(int(values[k]), int(values[k + 1])) for k in range(0, len(values), 2)]
    else:
        pairs = []
        for pair in values:
            pair = tuple(int(v) for v in pair)
            if len(pair) != 2:
                raise ValueError(f"anchors must be (reference, linked) pairs, got {pair}")
            pairs.append(pair)

    if n_items is not None:
        bad = sorted({j for pair in pairs for j in pair if j < 1 or j > n_items})
        if bad:
            raise AnchorLookupError(
                f"anchor items {bad} not found; stacked items are numbered 1 to {n_items}"
            )
    return tuple(pairs)


def expand_parameters(
    design_matrix: NDArray[np.float64],
    free_parameters: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Map free parameters to the full coefficient vector."""
    design_matrix = np.asarray(design_matrix, dtype=np.float64)
    free_parameters = np.asarray(free_parameters, dtype=np.float64)
    if design_matrix.shape[1] != free_parameters.shape[0]:
        raise DimensionMismatchError(
            f"design matrix has {design_matrix.shape[1]} columns but "
            f"{free_parameters.shape[0]} free parameters were given"
        )
    return design_matrix @ free_parameters


def _resolve_counts(
    n_items: int,
    num_time_points: int,
    items_per_occasion: Sequence[int] | None,
) -> list[int]:
    if items_per_occasion is None:
        if n_items % num_time_points != 0:
            raise DimensionMismatchError(
                f"{n_items} items cannot be split evenly over {num_time_points} time points"
            )
        return [n_items // num_time_points] * num_time_points

    counts = [int(c) for c in items_per_occasion]
    if len(counts) != num_time_points or sum(counts) != n_items:
        raise DimensionMismatchError(
            f"items_per_occasion {counts} does not describe {n_items} items over "
            f"{num_time_points} time points"
        )
    return counts


def _anchor_parents(anchors: Iterable[Sequence[int]]) -> dict[int, int]:
    """Map each linked item (0-based) to its reference item."""
    parents: dict[int, int] = {}
    for pair in anchors:
        pair = tuple(int(v) for v in pair)
        if len(pair) != 2:
            raise ValueError(f"anchors must be (reference, linked) pairs, got {pair}")
        reference, linked = pair[0] - 1, pair[1] - 1
        if reference < 0 or linked < 0:
            raise AnchorLookupError(f"anchor items are numbered from 1, got {pair}")
        if reference == linked:
            continue
        if linked in parents and parents[linked] != reference:
            raise ValueError(
                f"item {linked + 1} is anchored to both item {parents[linked] + 1} "
                f"and item {reference + 1}"
            )
        parents[linked] = reference

    for item in parents:
        _find_root(parents, item)
    return parents


def _find_root(parents: dict[int, int], item: int) -> int:
    seen = {item}
    while item in parents:
        item = parents[item]
        if item in seen:
            raise ValueError(f"anchors form a cycle through item {item + 1}")
        seen.add(item)
    return item
