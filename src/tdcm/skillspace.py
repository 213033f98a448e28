"""Attribute profile spaces and no-forgetting constraints.

Profiles span all time points: column ``t * A + a`` holds mastery of
attribute ``a`` at time ``t``. Forbidding forgetting of an attribute removes
every profile in which that attribute is mastered at an earlier occasion and
not mastered at a later one.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
from numpy.typing import NDArray

from tdcm.exceptions import DegenerateSkillSpaceError
from tdcm.typing import ForgetPolicy


def full_skill_space(n_attributes: int) -> NDArray[np.int_]:
    """Enumerate all ``2 ** n_attributes`` binary profiles.

    Rows are ordered by the binary number they encode, with the first
    attribute as the least significant bit, so row 0 is all zeros and the
    last row is all ones.

    Parameters
    ----------
    n_attributes : int
        Number of (stacked) attributes.

    Returns
    -------
    ndarray of shape (2 ** n_attributes, n_attributes)
        Profile matrix.
    """
    if n_attributes < 1:
        raise ValueError(f"n_attributes must be at least 1, got {n_attributes}")

    codes = np.arange(2**n_attributes)
    return ((codes[:, None] >> np.arange(n_attributes)) & 1).astype(np.int_)


def constrained_time_pairs(
    num_time_points: int,
    policy: ForgetPolicy = "first_last",
) -> list[tuple[int, int]]:
    """Time pairs (0-based, earlier first) covered by a no-forgetting constraint."""
    if num_time_points < 2:
        return []
    if policy == "first_last":
        return [(0, num_time_points - 1)]
    if policy == "successive":
        return [(t - 1, t) for t in range(1, num_time_points)]
    raise ValueError(
        f"Unknown forget_policy: {policy!r}. Choose from: first_last, successive"
    )


def forgetting_rows(
    patterns: NDArray[np.int_],
    attribute: int,
    n_attributes: int,
    pairs: Iterable[tuple[int, int]],
) -> NDArray[np.bool_]:
    """Mark profiles in which ``attribute`` (0-based) goes from 1 to 0."""
    mask = np.zeros(patterns.shape[0], dtype=bool)
    for earlier, later in pairs:
        mask |= (
            patterns[:, earlier * n_attributes + attribute]
            > patterns[:, later * n_attributes + attribute]
        )
    return mask


def reduce_skill_space(
    patterns: NDArray[np.int_],
    no_forget_attributes: Iterable[int] | None,
    n_attributes: int,
    num_time_points: int,
    policy: ForgetPolicy = "first_last",
) -> NDArray[np.int_]:
    """Remove profiles that violate no-forgetting constraints.

    Parameters
    ----------
    patterns : ndarray of shape (n_profiles, n_attributes * num_time_points)
        Candidate profiles, usually the full cross-time space.
    no_forget_attributes : iterable of int or None
        Attributes (numbered from 1) whose mastery may not be lost.
        Empty or None leaves the space unchanged.
    n_attributes : int
        Attributes per occasion.
    num_time_points : int
        Number of time points.
    policy : {'first_last', 'successive'}
        Compare time 1 with the last time point, or every consecutive pair.

    Returns
    -------
    ndarray
        Retained profiles in their original order.

    Raises
    ------
    ValueError
        If an attribute number is out of range.
    DegenerateSkillSpaceError
        If no profile survives.
    """
    patterns = np.asarray(patterns, dtype=np.int_)
    attributes = sorted(set(int(a) for a in (no_forget_attributes or ())))

    if not attributes:
        return patterns

    if patterns.shape[1] != n_attributes * num_time_points:
        raise ValueError(
            f"patterns has {patterns.shape[1]} columns, expected "
            f"{n_attributes * num_time_points} ({n_attributes} attributes x "
            f"{num_time_points} time points)"
        )

    bad = [a for a in attributes if a < 1 or a > n_attributes]
    if bad:
        raise ValueError(
            f"no_forget_attributes {bad} out of range; attributes are numbered "
            f"1 to {n_attributes}"
        )

    pairs = constrained_time_pairs(num_time_points, policy)

    remove = np.zeros(patterns.shape[0], dtype=bool)
    for a in attributes:
        remove |= forgetting_rows(patterns, a - 1, n_attributes, pairs)

    reduced = patterns[~remove]
    if reduced.shape[0] == 0:
        raise DegenerateSkillSpaceError(
            f"no-forgetting constraints on attributes {attributes} remove every "
            "attribute profile"
        )

    return reduced
