"""Growth proportions, transition probabilities and growth effect sizes.

All quantities are computed from the estimated profile base rates: the mass
of a transition cell is the summed base rate of the profiles whose earlier
and later indicators of an attribute fall in that cell. Tables over several
time pairs are attribute-major, so slice ``j * n_pairs + p`` holds attribute
``j`` and time pair ``p``.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from tdcm.constants import EFFECT_DIGITS, REPORT_DIGITS
from tdcm.typing import TransitionOption

TRANSITION_OPTIONS = (1, 2, 3)

GROWTH_EFFECT_COLUMNS = ("earlier", "later", "growth", "odds ratio", "cohen's h")


def transition_pairs(
    num_time_points: int,
    option: TransitionOption = 1,
) -> list[tuple[int, int]]:
    """Time pairs (0-based) compared under a transition option.

    Parameters
    ----------
    num_time_points : int
        Number of time points.
    option : {1, 2, 3}
        1 compares the first with the last time point, 2 the first with
        every later time point, 3 every pair of consecutive time points.

    Returns
    -------
    list of (int, int)
        ``(earlier, later)`` pairs. Empty for a single time point.
    """
    if option not in TRANSITION_OPTIONS:
        raise ValueError(f"transition_option must be 1, 2 or 3, got {option!r}")
    if num_time_points < 2:
        return []
    if option == 1:
        return [(0, num_time_points - 1)]
    if option == 2:
        return [(0, t) for t in range(1, num_time_points)]
    return [(t - 1, t) for t in range(1, num_time_points)]


def attribute_names_or_default(
    n_attributes: int,
    attribute_names: Sequence[str] | None = None,
) -> list[str]:
    """Attribute names, falling back to ``Attribute 1`` .. when not given."""
    if attribute_names is not None and len(attribute_names) == n_attributes:
        return [str(name) for name in attribute_names]
    return [f"Attribute {j + 1}" for j in range(n_attributes)]


def transition_labels(
    pairs: Sequence[tuple[int, int]],
    n_attributes: int,
    attribute_names: Sequence[str] | None = None,
) -> list[str]:
    """Slice labels such as ``Attribute 1: Time 1 to Time 2``."""
    names = attribute_names_or_default(n_attributes, attribute_names)
    return [
        f"{name}: Time {a + 1} to Time {b + 1}" for name in names for a, b in pairs
    ]


def mastery_rates(
    base_rates: NDArray[np.float64],
    patterns: NDArray[np.int_],
    n_attributes: int,
) -> NDArray[np.float64]:
    """Unrounded mastery proportion of every attribute at every time point.

    Returns
    -------
    ndarray of shape (n_attributes, T)
    """
    rates = np.asarray(base_rates, dtype=np.float64) @ np.asarray(patterns, dtype=np.float64)
    return rates.reshape(-1, n_attributes).T


def growth_table(
    base_rates: NDArray[np.float64],
    patterns: NDArray[np.int_],
    n_attributes: int,
    digits: int = REPORT_DIGITS,
) -> NDArray[np.float64]:
    """Mastery proportions, one row per attribute and one column per time point."""
    return np.round(mastery_rates(base_rates, patterns, n_attributes), digits)


def transition_cells(
    base_rates: NDArray[np.float64],
    patterns: NDArray[np.int_],
    n_attributes: int,
    pairs: Sequence[tuple[int, int]],
) -> NDArray[np.float64]:
    """Unnormalized 2x2 cell masses.

    Returns
    -------
    ndarray of shape (2, 2, n_attributes * n_pairs)
        ``cells[e, l, k]`` is the base-rate mass with earlier state ``e`` and
        later state ``l`` in slice ``k``.
    """
    base_rates = np.asarray(base_rates, dtype=np.float64)
    patterns = np.asarray(patterns, dtype=np.int_)
    cells = np.zeros((2, 2, n_attributes * len(pairs)))

    for j in range(n_attributes):
        for p, (earlier, later) in enumerate(pairs):
            e = patterns[:, earlier * n_attributes + j]
            l_ = patterns[:, later * n_attributes + j]
            k = j * len(pairs) + p
            for a in (0, 1):
                for b in (0, 1):
                    cells[a, b, k] = base_rates[(e == a) & (l_ == b)].sum()

    return cells


def transition_table(
    base_rates: NDArray[np.float64],
    patterns: NDArray[np.int_],
    n_attributes: int,
    pairs: Sequence[tuple[int, int]],
    digits: int = REPORT_DIGITS,
) -> NDArray[np.float64]:
    """Conditional transition probabilities.

    Each 2x2 slice has the earlier state in rows and the later state in
    columns; rows are normalized to sum to one. A row whose earlier state
    has no mass is NaN.

    Returns
    -------
    ndarray of shape (2, 2, n_attributes * n_pairs)
    """
    cells = transition_cells(base_rates, patterns, n_attributes, pairs)
    totals = cells.sum(axis=1, keepdims=True)

    with np.errstate(divide="ignore", invalid="ignore"):
        probs = np.where(totals > 0, cells / totals, np.nan)

    return np.round(probs, digits)


def growth_effects(
    base_rates: NDArray[np.float64],
    patterns: NDArray[np.int_],
    n_attributes: int,
    pairs: Sequence[tuple[int, int]],
) -> NDArray[np.float64]:
    """Growth effect sizes for every attribute and time pair.

    Columns are the earlier proportion, the later proportion, their
    difference, the odds ratio ``[later / (1 - later)] / [earlier / (1 -
    earlier)]`` and Cohen's ``h = 2 asin(sqrt(later)) - 2 asin(sqrt(earlier))``.
    Effects are computed from unrounded proportions. Proportions of exactly
    0 or 1 give an infinite or NaN odds ratio.

    Returns
    -------
    ndarray of shape (n_attributes * n_pairs, 5)
    """
    rates = mastery_rates(base_rates, patterns, n_attributes)
    effects = np.empty((n_attributes * len(pairs), 5))

    for j in range(n_attributes):
        for p, (earlier, later) in enumerate(pairs):
            p0 = float(np.clip(rates[j, earlier], 0.0, 1.0))
            p1 = float(np.clip(rates[j, later], 0.0, 1.0))

            with np.errstate(divide="ignore", invalid="ignore"):
                odds1 = np.float64(p1) / (1.0 - np.float64(p1))
                odds0 = np.float64(p0) / (1.0 - np.float64(p0))
                odds_ratio = odds1 / odds0

            h = 2 * np.arcsin(np.sqrt(p1)) - 2 * np.arcsin(np.sqrt(p0))
            effects[j * len(pairs) + p] = [
                round(p0, REPORT_DIGITS),
                round(p1, REPORT_DIGITS),
                round(p1 - p0, REPORT_DIGITS),
                np.round(odds_ratio, EFFECT_DIGITS),
                round(h, EFFECT_DIGITS),
            ]

    return effects
