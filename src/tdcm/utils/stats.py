"""Small statistical helpers."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def holm_adjust(p_values: NDArray[np.float64]) -> NDArray[np.float64]:
    """Holm step-down adjustment of p-values.

    Parameters
    ----------
    p_values : array-like
        Unadjusted p-values. NaN entries are left as NaN and do not count
        towards the number of tests.

    Returns
    -------
    ndarray
        Adjusted p-values in the input order, capped at 1.

    Examples
    --------
    >>> holm_adjust(np.array([0.01, 0.04, 0.03]))
    array([0.03, 0.06, 0.06])
    """
    p = np.asarray(p_values, dtype=np.float64)
    adjusted = np.full(p.shape, np.nan)

    valid = np.where(~np.isnan(p))[0]
    m = len(valid)
    if m == 0:
        return adjusted

    order = valid[np.argsort(p[valid], kind="stable")]
    scaled = (m - np.arange(m)) * p[order]
    adjusted[order] = np.minimum(np.maximum.accumulate(scaled), 1.0)
    return adjusted
