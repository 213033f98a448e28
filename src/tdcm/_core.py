"""Core utility functions with no internal dependencies.

This module provides fundamental utility functions that are used throughout
the codebase but have no dependencies on other tdcm modules, avoiding
circular import issues.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
from numpy.typing import NDArray

Reporter = bool | Callable[[str], None]


def sigmoid(x: NDArray[np.floating] | float) -> NDArray[np.floating] | float:
    """Compute sigmoid function with numerical stability.

    Uses the identity sigmoid(-x) = 1 - sigmoid(x) to avoid overflow
    for large negative values.

    Parameters
    ----------
    x : array_like or float
        Input values.

    Returns
    -------
    array_like or float
        Sigmoid of input, same shape as input.
    """
    x = np.asarray(x, dtype=np.float64)
    z = np.exp(-np.abs(x))
    result = np.where(x >= 0, 1.0 / (1.0 + z), z / (1.0 + z))
    return float(result) if result.ndim == 0 else result


def emit(verbose: Reporter, message: str) -> None:
    """Send a progress message to the configured reporter.

    Parameters
    ----------
    verbose : bool or callable
        ``True`` prints the message, ``False`` discards it, and a callable
        receives the formatted message.
    message : str
        Message text.
    """
    if not verbose:
        return
    text = f"[tdcm] {message}"
    if callable(verbose):
        verbose(text)
    else:
        print(text)
