"""Base class for parameter estimation algorithms."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from tdcm._core import Reporter, emit

if TYPE_CHECKING:
    from tdcm.models.gdina import GDINA
    from tdcm.results.fit_result import GDINAFitResult


class BaseEstimator(ABC):
    """Abstract base class for CDM parameter estimation algorithms.

    Parameters
    ----------
    max_iter : int, default=1000
        Maximum number of iterations.
    tol : float, default=1e-4
        Convergence tolerance (largest change in any item or class
        probability between iterations).
    verbose : bool or callable, default=False
        Whether to report progress information.

    Attributes
    ----------
    max_iter : int
        Maximum iterations.
    tol : float
        Convergence tolerance.
    verbose : bool or callable
        Progress reporter.
    convergence_history : list of float
        Log-likelihood values at each iteration.
    """

    def __init__(
        self,
        max_iter: int = 1000,
        tol: float = 1e-4,
        verbose: Reporter = False,
    ) -> None:
        if max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if tol <= 0:
            raise ValueError("tol must be positive")

        self.max_iter = max_iter
        self.tol = tol
        self.verbose = verbose
        self._convergence_history: list[float] = []

    @abstractmethod
    def fit(
        self,
        model: "GDINA",
        responses: NDArray[np.int_],
        **kwargs,
    ) -> "GDINAFitResult":
        """Fit a G-DINA model to dichotomous responses.

        Parameters
        ----------
        model : GDINA
            Model whose item coefficients are estimated in place.
        responses : ndarray of shape (n_persons, n_items)
            0/1 responses; -1 marks a missing response.
        **kwargs
            Group labels, design matrix, skill space and similar options.

        Returns
        -------
        GDINAFitResult
            Object containing fitted parameters, standard errors, posterior
            probabilities and fit statistics.
        """
        ...

    @property
    def convergence_history(self) -> list[float]:
        """Return log-likelihood history across iterations."""
        return self._convergence_history.copy()

    def _check_convergence(self, max_change: float) -> bool:
        """Check if algorithm has converged.

        Parameters
        ----------
        max_change : float
            Largest absolute parameter change in the last iteration.

        Returns
        -------
        bool
            True if converged.
        """
        return max_change < self.tol

    def _validate_responses(
        self,
        responses: NDArray[np.int_],
        n_items: int,
    ) -> NDArray[np.int_]:
        """Validate and clean response matrix.

        Parameters
        ----------
        responses : ndarray
            Raw response matrix.
        n_items : int
            Expected number of items.

        Returns
        -------
        ndarray
            Validated response matrix.
        """
        from tdcm.utils.data import validate_responses

        return validate_responses(responses, n_items=n_items)

    def _log_iteration(
        self,
        iteration: int,
        log_likelihood: float,
        **kwargs,
    ) -> None:
        """Log iteration progress if verbose mode is on.

        Parameters
        ----------
        iteration : int
            Current iteration number.
        log_likelihood : float
            Current log-likelihood value.
        **kwargs
            Additional values to log.
        """
        if self.verbose:
            extras = ", ".join(f"{k}={v:.6f}" for k, v in kwargs.items())
            msg = f"Iteration {iteration:4d}: LL = {log_likelihood:.4f}"
            if extras:
                msg += f", {extras}"
            emit(self.verbose, msg)

    def _information_criteria(
        self,
        log_likelihood: float,
        n_parameters: int,
        n_observations: int,
    ) -> tuple[float, float, float]:
        """AIC, BIC and CAIC of a fitted model."""
        deviance = -2.0 * log_likelihood
        log_n = np.log(n_observations)
        return (
            deviance + 2.0 * n_parameters,
            deviance + n_parameters * log_n,
            deviance + n_parameters * (log_n + 1.0),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(max_iter={self.max_iter}, tol={self.tol})"
