"""Fitted TDCM container."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from tdcm.results.fit_result import GDINAFitResult

if TYPE_CHECKING:
    import pandas as pd

    from tdcm._core import Reporter


@dataclass(frozen=True, eq=False)
class TDCMFitResult:
    """Results from fitting a transition diagnostic classification model.

    Every field is set by the estimation function that creates the result;
    the object is not modified afterwards.

    Attributes
    ----------
    fit : GDINAFitResult
        Result of the final G-DINA fit.
    responses : NDArray
        Wide responses (n_persons, total items), missing coded as -1.
    q_matrix : NDArray
        Q-matrix as supplied (single occasion, or occasions stacked
        vertically in multi-Q designs).
    stacked_q_matrix : NDArray
        Block-diagonal Q-matrix over all time points.
    num_time_points : int
        Number of time points.
    n_attributes : int
        Attributes measured at each time point.
    items_per_occasion : tuple of int
        Items administered at each time point.
    rule : str or tuple of str
        Rule label(s) as given by the user.
    fitter_rules : tuple of str
        Fitter rule of every stacked item.
    link : str
        Link function.
    invariance : bool
        Whether item parameters were tied over time.
    num_q_matrices : int
        Number of occasion-specific Q-matrices.
    anchors : tuple of (int, int)
        Anchor pairs ``(reference, linked)`` of stacked item numbers.
    no_forget_attributes : tuple of int
        Attributes (numbered from 1) that may not be forgotten.
    forget_policy : str
        Time pairs covered by the no-forgetting constraint.
    skill_space : NDArray
        Attribute profiles used by the final fit.
    design_matrix : NDArray or None
        Constraint matrix of the final fit, if any.
    group_invariance : bool
        Whether item parameters were shared by the groups.
    multigroup : bool
        Whether the model was estimated by ``estimate_multigroup_tdcm``.
    verbose : bool or callable
        Progress reporter used during estimation.
    """

    fit: GDINAFitResult
    responses: NDArray[np.int_]
    q_matrix: NDArray[np.int_]
    stacked_q_matrix: NDArray[np.int_]
    num_time_points: int
    n_attributes: int
    items_per_occasion: tuple[int, ...]
    rule: str | tuple[str, ...]
    fitter_rules: tuple[str, ...]
    link: str
    invariance: bool
    num_q_matrices: int = 1
    anchors: tuple[tuple[int, int], ...] = ()
    no_forget_attributes: tuple[int, ...] = ()
    forget_policy: str = "first_last"
    skill_space: NDArray[np.int_] = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int_))
    design_matrix: NDArray[np.float64] | None = None
    group_invariance: bool = True
    multigroup: bool = False
    verbose: Reporter = False

    @property
    def time_invariance(self) -> bool:
        return self.invariance

    @property
    def n_groups(self) -> int:
        return self.fit.n_groups

    @property
    def group_labels(self) -> list[str]:
        return list(self.fit.group_labels)

    @property
    def groups(self) -> NDArray[np.int_]:
        """Group code of every examinee."""
        return self.fit.groups

    @property
    def n_persons(self) -> int:
        return self.responses.shape[0]

    @property
    def n_items(self) -> int:
        return self.stacked_q_matrix.shape[0]

    @property
    def posterior(self) -> NDArray[np.float64]:
        return self.fit.posterior

    @property
    def attribute_patterns(self) -> NDArray[np.int_]:
        return self.fit.attribute_patterns

    @property
    def class_probabilities(self) -> NDArray[np.float64]:
        return self.fit.class_probabilities

    @property
    def log_likelihood(self) -> float:
        return self.fit.log_likelihood

    @property
    def deviance(self) -> float:
        return self.fit.deviance

    @property
    def aic(self) -> float:
        return self.fit.aic

    @property
    def bic(self) -> float:
        return self.fit.bic

    @property
    def caic(self) -> float:
        return self.fit.caic

    @property
    def n_parameters(self) -> int:
        return self.fit.n_parameters

    @property
    def converged(self) -> bool:
        return self.fit.converged

    @property
    def item_rmsea(self) -> NDArray[np.float64]:
        return self.fit.item_rmsea

    @property
    def mean_rmsea(self) -> float:
        return self.fit.mean_rmsea

    def coef(self) -> pd.DataFrame:
        """Item coefficients with standard errors (one row per coefficient)."""
        return self.fit.coef()

    def fit_statistics(self) -> dict[str, float]:
        return self.fit.fit_statistics()

    def summary(self) -> str:
        """Formatted description of the model and its item parameters."""
        invariance = "time-invariant" if self.invariance else "time-specific"
        header = [
            f"TDCM: {self.num_time_points} time points, {self.n_attributes} attributes, "
            f"{self.n_items} items ({invariance} item parameters)",
            f"Rule: {self.rule}, link: {self.link}",
        ]
        if self.multigroup:
            sharing = "shared" if self.group_invariance else "group-specific"
            header.append(f"Groups: {self.n_groups} ({sharing} item parameters)")
        if self.no_forget_attributes:
            header.append(
                f"No forgetting of attributes {list(self.no_forget_attributes)} "
                f"({self.forget_policy})"
            )
        if self.anchors:
            header.append(f"Anchors: {[list(a) for a in self.anchors]}")
        return "\n".join(header) + "\n" + self.fit.summary()

    def __repr__(self) -> str:
        return (
            f"TDCMFitResult(T={self.num_time_points}, A={self.n_attributes}, "
            f"n_groups={self.n_groups}, LL={self.log_likelihood:.2f}, "
            f"converged={self.converged})"
        )
