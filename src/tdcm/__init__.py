"""Transition diagnostic classification models.

Estimate longitudinal cognitive diagnosis models, summarize attribute growth
and transitions, and test items for parameter drift over time.

Examples
--------
>>> import numpy as np
>>> from tdcm import estimate_tdcm, summarize, simulate_tdcm
>>> q = np.array([[1, 0], [0, 1], [1, 1], [1, 0], [0, 1]])
>>> responses = simulate_tdcm(q, num_time_points=2, n_persons=300, seed=1)
>>> model = estimate_tdcm(responses, q, num_time_points=2)
>>> results = summarize(model, transition_option=1)
>>> results.growth.shape
(2, 2)
"""

from tdcm._version import __version__
from tdcm.design import anchor_design, full_invariance_design
from tdcm.diagnostics.comparison import ModelComparison, compare
from tdcm.diagnostics.dif import DifResult, gdina_dif
from tdcm.diagnostics.drift import IpdResult, assess_drift
from tdcm.diagnostics.modelfit import ModelFitReport, model_fit
from tdcm.estimation.em import GDINAEstimator, fit_gdina
from tdcm.exceptions import (
    AnchorLookupError,
    ConvergenceWarning,
    DegenerateSkillSpaceError,
    DimensionMismatchError,
)
from tdcm.longitudinal import estimate_tdcm
from tdcm.models.gdina import GDINA
from tdcm.multigroup import estimate_multigroup_tdcm
from tdcm.qmatrix import stack_q_matrices, stack_q_matrix
from tdcm.results.fit_result import GDINAFitResult
from tdcm.results.summary_result import SummaryResult
from tdcm.results.tdcm_result import TDCMFitResult
from tdcm.skillspace import full_skill_space, reduce_skill_space
from tdcm.summary.summarize import summarize
from tdcm.utils.simulation import simulate_tdcm

__all__ = [
    "__version__",
    # Estimation
    "estimate_tdcm",
    "estimate_multigroup_tdcm",
    "fit_gdina",
    "GDINA",
    "GDINAEstimator",
    # Summaries and diagnostics
    "summarize",
    "compare",
    "assess_drift",
    "gdina_dif",
    "model_fit",
    # Building blocks
    "stack_q_matrix",
    "stack_q_matrices",
    "full_skill_space",
    "reduce_skill_space",
    "full_invariance_design",
    "anchor_design",
    "simulate_tdcm",
    # Results
    "TDCMFitResult",
    "GDINAFitResult",
    "SummaryResult",
    "ModelComparison",
    "ModelFitReport",
    "DifResult",
    "IpdResult",
    # Errors
    "DimensionMismatchError",
    "AnchorLookupError",
    "DegenerateSkillSpaceError",
    "ConvergenceWarning",
]
