"""Type definitions for the tdcm package."""

from typing import Literal

import numpy as np
from numpy.typing import NDArray

# Array types
ResponseMatrix = NDArray[np.int_]  # Shape: (n_persons, n_items)
QMatrix = NDArray[np.int_]  # Shape: (n_items, n_attributes)
PatternMatrix = NDArray[np.int_]  # Shape: (n_profiles, n_attributes * n_time_points)
PosteriorMatrix = NDArray[np.float64]  # Shape: (n_persons, n_profiles)
DesignMatrix = NDArray[np.float64]  # Shape: (n_coefficients, n_free)

# Link functions accepted by the G-DINA fitter
LinkFunction = Literal["logit", "identity", "log"]

# Rules in the fitter's own vocabulary
FitterRule = str  # "GDINA", "GDINA1".."GDINA10", "ACDM", "DINA", "DINO", "RRUM"

# How growth and transitions are reported across time points
TransitionOption = Literal[1, 2, 3]

# Which time pairs a no-forgetting constraint covers
ForgetPolicy = Literal["first_last", "successive"]
