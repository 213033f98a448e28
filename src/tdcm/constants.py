"""Constants for numerical stability and default bounds.

These are true constants that should not be user-configurable.
For configurable values, use function arguments with defaults.
"""

PROB_EPSILON: float = 1e-10
"""Small value to prevent log(0) and division by zero in probability calculations."""

PROB_CLIP_MIN: float = 1e-6
"""Minimum item response probability used inside the likelihood."""

PROB_CLIP_MAX: float = 1.0 - 1e-6
"""Maximum item response probability used inside the likelihood."""

REGULARIZATION_EPSILON: float = 1e-8
"""Ridge added to information matrices before inversion."""

REPORT_DIGITS: int = 3
"""Decimal places used for reported probabilities and proportions."""

EFFECT_DIGITS: int = 2
"""Decimal places used for odds ratios and Cohen's h."""

RELIABILITY_THRESHOLDS: tuple[float, ...] = (0.6, 0.7, 0.8, 0.9)
"""Cut points for the proportion of confident transition posteriors."""

TRANSITION_CELLS: tuple[str, ...] = ("0->0", "0->1", "1->0", "1->1")
"""Labels of the four cells of an attribute transition, earlier->later."""
