"""Error types raised while setting up a TDCM estimation."""


class DimensionMismatchError(ValueError):
    """Dimensions of responses, Q-matrices, item counts or groups disagree."""


class AnchorLookupError(ValueError):
    """An anchor item does not appear in the coefficient layout."""


class DegenerateSkillSpaceError(ValueError):
    """No-forgetting constraints removed every attribute profile."""


class ConvergenceWarning(RuntimeWarning):
    """The EM algorithm stopped before meeting its convergence criterion."""
