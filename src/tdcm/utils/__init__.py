from tdcm.utils.correlation import tetrachoric, tetrachoric_matrix
from tdcm.utils.data import encode_groups, reshape_to_long, validate_responses
from tdcm.utils.simulation import simulate_tdcm
from tdcm.utils.stats import holm_adjust

__all__ = [
    "simulate_tdcm",
    "validate_responses",
    "encode_groups",
    "reshape_to_long",
    "tetrachoric",
    "tetrachoric_matrix",
    "holm_adjust",
]
