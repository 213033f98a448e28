from tdcm.estimation.base import BaseEstimator
from tdcm.estimation.em import GDINAEstimator, fit_gdina

__all__ = [
    "BaseEstimator",
    "GDINAEstimator",
    "fit_gdina",
]
