from tdcm.results.fit_result import GDINAFitResult
from tdcm.results.summary_result import SummaryResult
from tdcm.results.tdcm_result import TDCMFitResult

__all__ = ["GDINAFitResult", "SummaryResult", "TDCMFitResult"]
