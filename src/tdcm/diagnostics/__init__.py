import importlib
from typing import Any

__all__ = [
    "compare",
    "ModelComparison",
    "gdina_dif",
    "DifResult",
    "assess_drift",
    "IpdResult",
    "model_fit",
    "ModelFitReport",
]

_LAZY_IMPORTS = {
    "compare": ("tdcm.diagnostics.comparison", "compare"),
    "ModelComparison": ("tdcm.diagnostics.comparison", "ModelComparison"),
    "gdina_dif": ("tdcm.diagnostics.dif", "gdina_dif"),
    "DifResult": ("tdcm.diagnostics.dif", "DifResult"),
    "assess_drift": ("tdcm.diagnostics.drift", "assess_drift"),
    "IpdResult": ("tdcm.diagnostics.drift", "IpdResult"),
    "model_fit": ("tdcm.diagnostics.modelfit", "model_fit"),
    "ModelFitReport": ("tdcm.diagnostics.modelfit", "ModelFitReport"),
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_IMPORTS:
        module_name, symbol_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_name)
        value = getattr(module, symbol_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'tdcm.diagnostics' has no attribute '{name}'")


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
