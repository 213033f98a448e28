"""Regression tests for lazy loading in :mod:`tdcm.diagnostics`."""

from __future__ import annotations

import importlib


def _reload_diagnostics_module():
    diagnostics_module = importlib.import_module("tdcm.diagnostics")
    return importlib.reload(diagnostics_module)


def test_lazy_diagnostics_symbol_resolution() -> None:
    diagnostics = _reload_diagnostics_module()
    diagnostics.__dict__.pop("assess_drift", None)

    assert "assess_drift" not in diagnostics.__dict__

    assess_drift = diagnostics.assess_drift
    assert callable(assess_drift)
    assert diagnostics.__dict__["assess_drift"] is assess_drift


def test_lazy_diagnostics_dir_lists_exports() -> None:
    diagnostics = _reload_diagnostics_module()
    assert {"compare", "gdina_dif", "model_fit"} <= set(dir(diagnostics))


def test_unknown_attribute() -> None:
    diagnostics = _reload_diagnostics_module()
    try:
        diagnostics.not_a_symbol
    except AttributeError as exc:
        assert "not_a_symbol" in str(exc)
    else:
        raise AssertionError("expected AttributeError")
