"""Tests for absolute model fit."""

import numpy as np
import pytest

from tdcm.diagnostics.modelfit import ModelFitReport, model_fit


class TestModelFit:
    def test_report(self, invariant_model):
        report = model_fit(invariant_model.fit)

        assert isinstance(report, ModelFitReport)
        assert set(report.statistics) == {
            "MADcor",
            "SRMSR",
            "MADRESIDCOV",
            "MX2",
            "maxX2",
            "p_maxX2",
            "p_holm_maxX2",
        }
        assert report.statistics["SRMSR"] >= report.statistics["MADcor"] >= 0
        assert report.statistics["maxX2"] >= report.statistics["MX2"]
        assert report.statistics["p_holm_maxX2"] >= report.statistics["p_maxX2"]

    def test_item_pairs(self, invariant_model):
        pairs = model_fit(invariant_model.fit).item_pairs
        assert len(pairs) == 45
        assert list(pairs.columns[:3]) == ["item1", "item2", "obs"]
        np.testing.assert_allclose(pairs["diff"], pairs["obs"] - pairs["exp"])
        assert np.all(pairs["p_holm"] >= pairs["p"])

    def test_small_residuals_for_true_model(self, invariant_model):
        assert model_fit(invariant_model.fit).statistics["SRMSR"] < 0.1

    def test_to_dict(self, invariant_model):
        values = model_fit(invariant_model.fit).to_dict()
        assert values["AIC"] == pytest.approx(invariant_model.aic)
        assert values["Npars"] == invariant_model.n_parameters
        assert values["loglike"] == pytest.approx(invariant_model.log_likelihood)
