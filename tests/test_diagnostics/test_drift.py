"""Tests for item parameter drift and Wald DIF."""

import numpy as np
import pytest

from tdcm import IpdResult, assess_drift, estimate_multigroup_tdcm, estimate_tdcm, fit_gdina
from tdcm.diagnostics.dif import gdina_dif, wald_statistic


@pytest.fixture(scope="module")
def drifting_model(tdcm_data):
    """Item 1 reverses its relation to attribute 1 at time 2."""
    responses = tdcm_data["responses"].copy()
    responses[:, 5] = 1 - responses[:, 5]
    return estimate_tdcm(responses, tdcm_data["q_matrix"], 2, rule="CRUM", max_iter=300)


class TestAssessDrift:
    def test_result(self, drifting_model):
        result = assess_drift(drifting_model, max_iter=300)

        assert isinstance(result, IpdResult)
        stats = result.statistics
        assert len(stats) == 5
        assert {"item", "X2", "df", "p", "UA", "wRMSD", "p_holm"} <= set(stats.columns)
        assert np.all(stats["df"] == [2, 2, 3, 2, 2])
        assert np.all(stats["p_holm"] >= stats["p"])
        assert np.all(np.isfinite(stats["UA"]))

    def test_flags_drifting_item(self, drifting_model):
        result = assess_drift(drifting_model, max_iter=300)
        assert 1 in result.flagged_items()
        assert result.statistics["X2"].idxmax() == 0

    def test_coefficients(self, drifting_model):
        result = assess_drift(drifting_model, max_iter=300)
        coef = result.coef
        assert {"link", "est_Time1", "se_Time1", "est_Time2", "se_Time2"} <= set(coef.columns)
        assert set(coef["link"]) == {"logit"}
        assert len(coef) == 11
        assert result.estimates[0].shape == (2, 2)
        assert result.estimates[2].shape == (2, 3)

    def test_item_probabilities(self, drifting_model):
        result = assess_drift(drifting_model, max_iter=300)
        assert set(result.item_probabilities) == {"Time 1", "Time 2"}
        first = result.item_probabilities["Time 1"][0]
        second = result.item_probabilities["Time 2"][0]
        assert first[1] > first[0]
        assert second[1] < second[0]

    def test_rejects_multiple_q_matrices(self, tdcm_data):
        q = tdcm_data["q_matrix"]
        model = estimate_tdcm(
            tdcm_data["responses"][:, :9], [q, q[:4]], 2, rule="DINA", max_iter=20
        )
        with pytest.raises(ValueError, match="single Q-matrix"):
            assess_drift(model)

    def test_rejects_multigroup(self, tdcm_data):
        model = estimate_multigroup_tdcm(
            tdcm_data["responses"],
            tdcm_data["q_matrix"],
            2,
            groups=np.repeat([0, 1], tdcm_data["n_persons"] // 2),
            rule="DINA",
            max_iter=20,
        )
        with pytest.raises(ValueError, match="single-group"):
            assess_drift(model)

    def test_rejects_single_time_point(self, tdcm_data):
        model = estimate_tdcm(
            tdcm_data["responses"][:, :5], tdcm_data["q_matrix"], 1, rule="DINA", max_iter=20
        )
        with pytest.raises(ValueError, match="at least two time points"):
            assess_drift(model)


class TestGDINADif:
    def test_requires_group_specific_fit(self, tdcm_data):
        fit = fit_gdina(tdcm_data["responses"][:, :5], tdcm_data["q_matrix"], max_iter=20)
        with pytest.raises(ValueError, match="group-specific item parameters"):
            gdina_dif(fit)

    def test_three_groups(self, tdcm_data):
        groups = np.arange(tdcm_data["n_persons"]) % 3
        fit = fit_gdina(
            tdcm_data["responses"][:, :5],
            tdcm_data["q_matrix"],
            rule="ACDM",
            groups=groups,
            group_invariance=False,
            max_iter=100,
        )
        result = gdina_dif(fit)
        assert np.all(result.statistics["df"] == [4, 4, 6, 4, 4])
        assert result.statistics["UA"].isna().all()
        assert len(result.item_probabilities) == 3

    def test_wald_statistic(self):
        estimates = np.array([1.0, 0.0])
        contrast = np.array([[1.0, -1.0]])
        assert wald_statistic(estimates, np.eye(2) * 0.5, contrast) == pytest.approx(1.0)
