"""Tests for EM estimation of the G-DINA model."""

import numpy as np
import pytest

from tdcm import GDINA, GDINAEstimator, fit_gdina
from tdcm.exceptions import ConvergenceWarning, DimensionMismatchError
from tdcm.qmatrix import stack_q_matrix
from tdcm.skillspace import full_skill_space


@pytest.fixture
def cdm_responses(rng, q_matrix):
    """Single-occasion DINA data."""
    n_persons = 300
    n_items, n_attrs = q_matrix.shape

    alphas = rng.integers(0, 2, (n_persons, n_attrs))
    eta = np.all(alphas[:, None, :] >= q_matrix[None, :, :], axis=2)
    probs = np.where(eta, 0.85, 0.2)
    responses = (rng.random((n_persons, n_items)) < probs).astype(int)

    return {"responses": responses, "alphas": alphas, "q_matrix": q_matrix}


class TestGDINAEstimator:
    """Tests for the EM estimator."""

    def test_initialization(self):
        estimator = GDINAEstimator(max_iter=100, tol=1e-3, item_optim_maxiter=20)
        assert estimator.max_iter == 100
        assert estimator.tol == 1e-3
        assert estimator.item_optim_maxiter == 20

    def test_invalid_max_iter(self):
        with pytest.raises(ValueError, match="max_iter must be at least 1"):
            GDINAEstimator(max_iter=0)

    def test_invalid_tol(self):
        with pytest.raises(ValueError, match="tol must be positive"):
            GDINAEstimator(tol=0)

    def test_fit_basic(self, cdm_responses):
        result = fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], max_iter=500, tol=1e-3)

        assert result.converged
        assert result.log_likelihood < 0
        assert result.n_iterations > 0
        assert result.posterior.shape == (300, 4)
        np.testing.assert_allclose(result.posterior.sum(axis=1), 1.0)
        np.testing.assert_allclose(result.class_probabilities.sum(axis=1), 1.0)
        assert result.deviance == pytest.approx(-2 * result.log_likelihood)

    def test_parameter_count(self, cdm_responses):
        result = fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], max_iter=500, tol=1e-3)
        n_coef = result.model.layout.n_coefficients
        assert result.n_parameters == n_coef + 3
        assert result.aic == pytest.approx(-2 * result.log_likelihood + 2 * result.n_parameters)

    def test_recovers_dina_probabilities(self, cdm_responses):
        result = fit_gdina(
            cdm_responses["responses"], cdm_responses["q_matrix"], rule="DINA", max_iter=500, tol=1e-3
        )
        probs = result.item_probabilities()[0]
        for item_probs in probs:
            assert item_probs[0] < 0.4
            assert item_probs[-1] > 0.65

    def test_classification(self, cdm_responses):
        result = fit_gdina(
            cdm_responses["responses"], cdm_responses["q_matrix"], rule="DINA", max_iter=500, tol=1e-3
        )
        estimated = result.attribute_patterns[result.posterior.argmax(axis=1)]
        agreement = np.mean(estimated == cdm_responses["alphas"])
        assert agreement > 0.7

    def test_coef_table(self, cdm_responses):
        result = fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], max_iter=500, tol=1e-3)
        table = result.coef()
        assert list(table.columns) == [
            "item",
            "group",
            "parameter",
            "type",
            "attributes",
            "estimate",
            "se",
        ]
        assert len(table) == result.model.layout.n_coefficients
        assert np.all(table["se"] >= 0)
        assert set(table["group"]) == {"all"}

    def test_item_rmsea(self, cdm_responses):
        result = fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], max_iter=500, tol=1e-3)
        assert result.item_rmsea.shape == (1, 5)
        assert np.all(result.item_rmsea >= 0)
        assert result.mean_rmsea == pytest.approx(result.item_rmsea.mean())

    def test_missing_responses(self, cdm_responses, rng):
        responses = cdm_responses["responses"].astype(float)
        responses[rng.random(responses.shape) < 0.1] = np.nan
        result = fit_gdina(responses, cdm_responses["q_matrix"], max_iter=500, tol=1e-3)
        assert np.isfinite(result.log_likelihood)
        assert np.all(result.responses[np.isnan(responses)] == -1)

    def test_non_convergence_warns(self, cdm_responses):
        with pytest.warns(ConvergenceWarning, match="did not converge"):
            result = fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], max_iter=2)
        assert not result.converged
        assert result.n_iterations == 2

    def test_summary(self, cdm_responses):
        result = fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], max_iter=500, tol=1e-3)
        text = result.summary()
        assert "G-DINA Model Results" in text
        assert "lambda0" in text

    def test_verbose_callable(self, cdm_responses):
        messages = []
        fit_gdina(
            cdm_responses["responses"],
            cdm_responses["q_matrix"],
            max_iter=500, tol=1e-3,
            verbose=messages.append,
        )
        assert messages
        assert all(message.startswith("[tdcm]") for message in messages)


class TestConstraints:
    """Tests for design matrices, skill spaces and groups."""

    def test_design_matrix_ties(self, q_matrix, rng):
        stacked = stack_q_matrix(q_matrix, 2)
        responses = rng.integers(0, 2, (200, 10))
        model = GDINA(stacked, ["ACDM"] * 10)
        n_half = model.layout.n_coefficients // 2
        design = np.tile(np.eye(n_half), (2, 1))

        result = GDINAEstimator(max_iter=50).fit(model, responses, design_matrix=design)
        delta = result.delta
        np.testing.assert_allclose(delta[:n_half], delta[n_half:])
        np.testing.assert_allclose(result.standard_errors[:n_half], result.standard_errors[n_half:])
        assert result.n_parameters == n_half + 15

    def test_design_matrix_rows(self, q_matrix, rng):
        model = GDINA(q_matrix, ["GDINA"] * 5)
        with pytest.raises(DimensionMismatchError, match="design_matrix must have"):
            GDINAEstimator().fit(model, rng.integers(0, 2, (50, 5)), design_matrix=np.eye(3))

    def test_skill_space_restricts_profiles(self, q_matrix, rng):
        patterns = full_skill_space(2)[[0, 1, 3]]
        result = fit_gdina(rng.integers(0, 2, (100, 5)), q_matrix, skill_space=patterns, max_iter=50)
        assert result.posterior.shape == (100, 3)
        assert result.n_parameters == result.model.layout.n_coefficients + 2

    def test_skill_space_columns(self, q_matrix, rng):
        with pytest.raises(DimensionMismatchError, match="skill_space"):
            fit_gdina(rng.integers(0, 2, (100, 5)), q_matrix, skill_space=full_skill_space(3))

    def test_response_columns(self, q_matrix, rng):
        with pytest.raises(DimensionMismatchError, match="expected 5"):
            fit_gdina(rng.integers(0, 2, (100, 4)), q_matrix)

    def test_non_binary_responses(self, q_matrix):
        responses = np.full((10, 5), 2)
        with pytest.raises(ValueError, match="binary"):
            fit_gdina(responses, q_matrix)

    def test_groups(self, cdm_responses):
        groups = np.repeat(["a", "b"], 150)
        result = fit_gdina(
            cdm_responses["responses"], cdm_responses["q_matrix"], groups=groups, max_iter=500, tol=1e-3
        )
        assert result.group_labels == ["a", "b"]
        assert result.class_probabilities.shape == (2, 4)
        assert result.n_parameters == result.model.layout.n_coefficients + 2 * 3

    def test_group_specific_items(self, cdm_responses):
        groups = np.repeat([1, 2], 150)
        result = fit_gdina(
            cdm_responses["responses"],
            cdm_responses["q_matrix"],
            rule="DINA",
            groups=groups,
            group_invariance=False,
            max_iter=500, tol=1e-3,
        )
        assert result.item_rmsea.shape == (2, 5)
        assert set(result.coef()["group"]) == {"1", "2"}

    def test_group_length(self, cdm_responses):
        with pytest.raises(DimensionMismatchError, match="one label per response row"):
            fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], groups=[0, 1])

    def test_tdcm_rule_names(self, cdm_responses):
        result = fit_gdina(
            cdm_responses["responses"], cdm_responses["q_matrix"], rule="CRUM", max_iter=500, tol=1e-3
        )
        assert result.model.rules == ["ACDM"] * 5

    def test_unknown_rule(self, cdm_responses):
        with pytest.raises(ValueError, match="Unknown rule"):
            fit_gdina(cdm_responses["responses"], cdm_responses["q_matrix"], rule="XYZ")
