"""Tests for TDCM summaries."""

import numpy as np
import pytest

from tdcm import SummaryResult, estimate_tdcm, simulate_tdcm, summarize
from tdcm.summary.reliability import RELIABILITY_COLUMNS


@pytest.fixture(scope="module")
def three_time_model():
    q = np.array([[1, 0], [0, 1], [1, 1], [1, 0], [0, 1]])
    responses = simulate_tdcm(q, num_time_points=3, n_persons=300, seed=13)
    return estimate_tdcm(responses, q, num_time_points=3, rule="CRUM", max_iter=100)


class TestSummarize:
    """Tests for the summary of a single-group model."""

    def test_result(self, invariant_model, tdcm_data):
        results = summarize(invariant_model)
        n_persons = tdcm_data["n_persons"]

        assert isinstance(results, SummaryResult)
        assert not results.multigroup
        assert results.growth.shape == (2, 2)
        assert results.growth_effects.shape == (2, 5)
        assert results.transition_probabilities.shape == (2, 2, 2)
        assert results.posterior_probabilities.shape == (n_persons, 4)
        assert results.classifications.shape == (n_persons, 4)
        assert results.reliability.shape == (2, 10)
        assert results.transition_posteriors.shape == (n_persons, 4, 2)
        assert results.most_likely_transitions.shape == (n_persons, 2)
        assert results.attribute_correlations.shape == (4, 4)
        assert results.attribute_labels == ["T1A1", "T1A2", "T2A1", "T2A2"]

    def test_posteriors_rounded(self, invariant_model):
        results = summarize(invariant_model)
        probs = results.posterior_probabilities
        np.testing.assert_array_equal(probs, np.round(probs, 3))
        assert np.all((probs >= 0) & (probs <= 1))

    def test_classifications_follow_threshold(self, invariant_model):
        results = summarize(invariant_model, classification_threshold=0.7)
        expected = (results.posterior_probabilities > 0.7).astype(int)
        np.testing.assert_array_equal(results.classifications, expected)

    def test_threshold_monotone(self, invariant_model):
        low = summarize(invariant_model, classification_threshold=0.3).classifications
        high = summarize(invariant_model, classification_threshold=0.8).classifications
        assert np.all(low >= high)

    def test_transition_posteriors_sum_to_one(self, invariant_model):
        posts = summarize(invariant_model).transition_posteriors
        np.testing.assert_allclose(posts.sum(axis=1), 1.0, atol=3e-3)

    def test_effects_match_growth(self, invariant_model):
        results = summarize(invariant_model)
        np.testing.assert_allclose(results.growth_effects[:, 0], results.growth[:, 0], atol=1e-3)
        np.testing.assert_allclose(results.growth_effects[:, 1], results.growth[:, 1], atol=1e-3)
        np.testing.assert_allclose(
            results.growth_effects[:, 2],
            results.growth[:, 1] - results.growth[:, 0],
            atol=2e-3,
        )

    def test_reliability_ranges(self, invariant_model):
        rel = summarize(invariant_model).reliability
        assert np.all((rel[:, 3] >= 0.25) & (rel[:, 3] <= 1))
        assert np.all(np.diff(rel[:, 4:8], axis=1) <= 0)

    def test_model_fit(self, invariant_model):
        report = summarize(invariant_model).model_fit
        assert report.log_likelihood == pytest.approx(invariant_model.log_likelihood)
        assert report.n_parameters == invariant_model.n_parameters
        assert report.statistics["SRMSR"] >= 0

    def test_item_parameters(self, invariant_model):
        table = summarize(invariant_model).item_parameters
        assert table.shape[0] == 10
        assert list(table.columns[:3]) == ["lambda0", "lambda1,1", "lambda1,2"]
        assert table.loc["Item 1", "lambda0"] == table.loc["Item 6", "lambda0"]

    def test_attribute_names(self, invariant_model):
        results = summarize(invariant_model, attribute_names=["Add", "Sub"])
        assert results.transition_labels == ["Add: Time 1 to Time 2", "Sub: Time 1 to Time 2"]
        assert list(results.growth_frame().index) == ["Add", "Sub"]

    def test_verbose(self, invariant_model):
        messages = []
        summarize(invariant_model, verbose=messages.append)
        assert messages == ["[tdcm] Summarizing results...", "[tdcm] Routine finished. Check results."]

    def test_invalid_threshold(self, invariant_model):
        with pytest.raises(ValueError, match="classification_threshold"):
            summarize(invariant_model, classification_threshold=1.0)

    def test_invalid_option(self, invariant_model):
        with pytest.raises(ValueError, match="transition_option"):
            summarize(invariant_model, transition_option=0)

    def test_does_not_modify_model(self, invariant_model):
        before = invariant_model.class_probabilities.copy()
        summarize(invariant_model, transition_option=3)
        np.testing.assert_array_equal(invariant_model.class_probabilities, before)


class TestTransitionOptions:
    """Tests with three time points."""

    @pytest.mark.parametrize(
        "option, pairs",
        [(1, [(0, 2)]), (2, [(0, 1), (0, 2)]), (3, [(0, 1), (1, 2)])],
    )
    def test_pairs(self, three_time_model, option, pairs):
        results = summarize(three_time_model, transition_option=option)
        n_slices = 2 * len(pairs)
        assert results.time_pairs == pairs
        assert results.transition_probabilities.shape == (2, 2, n_slices)
        assert results.growth_effects.shape == (n_slices, 5)
        assert results.reliability.shape == (n_slices, 10)
        assert results.growth.shape == (2, 3)

    def test_labels_attribute_major(self, three_time_model):
        results = summarize(three_time_model, transition_option=3)
        assert results.transition_labels == [
            "Attribute 1: Time 1 to Time 2",
            "Attribute 1: Time 2 to Time 3",
            "Attribute 2: Time 1 to Time 2",
            "Attribute 2: Time 2 to Time 3",
        ]

    def test_first_to_last_equals_option_two_slice(self, three_time_model):
        first_last = summarize(three_time_model, transition_option=1)
        first_each = summarize(three_time_model, transition_option=2)
        np.testing.assert_array_equal(
            first_last.transition_probabilities[:, :, 0],
            first_each.transition_probabilities[:, :, 1],
        )


class TestSummaryResultFrames:
    def test_frames(self, invariant_model):
        results = summarize(invariant_model)
        assert list(results.growth_frame().columns) == ["T1[1]", "T2[1]"]
        assert list(results.reliability_frame().columns) == list(RELIABILITY_COLUMNS)
        assert results.growth_effects_frame().shape == (2, 5)
        assert results.transition_frame(0).shape == (2, 2)
        assert list(results.posterior_frame().columns) == results.attribute_labels
        assert results.classification_frame().shape == results.classifications.shape
        assert set(np.unique(results.most_likely_frame().to_numpy())) <= {
            "0->0",
            "0->1",
            "1->0",
            "1->1",
        }

    def test_text_report(self, invariant_model):
        text = summarize(invariant_model).summary()
        assert "TDCM Summary" in text
        assert "Transition reliability" in text
        assert "SummaryResult(option=1" in repr(summarize(invariant_model))

    def test_multigroup_frames_need_group(self, tdcm_data):
        from tdcm import estimate_multigroup_tdcm

        model = estimate_multigroup_tdcm(
            tdcm_data["responses"],
            tdcm_data["q_matrix"],
            num_time_points=2,
            groups=np.repeat(["a", "b"], tdcm_data["n_persons"] // 2),
            rule="DINA",
            max_iter=30,
        )
        results = summarize(model, group_names=["first", "second"])
        assert results.group_names == ["first", "second"]
        assert results.growth_frame("second").shape == (2, 2)
        with pytest.raises(ValueError, match="group is required"):
            results.growth_frame()
