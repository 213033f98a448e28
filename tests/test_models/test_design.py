"""Tests for invariance and anchor design matrices."""

import numpy as np
import pytest

from tdcm.design import (
    anchor_design,
    expand_parameters,
    full_invariance_design,
    normalize_anchors,
)
from tdcm.exceptions import AnchorLookupError, DimensionMismatchError
from tdcm.models.gdina import GDINA
from tdcm.qmatrix import stack_q_matrices, stack_q_matrix


def _layout(q_matrix, num_time_points, **kwargs):
    stacked = stack_q_matrix(q_matrix, num_time_points)
    return GDINA(stacked, ["GDINA"] * stacked.shape[0], **kwargs).layout


class TestFullInvarianceDesign:
    """Tests for ties over time."""

    def test_stacked_identity(self, q_matrix):
        layout = _layout(q_matrix, 2)
        design = full_invariance_design(layout, 2)
        n_per_time = layout.n_coefficients // 2
        np.testing.assert_array_equal(design, np.tile(np.eye(n_per_time), (2, 1)))

    def test_three_time_points(self, q_matrix):
        layout = _layout(q_matrix, 3)
        design = full_invariance_design(layout, 3)
        assert design.shape == (layout.n_coefficients, layout.n_coefficients // 3)
        np.testing.assert_array_equal(design.sum(axis=0), 3)
        np.testing.assert_array_equal(design.sum(axis=1), 1)

    def test_round_trip(self, q_matrix, rng):
        layout = _layout(q_matrix, 2)
        design = full_invariance_design(layout, 2)
        theta = rng.normal(size=design.shape[1])
        delta = expand_parameters(design, theta)

        half = layout.n_coefficients // 2
        np.testing.assert_array_equal(delta[:half], delta[half:])
        recovered, *_ = np.linalg.lstsq(design, delta, rcond=None)
        np.testing.assert_allclose(recovered, theta)

    def test_group_specific(self, q_matrix):
        layout = _layout(q_matrix, 2, n_groups=2, group_invariance=False)
        design = full_invariance_design(layout, 2)
        assert design.shape == (layout.n_coefficients, layout.n_coefficients // 2)
        for col in range(design.shape[1]):
            rows = np.where(design[:, col] == 1)[0]
            assert len(set(layout.group[rows].tolist())) == 1

    def test_unequal_item_counts(self, q_matrix):
        stacked = stack_q_matrices([q_matrix, q_matrix[:3]])
        layout = GDINA(stacked, ["GDINA"] * 8).layout
        with pytest.raises(DimensionMismatchError, match="same number of items"):
            full_invariance_design(layout, 2, [5, 3])

    def test_different_parameters_over_time(self, q_matrix):
        changed = np.array([[1, 1], [0, 1], [1, 0], [1, 0], [0, 1]])
        stacked = stack_q_matrices([q_matrix, changed])
        layout = GDINA(stacked, ["GDINA"] * 10).layout
        with pytest.raises(DimensionMismatchError, match="more parameters"):
            full_invariance_design(layout, 2)


class TestAnchorDesign:
    """Tests for anchor items."""

    def test_single_anchor(self, q_matrix):
        layout = _layout(q_matrix, 2)
        design = anchor_design(layout, [(1, 6)])
        n_linked = len(layout.rows(5))
        assert design.shape == (layout.n_coefficients, layout.n_coefficients - n_linked)
        np.testing.assert_array_equal(design[layout.rows(5)], design[layout.rows(0)])

    def test_untouched_items_free(self, q_matrix):
        layout = _layout(q_matrix, 2)
        design = anchor_design(layout, [(1, 6)])
        np.testing.assert_array_equal(design.sum(axis=1), 1)
        assert design[layout.rows(1)].sum(axis=0).max() == 1

    def test_chain(self, q_matrix):
        layout = _layout(q_matrix, 3)
        design = anchor_design(layout, [(1, 6), (6, 11)])
        np.testing.assert_array_equal(design[layout.rows(10)], design[layout.rows(0)])
        np.testing.assert_array_equal(design[layout.rows(5)], design[layout.rows(0)])
        assert design.shape[1] == layout.n_coefficients - 2 * len(layout.rows(0))

    def test_group_specific(self, q_matrix):
        layout = _layout(q_matrix, 2, n_groups=2, group_invariance=False)
        design = anchor_design(layout, [(1, 6)])
        for group in (0, 1):
            np.testing.assert_array_equal(
                design[layout.rows(5, group)], design[layout.rows(0, group)]
            )

    def test_missing_item(self, q_matrix):
        layout = _layout(q_matrix, 2)
        with pytest.raises(AnchorLookupError, match="anchor item 99"):
            anchor_design(layout, [(1, 99)])

    def test_parameter_count_mismatch(self, q_matrix):
        layout = _layout(q_matrix, 2)
        with pytest.raises(DimensionMismatchError, match="parameters"):
            anchor_design(layout, [(1, 8)])

    def test_cycle(self, q_matrix):
        layout = _layout(q_matrix, 2)
        with pytest.raises(ValueError, match="cycle"):
            anchor_design(layout, [(1, 6), (6, 1)])

    def test_conflicting_references(self, q_matrix):
        layout = _layout(q_matrix, 2)
        with pytest.raises(ValueError, match="anchored to both"):
            anchor_design(layout, [(1, 6), (4, 6)])


class TestNormalizeAnchors:
    def test_pairs(self):
        assert normalize_anchors([(1, 6), [2, 7]]) == ((1, 6), (2, 7))

    def test_flat(self):
        assert normalize_anchors([1, 6, 2, 7]) == ((1, 6), (2, 7))

    def test_empty(self):
        assert normalize_anchors(None) == ()
        assert normalize_anchors([]) == ()

    def test_odd_flat(self):
        with pytest.raises(ValueError, match="even number"):
            normalize_anchors([1, 6, 2])

    def test_item_range(self):
        assert normalize_anchors([(1, 6)], n_items=10) == ((1, 6),)
        with pytest.raises(AnchorLookupError, match=r"anchor items \[0, 11\] not found"):
            normalize_anchors([0, 6, 1, 11], n_items=10)


def test_expand_parameters_dimension_mismatch():
    with pytest.raises(DimensionMismatchError, match="columns"):
        expand_parameters(np.eye(3), np.zeros(2))
