"""Tests for profile spaces and no-forgetting constraints."""

import numpy as np
import pytest

from tdcm.exceptions import DegenerateSkillSpaceError
from tdcm.skillspace import (
    constrained_time_pairs,
    forgetting_rows,
    full_skill_space,
    reduce_skill_space,
)


class TestFullSkillSpace:
    """Tests for profile enumeration."""

    def test_shape_and_order(self):
        patterns = full_skill_space(3)
        assert patterns.shape == (8, 3)
        np.testing.assert_array_equal(patterns[0], [0, 0, 0])
        np.testing.assert_array_equal(patterns[1], [1, 0, 0])
        np.testing.assert_array_equal(patterns[-1], [1, 1, 1])

    def test_unique_rows(self):
        patterns = full_skill_space(4)
        assert len({tuple(row) for row in patterns}) == 16

    def test_invalid(self):
        with pytest.raises(ValueError, match="n_attributes"):
            full_skill_space(0)


class TestTimePairs:
    def test_first_last(self):
        assert constrained_time_pairs(3, "first_last") == [(0, 2)]

    def test_successive(self):
        assert constrained_time_pairs(3, "successive") == [(0, 1), (1, 2)]

    def test_single_time_point(self):
        assert constrained_time_pairs(1) == []

    def test_unknown_policy(self):
        with pytest.raises(ValueError, match="forget_policy"):
            constrained_time_pairs(3, "all")


class TestReduceSkillSpace:
    """Tests for removing forgetting profiles."""

    def test_no_constraint_is_identity(self):
        patterns = full_skill_space(4)
        np.testing.assert_array_equal(reduce_skill_space(patterns, None, 2, 2), patterns)
        np.testing.assert_array_equal(reduce_skill_space(patterns, [], 2, 2), patterns)

    def test_removes_forgetting(self):
        patterns = full_skill_space(2)
        reduced = reduce_skill_space(patterns, [1], 1, 2)
        assert reduced.shape == (3, 2)
        assert not np.any((reduced[:, 0] == 1) & (reduced[:, 1] == 0))

    def test_keeps_original_order(self):
        patterns = full_skill_space(4)
        reduced = reduce_skill_space(patterns, [2], 2, 2)
        positions = [
            int(np.where((patterns == row).all(axis=1))[0][0]) for row in reduced
        ]
        assert positions == sorted(positions)

    def test_more_attributes_give_subset(self):
        patterns = full_skill_space(6)
        one = reduce_skill_space(patterns, [1], 3, 2)
        two = reduce_skill_space(patterns, [1, 3], 3, 2)
        assert two.shape[0] < one.shape[0] < patterns.shape[0]
        one_rows = {tuple(row) for row in one}
        assert all(tuple(row) in one_rows for row in two)

    def test_no_profile_forgets(self):
        patterns = full_skill_space(6)
        reduced = reduce_skill_space(patterns, [1, 2, 3], 3, 2)
        for a in range(3):
            assert not np.any(reduced[:, a] > reduced[:, 3 + a])
        assert reduced.shape[0] == 3**3

    def test_policies_differ_for_three_time_points(self):
        patterns = full_skill_space(3)
        first_last = reduce_skill_space(patterns, [1], 1, 3, "first_last")
        successive = reduce_skill_space(patterns, [1], 1, 3, "successive")
        assert first_last.shape[0] == 6
        assert successive.shape[0] == 4

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            reduce_skill_space(full_skill_space(4), [3], 2, 2)

    def test_column_mismatch(self):
        with pytest.raises(ValueError, match="columns"):
            reduce_skill_space(full_skill_space(3), [1], 2, 2)

    def test_degenerate(self):
        with pytest.raises(DegenerateSkillSpaceError):
            reduce_skill_space(np.array([[1, 0]]), [1], 1, 2)

    def test_forgetting_rows(self):
        patterns = full_skill_space(2)
        np.testing.assert_array_equal(
            forgetting_rows(patterns, 0, 1, [(0, 1)]), [False, True, False, False]
        )
