"""Tests for the public package namespace."""

import tdcm


def test_all_exports_resolve():
    for name in tdcm.__all__:
        assert hasattr(tdcm, name), name


def test_version():
    assert tdcm.__version__ == "0.1.0"


def test_errors_are_value_errors():
    assert issubclass(tdcm.DimensionMismatchError, ValueError)
    assert issubclass(tdcm.AnchorLookupError, ValueError)
    assert issubclass(tdcm.DegenerateSkillSpaceError, ValueError)
    assert issubclass(tdcm.ConvergenceWarning, RuntimeWarning)
