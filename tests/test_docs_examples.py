"""Regression tests for documentation examples."""

from __future__ import annotations

import doctest

import tdcm


def test_package_example_runs_in_a_fresh_namespace() -> None:
    """The package docstring example should import everything it uses."""
    finder = doctest.DocTestFinder(recurse=False)
    runner = doctest.DocTestRunner(optionflags=doctest.ELLIPSIS)

    tests = finder.find(tdcm, "tdcm", globs={})
    assert tests and tests[0].examples

    for test in tests:
        runner.run(test)
    assert runner.failures == 0, f"{runner.failures} failing example(s) in tdcm.__doc__"
