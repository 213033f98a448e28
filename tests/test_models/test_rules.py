"""Tests for rule translation and link validation."""

import pytest

from tdcm.rules import (
    FITTER_RULES,
    check_link,
    interaction_order,
    to_fitter_rule,
    translate_rules,
)


class TestRuleTranslation:
    """Tests for the TDCM to fitter rule mapping."""

    @pytest.mark.parametrize(
        "rule, expected",
        [
            ("LCDM", "GDINA"),
            ("CRUM", "ACDM"),
            ("DINA", "DINA"),
            ("DINO", "DINO"),
            ("RRUM", "RRUM"),
            ("LCDM1", "GDINA1"),
            ("LCDM10", "GDINA10"),
        ],
    )
    def test_mapping(self, rule, expected):
        assert to_fitter_rule(rule) == expected

    @pytest.mark.parametrize("rule", ["ACDM", "GDINA", "LCDM11", "lcdm", ""])
    def test_unknown(self, rule):
        with pytest.raises(ValueError, match="Unknown rule"):
            to_fitter_rule(rule)

    def test_fitter_vocabulary(self):
        assert "GDINA" in FITTER_RULES
        assert "LCDM" not in FITTER_RULES

    def test_single_rule_broadcast(self):
        assert translate_rules("DINA", 4) == ["DINA"] * 4

    def test_per_item(self):
        assert translate_rules(["LCDM", "DINA"], 2) == ["GDINA", "DINA"]

    def test_per_occasion_repeated(self):
        rules = translate_rules(["LCDM", "CRUM"], 6, [2, 2, 2])
        assert rules == ["GDINA", "ACDM"] * 3

    def test_wrong_length(self):
        with pytest.raises(ValueError, match="rule has 3 entries"):
            translate_rules(["LCDM", "DINA", "DINO"], 4, [2, 2])


class TestLinks:
    @pytest.mark.parametrize("link", ["logit", "identity", "log"])
    def test_valid(self, link):
        assert check_link(link) == link

    def test_invalid(self):
        with pytest.raises(ValueError, match="Unknown link function"):
            check_link("probit")


class TestInteractionOrder:
    def test_orders(self):
        assert interaction_order("GDINA", 3) == 3
        assert interaction_order("GDINA2", 3) == 2
        assert interaction_order("GDINA5", 2) == 2
        assert interaction_order("ACDM", 3) == 1
        assert interaction_order("RRUM", 2) == 1

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown fitter rule"):
            interaction_order("LCDM", 2)
