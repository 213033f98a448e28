from tdcm.summary.growth import (
    growth_effects,
    growth_table,
    transition_pairs,
    transition_table,
)
from tdcm.summary.parameters import item_parameter_table
from tdcm.summary.posterior import attribute_posteriors, classify, marginal_posteriors
from tdcm.summary.reliability import TransitionReliability, transition_reliability
from tdcm.summary.summarize import summarize

__all__ = [
    "summarize",
    "marginal_posteriors",
    "attribute_posteriors",
    "classify",
    "transition_pairs",
    "growth_table",
    "transition_table",
    "growth_effects",
    "transition_reliability",
    "TransitionReliability",
    "item_parameter_table",
]
