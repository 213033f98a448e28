"""Condensation rules and link functions.

Users name rules in the TDCM vocabulary; the G-DINA fitter works with its
own rule names. The mapping is closed: anything outside it is rejected.

============  ===========  =====================================
TDCM rule     Fitter rule  Item parameters
============  ===========  =====================================
LCDM          GDINA        intercept, all main effects and interactions
LCDM<k>       GDINA<k>     interactions up to order k (k = 1..10)
CRUM          ACDM         intercept and main effects
DINA          DINA         intercept and highest-order interaction
DINO          DINO         intercept and a single "any attribute" effect
RRUM          RRUM         intercept and main effects on the log scale
============  ===========  =====================================
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from tdcm.typing import FitterRule, LinkFunction

MAX_INTERACTION_ORDER = 10

TDCM_RULES: dict[str, FitterRule] = {
    "LCDM": "GDINA",
    "CRUM": "ACDM",
    "DINA": "DINA",
    "DINO": "DINO",
    "RRUM": "RRUM",
    **{f"LCDM{k}": f"GDINA{k}" for k in range(1, MAX_INTERACTION_ORDER + 1)},
}

FITTER_RULES: frozenset[str] = frozenset(TDCM_RULES.values())

LINK_FUNCTIONS: tuple[LinkFunction, ...] = ("logit", "identity", "log")

_GDINA_ORDER = re.compile(r"^GDINA(\d+)$")


def to_fitter_rule(rule: str) -> FitterRule:
    """Translate one TDCM rule label into the fitter's vocabulary.

    Parameters
    ----------
    rule : str
        One of ``LCDM``, ``DINA``, ``DINO``, ``CRUM``, ``RRUM`` or
        ``LCDM1`` .. ``LCDM10``.

    Returns
    -------
    str
        Fitter rule name.

    Raises
    ------
    ValueError
        If the label is not a known TDCM rule.
    """
    if not isinstance(rule, str) or rule not in TDCM_RULES:
        raise ValueError(
            f"Unknown rule: {rule!r}. "
            f"Choose from: {', '.join(sorted(TDCM_RULES, key=_rule_sort_key))}"
        )
    return TDCM_RULES[rule]


def translate_rules(
    rule: str | Sequence[str],
    n_items: int,
    items_per_occasion: Sequence[int] | None = None,
) -> list[FitterRule]:
    """Expand a rule specification to one fitter rule per stacked item.

    Parameters
    ----------
    rule : str or sequence of str
        A single label for every item, one label per item of an occasion
        (repeated at every time point), or one label per stacked item.
    n_items : int
        Total number of stacked items.
    items_per_occasion : sequence of int, optional
        Item counts per time point. A per-occasion vector is only accepted
        when every occasion has the same number of items.

    Returns
    -------
    list of str
        Fitter rule for each stacked item.
    """
    if isinstance(rule, str):
        return [to_fitter_rule(rule)] * n_items

    rules = [to_fitter_rule(r) for r in rule]

    if len(rules) == n_items:
        return rules

    if items_per_occasion is not None:
        counts = set(items_per_occasion)
        if len(counts) == 1 and len(rules) == items_per_occasion[0]:
            return rules * len(items_per_occasion)

    raise ValueError(
        f"rule has {len(rules)} entries; expected 1, {n_items} (one per item), "
        "or one per item of a time point"
    )


def check_link(link: str) -> LinkFunction:
    """Validate a link function name."""
    if link not in LINK_FUNCTIONS:
        raise ValueError(
            f"Unknown link function: {link!r}. Choose from: {', '.join(LINK_FUNCTIONS)}"
        )
    return link  # type: ignore[return-value]


def interaction_order(fitter_rule: FitterRule, n_required: int) -> int:
    """Highest interaction order kept by a fitter rule for an item.

    Parameters
    ----------
    fitter_rule : str
        Rule in the fitter vocabulary.
    n_required : int
        Number of attributes the item measures.

    Returns
    -------
    int
        Maximum order of the attribute subsets in the item design.
        DINA and DINO return ``n_required`` and are handled separately.
    """
    if fitter_rule == "GDINA":
        return n_required
    if fitter_rule in ("ACDM", "RRUM"):
        return min(1, n_required)
    match = _GDINA_ORDER.match(fitter_rule)
    if match:
        return min(int(match.group(1)), n_required)
    if fitter_rule in ("DINA", "DINO"):
        return n_required
    raise ValueError(f"Unknown fitter rule: {fitter_rule!r}")


def _rule_sort_key(name: str) -> tuple[int, str]:
    match = re.match(r"^LCDM(\d+)$", name)
    return (int(match.group(1)), name) if match else (0, name)
