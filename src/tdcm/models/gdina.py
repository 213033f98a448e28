"""Generalized DINA item model with reduced-model rules and link functions.

Each item ``j`` measuring ``K_j`` attributes partitions the attribute
profiles into ``2 ** K_j`` latent groups. The response probability of latent
group ``l`` is ``g^{-1}(M_j[l] @ delta_j)``, where ``M_j`` is the item design
matrix implied by the item's rule and ``g`` is the link function. With the
logit link and the saturated rule this is the LCDM.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations

import numpy as np
from numpy.typing import NDArray

from tdcm._core import sigmoid
from tdcm.constants import PROB_CLIP_MAX, PROB_CLIP_MIN
from tdcm.rules import FITTER_RULES, check_link, interaction_order
from tdcm.typing import FitterRule, LinkFunction


def inverse_link(eta: NDArray[np.float64], link: LinkFunction) -> NDArray[np.float64]:
    """Map linear predictors to probabilities (unclipped)."""
    if link == "logit":
        return sigmoid(eta)
    if link == "log":
        return np.exp(np.minimum(eta, 0.0))
    return eta


def apply_link(prob: NDArray[np.float64], link: LinkFunction) -> NDArray[np.float64]:
    """Map probabilities to the linear predictor scale."""
    prob = np.clip(prob, PROB_CLIP_MIN, PROB_CLIP_MAX)
    if link == "logit":
        return np.log(prob / (1 - prob))
    if link == "log":
        return np.log(prob)
    return prob


def score_weight(prob: NDArray[np.float64], link: LinkFunction) -> NDArray[np.float64]:
    """Return ``dP/deta / (P (1 - P))`` for a link function.

    The derivative of the Bernoulli log-likelihood with respect to the
    linear predictor is ``(x - P)`` times this weight.
    """
    if link == "logit":
        return np.ones_like(prob)
    if link == "log":
        return 1.0 / (1.0 - prob)
    return 1.0 / (prob * (1.0 - prob))


@dataclass(frozen=True)
class ParameterLayout:
    """Position and meaning of every item coefficient.

    Coefficients are ordered by group block, then item, then parameter
    order (intercept, main effects in attribute order, interactions by
    increasing order). Shared item parameters use group ``-1``.

    Attributes
    ----------
    item : ndarray of int
        Stacked item index (0-based) of each coefficient.
    group : ndarray of int
        Group index, or -1 when the coefficient is shared by all groups.
    index : ndarray of int
        Position of the coefficient within its item.
    order : ndarray of int
        0 for intercepts, 1 for main effects, k for k-way interactions.
    label : list of str
        Parameter label such as ``lambda0`` or ``lambda2,12``.
    attributes : list of str
        Attributes the coefficient refers to (``-`` for intercepts).
    """

    item: NDArray[np.int_]
    group: NDArray[np.int_]
    index: NDArray[np.int_]
    order: NDArray[np.int_]
    label: list[str]
    attributes: list[str]

    @property
    def n_coefficients(self) -> int:
        return len(self.item)

    def rows(self, item: int, group: int = -1) -> NDArray[np.int_]:
        """Coefficient positions of one item (and group) in parameter order."""
        mask = (self.item == item) & (self.group == group)
        rows = np.where(mask)[0]
        return rows[np.argsort(self.index[rows], kind="stable")]

    def parameter_type(self, row: int) -> str:
        order = int(self.order[row])
        if order == 0:
            return "intercept"
        if order == 1:
            return "main effect"
        return f"interaction ({order}-way)"


class GDINA:
    """Generalized DINA model over a stacked (time-expanded) Q-matrix.

    Parameters
    ----------
    q_matrix : NDArray
        Stacked Q-matrix (n_items x n_attributes).
    rules : list of str
        Fitter rule for each item: 'GDINA', 'GDINA1'..'GDINA10', 'ACDM',
        'DINA', 'DINO' or 'RRUM'.
    link : {'logit', 'identity', 'log'}
        Link function. Items with the 'RRUM' rule always use the log link.
    n_groups : int
        Number of examinee groups.
    group_invariance : bool
        Whether item parameters are shared across groups.
    attributes_per_occasion : int, optional
        Attributes measured at each time point, used only for labels.
        Defaults to the number of stacked attributes.
    item_names : list of str, optional
        Names for items.

    Notes
    -----
    Reduced models:
    - GDINA: intercept, main effects and all interactions (saturated)
    - GDINA<k>: interactions up to order k
    - ACDM: intercept and main effects (C-RUM under the logit link)
    - RRUM: intercept and main effects under the log link
    - DINA: intercept and the interaction of all required attributes
    - DINO: intercept and an indicator of mastering any required attribute
    """

    model_name = "GDINA"

    def __init__(
        self,
        q_matrix: NDArray[np.int_],
        rules: list[FitterRule],
        link: LinkFunction = "logit",
        n_groups: int = 1,
        group_invariance: bool = True,
        attributes_per_occasion: int | None = None,
        item_names: list[str] | None = None,
    ) -> None:
        self._q_matrix = np.asarray(q_matrix, dtype=np.int_)
        n_items, n_attributes = self._q_matrix.shape

        if len(rules) != n_items:
            raise ValueError(f"rules length ({len(rules)}) must match n_items ({n_items})")
        unknown = sorted(set(rules) - FITTER_RULES)
        if unknown:
            raise ValueError(f"Unknown fitter rules: {unknown}")
        if n_groups < 1:
            raise ValueError("n_groups must be at least 1")

        self._rules = list(rules)
        self._link = check_link(link)
        self._n_groups = n_groups
        self._group_invariance = group_invariance or n_groups == 1
        self._per_occasion = attributes_per_occasion or n_attributes

        if item_names is None:
            item_names = [f"Item {j + 1}" for j in range(n_items)]
        elif len(item_names) != n_items:
            raise ValueError(
                f"item_names length ({len(item_names)}) must match n_items ({n_items})"
            )
        self.item_names = list(item_names)

        self._required: list[NDArray[np.int_]] = []
        self._designs: list[NDArray[np.float64]] = []
        self._labels: list[list[str]] = []
        self._attr_labels: list[list[str]] = []
        self._orders: list[list[int]] = []
        for j in range(n_items):
            self._build_item_design(j)

        self._layout = self._build_layout()
        self._delta = np.zeros(self._layout.n_coefficients)
        self._initialize_parameters()

    @property
    def n_items(self) -> int:
        return self._q_matrix.shape[0]

    @property
    def n_attributes(self) -> int:
        return self._q_matrix.shape[1]

    @property
    def q_matrix(self) -> NDArray[np.int_]:
        return self._q_matrix.copy()

    @property
    def rules(self) -> list[FitterRule]:
        return list(self._rules)

    @property
    def n_groups(self) -> int:
        return self._n_groups

    @property
    def group_invariance(self) -> bool:
        return self._group_invariance

    @property
    def n_item_blocks(self) -> int:
        """Number of distinct item-parameter sets per item (1 or n_groups)."""
        return 1 if self._group_invariance else self._n_groups

    @property
    def layout(self) -> ParameterLayout:
        return self._layout

    @property
    def delta(self) -> NDArray[np.float64]:
        """Item coefficients in layout order."""
        return self._delta.copy()

    def item_link(self, item_idx: int) -> LinkFunction:
        return "log" if self._rules[item_idx] == "RRUM" else self._link

    def item_design(self, item_idx: int) -> NDArray[np.float64]:
        """Design matrix of an item (latent groups x parameters)."""
        return self._designs[item_idx].copy()

    def required_attributes(self, item_idx: int) -> NDArray[np.int_]:
        return self._required[item_idx].copy()

    def set_delta(self, delta: NDArray[np.float64]) -> GDINA:
        delta = np.asarray(delta, dtype=np.float64)
        if delta.shape != self._delta.shape:
            raise ValueError(
                f"delta length ({delta.shape[0]}) must be {self._delta.shape[0]}"
            )
        self._delta = delta.copy()
        return self

    def _build_item_design(self, item_idx: int) -> None:
        required = np.where(self._q_matrix[item_idx] == 1)[0]
        k = len(required)
        if k == 0:
            raise ValueError(f"Item {item_idx + 1} measures no attribute")

        n_groups = 2**k
        alpha = ((np.arange(n_groups)[:, None] >> np.arange(k)) & 1).astype(np.float64)
        names = [str(a % self._per_occasion + 1) for a in required]
        sep = "" if self._per_occasion < 10 else "."

        rule = self._rules[item_idx]
        columns = [np.ones(n_groups)]
        labels = ["lambda0"]
        attrs = ["-"]
        orders = [0]

        if rule == "DINA" and k > 1:
            columns.append(alpha.prod(axis=1))
            labels.append(f"lambda{k},{sep.join(names)}")
            attrs.append("-".join(f"A{n}" for n in names))
            orders.append(k)
        elif rule == "DINO" and k > 1:
            columns.append(1.0 - (1.0 - alpha).prod(axis=1))
            labels.append(f"lambda1,{'|'.join(names)}")
            attrs.append("|".join(f"A{n}" for n in names))
            orders.append(1)
        else:
            max_order = interaction_order(rule, k)
            for order in range(1, max_order + 1):
                for subset in combinations(range(k), order):
                    columns.append(alpha[:, list(subset)].prod(axis=1))
                    sub_names = [names[s] for s in subset]
                    labels.append(f"lambda{order},{sep.join(sub_names)}")
                    attrs.append("-".join(f"A{n}" for n in sub_names))
                    orders.append(order)

        self._required.append(required)
        self._designs.append(np.column_stack(columns))
        self._labels.append(labels)
        self._attr_labels.append(attrs)
        self._orders.append(orders)

    def _build_layout(self) -> ParameterLayout:
        groups = [-1] if self._group_invariance else list(range(self._n_groups))
        item, group, index, order, label, attributes = [], [], [], [], [], []
        self._block_slices: list[slice] = []

        start = 0
        for g in groups:
            for j in range(self.n_items):
                n_par = self._designs[j].shape[1]
                item.extend([j] * n_par)
                group.extend([g] * n_par)
                index.extend(range(n_par))
                order.extend(self._orders[j])
                label.extend(self._labels[j])
                attributes.extend(self._attr_labels[j])
                self._block_slices.append(slice(start, start + n_par))
                start += n_par

        return ParameterLayout(
            item=np.asarray(item, dtype=np.int_),
            group=np.asarray(group, dtype=np.int_),
            index=np.asarray(index, dtype=np.int_),
            order=np.asarray(order, dtype=np.int_),
            label=label,
            attributes=attributes,
        )

    def block_slice(self, block: int, item_idx: int) -> slice:
        """Slice of ``delta`` holding the coefficients of an item in a block."""
        return self._block_slices[block * self.n_items + item_idx]

    def _initialize_parameters(self) -> None:
        """Start every item at P = 0.2 for non-masters and 0.8 for masters."""
        for block in range(self.n_item_blocks):
            for j in range(self.n_items):
                design = self._designs[j]
                k = len(self._required[j])
                n_lat = design.shape[0]
                alpha = (np.arange(n_lat)[:, None] >> np.arange(k)) & 1

                if self._rules[j] == "DINA":
                    mastery = alpha.all(axis=1).astype(np.float64)
                elif self._rules[j] == "DINO":
                    mastery = alpha.any(axis=1).astype(np.float64)
                else:
                    mastery = alpha.mean(axis=1)

                target = apply_link(0.2 + 0.6 * mastery, self.item_link(j))
                delta_j, *_ = np.linalg.lstsq(design, target, rcond=None)
                self._delta[self.block_slice(block, j)] = delta_j

    def latent_group_index(self, patterns: NDArray[np.int_]) -> list[NDArray[np.int_]]:
        """Map every profile to its latent group, item by item.

        Parameters
        ----------
        patterns : ndarray of shape (n_profiles, n_attributes)
            Attribute profiles.

        Returns
        -------
        list of ndarray
            For each item, the latent group index of every profile.
        """
        patterns = np.asarray(patterns, dtype=np.int_)
        index = []
        for required in self._required:
            weights = 2 ** np.arange(len(required))
            index.append(patterns[:, required] @ weights)
        return index

    def latent_group_probabilities(
        self,
        delta: NDArray[np.float64] | None = None,
    ) -> list[list[NDArray[np.float64]]]:
        """Response probability of every latent group, per block and item.

        Returns
        -------
        list of list of ndarray
            ``probs[block][item]`` has one entry per latent group.
        """
        delta = self._delta if delta is None else delta
        probs = []
        for block in range(self.n_item_blocks):
            block_probs = []
            for j in range(self.n_items):
                eta = self._designs[j] @ delta[self.block_slice(block, j)]
                prob = inverse_link(eta, self.item_link(j))
                block_probs.append(np.clip(prob, PROB_CLIP_MIN, PROB_CLIP_MAX))
            probs.append(block_probs)
        return probs

    def probability(
        self,
        patterns: NDArray[np.int_],
        delta: NDArray[np.float64] | None = None,
        group_index: list[NDArray[np.int_]] | None = None,
    ) -> NDArray[np.float64]:
        """Compute response probabilities for attribute profiles.

        Parameters
        ----------
        patterns : NDArray
            Attribute profiles (n_profiles, n_attributes).
        delta : NDArray, optional
            Coefficients to use instead of the current ones.
        group_index : list of NDArray, optional
            Precomputed result of ``latent_group_index(patterns)``.

        Returns
        -------
        NDArray
            Probabilities (n_item_blocks, n_items, n_profiles).
        """
        if group_index is None:
            group_index = self.latent_group_index(patterns)
        lat_probs = self.latent_group_probabilities(delta)

        n_profiles = len(group_index[0])
        probs = np.empty((self.n_item_blocks, self.n_items, n_profiles))
        for block in range(self.n_item_blocks):
            for j in range(self.n_items):
                probs[block, j] = lat_probs[block][j][group_index[j]]
        return probs

    def log_likelihood(
        self,
        responses: NDArray[np.int_],
        patterns: NDArray[np.int_],
        block: int = 0,
        probs: NDArray[np.float64] | None = None,
    ) -> NDArray[np.float64]:
        """Log-likelihood of every response vector under every profile.

        Parameters
        ----------
        responses : NDArray
            Responses (n_persons, n_items); missing coded as -1.
        patterns : NDArray
            Attribute profiles (n_profiles, n_attributes).
        block : int
            Item-parameter block to use.
        probs : NDArray, optional
            Precomputed result of ``probability(patterns)``.

        Returns
        -------
        NDArray
            Log-likelihoods (n_persons, n_profiles).
        """
        if probs is None:
            probs = self.probability(patterns)
        p = probs[block]

        responses = np.asarray(responses)
        valid = responses >= 0
        correct = np.where(valid, responses, 0).astype(np.float64)
        wrong = valid.astype(np.float64) - correct

        return correct @ np.log(p) + wrong @ np.log(1 - p)

    def __repr__(self) -> str:
        return (
            f"GDINA(n_items={self.n_items}, n_attributes={self.n_attributes}, "
            f"link={self._link!r}, n_groups={self._n_groups})"
        )
