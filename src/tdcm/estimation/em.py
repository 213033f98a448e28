"""Marginal maximum likelihood estimation of the G-DINA model by EM.

The E-step computes each examinee's posterior over the candidate attribute
profiles. The M-step updates the profile base rates of every group and then
maximizes the expected complete-data log-likelihood of the item parameters.
Item coefficients are parameterized as ``delta = W @ theta``; the design
matrix ``W`` ties coefficients together (for example across time points).
"""

from __future__ import annotations

import warnings
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize
from scipy.special import logsumexp

from tdcm.constants import PROB_CLIP_MAX, PROB_CLIP_MIN, REGULARIZATION_EPSILON
from tdcm.estimation.base import BaseEstimator
from tdcm.exceptions import ConvergenceWarning, DimensionMismatchError
from tdcm.models.gdina import GDINA, inverse_link, score_weight
from tdcm.rules import check_link
from tdcm.skillspace import full_skill_space

if TYPE_CHECKING:
    from tdcm._core import Reporter
    from tdcm.results.fit_result import GDINAFitResult
    from tdcm.typing import LinkFunction


class GDINAEstimator(BaseEstimator):
    """EM estimator for single- and multiple-group G-DINA models.

    Parameters
    ----------
    max_iter : int
        Maximum number of EM iterations.
    tol : float
        Convergence tolerance for the largest change in an item response
        probability or a profile base rate.
    verbose : bool or callable
        Report iteration progress.
    item_optim_maxiter : int
        Maximum iterations of the item parameter optimizer per M-step.
    item_optim_ftol : float
        Tolerance of the item parameter optimizer.
    """

    def __init__(
        self,
        max_iter: int = 1000,
        tol: float = 1e-4,
        verbose: Reporter = False,
        item_optim_maxiter: int = 50,
        item_optim_ftol: float = 1e-9,
    ) -> None:
        super().__init__(max_iter, tol, verbose)

        self.item_optim_maxiter = item_optim_maxiter
        self.item_optim_ftol = item_optim_ftol

    def fit(
        self,
        model: GDINA,
        responses: NDArray[np.int_],
        groups: NDArray[np.int_] | None = None,
        skill_space: NDArray[np.int_] | None = None,
        design_matrix: NDArray[np.float64] | None = None,
        group_labels: list[str] | None = None,
    ) -> GDINAFitResult:
        """Fit the model.

        Parameters
        ----------
        model : GDINA
            Model to fit; its coefficients are updated in place.
        responses : ndarray of shape (n_persons, n_items)
            Binary responses, missing coded as -1.
        groups : ndarray of shape (n_persons,), optional
            Group codes ``0 .. model.n_groups - 1``.
        skill_space : ndarray of shape (n_profiles, n_attributes), optional
            Candidate attribute profiles. Defaults to all ``2 ** K`` profiles.
        design_matrix : ndarray of shape (n_coefficients, n_free), optional
            Linear constraint matrix with ``delta = W @ theta``.
        group_labels : list of str, optional
            Labels stored on the result.

        Returns
        -------
        GDINAFitResult
        """
        from tdcm.results.fit_result import GDINAFitResult

        responses = self._validate_responses(responses, model.n_items)
        n_persons = responses.shape[0]
        n_groups = model.n_groups

        groups = self._validate_groups(groups, n_persons, n_groups)
        patterns = self._validate_skill_space(skill_space, model.n_attributes)
        design = self._validate_design(design_matrix, model.layout.n_coefficients)

        n_profiles = patterns.shape[0]
        members = [np.where(groups == g)[0] for g in range(n_groups)]
        block_rows = (
            [np.arange(n_persons)] if model.group_invariance else members
        )

        valid = responses >= 0
        correct = np.where(valid, responses, 0).astype(np.float64)
        wrong = valid.astype(np.float64) - correct

        group_index = model.latent_group_index(patterns)
        designs = [model.item_design(j) for j in range(model.n_items)]

        theta, *_ = np.linalg.lstsq(design, model.delta, rcond=None)
        model.set_delta(design @ theta)

        class_probs = np.full((n_groups, n_profiles), 1.0 / n_profiles)
        item_probs = model.latent_group_probabilities()

        self._convergence_history = []
        converged = False

        for iteration in range(self.max_iter):
            posterior, current_ll = self._e_step(
                model, correct, wrong, patterns, group_index, class_probs, members
            )
            self._convergence_history.append(current_ll)

            new_class_probs = np.vstack([posterior[rows].mean(axis=0) for rows in members])

            expected = self._expected_counts(
                model, correct, valid, posterior, group_index, block_rows
            )
            theta = self._m_step(model, designs, design, theta, expected)
            model.set_delta(design @ theta)

            new_item_probs = model.latent_group_probabilities()
            max_change = max(
                np.abs(new_class_probs - class_probs).max(),
                max(
                    np.abs(new - old).max()
                    for new_block, old_block in zip(new_item_probs, item_probs)
                    for new, old in zip(new_block, old_block)
                ),
            )
            class_probs = new_class_probs
            item_probs = new_item_probs

            self._log_iteration(iteration + 1, current_ll, max_change=max_change)

            if self._check_convergence(max_change):
                converged = True
                break

        n_iterations = iteration + 1

        posterior, current_ll = self._e_step(
            model, correct, wrong, patterns, group_index, class_probs, members
        )

        if not converged:
            warnings.warn(
                f"EM algorithm did not converge in {self.max_iter} iterations",
                ConvergenceWarning,
                stacklevel=2,
            )

        cov_theta = self._compute_covariance(
            model, designs, design, correct, valid, posterior, group_index, block_rows
        )
        cov_delta = design @ cov_theta @ design.T
        standard_errors = np.sqrt(np.clip(np.diag(cov_delta), 0.0, None))

        probs = model.probability(patterns, group_index=group_index)
        item_rmsea = self._item_rmsea(probs, correct, valid, posterior, block_rows)

        n_params = design.shape[1] + n_groups * (n_profiles - 1)
        aic, bic, caic = self._information_criteria(current_ll, n_params, n_persons)

        return GDINAFitResult(
            model=model,
            responses=responses,
            groups=groups,
            group_labels=group_labels or [f"Group {g + 1}" for g in range(n_groups)],
            attribute_patterns=patterns,
            posterior=posterior,
            class_probabilities=class_probs,
            design_matrix=design,
            free_parameters=theta,
            covariance=cov_delta,
            standard_errors=standard_errors,
            item_rmsea=item_rmsea,
            log_likelihood=current_ll,
            aic=aic,
            bic=bic,
            caic=caic,
            n_parameters=n_params,
            n_observations=n_persons,
            n_iterations=n_iterations,
            converged=converged,
        )

    def _validate_groups(
        self,
        groups: NDArray[np.int_] | None,
        n_persons: int,
        n_groups: int,
    ) -> NDArray[np.int_]:
        if groups is None:
            if n_groups != 1:
                raise ValueError("groups are required for a multiple-group model")
            return np.zeros(n_persons, dtype=np.int_)

        groups = np.asarray(groups, dtype=np.int_)
        if groups.shape != (n_persons,):
            raise DimensionMismatchError(
                f"groups has length {groups.size}, expected {n_persons} "
                "(one label per response row)"
            )
        if groups.min() < 0 or groups.max() >= n_groups:
            raise ValueError(f"group codes must lie in 0..{n_groups - 1}")
        empty = sorted(set(range(n_groups)) - set(np.unique(groups).tolist()))
        if empty:
            raise ValueError(f"groups {empty} have no examinees")
        return groups

    def _validate_skill_space(
        self,
        skill_space: NDArray[np.int_] | None,
        n_attributes: int,
    ) -> NDArray[np.int_]:
        if skill_space is None:
            return full_skill_space(n_attributes)

        patterns = np.asarray(skill_space, dtype=np.int_)
        if patterns.ndim != 2 or patterns.shape[1] != n_attributes:
            raise DimensionMismatchError(
                f"skill_space must have {n_attributes} columns, got shape {patterns.shape}"
            )
        if patterns.shape[0] == 0:
            raise ValueError("skill_space cannot be empty")
        return patterns

    def _validate_design(
        self,
        design_matrix: NDArray[np.float64] | None,
        n_coefficients: int,
    ) -> NDArray[np.float64]:
        if design_matrix is None:
            return np.eye(n_coefficients)

        design = np.asarray(design_matrix, dtype=np.float64)
        if design.ndim != 2 or design.shape[0] != n_coefficients:
            raise DimensionMismatchError(
                f"design_matrix must have {n_coefficients} rows (one per item "
                f"coefficient), got shape {design.shape}"
            )
        return design

    def _e_step(
        self,
        model: GDINA,
        correct: NDArray[np.float64],
        wrong: NDArray[np.float64],
        patterns: NDArray[np.int_],
        group_index: list[NDArray[np.int_]],
        class_probs: NDArray[np.float64],
        members: list[NDArray[np.int_]],
    ) -> tuple[NDArray[np.float64], float]:
        probs = model.probability(patterns, group_index=group_index)
        log_joint = np.empty((correct.shape[0], patterns.shape[0]))

        for g, rows in enumerate(members):
            block = 0 if model.group_invariance else g
            p = probs[block]
            log_prior = np.log(np.maximum(class_probs[g], 1e-300))
            log_joint[rows] = (
                correct[rows] @ np.log(p) + wrong[rows] @ np.log(1 - p) + log_prior
            )

        log_marginal = logsumexp(log_joint, axis=1, keepdims=True)
        posterior = np.exp(log_joint - log_marginal)

        return posterior, float(log_marginal.sum())

    def _expected_counts(
        self,
        model: GDINA,
        correct: NDArray[np.float64],
        valid: NDArray[np.bool_],
        posterior: NDArray[np.float64],
        group_index: list[NDArray[np.int_]],
        block_rows: list[NDArray[np.int_]],
    ) -> list[list[tuple[NDArray[np.float64], NDArray[np.float64]]]]:
        """Expected correct responses and examinees per latent group."""
        expected = []
        for rows in block_rows:
            post = posterior[rows]
            r_profile = correct[rows].T @ post
            n_profile = valid[rows].T.astype(np.float64) @ post

            block = []
            for j in range(model.n_items):
                n_lat = 2 ** len(model.required_attributes(j))
                r = np.bincount(group_index[j], weights=r_profile[j], minlength=n_lat)
                n = np.bincount(group_index[j], weights=n_profile[j], minlength=n_lat)
                block.append((r, n))
            expected.append(block)
        return expected

    def _m_step(
        self,
        model: GDINA,
        designs: list[NDArray[np.float64]],
        design: NDArray[np.float64],
        theta: NDArray[np.float64],
        expected: list[list[tuple[NDArray[np.float64], NDArray[np.float64]]]],
    ) -> NDArray[np.float64]:
        links = [model.item_link(j) for j in range(model.n_items)]

        def objective(params: NDArray[np.float64]) -> tuple[float, NDArray[np.float64]]:
            delta = design @ params
            nll = 0.0
            grad = np.zeros_like(delta)

            for block, block_counts in enumerate(expected):
                for j, (r, n) in enumerate(block_counts):
                    sl = model.block_slice(block, j)
                    eta = designs[j] @ delta[sl]
                    p = np.clip(inverse_link(eta, links[j]), PROB_CLIP_MIN, PROB_CLIP_MAX)

                    nll -= np.sum(r * np.log(p) + (n - r) * np.log(1 - p))
                    grad[sl] = designs[j].T @ (-(r - n * p) * score_weight(p, links[j]))

            return nll, design.T @ grad

        result = minimize(
            objective,
            theta,
            jac=True,
            method="L-BFGS-B",
            options={"maxiter": self.item_optim_maxiter, "ftol": self.item_optim_ftol},
        )
        return result.x

    def _compute_covariance(
        self,
        model: GDINA,
        designs: list[NDArray[np.float64]],
        design: NDArray[np.float64],
        correct: NDArray[np.float64],
        valid: NDArray[np.bool_],
        posterior: NDArray[np.float64],
        group_index: list[NDArray[np.int_]],
        block_rows: list[NDArray[np.int_]],
    ) -> NDArray[np.float64]:
        """Covariance of the free parameters from the outer product of scores."""
        n_persons = posterior.shape[0]
        lat_probs = model.latent_group_probabilities()
        scores = np.zeros((n_persons, model.layout.n_coefficients))

        for block, rows in enumerate(block_rows):
            post = posterior[rows]
            for j in range(model.n_items):
                p = lat_probs[block][j]
                onehot = np.zeros((post.shape[1], len(p)))
                onehot[np.arange(post.shape[1]), group_index[j]] = 1.0

                weights = post @ onehot
                resid = correct[rows, j][:, None] - valid[rows, j][:, None] * p[None, :]
                contrib = weights * resid * score_weight(p, model.item_link(j))[None, :]
                scores[rows, model.block_slice(block, j)] += contrib @ designs[j]

        scores = scores @ design
        info = scores.T @ scores
        info += REGULARIZATION_EPSILON * np.eye(info.shape[0])
        return np.linalg.pinv(info)

    def _item_rmsea(
        self,
        probs: NDArray[np.float64],
        correct: NDArray[np.float64],
        valid: NDArray[np.bool_],
        posterior: NDArray[np.float64],
        block_rows: list[NDArray[np.int_]],
    ) -> NDArray[np.float64]:
        """Item RMSEA comparing expected and model-implied class proportions."""
        rmsea = np.zeros((len(block_rows), probs.shape[1]))

        for block, rows in enumerate(block_rows):
            post = posterior[rows]
            weights = post.mean(axis=0)
            n_class = valid[rows].T.astype(np.float64) @ post
            r_class = correct[rows].T @ post

            with np.errstate(divide="ignore", invalid="ignore"):
                observed = np.where(n_class > 0, r_class / n_class, probs[block])

            rmsea[block] = np.sqrt(
                np.sum(weights[None, :] * 2 * (observed - probs[block]) ** 2, axis=1)
            )

        return rmsea


def fit_gdina(
    responses: NDArray[np.int_],
    q_matrix: NDArray[np.int_],
    rule: str | Sequence[str] = "GDINA",
    link: LinkFunction = "logit",
    design_matrix: NDArray[np.float64] | None = None,
    skill_space: NDArray[np.int_] | None = None,
    groups: NDArray | Sequence | None = None,
    group_invariance: bool = True,
    attributes_per_occasion: int | None = None,
    max_iter: int = 1000,
    tol: float = 1e-4,
    verbose: Reporter = False,
) -> GDINAFitResult:
    """Fit a G-DINA model using the EM algorithm.

    Parameters
    ----------
    responses : NDArray
        Response matrix (n_persons, n_items).
    q_matrix : NDArray
        Q-matrix (n_items, n_attributes).
    rule : str or sequence of str
        Fitter rule for all items or per item ('GDINA', 'GDINA<k>', 'ACDM',
        'DINA', 'DINO', 'RRUM'). TDCM labels such as 'LCDM' are also
        accepted.
    link : {'logit', 'identity', 'log'}
        Link function.
    design_matrix : NDArray, optional
        Linear constraint matrix for the item coefficients.
    skill_space : NDArray, optional
        Candidate attribute profiles.
    groups : array-like, optional
        Group label of every examinee.
    group_invariance : bool
        Share item parameters across groups.
    attributes_per_occasion : int, optional
        Attributes per time point, used for parameter labels.
    max_iter : int
        Maximum EM iterations.
    tol : float
        Convergence tolerance.
    verbose : bool or callable
        Whether to report progress.

    Returns
    -------
    GDINAFitResult
    """
    from tdcm.utils.data import encode_groups

    q_matrix = np.asarray(q_matrix, dtype=np.int_)
    n_items = q_matrix.shape[0]
    rules = _as_fitter_rules(rule, n_items)

    if groups is None:
        codes, labels = None, None
        n_groups = 1
    else:
        codes, labels = encode_groups(groups, np.asarray(responses).shape[0])
        n_groups = len(labels)

    model = GDINA(
        q_matrix=q_matrix,
        rules=rules,
        link=check_link(link),
        n_groups=n_groups,
        group_invariance=group_invariance,
        attributes_per_occasion=attributes_per_occasion,
    )

    estimator = GDINAEstimator(max_iter=max_iter, tol=tol, verbose=verbose)
    return estimator.fit(
        model,
        responses,
        groups=codes,
        skill_space=skill_space,
        design_matrix=design_matrix,
        group_labels=labels,
    )


def _as_fitter_rules(rule: str | Sequence[str], n_items: int) -> list[str]:
    from tdcm.rules import FITTER_RULES, TDCM_RULES

    def one(r: str) -> str:
        if r in FITTER_RULES:
            return r
        if r in TDCM_RULES:
            return TDCM_RULES[r]
        raise ValueError(f"Unknown rule: {r!r}")

    if isinstance(rule, str):
        return [one(rule)] * n_items
    rules = [one(r) for r in rule]
    if len(rules) != n_items:
        raise ValueError(f"rule has {len(rules)} entries; expected 1 or {n_items}")
    return rules
