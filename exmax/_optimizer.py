# exmax/_optimizer.py
"""EM optimizer for univariate Gaussian mixtures with BIC-driven model selection.

Behaviour that intentionally differs from textbook EM (kept so that stopping
points and selected component counts stay stable):
- tau (mixing weight) is set to 1/K at initialization and never re-estimated.
- The M-step sigma is sqrt(weighted mean squared deviation), floored at 1.0,
  while the density reads sigma as a variance.
- Convergence compares the gain in Model.log_likelihood (responsibility-weighted
  form) with delta = -log_likelihood(initial) * delta_ratio.
- The model returned by maximize() is the last *accepted* one; the candidate
  that failed to improve by more than delta is discarded.

Search strategies:
- create_maximized_model(samples, K): one fit with K components.
- create_maximized_model(samples):    greedy forward search from 2 components,
                                      stops as soon as BIC stops increasing.
- create_maximized_models(samples, M): one fit per K in 2..M, no early stop.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import List, Optional

import torch

from ._component import DTYPE, Component, as_tensor
from ._errors import ConvergenceWarning, InvalidInput
from ._model import Model, Trajectory

logger = logging.getLogger(__name__)

DEFAULT_DELTA_RATIO = 0.001
DEFAULT_MAX_ITER = 300
SIGMA_FLOOR = 1.0


# ---------------------------
# Configuration
# ---------------------------

@dataclass
class OptimizerConfig:
    delta_ratio: float = DEFAULT_DELTA_RATIO
    max_iter: int = DEFAULT_MAX_ITER
    max_history: Optional[int] = None
    min_component_count: int = 2

    def __post_init__(self) -> None:
        _check_delta_ratio(self.delta_ratio)
        _check_max_iter(self.max_iter)
        if self.max_history is not None and self.max_history <= 0:
            raise ValueError("max_history must be positive or None")
        if self.min_component_count < 1:
            raise ValueError("min_component_count must be at least 1")


def _check_delta_ratio(delta_ratio: float) -> None:
    if delta_ratio < 0:
        raise ValueError("delta_ratio must be non-negative")


def _check_max_iter(max_iter: int) -> None:
    if max_iter <= 0:
        raise ValueError("max_iter must be positive")


def _check_samples(samples) -> torch.Tensor:
    """Flatten samples into a private float64 tensor, rejecting empty/non-finite input."""
    x = as_tensor(samples).reshape(-1).clone()
    if x.numel() == 0:
        raise InvalidInput("samples must not be empty")
    if not bool(torch.isfinite(x).all()):
        raise InvalidInput("samples must be finite numbers")
    return x


# ---------------------------
# EM steps
# ---------------------------

@torch.no_grad()
def _maximization_step(model: Model) -> List[Component]:
    """Re-estimate mu and sigma of every component; tau is carried over."""
    x = model.samples.unsqueeze(1)     # (N,1)
    resp = model.responsibilities()    # (N,K)

    total = resp.sum(dim=0)            # (K,)
    means = (x * resp).sum(dim=0) / total

    sq_dev = ((x - means.unsqueeze(0)) ** 2 * resp).sum(dim=0)
    sigmas = torch.sqrt(sq_dev / total).clamp_min(SIGMA_FLOOR)

    # a component nobody claims keeps its previous placement instead of going NaN
    empty = ~(total > 0)
    means = torch.where(empty, model.means, means)
    sigmas = torch.where(empty, model.sigmas, sigmas)

    return [
        Component(mu, sigma, c.tau)
        for mu, sigma, c in zip(means.tolist(), sigmas.tolist(), model.components)
    ]


# ---------------------------
# Optimizer
# ---------------------------

class EMOptimizer:
    """Builds, maximizes and selects univariate mixture models.

    The only randomness is the jitter added to initial means, drawn from
    ``generator`` (or a fresh one seeded with ``seed``).
    """

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        generator: Optional[torch.Generator] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.config = config if config is not None else OptimizerConfig()
        if generator is None:
            generator = torch.Generator()
            if seed is None:
                generator.seed()
            else:
                generator.manual_seed(int(seed))
        self.generator = generator

    @torch.no_grad()
    def create_model(self, samples, component_count: int) -> Model:
        """Initial model: means spread evenly over [min, max] plus jitter in [0, 1)."""
        x = _check_samples(samples)
        if component_count < 1:
            raise InvalidInput(f"component_count must be at least 1, got {component_count}")

        K = int(component_count)
        lo = float(x.min().item())
        hi = float(x.max().item())

        jitter = torch.rand((K,), generator=self.generator, dtype=DTYPE)
        steps = torch.arange(1, K + 1, dtype=DTYPE)
        mus = jitter + lo + steps * (hi - lo) / (K + 1)

        sigma = max((hi - lo) / (2 * (K + 1)), SIGMA_FLOOR)
        tau = 1.0 / K

        trajectory = Trajectory(max_models=self.config.max_history)
        model = Model([Component(mu, sigma, tau) for mu in mus.tolist()], x, trajectory, iteration=0)
        trajectory.append(model)
        return model

    @torch.no_grad()
    def maximize(
        self,
        model: Model,
        delta_ratio: Optional[float] = None,
        max_iter: Optional[int] = None,
    ) -> Model:
        """Run EM from ``model`` until the log-likelihood gain drops to delta or below."""
        delta_ratio = self.config.delta_ratio if delta_ratio is None else delta_ratio
        max_iter = self.config.max_iter if max_iter is None else max_iter
        _check_delta_ratio(delta_ratio)
        _check_max_iter(max_iter)

        delta = -model.log_likelihood * delta_ratio
        trajectory = Trajectory(model.history(), max_models=self.config.max_history)

        current = model
        for it in range(max_iter):
            candidate = Model(
                _maximization_step(current),
                current.samples,
                trajectory,
                iteration=current.iteration + 1,
            )
            gain = candidate.log_likelihood - current.log_likelihood
            logger.debug(
                "K=%d iter %d: log-likelihood %.6f -> %.6f (gain %+.6e, delta %.6e)",
                current.component_count, it + 1, current.log_likelihood,
                candidate.log_likelihood, gain, delta,
            )
            if gain <= delta:
                return current

            trajectory.append(candidate)
            current = candidate

        logger.warning(
            "EM for %d components stopped at max_iter=%d without converging",
            current.component_count, max_iter,
        )
        warnings.warn(
            f"EM did not converge within max_iter={max_iter} iterations "
            f"({current.component_count} components)",
            ConvergenceWarning,
            stacklevel=2,
        )
        return current

    def _fit(self, samples, component_count: int) -> Model:
        model = self.maximize(self.create_model(samples, component_count))
        logger.info(
            "Fitted %d components in %d iterations: log-likelihood=%.3f BIC=%.3f",
            model.component_count, model.iteration, model.log_likelihood, model.bic,
        )
        return model

    def create_maximized_model(
        self,
        samples,
        component_count: Optional[int] = None,
        max_component_count: Optional[int] = None,
    ) -> Model:
        """Maximized model with ``component_count`` components, or the BIC-selected one.

        Without ``component_count`` the search starts at ``min_component_count``
        and adds one component at a time until the next count's BIC does not
        strictly exceed the current one (or ``max_component_count`` is reached).
        A ``max_component_count`` below ``min_component_count`` raises ValueError.
        """
        if component_count is not None:
            return self._fit(samples, component_count)

        count = self.config.min_component_count
        if max_component_count is not None and max_component_count < count:
            raise ValueError(
                f"max_component_count={max_component_count} is below "
                f"min_component_count={count}"
            )

        x = _check_samples(samples)
        model = self._fit(x, count)

        while max_component_count is None or count < max_component_count:
            count += 1
            next_model = self._fit(x, count)

            if model.bic >= next_model.bic:
                logger.info(
                    "BIC did not improve with %d components (%.3f >= %.3f); keeping %d",
                    count, model.bic, next_model.bic, model.component_count,
                )
                return model

            model = next_model

        logger.info("Reached max_component_count=%d", max_component_count)
        return model

    def create_maximized_models(self, samples, max_component_count: int) -> List[Model]:
        """One maximized model per component count, from min_component_count to max_component_count."""
        x = _check_samples(samples)
        return [
            self._fit(x, count)
            for count in range(self.config.min_component_count, max_component_count + 1)
        ]


# ---------------------------
# Module-level shortcuts
# ---------------------------

def _optimizer(
    delta_ratio: float,
    max_iter: int,
    max_history: Optional[int],
    seed: Optional[int],
    generator: Optional[torch.Generator],
) -> EMOptimizer:
    config = OptimizerConfig(delta_ratio=delta_ratio, max_iter=max_iter, max_history=max_history)
    return EMOptimizer(config, generator=generator, seed=seed)


def create_model(
    samples,
    component_count: int,
    seed: Optional[int] = None,
    generator: Optional[torch.Generator] = None,
) -> Model:
    return EMOptimizer(generator=generator, seed=seed).create_model(samples, component_count)


def maximize(
    model: Model,
    delta_ratio: float = DEFAULT_DELTA_RATIO,
    max_iter: int = DEFAULT_MAX_ITER,
) -> Model:
    return EMOptimizer().maximize(model, delta_ratio=delta_ratio, max_iter=max_iter)


def create_maximized_model(
    samples,
    component_count: Optional[int] = None,
    delta_ratio: float = DEFAULT_DELTA_RATIO,
    max_iter: int = DEFAULT_MAX_ITER,
    max_component_count: Optional[int] = None,
    max_history: Optional[int] = None,
    seed: Optional[int] = None,
    generator: Optional[torch.Generator] = None,
) -> Model:
    opt = _optimizer(delta_ratio, max_iter, max_history, seed, generator)
    return opt.create_maximized_model(samples, component_count, max_component_count=max_component_count)


def create_maximized_models(
    samples,
    max_component_count: int,
    delta_ratio: float = DEFAULT_DELTA_RATIO,
    max_iter: int = DEFAULT_MAX_ITER,
    max_history: Optional[int] = None,
    seed: Optional[int] = None,
    generator: Optional[torch.Generator] = None,
) -> List[Model]:
    opt = _optimizer(delta_ratio, max_iter, max_history, seed, generator)
    return opt.create_maximized_models(samples, max_component_count)
