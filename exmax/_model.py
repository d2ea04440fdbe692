# exmax/_model.py
"""Mixture model snapshots and the trajectory that records an EM run.

A ``Model`` is an immutable pairing of components with the samples they were
fit against. Everything derived from it (density matrix, responsibilities,
log-likelihood, BIC) is computed on first use and cached.

Iteration history lives in a ``Trajectory``: an append-only arena of the models
accepted during one optimization, indexed by iteration number. Each model knows
its arena and its index, so ``prior_model`` is a lookup rather than a pointer,
and the arena can be capped to the most recent models.

Shapes used below:
- samples:        (N,)
- means/sigmas:   (K,)
- density matrix: (N, K)
"""

from __future__ import annotations

import math
import numbers
from collections import deque
from typing import Deque, Iterable, List, Optional, Tuple, Union

import torch

from ._component import Component, as_tensor, gaussian_density
from ._errors import InvalidInput


class Trajectory:
    """Append-only record of accepted models, oldest first."""

    def __init__(self, models: Iterable["Model"] = (), max_models: Optional[int] = None) -> None:
        if max_models is not None and max_models <= 0:
            raise ValueError("max_models must be positive")
        self.max_models = max_models
        self._models: Deque[Model] = deque(maxlen=max_models)
        self._dropped = 0

        models = list(models)
        if models:
            # seeded from an earlier history; keep its iteration numbering
            self._dropped = models[0].iteration
            for m in models:
                self.append(m)

    def __len__(self) -> int:
        """Number of models ever appended (including truncated ones)."""
        return self._dropped + len(self._models)

    @property
    def first_iteration(self) -> int:
        return self._dropped

    def append(self, model: "Model") -> None:
        if model.iteration != len(self):
            raise ValueError(f"expected iteration {len(self)}, got {model.iteration}")
        if self.max_models is not None and len(self._models) == self.max_models:
            self._dropped += 1
        self._models.append(model)

    def get(self, iteration: int) -> Optional["Model"]:
        """Model at ``iteration``, or None if it was never recorded or was truncated."""
        pos = iteration - self._dropped
        if pos < 0 or pos >= len(self._models):
            return None
        return self._models[pos]

    def models(self) -> List["Model"]:
        return list(self._models)


class Model:
    """Univariate Gaussian mixture fit against an ordered sample sequence."""

    def __init__(
        self,
        components: Iterable[Component],
        samples,
        trajectory: Optional[Trajectory] = None,
        iteration: int = 0,
    ) -> None:
        components = tuple(components)
        if not components:
            raise InvalidInput("a model needs at least one component")

        samples = as_tensor(samples).reshape(-1).clone()
        if samples.numel() == 0:
            raise InvalidInput("a model needs at least one sample")

        self._components: Tuple[Component, ...] = components
        self._samples = samples
        self._trajectory = trajectory
        self._iteration = int(iteration)

        self._density: Optional[torch.Tensor] = None
        self._resp: Optional[torch.Tensor] = None
        self._log_likelihood: Optional[float] = None

    # -----------------------
    # Structure
    # -----------------------

    @property
    def components(self) -> Tuple[Component, ...]:
        return self._components

    @property
    def samples(self) -> torch.Tensor:
        """A copy of the samples; the model's own tensor is never handed out."""
        return self._samples.clone()

    @property
    def component_count(self) -> int:
        return len(self._components)

    @property
    def sample_count(self) -> int:
        return int(self._samples.numel())

    @property
    def means(self) -> torch.Tensor:
        return as_tensor([c.mu for c in self._components])

    @property
    def sigmas(self) -> torch.Tensor:
        return as_tensor([c.sigma for c in self._components])

    @property
    def taus(self) -> torch.Tensor:
        return as_tensor([c.tau for c in self._components])

    @property
    def trajectory(self) -> Optional[Trajectory]:
        return self._trajectory

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def prior_model(self) -> Optional["Model"]:
        """The model from the previous EM iteration, or None for the first one."""
        if self._trajectory is None or self._iteration == 0:
            return None
        return self._trajectory.get(self._iteration - 1)

    def history(self) -> List["Model"]:
        """Models leading up to and including this one, oldest first."""
        if self._trajectory is None:
            return [self]
        earlier = [m for m in self._trajectory.models() if m.iteration < self._iteration]
        return earlier + [self]

    # -----------------------
    # E-step quantities
    # -----------------------

    @torch.no_grad()
    def density_matrix(self) -> torch.Tensor:
        """Component densities for every sample, shape (N, K)."""
        if self._density is None:
            self._density = gaussian_density(self._samples.unsqueeze(1), self.means, self.sigmas)
        return self._density

    @torch.no_grad()
    def responsibilities(self) -> torch.Tensor:
        """Posterior component membership for every sample, shape (N, K).

        Rows whose weighted density sum is zero (or yields NaN) get 0 instead of
        NaN, so a row may sum to 0 rather than 1.
        """
        if self._resp is None:
            weighted = self.density_matrix() * self.taus.unsqueeze(0)  # (N,K)
            total = weighted.sum(dim=1, keepdim=True)                   # (N,1)
            resp = weighted / total
            zero = torch.zeros_like(resp)
            resp = torch.where(total > 0, resp, zero)
            self._resp = torch.where(torch.isnan(resp), zero, resp)
        return self._resp

    def responsibility(self, sample: float, component: Union[Component, int]) -> float:
        """Posterior probability that ``sample`` came from ``component``.

        ``component`` is either a Component or an index into ``components``.
        """
        if isinstance(component, numbers.Integral):
            component = self._components[component]

        d = gaussian_density(float(sample), self.means, self.sigmas)
        total = float(torch.sum(d * self.taus).item())
        if total == 0 or math.isnan(total):
            return 0.0

        r = component.density(sample) * component.tau / total
        if math.isnan(r):
            return 0.0
        return r

    # -----------------------
    # Scores
    # -----------------------

    @property
    @torch.no_grad()
    def log_likelihood(self) -> float:
        """Sum over samples of log prod_k (tau_k * density_k) ** resp_k.

        This responsibility-weighted form is what drives convergence and BIC.
        It is not the textbook log sum_k tau_k * density_k.
        """
        if self._log_likelihood is None:
            weighted = self.taus.unsqueeze(0) * self.density_matrix()          # (N,K)
            per_sample = torch.prod(weighted ** self.responsibilities(), dim=1)  # (N,)
            self._log_likelihood = float(torch.log(per_sample).sum().item())
        return self._log_likelihood

    @property
    def bic(self) -> float:
        """Bayesian information criterion; larger (less negative) is better."""
        return 2 * self.log_likelihood - self.component_count * math.log(self.sample_count)

    def __repr__(self) -> str:
        return (
            f"Model(components={self.component_count}, samples={self.sample_count}, "
            f"iteration={self._iteration}, log_likelihood={self.log_likelihood:.3f})"
        )

