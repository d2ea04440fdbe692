# exmax/_component.py
"""Single Gaussian mixture component and its density kernel.

Note on sigma: it is plugged into the density as the *variance* term, i.e.

    density(x) = exp(-(x - mu)^2 / (2 * sigma)) / sqrt(2 * pi * sigma)

and is not squared first. The optimizer re-estimates it as a square root of the
weighted squared deviations, so fitted values live on a standard-deviation-like
scale while the density reads them as a variance. Both halves are kept as-is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import torch

DTYPE = torch.float64

# Smallest positive normal float64. Added to every density so log() never sees 0.
DENSITY_FLOOR = float(torch.finfo(DTYPE).tiny)


def as_tensor(x) -> torch.Tensor:
    return torch.as_tensor(x, dtype=DTYPE)


@torch.no_grad()
def gaussian_density(samples, mu, sigma) -> torch.Tensor:
    """Floored Gaussian density, broadcast over samples and parameters.

    Typical shapes: samples (N, 1) against mu/sigma (K,) gives (N, K).
    NaN results (non-positive sigma, inf - inf, ...) collapse to DENSITY_FLOOR;
    everything else is shifted up by DENSITY_FLOOR.
    """
    x = as_tensor(samples)
    mu = as_tensor(mu)
    sigma = as_tensor(sigma)

    raw = torch.exp(-((x - mu) ** 2) / (2 * sigma)) / torch.sqrt(2 * math.pi * sigma)
    return torch.where(torch.isnan(raw), torch.full_like(raw, DENSITY_FLOOR), raw + DENSITY_FLOOR)


@dataclass(frozen=True)
class Component:
    """One mixture component: mean ``mu``, variance term ``sigma``, mixing weight ``tau``.

    Immutable. The optimizer builds fresh components on every EM iteration.
    """

    mu: float
    sigma: float
    tau: float

    def __post_init__(self) -> None:
        # accept numpy / tensor scalars, store plain floats
        object.__setattr__(self, "mu", float(self.mu))
        object.__setattr__(self, "sigma", float(self.sigma))
        object.__setattr__(self, "tau", float(self.tau))

    def density(self, sample: float) -> float:
        """Density of ``sample`` under this component, never NaN and always > 0."""
        return float(gaussian_density(float(sample), self.mu, self.sigma).item())
