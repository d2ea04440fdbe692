# tests/test_comparison.py
"""Cross-checks against scipy / scikit-learn reference implementations."""
import os
import sys
import math

import numpy as np
import torch
import pytest

from scipy import stats
from sklearn.mixture import GaussianMixture

# Make local modules importable
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from exmax import Component, Model, create_maximized_model
from exmax._optimizer import _maximization_step


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _two_clusters(seed: int, n: int = 150, gap: float = 25.0) -> np.ndarray:
    rng = np.random.RandomState(seed)
    return np.concatenate([rng.randn(n), rng.randn(n) + gap])


def _textbook_log_likelihood(model: Model) -> float:
    """sum_n log sum_k tau_k N(x_n | mu_k, var=sigma_k) via scipy."""
    x = model.samples.numpy()
    dens = np.stack([
        c.tau * stats.norm.pdf(x, loc=c.mu, scale=math.sqrt(c.sigma)) for c in model.components
    ], axis=1)
    return float(np.sum(np.log(dens.sum(axis=1))))


def _numpy_m_step(x: np.ndarray, mus: np.ndarray, sigmas: np.ndarray, taus: np.ndarray):
    """Same M-step written directly against scipy densities."""
    w = taus[None, :] * stats.norm.pdf(x[:, None], loc=mus[None, :], scale=np.sqrt(sigmas)[None, :])
    resp = w / w.sum(axis=1, keepdims=True)
    nk = resp.sum(axis=0)
    new_mus = (resp * x[:, None]).sum(axis=0) / nk
    new_sig = np.sqrt((resp * (x[:, None] - new_mus[None, :]) ** 2).sum(axis=0) / nk)
    return new_mus, np.maximum(new_sig, 1.0)


# ---------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------
@pytest.mark.parametrize("seed", [0, 1, 2])
def test_means_agree_with_sklearn_on_separated_clusters(seed):
    X = _two_clusters(seed)
    ours = create_maximized_model(X, 2, seed=seed)

    sk = GaussianMixture(n_components=2, covariance_type="spherical", random_state=seed).fit(X.reshape(-1, 1))

    our_means = np.sort([c.mu for c in ours.components])
    sk_means = np.sort(sk.means_.ravel())
    assert np.allclose(our_means, sk_means, atol=0.5), f"ours={our_means} sklearn={sk_means}"


def test_weighted_log_likelihood_is_below_textbook_value():
    X = _two_clusters(4, gap=4.0)
    model = create_maximized_model(X, 2, seed=4)
    assert model.log_likelihood <= _textbook_log_likelihood(model) + 1e-9


def test_m_step_matches_scipy_reference():
    rng = np.random.RandomState(9)
    x = np.concatenate([rng.randn(40) * 2.0, rng.randn(40) * 1.5 + 6.0])
    mus = np.array([-1.0, 2.0, 7.0])
    sigmas = np.array([2.0, 1.0, 3.0])
    taus = np.full(3, 1.0 / 3.0)

    model = Model([Component(m, s, t) for m, s, t in zip(mus, sigmas, taus)], torch.from_numpy(x))

    new_components = _maximization_step(model)
    ref_mus, ref_sigmas = _numpy_m_step(x, mus, sigmas, taus)

    assert np.allclose([c.mu for c in new_components], ref_mus, rtol=1e-9)
    assert np.allclose([c.sigma for c in new_components], ref_sigmas, rtol=1e-9)
    assert [c.tau for c in new_components] == pytest.approx(taus.tolist())
