"""Observe EM parameter updates iteration-by-iteration, next to scikit-learn."""

import os
import sys
import time
import numpy as np
from sklearn.mixture import GaussianMixture

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from exmax import EMOptimizer, OptimizerConfig, trajectory_frame


def make_data(seed=42, n_per_cluster=2000):
    rng = np.random.RandomState(seed)
    return np.concatenate([
        rng.randn(n_per_cluster),
        rng.randn(n_per_cluster) * 1.5 + 9.0,
        rng.randn(n_per_cluster) + 20.0,
    ])


def observe_sklearn(X, n_components):
    """Observe scikit-learn EM iterations."""
    print("="*70)
    print("SCIKIT-LEARN GMM - Observing EM Iterations")
    print("="*70)

    gmm = GaussianMixture(
        n_components=n_components,
        covariance_type="spherical",
        max_iter=300,
        n_init=1,
        init_params="kmeans",
        tol=1e-3,
        random_state=42,
        verbose=2,
        verbose_interval=1,
    )

    t0 = time.perf_counter()
    gmm.fit(X.reshape(-1, 1))
    elapsed = time.perf_counter() - t0

    print(f"\n{'='*70}")
    print(f"Final Results:")
    print(f"  Converged: {gmm.converged_}")
    print(f"  Iterations: {gmm.n_iter_}")
    print(f"  Time: {elapsed*1000:.1f} ms")
    print(f"  Weights: {gmm.weights_}")
    print(f"  Means: {np.sort(gmm.means_.ravel())}")
    print(f"  BIC (sklearn sign, lower is better): {gmm.bic(X.reshape(-1, 1)):.3f}")
    print("="*70 + "\n")


def observe_exmax(X, n_components):
    """Observe exmax EM iterations through the recorded trajectory."""
    print("="*70)
    print("EXMAX - Observing EM Iterations")
    print("="*70)

    optimizer = EMOptimizer(OptimizerConfig(delta_ratio=1e-3), seed=42)

    t0 = time.perf_counter()
    model = optimizer.maximize(optimizer.create_model(X, n_components))
    elapsed = time.perf_counter() - t0

    df = trajectory_frame(model)
    df["gain"] = df["log_likelihood"].diff()
    print(df.to_string(index=False, float_format=lambda v: f"{v:.4f}"))

    print(f"\n{'='*70}")
    print(f"Final Results:")
    print(f"  Iterations: {model.iteration}")
    print(f"  Time: {elapsed*1000:.1f} ms")
    print(f"  Weights (fixed): {[c.tau for c in model.components]}")
    print(f"  Means: {np.sort([c.mu for c in model.components])}")
    print(f"  BIC (exmax sign, higher is better): {model.bic:.3f}")
    print("="*70 + "\n")


if __name__ == "__main__":
    X = make_data()
    print(f"\nConfiguration: N={len(X)}, K=3, true means 0 / 9 / 20\n")

    observe_sklearn(X, 3)

    print("\n" + "="*70)
    print("="*70)
    print("\n")

    observe_exmax(X, 3)
