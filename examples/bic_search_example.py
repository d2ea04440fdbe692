"""
Example: choosing the number of components with the BIC search

Fits every component count from 2 to 5 side by side, then lets the greedy
BIC search pick one, on a synthetic three-cluster sample set.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
from exmax import EMOptimizer, OptimizerConfig, format_model, trajectory_frame

# Generate synthetic data
rng = np.random.RandomState(123)
X = np.concatenate([
    rng.randn(200) * 1.0,
    rng.randn(150) * 1.5 + 12.0,
    rng.randn(100) * 1.0 + 25.0,
])

print("="*80)
print("exmax - BIC-driven component selection")
print("="*80)
print()
print(f"Data: {len(X)} samples, true clusters at 0, 12, 25")
print()

optimizer = EMOptimizer(OptimizerConfig(delta_ratio=1e-3, max_iter=300), seed=123)

# Example 1: every count side by side
print("Example 1: create_maximized_models(samples, 5)")
print("-" * 80)
for model in optimizer.create_maximized_models(X, 5):
    means = ", ".join(f"{c.mu:.2f}" for c in model.components)
    print(f"K={model.component_count}  iterations={model.iteration:3d}  "
          f"log-likelihood={model.log_likelihood:10.3f}  BIC={model.bic:10.3f}  means=[{means}]")
print()

# Example 2: greedy search
print("Example 2: create_maximized_model(samples)")
print("-" * 80)
best = optimizer.create_maximized_model(X)
print(format_model(best))

# Example 3: the iteration history as a table
print("Example 3: trajectory_frame(best)")
print("-" * 80)
print(trajectory_frame(best).to_string(index=False))
