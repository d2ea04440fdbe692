# exmax/_report.py
"""Human-readable and tabular views of fitted models."""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from ._model import Model

RULE = "=" * 48
THIN_RULE = "-" * 48


def format_model(model: Model) -> str:
    """Summary, final components and the full iteration history (oldest first)."""
    lines = [
        RULE,
        f"Components: {model.component_count}",
        f"Log Likelihood: {model.log_likelihood:.3f}",
        f"BIC: {model.bic:.3f}",
        THIN_RULE,
        "Final Components:",
    ]
    for i, c in enumerate(model.components, start=1):
        lines.append(f"{i}. Mu={c.mu:.3f} Sigma={c.sigma:.3f}")

    lines.append(THIN_RULE)
    lines.append("Iterations:")
    for step, m in enumerate(model.history(), start=1):
        means = " ".join(f"Mu{k}={c.mu:.1f}" for k, c in enumerate(m.components, start=1))
        lines.append(f"{step}. {means} Lk={m.log_likelihood:.3f}")

    return "\n".join(lines) + "\n"


def format_models(models: Iterable[Model]) -> str:
    return "".join(format_model(m) for m in models)


def trajectory_frame(model: Model) -> pd.DataFrame:
    """One row per EM iteration: iteration, log_likelihood, bic, mu_k, sigma_k."""
    rows = []
    for m in model.history():
        row = {
            "iteration": m.iteration,
            "log_likelihood": m.log_likelihood,
            "bic": m.bic,
        }
        for k, c in enumerate(m.components, start=1):
            row[f"mu_{k}"] = c.mu
        for k, c in enumerate(m.components, start=1):
            row[f"sigma_{k}"] = c.sigma
        rows.append(row)
    return pd.DataFrame(rows)
